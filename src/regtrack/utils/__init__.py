"""Utility modules for the regression tracker."""

from regtrack.utils.config import RegTrackConfig, get_data_dir, load_config
from regtrack.utils.logging import get_logger, stage_context

__all__ = [
    "RegTrackConfig",
    "load_config",
    "get_data_dir",
    "get_logger",
    "stage_context",
]
