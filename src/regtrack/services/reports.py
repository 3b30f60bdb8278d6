"""Load component reports produced by the report generator."""

import json
import logging
from pathlib import Path

from regtrack.models.report import ComponentReport


class ReportError(ValueError):
    """Raised when a component report file cannot be read or decoded."""


def load_component_report(path: Path, logger: logging.Logger | None = None) -> ComponentReport:
    """Load a component report from a JSON file.

    Args:
        path: Path to the report JSON
        logger: Optional logger

    Returns:
        Decoded component report

    Raises:
        ReportError: If the file is missing or is not a valid report
    """
    try:
        with open(path) as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ReportError(f"unable to read component report from {path}: {e}") from e

    if not isinstance(data, dict):
        raise ReportError(f"{path}: component report must be a JSON object")

    try:
        report = ComponentReport.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise ReportError(f"{path}: invalid component report: {e}") from e

    if logger:
        logger.debug(f"Loaded component report with {len(report.rows)} rows from {path}")
    return report
