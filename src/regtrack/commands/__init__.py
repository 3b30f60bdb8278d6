"""CLI command modules for the regression tracker."""

from regtrack.commands import allowances, init, regressions, sync

__all__ = [
    "sync",
    "regressions",
    "init",
    "allowances",
]
