"""Regression store interface shared by every ledger backend."""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta

from regtrack.models.regression import RegressionRecord
from regtrack.models.report import RegressedTestSummary

# Closed regressions stay visible this long so a reappearing test reuses its record
DEFAULT_GRACE_PERIOD = timedelta(days=2)

TEST_REGRESSIONS_TABLE = "test_regressions"


class StoreError(RuntimeError):
    """Raised when the regression ledger cannot be read or written."""


class RegressionStore(ABC):
    """Where regressions are persisted as they appear in and disappear from reports."""

    grace_period: timedelta = DEFAULT_GRACE_PERIOD

    @abstractmethod
    def list_current(self, release: str) -> list[RegressionRecord]:
        """List open regressions plus those closed within the grace period."""

    @abstractmethod
    def open_regression(self, release: str, summary: RegressedTestSummary) -> RegressionRecord:
        """Persist and return a new open regression for the given test."""

    @abstractmethod
    def reopen_regression(self, regression_id: str) -> None:
        """Clear the closed timestamp of a recently closed regression."""

    @abstractmethod
    def close_regression(self, regression_id: str, closed_at: datetime) -> None:
        """Mark a regression closed at the given time."""
