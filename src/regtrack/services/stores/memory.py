"""In-memory regression store for tests and local experiments."""

from datetime import datetime, timedelta, timezone

from regtrack.models.regression import RegressionRecord
from regtrack.models.report import RegressedTestSummary
from regtrack.services.stores.base import DEFAULT_GRACE_PERIOD, RegressionStore, StoreError


class MemoryRegressionStore(RegressionStore):
    """Keep regression records in a list.

    Every mutating call is appended to `calls` as (operation, argument)
    so callers can assert on what reached the store. Operations named in
    `fail_on` raise StoreError instead of running.
    """

    def __init__(
        self,
        records: list[RegressionRecord] | None = None,
        grace_period: timedelta = DEFAULT_GRACE_PERIOD,
        fail_on: set[str] | None = None,
    ):
        self.records: list[RegressionRecord] = list(records or [])
        self.grace_period = grace_period
        self.fail_on = set(fail_on or ())
        self.calls: list[tuple[str, str]] = []

    def _check(self, operation: str) -> None:
        if operation in self.fail_on:
            raise StoreError(f"{operation} failed")

    def _get(self, regression_id: str) -> RegressionRecord:
        for record in self.records:
            if record.regression_id == regression_id:
                return record
        raise StoreError(f"no regression found with id {regression_id}")

    def list_current(self, release: str) -> list[RegressionRecord]:
        self._check("list_current")
        now = datetime.now(timezone.utc)
        return [
            RegressionRecord.from_dict(r.to_dict())
            for r in self.records
            if r.release == release and (r.is_open or r.is_recently_closed(now, self.grace_period))
        ]

    def open_regression(self, release: str, summary: RegressedTestSummary) -> RegressionRecord:
        self._check("open_regression")
        record = RegressionRecord.open_for(release, summary)
        self.records.append(record)
        self.calls.append(("open_regression", record.regression_id))
        return record

    def reopen_regression(self, regression_id: str) -> None:
        self._check("reopen_regression")
        self._get(regression_id).closed = None
        self.calls.append(("reopen_regression", regression_id))

    def close_regression(self, regression_id: str, closed_at: datetime) -> None:
        self._check("close_regression")
        self._get(regression_id).closed = closed_at
        self.calls.append(("close_regression", regression_id))

    def get(self, regression_id: str) -> RegressionRecord:
        """Return the stored record for an id."""
        return self._get(regression_id)
