"""Regression tracker - reconcile a component report with the regression ledger.

Each report cycle recomputes the set of regressed tests from scratch. The
tracker compares that set with the records currently in the ledger and
opens, reopens or closes records so the ledger follows the report:

    [no record] --regresses--> OPEN --clears--> CLOSED
    CLOSED --regresses again within the grace period--> OPEN (same record)
    CLOSED --grace period elapsed, regresses again--> new OPEN record
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from regtrack.models.allowance import IntentionalRegression
from regtrack.models.regression import RegressionRecord
from regtrack.models.report import ComponentReport, RegressedTestSummary
from regtrack.models.variant import VariantSet
from regtrack.services.allowances import RegressionAllowances
from regtrack.services.matcher import find_open_regression
from regtrack.services.stores.base import RegressionStore, StoreError
from regtrack.utils.logging import stage_context

_logger = logging.getLogger(__name__)


class SyncError(RuntimeError):
    """Raised when a reconciliation pass fails part way through."""


@dataclass
class SyncSummary:
    """What one reconciliation pass decided, and applied unless dry-running."""

    release: str
    dry_run: bool = False
    opened: list[RegressedTestSummary] = field(default_factory=list)
    opened_ids: list[str] = field(default_factory=list)
    reopened: list[RegressionRecord] = field(default_factory=list)
    unchanged: list[RegressionRecord] = field(default_factory=list)
    closed: list[RegressionRecord] = field(default_factory=list)
    skipped: list[RegressedTestSummary] = field(default_factory=list)
    allowed: list[IntentionalRegression] = field(default_factory=list)

    @property
    def mutations(self) -> int:
        """Number of store mutations decided this pass."""
        return len(self.opened) + len(self.reopened) + len(self.closed)

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "release": self.release,
            "dry_run": self.dry_run,
            "opened": [
                {"test_id": t.test_id, "test_name": t.test_name, "variants": dict(t.variants)}
                for t in self.opened
            ],
            "opened_ids": self.opened_ids,
            "reopened": [r.regression_id for r in self.reopened],
            "unchanged": [r.regression_id for r in self.unchanged],
            "closed": [r.regression_id for r in self.closed],
            "skipped": len(self.skipped),
            "allowed": [a.test_id for a in self.allowed],
        }


class RegressionTracker:
    """Keep the regression ledger in step with the latest component report.

    Args:
        store: Ledger the regressions are persisted in
        dry_run: Log and report decisions without calling any mutating store operation
        allowances: Approved intentional regressions, loaded once at startup
        logger: Logger for decisions; defaults to this module's logger
        clock: Returns the current time; used for close timestamps
    """

    def __init__(
        self,
        store: RegressionStore,
        dry_run: bool = False,
        allowances: RegressionAllowances | None = None,
        logger: logging.Logger | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.dry_run = dry_run
        self.allowances = allowances or RegressionAllowances()
        self.logger = logger or _logger
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def sync_component_report(self, release: str, report: ComponentReport) -> SyncSummary:
        """Run one reconciliation pass for a release.

        The pass stops at the first store failure. Mutations already applied
        are kept; re-running the pass converges because matching is keyed by
        test identity.

        Raises:
            SyncError: If the ledger could not be read or a mutation failed
        """
        with stage_context("sync_component_report", self.logger, release=release, dry_run=self.dry_run):
            return self._sync(release, report)

    def _sync(self, release: str, report: ComponentReport) -> SyncSummary:
        log_fields = {"release": release, "dry_run": self.dry_run}
        summary = SyncSummary(release=release, dry_run=self.dry_run)

        try:
            candidates = self.store.list_current(release)
        except StoreError as e:
            raise SyncError(f"error loading current regressions for {release}: {e}") from e
        self.logger.info(f"Loaded {len(candidates)} current regressions for {release}", extra=log_fields)

        matched_ids: set[str] = set()
        handled: set[tuple[str, VariantSet]] = set()

        for test in report.all_regressed_tests():
            if not test.test_id:
                self.logger.warning(
                    f"Skipping regressed test without a test ID: {test.test_name or '<unnamed>'} ({test.variants})",
                    extra=log_fields,
                )
                summary.skipped.append(test)
                continue

            identity = (test.test_id, test.variants)
            if identity in handled:
                self.logger.debug(f"Already handled {test.test_id} ({test.variants}) this pass", extra=log_fields)
                continue
            handled.add(identity)

            allowance = self.allowances.for_test(release, test.test_id, test.variants)
            if allowance:
                self.logger.info(
                    f"Regression of {test.test_name} ({test.variants}) is approved: "
                    f"{allowance.reason_to_allow_instead_of_fix}",
                    extra=log_fields,
                )
                summary.allowed.append(allowance)

            record = find_open_regression(release, test.test_id, test.variants, candidates)
            if record is None:
                self._open(release, test, summary, log_fields)
                continue

            matched_ids.add(record.regression_id)
            if record.is_open:
                self.logger.info(
                    f"Reusing already opened regression {record.regression_id} for {test.test_name}",
                    extra={**log_fields, "regression_id": record.regression_id},
                )
                summary.unchanged.append(record)
            else:
                self._reopen(record, summary, log_fields)

        # Close anything still open that the report no longer lists
        now = self.clock()
        for record in candidates:
            if record.regression_id in matched_ids or not record.is_open:
                continue
            self._close(record, now, summary, log_fields)

        self.logger.info(
            f"Sync for {release} complete: {len(summary.opened)} opened, {len(summary.reopened)} reopened, "
            f"{len(summary.closed)} closed, {len(summary.unchanged)} unchanged",
            extra=log_fields,
        )
        return summary

    def _open(self, release: str, test: RegressedTestSummary, summary: SyncSummary, log_fields: dict) -> None:
        self.logger.info(f"Opening new regression for {test.test_name} ({test.variants})", extra=log_fields)
        summary.opened.append(test)
        if self.dry_run:
            return
        try:
            record = self.store.open_regression(release, test)
        except StoreError as e:
            raise SyncError(f"error opening new regression for {test.test_id} ({test.variants}): {e}") from e
        summary.opened_ids.append(record.regression_id)
        self.logger.info(
            f"New regression opened with id {record.regression_id}",
            extra={**log_fields, "regression_id": record.regression_id},
        )

    def _reopen(self, record: RegressionRecord, summary: SyncSummary, log_fields: dict) -> None:
        # The test dropped out of the report and came back within the grace
        # period; keep its record and original opened date.
        self.logger.info(
            f"Re-opening regression {record.regression_id} for {record.test_name} (closed {record.closed})",
            extra={**log_fields, "regression_id": record.regression_id},
        )
        summary.reopened.append(record)
        if self.dry_run:
            return
        try:
            self.store.reopen_regression(record.regression_id)
        except StoreError as e:
            raise SyncError(f"error re-opening regression {record.regression_id}: {e}") from e

    def _close(self, record: RegressionRecord, now: datetime, summary: SyncSummary, log_fields: dict) -> None:
        self.logger.info(
            f"Closing regression {record.regression_id} for {record.test_name} ({record.variants}), "
            "no longer in the report",
            extra={**log_fields, "regression_id": record.regression_id},
        )
        summary.closed.append(record)
        if self.dry_run:
            return
        try:
            self.store.close_regression(record.regression_id, now)
        except StoreError as e:
            raise SyncError(f"error closing regression {record.regression_id}: {e}") from e
