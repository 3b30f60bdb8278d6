"""JSON file regression store - a local ledger for single-host deployments."""

import json
import logging
import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

from regtrack.models.regression import RegressionRecord
from regtrack.models.report import RegressedTestSummary
from regtrack.services.stores.base import DEFAULT_GRACE_PERIOD, RegressionStore, StoreError

LEDGER_VERSION = 1


class JSONRegressionStore(RegressionStore):
    """Store regressions in a single JSON ledger file.

    The file is re-read on every call and rewritten atomically after every
    mutation, so a crash mid-write leaves the previous ledger intact.
    """

    def __init__(
        self,
        ledger_path: Path,
        grace_period: timedelta = DEFAULT_GRACE_PERIOD,
        logger: logging.Logger | None = None,
    ):
        self.ledger_path = Path(ledger_path)
        self.grace_period = grace_period
        self.logger = logger

    def _load(self) -> list[RegressionRecord]:
        """Load all records from disk."""
        if not self.ledger_path.exists():
            return []
        try:
            with open(self.ledger_path) as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError(f"expected an object, got {type(data).__name__}")
            entries = data.get("regressions") or []
            if not isinstance(entries, list) or not all(isinstance(r, dict) for r in entries):
                raise ValueError("regressions must be a list of objects")
            return [RegressionRecord.from_dict(r) for r in entries]
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise StoreError(f"Failed to read regression ledger {self.ledger_path}: {e}") from e

    def _save(self, records: list[RegressionRecord]) -> None:
        """Write all records to disk atomically."""
        data = {
            "version": LEDGER_VERSION,
            "updated_at": datetime.now(timezone.utc).isoformat(),
            "regressions": [r.to_dict() for r in records],
        }
        try:
            self.ledger_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.ledger_path.parent, suffix=".tmp")
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.ledger_path)
        except OSError as e:
            raise StoreError(f"Failed to write regression ledger {self.ledger_path}: {e}") from e

    def _update_closed(self, regression_id: str, closed: datetime | None) -> None:
        records = self._load()
        for record in records:
            if record.regression_id == regression_id:
                record.closed = closed
                break
        else:
            raise StoreError(f"No regression found with id {regression_id}")
        self._save(records)

    def initialize(self) -> bool:
        """Create an empty ledger if none exists. Returns True if created."""
        if self.ledger_path.exists():
            return False
        self._save([])
        return True

    def list_current(self, release: str) -> list[RegressionRecord]:
        now = datetime.now(timezone.utc)
        current = [
            r
            for r in self._load()
            if r.release == release and (r.is_open or r.is_recently_closed(now, self.grace_period))
        ]
        if self.logger:
            self.logger.debug(f"Loaded {len(current)} current regressions for {release} from {self.ledger_path}")
        return current

    def open_regression(self, release: str, summary: RegressedTestSummary) -> RegressionRecord:
        records = self._load()
        record = RegressionRecord.open_for(release, summary)
        records.append(record)
        self._save(records)
        return record

    def reopen_regression(self, regression_id: str) -> None:
        self._update_closed(regression_id, None)

    def close_regression(self, regression_id: str, closed_at: datetime) -> None:
        self._update_closed(regression_id, closed_at)
