"""Regression model - one tracked regression in the ledger."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from regtrack.models.report import RegressedTestSummary, TestStats
from regtrack.models.variant import VariantSet


def _parse_timestamp(value: datetime | str | None) -> datetime | None:
    """Parse a stored timestamp, assuming UTC when no zone is present."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _stats_from_row(row: dict, prefix: str) -> TestStats | None:
    if row.get(f"{prefix}_success_count") is None:
        return None
    return TestStats(
        success_count=row.get(f"{prefix}_success_count") or 0,
        failure_count=row.get(f"{prefix}_failure_count") or 0,
        flake_count=row.get(f"{prefix}_flake_count") or 0,
    )


def _stats_to_row(stats: TestStats | None, prefix: str) -> dict:
    if stats is None:
        return {
            f"{prefix}_success_count": None,
            f"{prefix}_failure_count": None,
            f"{prefix}_flake_count": None,
            f"{prefix}_success_rate": None,
        }
    return {
        f"{prefix}_success_count": stats.success_count,
        f"{prefix}_failure_count": stats.failure_count,
        f"{prefix}_flake_count": stats.flake_count,
        f"{prefix}_success_rate": stats.success_rate,
    }


@dataclass
class RegressionRecord:
    """A regression tracked from the moment it appears in a report until it clears.

    `regression_id` is the only key used for mutation. `test_id` plus
    `variants` form the identity used for matching; `test_name` is a
    denormalized label that may go stale after a rename.
    """

    regression_id: str
    release: str
    test_id: str
    test_name: str
    variants: VariantSet = field(default_factory=VariantSet)
    opened: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    closed: datetime | None = None
    sample_stats: TestStats | None = None
    basis_stats: TestStats | None = None

    @classmethod
    def open_for(
        cls,
        release: str,
        summary: RegressedTestSummary,
        now: datetime | None = None,
    ) -> RegressionRecord:
        """Create a new open record for a freshly regressed test."""
        return cls(
            regression_id=str(uuid4()),
            release=release,
            test_id=summary.test_id,
            test_name=summary.test_name,
            variants=summary.variants,
            opened=now or datetime.now(timezone.utc),
            closed=None,
            sample_stats=summary.sample_stats,
            basis_stats=summary.basis_stats,
        )

    @property
    def is_open(self) -> bool:
        return self.closed is None

    def is_recently_closed(self, now: datetime, grace_period: timedelta) -> bool:
        """Check if the record closed within the grace window before now."""
        return self.closed is not None and self.closed > now - grace_period

    def to_dict(self) -> dict:
        """Serialize to dictionary for JSON storage."""
        return {
            "regression_id": self.regression_id,
            "release": self.release,
            "test_id": self.test_id,
            "test_name": self.test_name,
            "variants": [v.to_dict() for v in self.variants.to_pairs()],
            "opened": self.opened.isoformat(),
            "closed": self.closed.isoformat() if self.closed else None,
            "sample_stats": self.sample_stats.to_dict() if self.sample_stats else None,
            "basis_stats": self.basis_stats.to_dict() if self.basis_stats else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> RegressionRecord:
        """Deserialize from dictionary."""
        return cls(
            regression_id=data["regression_id"],
            release=data["release"],
            test_id=data["test_id"],
            test_name=data.get("test_name", ""),
            variants=VariantSet.from_pairs(data.get("variants") or []),
            opened=_parse_timestamp(data["opened"]),
            closed=_parse_timestamp(data.get("closed")),
            sample_stats=TestStats.from_dict(data["sample_stats"]) if data.get("sample_stats") else None,
            basis_stats=TestStats.from_dict(data["basis_stats"]) if data.get("basis_stats") else None,
        )

    def to_row(self) -> dict:
        """Serialize to a `test_regressions` table row."""
        row = {
            "regression_id": self.regression_id,
            "release": self.release,
            "test_id": self.test_id,
            "test_name": self.test_name,
            "variants": [v.to_dict() for v in self.variants.to_pairs()],
            "opened": self.opened.isoformat(),
            "closed": self.closed.isoformat() if self.closed else None,
        }
        row.update(_stats_to_row(self.sample_stats, "sample"))
        row.update(_stats_to_row(self.basis_stats, "basis"))
        return row

    @classmethod
    def from_row(cls, row: dict) -> RegressionRecord:
        """Deserialize from a `test_regressions` table row."""
        return cls(
            regression_id=row["regression_id"],
            release=row["release"],
            test_id=row["test_id"],
            test_name=row.get("test_name") or "",
            variants=VariantSet.from_pairs(row.get("variants") or []),
            opened=_parse_timestamp(row["opened"]),
            closed=_parse_timestamp(row.get("closed")),
            sample_stats=_stats_from_row(row, "sample"),
            basis_stats=_stats_from_row(row, "basis"),
        )
