"""Component report models - the regressed tests a report cycle produced."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum

from regtrack.models.variant import (
    VARIANT_ARCH,
    VARIANT_NETWORK,
    VARIANT_PLATFORM,
    VARIANT_UPGRADE,
    VARIANT_VARIANT,
    VariantSet,
)

# Flat identification fields used by older reports, mapped to dimension names
LEGACY_VARIANT_FIELDS = {
    "network": VARIANT_NETWORK,
    "upgrade": VARIANT_UPGRADE,
    "arch": VARIANT_ARCH,
    "platform": VARIANT_PLATFORM,
    "variant": VARIANT_VARIANT,
}


class ReportStatus(IntEnum):
    """Outcome of the sample/basis comparison for one cell or test."""

    EXTREME_REGRESSION = -5
    SIGNIFICANT_REGRESSION = -4
    EXTREME_TRIAGED_REGRESSION = -3
    SIGNIFICANT_TRIAGED_REGRESSION = -2
    MISSING_SAMPLE = -1
    NO_SIGNIFICANT_DIFFERENCE = 0
    MISSING_BASIS = 1
    MISSING_BASIS_AND_SAMPLE = 2
    SIGNIFICANT_IMPROVEMENT = 3

    @property
    def is_regression(self) -> bool:
        return self <= ReportStatus.SIGNIFICANT_TRIAGED_REGRESSION


def _variants_from_dict(data: dict) -> VariantSet:
    """Read variants from a `variants` mapping or the legacy flat fields."""
    if "variants" in data:
        variants = data["variants"] or {}
        if isinstance(variants, list):
            return VariantSet.from_pairs(variants)
        return VariantSet.from_mapping(variants)
    return VariantSet(
        {dim: str(data[name]) for name, dim in LEGACY_VARIANT_FIELDS.items() if data.get(name) is not None}
    )


@dataclass
class TestStats:
    """Pass/fail/flake counts for one window of test runs."""

    __test__ = False  # keep pytest from collecting this as a test class

    success_count: int = 0
    failure_count: int = 0
    flake_count: int = 0

    @property
    def total_count(self) -> int:
        return self.success_count + self.failure_count + self.flake_count

    @property
    def success_rate(self) -> float:
        """Fraction of runs that passed, counting flakes as passes."""
        if self.total_count == 0:
            return 0.0
        return (self.success_count + self.flake_count) / self.total_count

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "flake_count": self.flake_count,
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> TestStats:
        """Deserialize from dictionary."""
        data = data or {}
        return cls(
            success_count=data.get("success_count", 0),
            failure_count=data.get("failure_count", 0),
            flake_count=data.get("flake_count", 0),
        )


@dataclass
class RegressedTestSummary:
    """One test the statistical comparison judged as regressed."""

    test_id: str
    test_name: str
    variants: VariantSet = field(default_factory=VariantSet)
    sample_stats: TestStats = field(default_factory=TestStats)
    basis_stats: TestStats = field(default_factory=TestStats)
    component: str = ""
    capability: str = ""
    status: ReportStatus = ReportStatus.SIGNIFICANT_REGRESSION

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "test_id": self.test_id,
            "test_name": self.test_name,
            "variants": dict(self.variants),
            "sample_stats": self.sample_stats.to_dict(),
            "basis_stats": self.basis_stats.to_dict(),
            "component": self.component,
            "capability": self.capability,
            "status": int(self.status),
        }

    @classmethod
    def from_dict(cls, data: dict) -> RegressedTestSummary:
        """Deserialize from dictionary."""
        return cls(
            test_id=data.get("test_id") or "",
            test_name=data.get("test_name") or "",
            variants=_variants_from_dict(data),
            sample_stats=TestStats.from_dict(data.get("sample_stats")),
            basis_stats=TestStats.from_dict(data.get("basis_stats")),
            component=data.get("component", ""),
            capability=data.get("capability", ""),
            status=ReportStatus(data.get("status", ReportStatus.SIGNIFICANT_REGRESSION)),
        )


@dataclass
class IncidentRef:
    """A human-attached annotation explaining a regression."""

    issue_url: str = ""
    description: str = ""
    incident_id: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> IncidentRef:
        """Deserialize from dictionary."""
        return cls(
            issue_url=data.get("issue_url", ""),
            description=data.get("description", ""),
            incident_id=data.get("incident_id", ""),
        )


@dataclass
class TriagedIncident:
    """A regressed test that has been triaged but is not resolved."""

    summary: RegressedTestSummary
    incidents: list[IncidentRef] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> TriagedIncident:
        """Deserialize from dictionary.

        The summary may be nested under `summary` or inlined alongside
        `incidents`.
        """
        summary_data = data.get("summary", data)
        return cls(
            summary=RegressedTestSummary.from_dict(summary_data),
            incidents=[IncidentRef.from_dict(i) for i in data.get("incidents", [])],
        )


@dataclass
class ReportColumn:
    """One variant column within a report row."""

    variants: VariantSet = field(default_factory=VariantSet)
    regressed_tests: list[RegressedTestSummary] = field(default_factory=list)
    triaged_incidents: list[TriagedIncident] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> ReportColumn:
        """Deserialize from dictionary."""
        return cls(
            variants=_variants_from_dict(data),
            regressed_tests=[RegressedTestSummary.from_dict(t) for t in data.get("regressed_tests") or []],
            triaged_incidents=[TriagedIncident.from_dict(t) for t in data.get("triaged_incidents") or []],
        )


@dataclass
class ReportRow:
    """A component row of the report grid."""

    component: str = ""
    columns: list[ReportColumn] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> ReportRow:
        """Deserialize from dictionary."""
        return cls(
            component=data.get("component", ""),
            columns=[ReportColumn.from_dict(c) for c in data.get("columns") or []],
        )


@dataclass
class ComponentReport:
    """Grid of component rows by variant columns for a release comparison."""

    rows: list[ReportRow] = field(default_factory=list)
    generated_at: datetime | None = None

    def all_regressed_tests(self) -> list[RegressedTestSummary]:
        """Collect every regressed test, triaged or not, in report order.

        Triaged regressions stay in the result: triage explains a
        regression, it does not resolve it.
        """
        tests: list[RegressedTestSummary] = []
        for row in self.rows:
            for column in row.columns:
                tests.extend(column.regressed_tests)
                tests.extend(triaged.summary for triaged in column.triaged_incidents)
        return tests

    @classmethod
    def from_dict(cls, data: dict) -> ComponentReport:
        """Deserialize from dictionary."""
        generated_at = data.get("generated_at")
        return cls(
            rows=[ReportRow.from_dict(r) for r in data.get("rows") or []],
            generated_at=datetime.fromisoformat(generated_at.replace("Z", "+00:00")) if generated_at else None,
        )
