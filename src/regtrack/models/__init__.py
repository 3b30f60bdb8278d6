"""Data models for the regression tracker."""

from regtrack.models.allowance import ALLOWANCE_DIMENSIONS, AllowanceError, IntentionalRegression
from regtrack.models.regression import RegressionRecord
from regtrack.models.report import (
    ComponentReport,
    IncidentRef,
    RegressedTestSummary,
    ReportColumn,
    ReportRow,
    ReportStatus,
    TestStats,
    TriagedIncident,
)
from regtrack.models.variant import (
    VARIANT_ARCH,
    VARIANT_NETWORK,
    VARIANT_PLATFORM,
    VARIANT_UPGRADE,
    VARIANT_VARIANT,
    Variant,
    VariantSet,
)

__all__ = [
    # Variants
    "Variant",
    "VariantSet",
    "VARIANT_ARCH",
    "VARIANT_NETWORK",
    "VARIANT_PLATFORM",
    "VARIANT_UPGRADE",
    "VARIANT_VARIANT",
    # Report
    "ComponentReport",
    "IncidentRef",
    "RegressedTestSummary",
    "ReportColumn",
    "ReportRow",
    "ReportStatus",
    "TestStats",
    "TriagedIncident",
    # Ledger
    "RegressionRecord",
    # Allowances
    "ALLOWANCE_DIMENSIONS",
    "AllowanceError",
    "IntentionalRegression",
]
