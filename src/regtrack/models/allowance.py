"""Intentional regression model - a regression approved instead of fixed."""

from __future__ import annotations

from dataclasses import dataclass, field

from regtrack.models.variant import (
    VARIANT_ARCH,
    VARIANT_NETWORK,
    VARIANT_PLATFORM,
    VARIANT_UPGRADE,
    VariantSet,
)

# Dimensions that scope an allowance; other dimensions are ignored for lookup
ALLOWANCE_DIMENSIONS = (VARIANT_NETWORK, VARIANT_UPGRADE, VARIANT_ARCH, VARIANT_PLATFORM)


class AllowanceError(ValueError):
    """Raised when an intentional regression entry is incomplete or duplicated."""


@dataclass(frozen=True)
class IntentionalRegression:
    """A regression the owning team has chosen to accept for a release."""

    jira_component: str
    test_id: str
    test_name: str
    variants: VariantSet = field(default_factory=VariantSet)
    previous_pass_percentage: int = 0
    previous_sample_size: int = 0
    regressed_pass_percentage: int = 0
    regressed_sample_size: int = 0
    reason_to_allow_instead_of_fix: str = ""

    @property
    def key_variants(self) -> VariantSet:
        return self.variants.subset(ALLOWANCE_DIMENSIONS)

    def validate(self) -> None:
        """Raise AllowanceError naming the first missing field."""
        if not self.jira_component:
            raise AllowanceError("jira_component must be specified")
        if not self.test_id:
            raise AllowanceError("test_id must be specified")
        if not self.test_name:
            raise AllowanceError("test_name must be specified")
        if self.previous_pass_percentage <= 0:
            raise AllowanceError("previous_pass_percentage must be specified")
        if self.regressed_pass_percentage <= 0:
            raise AllowanceError("regressed_pass_percentage must be specified")
        if self.previous_sample_size <= 0:
            raise AllowanceError("previous_sample_size must be specified")
        if self.regressed_sample_size <= 0:
            raise AllowanceError("regressed_sample_size must be specified")
        if not self.reason_to_allow_instead_of_fix:
            raise AllowanceError("reason_to_allow_instead_of_fix must be specified")
        for dimension in ALLOWANCE_DIMENSIONS:
            if not self.variants.get(dimension):
                raise AllowanceError(f"{dimension.lower()} must be specified")

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "jira_component": self.jira_component,
            "test_id": self.test_id,
            "test_name": self.test_name,
            "variants": dict(self.variants),
            "previous_pass_percentage": self.previous_pass_percentage,
            "previous_sample_size": self.previous_sample_size,
            "regressed_pass_percentage": self.regressed_pass_percentage,
            "regressed_sample_size": self.regressed_sample_size,
            "reason_to_allow_instead_of_fix": self.reason_to_allow_instead_of_fix,
        }

    @classmethod
    def from_dict(cls, data: dict) -> IntentionalRegression:
        """Deserialize from dictionary."""
        return cls(
            jira_component=data.get("jira_component", ""),
            test_id=data.get("test_id", ""),
            test_name=data.get("test_name", ""),
            variants=VariantSet.from_mapping(data.get("variants")),
            previous_pass_percentage=data.get("previous_pass_percentage", 0),
            previous_sample_size=data.get("previous_sample_size", 0),
            regressed_pass_percentage=data.get("regressed_pass_percentage", 0),
            regressed_sample_size=data.get("regressed_sample_size", 0),
            reason_to_allow_instead_of_fix=data.get("reason_to_allow_instead_of_fix", ""),
        )
