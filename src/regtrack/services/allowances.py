"""Intentional regression registry loaded once from a YAML file."""

import logging
from collections.abc import Iterator, Mapping
from pathlib import Path
from types import MappingProxyType

import yaml

from regtrack.models.allowance import ALLOWANCE_DIMENSIONS, AllowanceError, IntentionalRegression
from regtrack.models.variant import VariantSet

AllowanceKey = tuple[str, str, VariantSet]


class RegressionAllowances:
    """Read-only lookup of approved regressions by release and test identity."""

    def __init__(
        self,
        entries: Mapping[AllowanceKey, IntentionalRegression] | None = None,
        logger: logging.Logger | None = None,
    ):
        self._entries = MappingProxyType(dict(entries or {}))
        self.logger = logger

    @staticmethod
    def key_for(release: str, test_id: str, variants: VariantSet) -> AllowanceKey:
        """Build the lookup key, keeping only the allowance dimensions."""
        return (release, test_id, variants.subset(ALLOWANCE_DIMENSIONS))

    @classmethod
    def from_entries(
        cls,
        entries_by_release: Mapping[str, list[IntentionalRegression]],
        logger: logging.Logger | None = None,
    ) -> "RegressionAllowances":
        """Validate entries and build the registry.

        Raises:
            AllowanceError: If an entry is incomplete or a test is listed
                twice for the same release and variants.
        """
        entries: dict[AllowanceKey, IntentionalRegression] = {}
        for release, allowances in entries_by_release.items():
            for allowance in allowances:
                try:
                    allowance.validate()
                except AllowanceError as e:
                    raise AllowanceError(f"release {release}, test {allowance.test_id!r}: {e}") from e
                key = cls.key_for(release, allowance.test_id, allowance.variants)
                if key in entries:
                    raise AllowanceError(f"test {allowance.test_id!r} was already added for release {release}")
                entries[key] = allowance
        return cls(entries, logger=logger)

    @property
    def entries(self) -> Mapping[AllowanceKey, IntentionalRegression]:
        return self._entries

    def for_test(self, release: str, test_id: str, variants: VariantSet) -> IntentionalRegression | None:
        """Return the approved regression for this test, or None."""
        allowance = self._entries.get(self.key_for(release, test_id, variants))
        if allowance and self.logger:
            self.logger.debug(f"Found approved regression: {allowance.test_name} ({variants})")
        return allowance

    def releases(self) -> list[str]:
        """List releases that carry at least one allowance."""
        return sorted({release for release, _, _ in self._entries})

    def for_release(self, release: str) -> list[IntentionalRegression]:
        return [a for (r, _, _), a in self._entries.items() if r == release]

    def __iter__(self) -> Iterator[IntentionalRegression]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)


def load_allowances(path: Path, logger: logging.Logger | None = None) -> RegressionAllowances:
    """Load intentional regressions from a YAML file.

    Expected layout:

        releases:
          "4.16":
            - jira_component: Networking
              test_id: "openshift-tests:abc123"
              ...

    Args:
        path: Path to the allowances YAML file
        logger: Optional logger

    Returns:
        Immutable allowance registry

    Raises:
        AllowanceError: If the file is malformed or an entry is invalid
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise AllowanceError(f"unable to read regression allowances from {path}: {e}") from e

    releases = data.get("releases") or {}
    if not isinstance(releases, dict):
        raise AllowanceError(f"{path}: 'releases' must be a mapping of release to entries")

    entries_by_release = {
        str(release): [IntentionalRegression.from_dict(entry) for entry in entries or []]
        for release, entries in releases.items()
    }
    allowances = RegressionAllowances.from_entries(entries_by_release, logger=logger)

    if logger:
        logger.info(f"Loaded {len(allowances)} intentional regressions from {path}")
    return allowances
