"""Variant model - the dimension values that scope a test's identity."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass

# Well-known dimension names produced by variant classification
VARIANT_NETWORK = "Network"
VARIANT_UPGRADE = "Upgrade"
VARIANT_ARCH = "Arch"
VARIANT_PLATFORM = "Platform"
VARIANT_VARIANT = "Variant"


@dataclass(frozen=True)
class Variant:
    """A single dimension name/value pair as stored in the ledger."""

    key: str
    value: str

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {"key": self.key, "value": self.value}

    @classmethod
    def from_dict(cls, data: dict) -> Variant:
        """Deserialize from dictionary."""
        return cls(key=data["key"], value=data.get("value") or "")


class VariantSet(Mapping):
    """Unordered, immutable set of dimension values.

    Two sets are equal when they hold the same pairs, regardless of the
    order they were built in.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, str] | None = None):
        self._values = dict(sorted((values or {}).items()))

    @classmethod
    def from_pairs(cls, pairs: Iterable[Variant | dict]) -> VariantSet:
        """Build a set from stored key/value pairs."""
        values: dict[str, str] = {}
        for pair in pairs:
            if isinstance(pair, dict):
                pair = Variant.from_dict(pair)
            values[pair.key] = pair.value
        return cls(values)

    @classmethod
    def from_mapping(cls, values: Mapping | None) -> VariantSet:
        """Build a set from decoded JSON or YAML, where a null value reads as empty."""
        return cls({str(k): "" if v is None else str(v) for k, v in (values or {}).items()})

    def to_pairs(self) -> list[Variant]:
        """Render as a list of pairs sorted by dimension name."""
        return [Variant(key=k, value=v) for k, v in self._values.items()]

    def matches(self, candidate: Mapping[str, str]) -> bool:
        """Check every dimension in this set has an equal value in candidate.

        Dimensions missing from the candidate compare as the empty string.
        """
        return all(candidate.get(key, "") == value for key, value in self._values.items())

    def subset(self, keys: Iterable[str]) -> VariantSet:
        """Restrict to the named dimensions."""
        return VariantSet({k: self._values.get(k, "") for k in keys})

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, VariantSet):
            return self._values == other._values
        if isinstance(other, Mapping):
            return self._values == dict(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(frozenset(self._values.items()))

    def __repr__(self) -> str:
        return f"VariantSet({self._values!r})"

    def __str__(self) -> str:
        return ",".join(f"{k}={v}" for k, v in self._values.items())
