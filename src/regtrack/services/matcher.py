"""Match regressed tests against tracked regression records."""

from collections.abc import Iterable

from regtrack.models.regression import RegressionRecord
from regtrack.models.variant import VariantSet


def find_open_regression(
    release: str,
    test_id: str,
    variants: VariantSet,
    candidates: Iterable[RegressionRecord],
) -> RegressionRecord | None:
    """Find the tracked regression for a test, if any.

    Candidates are the open and recently closed records for the release.
    Matching uses the test ID rather than the name, since names change when
    tests are renamed. Every supplied variant must be present with the same
    value on the candidate.

    Args:
        release: Release the test regressed in
        test_id: Stable test identifier
        variants: Variant dimensions scoping the test
        candidates: Records to search

    Returns:
        The first matching record, or None if the test is not tracked
    """
    for record in candidates:
        if record.release != release:
            continue
        if record.test_id != test_id:
            continue
        if not variants.matches(record.variants):
            continue
        return record
    return None
