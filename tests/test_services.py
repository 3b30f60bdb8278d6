"""Tests for regression tracker services."""

import json
from datetime import datetime, timedelta, timezone

import pytest
import yaml
from conftest import RELEASE, make_record, make_report, make_summary

from regtrack.models import AllowanceError, IntentionalRegression, VariantSet
from regtrack.services.allowances import RegressionAllowances, load_allowances
from regtrack.services.matcher import find_open_regression
from regtrack.services.reports import ReportError, load_component_report
from regtrack.services.stores import MemoryRegressionStore
from regtrack.services.tracker import RegressionTracker, SyncError


class TestFindOpenRegression:
    """Tests for the regression matcher."""

    def test_match_by_test_id_and_variants(self):
        """Test an identical identity matches."""
        record = make_record("T1", Platform="aws", Network="ovn")

        match = find_open_regression(RELEASE, "T1", VariantSet({"Platform": "aws", "Network": "ovn"}), [record])

        assert match is record

    def test_no_match_on_different_variant_value(self):
        """Test a differing variant value does not match."""
        record = make_record("T1", Platform="aws", Network="ovn")

        match = find_open_regression(RELEASE, "T1", VariantSet({"Platform": "aws", "Network": "sdn"}), [record])

        assert match is None

    def test_no_match_on_other_release(self):
        """Test records from another release are ignored."""
        record = make_record("T1", release="4.15")

        assert find_open_regression(RELEASE, "T1", VariantSet({"Platform": "aws"}), [record]) is None

    def test_matches_on_id_not_name(self):
        """Test a renamed test still matches its record."""
        record = make_record("T1")
        record.test_name = "old name before rename"

        assert find_open_regression(RELEASE, "T1", VariantSet({"Platform": "aws"}), [record]) is record

    def test_no_match_on_other_test_id(self):
        """Test a different test id never matches."""
        assert find_open_regression(RELEASE, "T2", VariantSet({"Platform": "aws"}), [make_record("T1")]) is None

    def test_returns_first_match(self):
        """Test the first matching candidate is returned."""
        first = make_record("T1", closed_days_ago=1)
        first.regression_id = "first"
        second = make_record("T1")
        second.regression_id = "second"

        match = find_open_regression(RELEASE, "T1", VariantSet({"Platform": "aws"}), [first, second])

        assert match.regression_id == "first"

    def test_empty_candidates(self):
        """Test no candidates means no match."""
        assert find_open_regression(RELEASE, "T1", VariantSet(), []) is None


class TestRegressionTracker:
    """Tests for the reconciliation engine."""

    def test_opens_on_first_sight(self):
        """Test a newly regressed test gets a new open record."""
        store = MemoryRegressionStore()
        tracker = RegressionTracker(store)

        summary = tracker.sync_component_report(RELEASE, make_report([make_summary("T1", Platform="aws")]))

        assert len(store.records) == 1
        record = store.records[0]
        assert record.test_id == "T1"
        assert record.variants == VariantSet({"Platform": "aws"})
        assert record.is_open
        assert summary.opened_ids == [record.regression_id]

    def test_idempotent(self):
        """Test a second pass with the same report mutates nothing."""
        store = MemoryRegressionStore()
        tracker = RegressionTracker(store)
        report = make_report([make_summary("T1"), make_summary("T2", Platform="gcp")])

        tracker.sync_component_report(RELEASE, report)
        calls_after_first = list(store.calls)
        second = tracker.sync_component_report(RELEASE, report)

        assert store.calls == calls_after_first
        assert second.mutations == 0
        assert len(second.unchanged) == 2

    def test_closes_on_disappearance(self):
        """Test an open record no longer in the report is closed."""
        now = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
        record = make_record("T1")
        store = MemoryRegressionStore([record])
        tracker = RegressionTracker(store, clock=lambda: now)

        summary = tracker.sync_component_report(RELEASE, make_report([]))

        assert store.get(record.regression_id).closed == now
        assert len(store.records) == 1
        assert [r.regression_id for r in summary.closed] == [record.regression_id]

    def test_reopens_within_grace(self):
        """Test a record closed a day ago is reopened with its opened date kept."""
        record = make_record("T1", closed_days_ago=1)
        opened = record.opened
        store = MemoryRegressionStore([record])

        RegressionTracker(store).sync_component_report(RELEASE, make_report([make_summary("T1")]))

        assert len(store.records) == 1
        reopened = store.get(record.regression_id)
        assert reopened.closed is None
        assert reopened.opened == opened
        assert store.calls == [("reopen_regression", record.regression_id)]

    def test_new_record_past_grace(self):
        """Test a record closed three days ago is left alone and a new one opens."""
        old = make_record("T1", closed_days_ago=3)
        old_closed = old.closed
        store = MemoryRegressionStore([old])

        RegressionTracker(store).sync_component_report(RELEASE, make_report([make_summary("T1")]))

        assert len(store.records) == 2
        assert store.get(old.regression_id).closed == old_closed
        new = store.records[1]
        assert new.regression_id != old.regression_id
        assert new.is_open

    def test_triaged_does_not_close(self):
        """Test a test listed only as triaged stays open."""
        record = make_record("T1")
        store = MemoryRegressionStore([record])

        summary = RegressionTracker(store).sync_component_report(
            RELEASE, make_report(regressed=[], triaged=[make_summary("T1")])
        )

        assert store.get(record.regression_id).is_open
        assert store.calls == []
        assert summary.unchanged[0].regression_id == record.regression_id

    def test_variant_mismatch_opens_new(self):
        """Test a different variant value is a different regression."""
        record = make_record("T1", Platform="aws", Network="ovn")
        store = MemoryRegressionStore([record])

        summary = RegressionTracker(store).sync_component_report(
            RELEASE, make_report([make_summary("T1", Platform="aws", Network="sdn")])
        )

        assert len(summary.opened) == 1
        assert [r.regression_id for r in summary.closed] == [record.regression_id]

    def test_dry_run_makes_no_mutations(self):
        """Test dry run decides open, reopen and close without touching the store."""
        to_reopen = make_record("T1", closed_days_ago=1)
        to_close = make_record("T2")
        store = MemoryRegressionStore([to_reopen, to_close])
        tracker = RegressionTracker(store, dry_run=True)

        summary = tracker.sync_component_report(
            RELEASE, make_report([make_summary("T1"), make_summary("T3")])
        )

        assert store.calls == []
        assert len(store.records) == 2
        assert store.get(to_reopen.regression_id).closed is not None
        assert store.get(to_close.regression_id).is_open
        assert summary.dry_run is True
        assert [t.test_id for t in summary.opened] == ["T3"]
        assert [r.regression_id for r in summary.reopened] == [to_reopen.regression_id]
        assert [r.regression_id for r in summary.closed] == [to_close.regression_id]
        assert summary.opened_ids == []

    def test_duplicate_entries_open_once(self):
        """Test a test listed twice in one report opens a single record."""
        store = MemoryRegressionStore()

        RegressionTracker(store).sync_component_report(
            RELEASE, make_report(regressed=[make_summary("T1")], triaged=[make_summary("T1")])
        )

        assert len(store.records) == 1

    def test_closed_records_not_closed_again(self):
        """Test recently closed records that stay absent are not touched."""
        record = make_record("T1", closed_days_ago=1)
        store = MemoryRegressionStore([record])

        summary = RegressionTracker(store).sync_component_report(RELEASE, make_report([]))

        assert store.calls == []
        assert summary.closed == []

    def test_duplicate_open_records_converge(self):
        """Test a second open record for the same identity gets closed."""
        first = make_record("T1")
        second = make_record("T1")
        second.regression_id = "duplicate"
        store = MemoryRegressionStore([first, second])

        RegressionTracker(store).sync_component_report(RELEASE, make_report([make_summary("T1")]))

        assert store.get(first.regression_id).is_open
        assert not store.get("duplicate").is_open

    def test_skips_tests_without_id(self):
        """Test regressed tests without a test id are skipped."""
        store = MemoryRegressionStore()

        summary = RegressionTracker(store).sync_component_report(
            RELEASE, make_report([make_summary(test_id="", test_name="unnamed")])
        )

        assert store.records == []
        assert len(summary.skipped) == 1

    def test_list_failure_raises_before_mutation(self):
        """Test a failing list aborts the pass."""
        store = MemoryRegressionStore([make_record("T1")], fail_on={"list_current"})

        with pytest.raises(SyncError, match="loading current regressions"):
            RegressionTracker(store).sync_component_report(RELEASE, make_report([]))

        assert store.calls == []

    def test_open_failure_stops_pass(self):
        """Test a failing open stops before closing anything."""
        record = make_record("T9")
        store = MemoryRegressionStore([record], fail_on={"open_regression"})

        with pytest.raises(SyncError, match="opening new regression"):
            RegressionTracker(store).sync_component_report(RELEASE, make_report([make_summary("T1")]))

        assert store.get(record.regression_id).is_open

    def test_close_failure_raises(self):
        """Test a failing close surfaces as a sync error."""
        store = MemoryRegressionStore([make_record("T1")], fail_on={"close_regression"})

        with pytest.raises(SyncError, match="closing regression"):
            RegressionTracker(store).sync_component_report(RELEASE, make_report([]))

    def test_retry_after_failure_converges(self):
        """Test re-running after a failed close completes the work."""
        stale = make_record("T1")
        store = MemoryRegressionStore([stale], fail_on={"close_regression"})
        tracker = RegressionTracker(store)
        report = make_report([make_summary("T2")])

        with pytest.raises(SyncError):
            tracker.sync_component_report(RELEASE, report)
        store.fail_on.clear()
        summary = tracker.sync_component_report(RELEASE, report)

        assert len([r for r in store.records if r.test_id == "T2"]) == 1
        assert not store.get(stale.regression_id).is_open
        assert summary.opened == []

    def test_allowed_regressions_are_still_tracked(self):
        """Test an approved regression is counted and still opened."""
        allowance = IntentionalRegression(
            jira_component="Networking",
            test_id="T1",
            test_name="T1",
            variants=VariantSet({"Platform": "aws"}),
            reason_to_allow_instead_of_fix="accepted for this release",
        )
        allowances = RegressionAllowances(
            {RegressionAllowances.key_for(RELEASE, "T1", VariantSet({"Platform": "aws"})): allowance}
        )
        store = MemoryRegressionStore()

        summary = RegressionTracker(store, allowances=allowances).sync_component_report(
            RELEASE, make_report([make_summary("T1")])
        )

        assert len(summary.allowed) == 1
        assert len(store.records) == 1

    def test_summary_to_dict(self):
        """Test the summary serializes for JSON output."""
        store = MemoryRegressionStore()

        data = RegressionTracker(store).sync_component_report(RELEASE, make_report([make_summary("T1")])).to_dict()

        assert data["release"] == RELEASE
        assert data["opened"][0]["test_id"] == "T1"
        assert len(data["opened_ids"]) == 1
        json.dumps(data)


class TestLoadAllowances:
    """Tests for the intentional regression registry."""

    def _entry(self, **overrides):
        entry = {
            "jira_component": "Networking",
            "test_id": "T1",
            "test_name": "[sig-network] T1",
            "variants": {"Network": "ovn", "Upgrade": "none", "Arch": "amd64", "Platform": "aws"},
            "previous_pass_percentage": 98,
            "previous_sample_size": 200,
            "regressed_pass_percentage": 90,
            "regressed_sample_size": 150,
            "reason_to_allow_instead_of_fix": "known kernel issue",
        }
        entry.update(overrides)
        return entry

    def _write(self, temp_dir, data):
        path = temp_dir / "allowances.yaml"
        with open(path, "w") as f:
            yaml.dump(data, f)
        return path

    def test_load_and_lookup(self, temp_dir):
        """Test entries load and are found by release, test and variants."""
        path = self._write(temp_dir, {"releases": {"4.16": [self._entry()]}})

        allowances = load_allowances(path)
        variants = VariantSet(
            {"Network": "ovn", "Upgrade": "none", "Arch": "amd64", "Platform": "aws", "Variant": "fips"}
        )

        assert len(allowances) == 1
        assert allowances.for_test("4.16", "T1", variants).jira_component == "Networking"
        assert allowances.for_test("4.15", "T1", variants) is None
        assert allowances.releases() == ["4.16"]

    def test_duplicate_rejected(self, temp_dir):
        """Test the same test twice in one release is rejected."""
        path = self._write(temp_dir, {"releases": {"4.16": [self._entry(), self._entry()]}})

        with pytest.raises(AllowanceError, match="already added"):
            load_allowances(path)

    def test_same_test_in_two_releases(self, temp_dir):
        """Test one test may be allowed in several releases."""
        path = self._write(temp_dir, {"releases": {"4.15": [self._entry()], "4.16": [self._entry()]}})

        assert len(load_allowances(path)) == 2

    def test_invalid_entry_rejected(self, temp_dir):
        """Test incomplete entries are rejected with context."""
        path = self._write(temp_dir, {"releases": {"4.16": [self._entry(test_name="")]}})

        with pytest.raises(AllowanceError, match="test_name must be specified"):
            load_allowances(path)

    def test_registry_is_read_only(self, temp_dir):
        """Test the loaded mapping cannot be mutated."""
        allowances = load_allowances(self._write(temp_dir, {"releases": {"4.16": [self._entry()]}}))

        with pytest.raises(TypeError):
            allowances.entries[("4.17", "T2", VariantSet())] = None

    def test_missing_file(self, temp_dir):
        """Test a missing file raises AllowanceError."""
        with pytest.raises(AllowanceError):
            load_allowances(temp_dir / "missing.yaml")


class TestLoadComponentReport:
    """Tests for report loading."""

    def test_load(self, temp_dir, sample_report_dict):
        """Test loading a report from disk."""
        path = temp_dir / "report.json"
        path.write_text(json.dumps(sample_report_dict))

        report = load_component_report(path)

        assert len(report.all_regressed_tests()) == 2

    def test_invalid_json(self, temp_dir):
        """Test malformed JSON raises ReportError."""
        path = temp_dir / "report.json"
        path.write_text("{not json")

        with pytest.raises(ReportError):
            load_component_report(path)

    def test_not_an_object(self, temp_dir):
        """Test a JSON list is rejected."""
        path = temp_dir / "report.json"
        path.write_text("[]")

        with pytest.raises(ReportError, match="JSON object"):
            load_component_report(path)

    def test_invalid_status(self, temp_dir):
        """Test an unknown status value raises ReportError."""
        path = temp_dir / "report.json"
        path.write_text(json.dumps({"rows": [{"columns": [{"regressed_tests": [{"test_id": "T1", "status": 42}]}]}]}))

        with pytest.raises(ReportError):
            load_component_report(path)


def test_tracker_uses_clock_for_every_close():
    """Test all closes in one pass share a timestamp."""
    now = datetime(2026, 10, 19, tzinfo=timezone.utc) - timedelta(hours=1)
    store = MemoryRegressionStore([make_record("T1"), make_record("T2")])

    RegressionTracker(store, clock=lambda: now).sync_component_report(RELEASE, make_report([]))

    assert {r.closed for r in store.records} == {now}
