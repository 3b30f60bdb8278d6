"""Shared pytest fixtures for regression tracker tests."""

import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from regtrack.models import (
    ComponentReport,
    RegressedTestSummary,
    RegressionRecord,
    ReportColumn,
    ReportRow,
    TestStats,
    TriagedIncident,
    VariantSet,
)

RELEASE = "4.16"


@pytest.fixture
def temp_dir():
    """Create a temporary directory for ledgers and reports."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def mock_env(monkeypatch, temp_dir):
    """Point the tracker at a json ledger inside the temp directory."""
    monkeypatch.setenv("HOME", str(temp_dir))
    monkeypatch.setenv("REGTRACK_STORE", "json")
    monkeypatch.setenv("REGTRACK_LEDGER_PATH", str(temp_dir / "regressions.json"))
    monkeypatch.delenv("REGTRACK_ALLOWANCES_FILE", raising=False)
    yield


def make_summary(test_id="T1", test_name=None, **variants) -> RegressedTestSummary:
    """Build a regressed test summary with the given variant dimensions."""
    return RegressedTestSummary(
        test_id=test_id,
        test_name=test_name if test_name is not None else f"[sig-network] {test_id} should pass",
        variants=VariantSet(variants or {"Platform": "aws"}),
        sample_stats=TestStats(success_count=80, failure_count=20, flake_count=0),
        basis_stats=TestStats(success_count=990, failure_count=10, flake_count=0),
        component="Networking",
    )


def make_record(
    test_id="T1",
    release=RELEASE,
    closed_days_ago: float | None = None,
    opened_days_ago: float = 10,
    **variants,
) -> RegressionRecord:
    """Build a regression record, optionally closed some days ago."""
    now = datetime.now(timezone.utc)
    return RegressionRecord(
        regression_id=f"reg-{test_id}-{'-'.join(f'{k}={v}' for k, v in sorted(variants.items())) or 'aws'}",
        release=release,
        test_id=test_id,
        test_name=f"[sig-network] {test_id} should pass",
        variants=VariantSet(variants or {"Platform": "aws"}),
        opened=now - timedelta(days=opened_days_ago),
        closed=now - timedelta(days=closed_days_ago) if closed_days_ago is not None else None,
    )


def make_report(regressed=(), triaged=()) -> ComponentReport:
    """Build a one-row, one-column report."""
    column = ReportColumn(
        variants=VariantSet({"Platform": "aws"}),
        regressed_tests=list(regressed),
        triaged_incidents=[TriagedIncident(summary=s) for s in triaged],
    )
    return ComponentReport(rows=[ReportRow(component="Networking", columns=[column])])


@pytest.fixture
def sample_report_dict():
    """Return a component report as the report generator writes it."""
    return {
        "generated_at": "2026-10-18T06:00:00+00:00",
        "rows": [
            {
                "component": "Networking",
                "columns": [
                    {
                        "network": "ovn",
                        "platform": "aws",
                        "arch": "amd64",
                        "upgrade": "none",
                        "regressed_tests": [
                            {
                                "test_id": "openshift-tests:1a2b3c",
                                "test_name": "[sig-network] pods should reach services",
                                "network": "ovn",
                                "platform": "aws",
                                "arch": "amd64",
                                "upgrade": "none",
                                "status": -5,
                                "sample_stats": {"success_count": 70, "failure_count": 30, "flake_count": 0},
                                "basis_stats": {"success_count": 980, "failure_count": 20, "flake_count": 5},
                            }
                        ],
                        "triaged_incidents": [
                            {
                                "summary": {
                                    "test_id": "openshift-tests:4d5e6f",
                                    "test_name": "[sig-network] ingress should route",
                                    "variants": {"Network": "ovn", "Platform": "aws"},
                                    "status": -2,
                                },
                                "incidents": [
                                    {"issue_url": "https://issues.example.com/OCPBUGS-1234", "incident_id": "i-1"}
                                ],
                            }
                        ],
                    }
                ],
            }
        ],
    }
