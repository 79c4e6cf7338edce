import json
from datetime import datetime, timezone

import pytest

from fabricwall.config import settings
from fabricwall.schemas.results import CheckResult, RunReport, SuiteResult, SuiteStatus
from fabricwall.services.reporter import bound_depth, exit_code, export_report, print_summary, summarize


def _suites():
    return [
        SuiteResult(name="fabric-poc", status=SuiteStatus.FAILED, results=[
            CheckResult(name="Access Token", category="Identity", passed=True),
            CheckResult(name="Workspace Access", category="Isolation", passed=False,
                        details="HTTP 404 WorkspaceNotFound: missing", risk="wall unverified",
                        recommendation="check the id"),
        ]),
        SuiteResult(name="security", status=SuiteStatus.PASSED, results=[
            CheckResult(name="Cross-Workspace Principal Overlap", category="Isolation", passed=True),
        ]),
        SuiteResult(name="sql", status=SuiteStatus.SKIPPED, reason="Skipped by --skip-sql"),
    ]


def _report(suites=None) -> RunReport:
    suites = suites if suites is not None else _suites()
    summary = summarize(suites)
    return RunReport(
        run_name="validation",
        started_at=datetime(2026, 10, 18, 9, 30, 5, tzinfo=timezone.utc),
        success=summary.failed == 0,
        summary=summary,
        suites=suites,
    )


def test_summarize_counts() -> None:
    summary = summarize(_suites())

    assert summary.total == 3
    assert summary.passed == 2
    assert summary.failed == 1
    assert summary.passed + summary.failed == summary.total
    assert summary.by_category["Isolation"].total == 2
    assert summary.by_category["Isolation"].failed == 1
    assert summary.by_category["Identity"].passed == 1
    assert summary.suites_skipped == ["sql"]


def test_exit_code() -> None:
    assert exit_code(_report()) == 1
    passing = [s for s in _suites() if s.status != SuiteStatus.FAILED]
    assert exit_code(_report(passing)) == 0


def test_export_round_trip(tmp_path) -> None:
    report = _report()

    path = export_report(report, tmp_path)

    assert path.name == "validation-results-20261018-093005.json"
    document = json.loads(path.read_text())
    entries = [r for s in document["suites"] for r in s["results"]]
    assert len(entries) == len(report.results) == 3
    assert document["summary"]["failed"] == 1
    assert document["suites"][2]["status"] == "SKIPPED"


def test_export_never_overwrites(tmp_path) -> None:
    report = _report()
    export_report(report, tmp_path)

    with pytest.raises(FileExistsError):
        export_report(report, tmp_path)


def test_export_depth_bound(tmp_path) -> None:
    path = export_report(_report(), tmp_path, max_depth=3)

    document = json.loads(path.read_text())
    assert isinstance(document["suites"][0]["results"], str)


def test_export_depth_zero_is_honoured(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(settings, "EXPORT_DEPTH", 5)

    path = export_report(_report(), tmp_path, max_depth=0)

    document = json.loads(path.read_text())
    assert isinstance(document, str)


def test_bound_depth() -> None:
    value = {"a": {"b": {"c": [1, 2]}}, "x": 1}

    assert bound_depth(value, 10) == value
    assert bound_depth(value, 2) == {"a": {"b": "{'c': [1, 2]}"}, "x": 1}


def test_print_summary_lists_failures_with_risk(console) -> None:
    print_summary(_report(), console)

    out = console.file.getvalue()
    assert "Failed checks" in out
    assert "Workspace Access" in out
    assert "Risk: wall unverified" in out
    assert "Fix: check the id" in out
    assert "SKIPPED" in out


def test_print_summary_all_passed(console) -> None:
    print_summary(_report([]), console)

    assert "All checks passed" in console.file.getvalue()
