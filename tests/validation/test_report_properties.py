"""Property-based tests for ValidationReport.

This module tests:
- Summary counts add up to the number of results
- is_valid holds exactly when no result has failure severity
- Severity filters partition the results
- JSON export round-trips and the polars export keeps one row per result
"""

from datetime import datetime

from hypothesis import given
from hypothesis import strategies as st

from dqrules.core.models import Severity
from dqrules.validation import ValidationReport, ValidationResult, create_report
from dqrules.validation.report import RESULT_SCHEMA

severities = st.sampled_from([Severity.SUCCESS, Severity.WARNING, Severity.FAILURE])


@st.composite
def result_lists(draw: st.DrawFn, max_size: int = 20) -> list[ValidationResult]:
    count = draw(st.integers(min_value=0, max_value=max_size))
    return [
        ValidationResult(
            row_index=index,
            table="transactions",
            column=draw(st.sampled_from(["amount", "userId"])),
            rule_name="Rule",
            message=draw(st.text(max_size=20)),
            severity=draw(severities),
            rule_id=draw(st.sampled_from(["r1", "r2", "r3"])),
        )
        for index in range(count)
    ]


@given(results=result_lists())
def test_property_counts_add_up(results):
    report = create_report(results)
    assert report.passed + report.failed + report.warnings_count == report.total == len(results)


@given(results=result_lists())
def test_property_valid_iff_no_failures(results):
    report = create_report(results)
    assert report.is_valid() is all(r.severity is not Severity.FAILURE for r in results)


@given(results=result_lists())
def test_property_filters_partition_results(results):
    report = create_report(results)
    failures, warnings = report.filter("failures"), report.filter("warnings")
    assert len(failures) == report.failed
    assert len(warnings) == report.warnings_count
    assert len(report.filter("issues")) == len(failures) + len(warnings)
    assert report.filter(None) == results


@given(results=result_lists())
def test_property_json_round_trip(results):
    report = create_report(results, timestamp=datetime(2024, 1, 15, 10, 30))
    restored = ValidationReport.from_json(report.to_json())
    assert restored.results == report.results
    assert restored.timestamp == report.timestamp
    assert restored.failed == report.failed


@given(results=result_lists())
def test_property_frame_has_one_row_per_result(results):
    report = create_report(results)
    frame = report.to_frame()
    assert frame.height == len(results)
    assert list(frame.columns) == list(RESULT_SCHEMA)
    assert report.to_frame("failures").height == report.failed


@given(results=result_lists(max_size=30))
def test_property_pass_rates_cover_every_rule(results):
    rates = create_report(results).pass_rates()
    assert rates["total"].sum() == len(results)
    for row in rates.iter_rows(named=True):
        assert 0.0 <= row["passRate"] <= 1.0
        assert row["passed"] + row["failed"] + row["warnings"] == row["total"]


def test_summary_and_format():
    results = [
        ValidationResult(0, "transactions", "userId", "User exists", "Passed validation", Severity.SUCCESS, "r1"),
        ValidationResult(
            1,
            "transactions",
            "userId",
            "User exists",
            "Value 9999 in userId does not exist in users.id",
            Severity.FAILURE,
            "r1",
        ),
    ]
    report = create_report(results, timestamp=datetime(2024, 1, 15, 10, 30))
    assert report.summary() == "Validation Summary: 1/2 passed, 1 failed, 0 warnings"
    assert report.format("failures").splitlines() == [
        "Validation Report (2024-01-15 10:30:00)",
        "=" * 60,
        "Validation Summary: 1/2 passed, 1 failed, 0 warnings",
        "",
        "[FAILURE] transactions[1].userId (User exists): Value 9999 in userId does not exist in users.id",
    ]


def test_empty_report_is_valid():
    report = create_report([])
    assert report.is_valid()
    assert report.to_frame().is_empty()
    assert report.to_json()["summary"] == {
        "total": 0,
        "passed": 0,
        "failed": 0,
        "warnings_count": 0,
        "is_valid": True,
    }
