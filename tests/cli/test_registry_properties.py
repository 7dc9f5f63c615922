"""Property-based tests for the report writer registry.

This module tests:
- Registered writers can be looked up and listed
- Unknown names raise KeyError listing the available formats
- Every built-in writer honours the severity filter
"""

import csv
import io
import json
from datetime import datetime

import pytest
from hypothesis import given
from hypothesis import strategies as st

from dqrules.cli.registry import WRITERS, get_writer, list_writers, register_writer
from dqrules.core.models import Severity
from dqrules.validation import ValidationResult, create_report


class MarkdownWriter:
    """Markdown table of failing results."""

    def render(self, report, severity_filter=None):
        return "| rule | message |"


@pytest.fixture
def restore_writers():
    saved = dict(WRITERS)
    yield
    WRITERS.clear()
    WRITERS.update(saved)


@pytest.fixture
def report():
    results = [
        ValidationResult(0, "t", "amount", "Positive", "Passed validation", Severity.SUCCESS, "r1"),
        ValidationResult(1, "t", "amount", "Positive", "Value must be greater than 0", Severity.WARNING, "r1"),
        ValidationResult(1, "t", "userId", "User exists", "Value 9 in userId does not exist in users.id", Severity.FAILURE, "r2"),
    ]
    return create_report(results, timestamp=datetime(2024, 1, 15, 10, 30))


def test_builtin_writers_are_registered():
    assert {"json", "text", "csv"} <= set(list_writers())


def test_register_and_list_custom_writer(restore_writers):
    register_writer("markdown", MarkdownWriter)
    assert isinstance(get_writer("markdown"), MarkdownWriter)
    assert list_writers()["markdown"] == "Markdown table of failing results."


@given(name=st.text(alphabet="abcdefghijklmnopqrstuvwxyz", min_size=1, max_size=10).filter(lambda n: n not in ("json", "text", "csv")))
def test_property_unknown_writer_lists_available(name):
    with pytest.raises(KeyError) as excinfo:
        get_writer(name)
    assert excinfo.value.args[0] == f"Unknown report format '{name}'. Available: csv, json, text"


@pytest.mark.parametrize(("severity_filter", "expected"), [(None, 3), ("issues", 2), ("failures", 1), ("warnings", 1)])
def test_json_writer_filters_results(report, severity_filter, expected):
    data = json.loads(get_writer("json").render(report, severity_filter))
    assert len(data["results"]) == expected
    assert data["summary"]["total"] == 3
    assert data["timestamp"] == "2024-01-15T10:30:00"


@pytest.mark.parametrize(("severity_filter", "expected"), [(None, 3), ("issues", 2), ("failures", 1)])
def test_csv_writer_filters_results(report, severity_filter, expected):
    rendered = get_writer("csv").render(report, severity_filter)
    rows = list(csv.DictReader(io.StringIO(rendered)))
    assert len(rows) == expected
    assert set(rows[0]) == {"rowIndex", "table", "column", "ruleName", "message", "severity", "ruleId"}


def test_csv_writer_with_no_results_writes_header(report):
    rendered = get_writer("csv").render(create_report([]))
    assert rendered.strip() == "rowIndex,table,column,ruleName,message,severity,ruleId"


def test_text_writer(report):
    rendered = get_writer("text").render(report, "failures")
    assert rendered.splitlines()[-1] == (
        "[FAILURE] t[1].userId (User exists): Value 9 in userId does not exist in users.id"
    )
