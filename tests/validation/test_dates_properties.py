"""Property-based and example tests for the date rule kinds.

Properties tested:
- after(d, c) and on-or-before(d, c) are exact complements
- on-or-between(start, end) equals on-or-after(start) and on-or-before(end)
- time-of-day never changes a verdict

Examples cover US-format cells, unparseable values, the ``required``
flag, every date-format variant and the rule-level column safeguards.
"""

from datetime import datetime

import pytest
from hypothesis import given
from hypothesis import strategies as st

from dqrules.core.models import RuleType
from dqrules.validation import CHECKS, ValidationContext, parse_parameters
from dqrules.validation.dates import (
    REQUIRED_MESSAGE,
    check_date_after,
    check_date_before,
    check_date_between,
    check_date_format,
    check_date_rule,
    custom_format_regex,
)
from tests.conftest import calendar_dates

CONTEXT = ValidationContext.create({})


def before(value, compare_date, inclusive=False, required=False):
    params = parse_parameters(
        RuleType.DATE_BEFORE, {"compareDate": compare_date, "inclusive": inclusive, "required": required}
    )
    return check_date_before(value, {}, params, CONTEXT)


def after(value, compare_date, inclusive=False, required=False):
    params = parse_parameters(
        RuleType.DATE_AFTER, {"compareDate": compare_date, "inclusive": inclusive, "required": required}
    )
    return check_date_after(value, {}, params, CONTEXT)


def between(value, start, end, inclusive=True, required=False):
    params = parse_parameters(
        RuleType.DATE_BETWEEN,
        {"startDate": start, "endDate": end, "inclusive": inclusive, "required": required},
    )
    return check_date_between(value, {}, params, CONTEXT)


def date_format(value, **parameters):
    return check_date_format(value, {}, parse_parameters(RuleType.DATE_FORMAT, parameters), CONTEXT)


@given(cell=calendar_dates, boundary=calendar_dates)
def test_property_after_is_complement_of_on_or_before(cell, boundary):
    strictly_after = after(cell.isoformat(), boundary.isoformat()).is_valid
    on_or_before = before(cell.isoformat(), boundary.isoformat(), inclusive=True).is_valid
    assert strictly_after is not on_or_before


@given(cell=calendar_dates, start=calendar_dates, end=calendar_dates)
def test_property_between_is_conjunction_of_bounds(cell, start, end):
    inside = between(cell.isoformat(), start.isoformat(), end.isoformat()).is_valid
    expected = (
        after(cell.isoformat(), start.isoformat(), inclusive=True).is_valid
        and before(cell.isoformat(), end.isoformat(), inclusive=True).is_valid
    )
    assert inside is expected


@given(cell=calendar_dates, hour=st.integers(min_value=0, max_value=23), minute=st.integers(min_value=0, max_value=59))
def test_property_time_of_day_is_ignored(cell, hour, minute):
    stamp = datetime(cell.year, cell.month, cell.day, hour, minute).isoformat()
    assert before(stamp, cell.isoformat(), inclusive=True).is_valid
    assert not before(stamp, cell.isoformat()).is_valid
    assert not after(stamp, cell.isoformat()).is_valid


def test_between_failure_message():
    outcome = between("2024-03-15", "2024-01-01", "2024-02-01")
    assert outcome.message == "Date 2024-03-15 must be on or between 2024-01-01 and 2024-02-01"


def test_exclusive_between_rejects_boundaries():
    assert not between("2024-01-01", "2024-01-01", "2024-02-01", inclusive=False).is_valid
    assert between("2024-01-02", "2024-01-01", "2024-02-01", inclusive=False).is_valid


def test_between_without_both_bounds_passes():
    assert between("2024-03-15", "2024-01-01", None).is_valid


def test_us_format_cells_are_parsed():
    assert before("03/15/2024", "2024-03-16").is_valid
    assert not after("03/15/2024", "2024-03-16").is_valid


@pytest.mark.parametrize("value", ["soon", "15 Jan 2023"])
def test_unparseable_optional_date_passes(value):
    assert before(value, "2024-01-01").is_valid
    assert between(value, "2024-01-01", "2024-12-31").is_valid


def test_unparseable_required_date_fails():
    outcome = before("15 Jan 2023", "2024-01-01", required=True)
    assert not outcome.is_valid
    assert outcome.message == REQUIRED_MESSAGE


@pytest.mark.parametrize("value", [None, "", "not a date"])
def test_required_dates_fail_when_absent_or_invalid(value):
    outcome = after(value, "2024-01-01", required=True)
    assert outcome.message == REQUIRED_MESSAGE


def test_absent_optional_date_passes():
    assert after(None, "2024-01-01").is_valid


def test_invalid_boundary_is_a_configuration_error():
    outcome = before("2024-01-01", "someday")
    assert outcome.configuration_error
    assert outcome.message == "Compare date is invalid: someday"


@pytest.mark.parametrize(
    ("value", "parameters", "valid"),
    [
        ("2024-03-15", {"format": "iso"}, True),
        ("15/03/2024", {"format": "iso"}, False),
        ("03/15/2024", {"format": "us"}, True),
        ("15/03/2024", {"format": "eu"}, True),
        ("15.03.2024", {"format": "custom", "customFormat": "DD.MM.YYYY"}, True),
        ("2024-03-15", {"format": "custom", "customFormat": "DD.MM.YYYY"}, False),
        ("2024-03-15T10:00:00", {"format": "any"}, True),
        ("yesterday", {"format": "any"}, False),
    ],
)
def test_date_format_variants(value, parameters, valid):
    assert date_format(value, **parameters).is_valid is valid


def test_date_format_messages():
    assert date_format("2024/03/15").message == "Date must be in YYYY-MM-DD format"
    assert date_format(20240315).message.startswith("Value must be a string for format validation")
    assert date_format(None, required=True).message == REQUIRED_MESSAGE


def test_custom_format_regex_escapes_literals():
    pattern = custom_format_regex("YYYY.MM.DD HH:mm")
    assert pattern.match("2024.03.15 10:30")
    assert not pattern.match("2024x03x15 10:30")


def test_date_rule_requires_a_column(make_rule):
    rule = make_rule("date-before", column="", parameters={"compareDate": "2024-01-01"})
    params = parse_parameters(rule.rule_type, rule.parameters)
    outcome = check_date_rule(rule, {"x": 1}, CHECKS[rule.rule_type], params, CONTEXT.for_rule(rule))
    assert outcome.configuration_error
    assert outcome.message == "Configuration error: Missing column name for date rule"


def test_date_rule_reports_missing_column(make_rule):
    rule = make_rule("date-before", column="shipped", parameters={"compareDate": "2024-01-01"})
    params = parse_parameters(rule.rule_type, rule.parameters)
    outcome = check_date_rule(rule, {"ordered": "2023-01-01"}, CHECKS[rule.rule_type], params, CONTEXT.for_rule(rule))
    assert outcome.message == 'Column "shipped" not found in data'
