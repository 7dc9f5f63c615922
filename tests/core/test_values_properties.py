"""Property-based tests for the scalar value model.

This module tests the coercion rules every check relies on:
- Absent values are None, empty strings and NaN
- Numeric-looking strings compare as numbers
- ISO date strings compare as calendar days
- Absent operands fail closed in comparisons
"""

from datetime import date, datetime

import pytest
from hypothesis import given
from hypothesis import strategies as st

from dqrules.core.values import (
    CompareKind,
    coerce_for_compare,
    compare,
    index_key,
    is_absent,
    stringify,
    to_date,
    to_number,
    type_name,
)
from tests.conftest import absent_values, calendar_dates, numeric_strings, present_scalars


@given(value=absent_values)
def test_property_absent_values_are_absent(value):
    assert is_absent(value)


@given(value=present_scalars)
def test_property_present_values_are_not_absent(value):
    assert not is_absent(value)


@given(pair=numeric_strings())
def test_property_numeric_strings_coerce_to_their_number(pair):
    text, number = pair
    assert to_number(text) == number
    kind, left, right = coerce_for_compare(text, number)
    assert kind is CompareKind.NUMERIC
    assert left == right


@given(number=st.integers(min_value=-10**6, max_value=10**6))
def test_property_string_and_number_compare_equal(number):
    assert compare(str(number), "==", number)
    assert compare(str(number), ">=", number)
    assert not compare(str(number), ">", number)


def test_ten_as_string_is_at_least_ten():
    assert compare("10", ">=", 10)


@pytest.mark.parametrize("value", [True, False, None, "", "abc", float("inf"), [1]])
def test_to_number_rejects_non_numbers(value):
    assert to_number(value) is None


@given(value=absent_values, other=present_scalars, op=st.sampled_from([">", ">=", "<", "<="]))
def test_property_absent_operands_fail_closed(value, other, op):
    assert not compare(value, op, other)
    assert not compare(other, op, value)
    assert not compare(value, "==", other)
    assert compare(value, "!=", other)


def test_two_absent_values_are_equal():
    assert compare(None, "==", "")
    assert not compare(None, "!=", "")


@given(day=calendar_dates, hour=st.integers(min_value=0, max_value=23))
def test_property_dates_compare_as_calendar_days(day, hour):
    stamp = f"{day.isoformat()}T{hour:02d}:30:00"
    assert compare(stamp, "==", day.isoformat())
    assert compare(datetime(day.year, day.month, day.day, hour), "==", day)


def test_time_aware_comparison_keeps_time_of_day():
    assert compare("2024-01-01T08:00:00", "==", "2024-01-01")
    assert not compare("2024-01-01T08:00:00", "==", "2024-01-01", time_aware=True)
    assert compare("2024-01-01T08:00:00", ">", "2024-01-01T07:59:00", time_aware=True)


def test_to_date_accepts_us_format_only_when_asked():
    assert to_date("03/15/2024") is None
    assert to_date("03/15/2024", allow_us_format=True) == date(2024, 3, 15)
    assert to_date("02/30/2024", allow_us_format=True) is None


def test_strings_compare_case_sensitively():
    assert compare("b", ">", "a")
    assert not compare("A", "==", "a")


def test_unknown_operator_raises():
    with pytest.raises(ValueError, match="Unknown comparison operator"):
        compare(1, "<>", 2)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, ""),
        (True, "true"),
        (10.0, "10"),
        (2.5, "2.5"),
        (date(2024, 1, 2), "2024-01-02"),
        ("x", "x"),
    ],
)
def test_stringify(value, expected):
    assert stringify(value) == expected


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, "null"),
        (True, "boolean"),
        (1, "number"),
        (1.5, "number"),
        ("1", "string"),
        (date(2024, 1, 1), "date"),
        ([1, 2], "array"),
        ({"a": 1}, "object"),
    ],
)
def test_type_name(value, expected):
    assert type_name(value) == expected


def test_index_key_merges_ints_and_floats_but_not_strings():
    assert index_key(1) == index_key(1.0)
    assert index_key("1") != index_key(1)
    assert index_key(True) != index_key(1)
