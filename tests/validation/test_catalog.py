"""Tests for the primitive rule kinds and the catalog registry.

This module tests every single-column check through run_check, so the
absent-value short-circuit is exercised exactly as the orchestrator uses it.
"""

import pytest
from hypothesis import given

from dqrules.core.models import Condition, LogicalOperator, Rule, RuleType, ValueList
from dqrules.validation import CHECKS, ValidationContext, describe_rule_types, parse_parameters, run_check
from dqrules.validation.catalog import SKIPS_ABSENT
from tests.conftest import absent_values


def check(rule_type: RuleType, value, parameters=None, row=None, context=None):
    params = parse_parameters(rule_type, parameters or {})
    return run_check(rule_type, value, row or {}, params, context or ValidationContext.create({}))


def test_every_rule_kind_has_a_check_and_description():
    assert set(CHECKS) == set(RuleType)
    descriptions = describe_rule_types()
    assert set(descriptions) == {rule_type.value for rule_type in RuleType}
    assert all(descriptions.values())


@given(value=absent_values)
def test_property_absent_values_pass_kinds_that_judge_present_values(value):
    parameters = {
        RuleType.RANGE: {"min": 1, "max": 2},
        RuleType.REGEX: {"pattern": "^x$"},
        RuleType.TYPE: {"dataType": "number"},
        RuleType.ENUM: {"allowedValues": ["a"]},
        RuleType.LIST: {"listId": "missing"},
        RuleType.CONTAINS: {"searchString": "x"},
        RuleType.LOOKUP: {"lookupTable": "missing", "lookupColumn": "c"},
        RuleType.REFERENCE_INTEGRITY: {"referenceTable": "missing", "referenceColumn": "id"},
    }
    for rule_type in SKIPS_ABSENT:
        assert check(rule_type, value, parameters.get(rule_type, {"compareValue": 5})).is_valid


@given(value=absent_values)
def test_property_required_fails_absent_values(value):
    outcome = check(RuleType.REQUIRED, value)
    assert not outcome.is_valid
    assert outcome.message == "Field is required"


@pytest.mark.parametrize("value", [0, False, "0", " ", [1]])
def test_required_accepts_falsy_but_present_values(value):
    assert check(RuleType.REQUIRED, value).is_valid


def test_equals_coerces_numeric_strings():
    assert check(RuleType.EQUALS, "10", {"compareValue": 10}).is_valid
    assert check(RuleType.EQUALS, "10.0", {"compareValue": "10"}).is_valid
    outcome = check(RuleType.EQUALS, "abc", {"compareValue": "abd"})
    assert outcome.message == "Value must equal abd"
    assert check(RuleType.NOT_EQUALS, 3, {"compareValue": "4"}).is_valid


@pytest.mark.parametrize(
    ("rule_type", "value", "bound", "valid"),
    [
        (RuleType.GREATER_THAN, 11, 10, True),
        (RuleType.GREATER_THAN, 10, 10, False),
        (RuleType.GREATER_THAN_EQUALS, "10", 10, True),
        (RuleType.LESS_THAN, "9.5", 10, True),
        (RuleType.LESS_THAN_EQUALS, 11, "10", False),
    ],
)
def test_ordering_kinds(rule_type, value, bound, valid):
    assert check(rule_type, value, {"compareValue": bound}).is_valid is valid


def test_ordering_kinds_reject_non_numeric_values():
    outcome = check(RuleType.GREATER_THAN, "abc", {"compareValue": 1})
    assert not outcome.is_valid
    assert outcome.message == "Cannot compare non-numeric values: abc > 1"


def test_ordering_failure_message():
    outcome = check(RuleType.LESS_THAN, 12, {"compareValue": 10})
    assert outcome.message == "Value must be less than 10"


def test_range_bounds_are_inclusive_and_optional():
    assert check(RuleType.RANGE, 5, {"min": 5, "max": 10}).is_valid
    assert check(RuleType.RANGE, "10", {"min": 5, "max": 10}).is_valid
    assert check(RuleType.RANGE, 1000, {"min": 5}).is_valid
    assert check(RuleType.RANGE, 4, {"min": 5}).message == "Value 4 is less than minimum 5"
    assert check(RuleType.RANGE, 11, {"max": 10}).message == "Value 11 is greater than maximum 10"
    assert check(RuleType.RANGE, "abc", {"min": 1}).message == "Cannot compare non-numeric values: abc is not a number"


def test_range_with_non_numeric_bound_is_a_configuration_error():
    outcome = check(RuleType.RANGE, 5, {"min": "low"})
    assert outcome.configuration_error


def test_regex_searches_strings_only():
    assert check(RuleType.REGEX, "INV-001", {"pattern": r"\d+"}).is_valid
    assert not check(RuleType.REGEX, "INV", {"pattern": r"^\d+$"}).is_valid
    assert check(RuleType.REGEX, 12, {"pattern": r"\d"}).message.startswith("Value must be a string")
    assert check(RuleType.REGEX, "x", {"pattern": "("}).configuration_error
    assert check(RuleType.REGEX, "x", {}).is_valid


def test_unique_counts_the_rule_column():
    rows = [{"code": "a"}, {"code": "b"}, {"code": "a"}, {"code": None}, {"code": None}]
    context = ValidationContext.create({"t": rows}).for_rule(
        Rule("u", "Unique", "t", "code", RuleType.UNIQUE)
    )
    verdicts = [check(RuleType.UNIQUE, row["code"], row=row, context=context).is_valid for row in rows]
    assert verdicts == [False, True, False, True, True]
    assert check(RuleType.UNIQUE, "a", context=context).message == "Value a is not unique in column code"


@pytest.mark.parametrize(
    ("value", "data_type", "valid"),
    [
        ("10", "string", True),
        ("10", "number", False),
        (10, "number", True),
        (True, "boolean", True),
        ([1], "array", True),
        ({"a": 1}, "object", True),
    ],
)
def test_type_is_strict(value, data_type, valid):
    assert check(RuleType.TYPE, value, {"dataType": data_type}).is_valid is valid


def test_type_failure_and_unknown_type():
    assert check(RuleType.TYPE, "x", {"dataType": "number"}).message == "Expected type number, got string"
    assert check(RuleType.TYPE, "x", {"dataType": "uuid"}).configuration_error


def test_enum_compares_stringified_values():
    assert check(RuleType.ENUM, 1, {"allowedValues": ["1", "2"]}).is_valid
    assert check(RuleType.ENUM, "OPEN", {"allowedValues": ["open"], "caseInsensitive": True}).is_valid
    outcome = check(RuleType.ENUM, "OPEN", {"allowedValues": ["open", "closed"]})
    assert outcome.message == "Value must be one of: open, closed"


def test_list_uses_value_lists_by_id_or_name():
    countries = ValueList("l1", "Countries", ("NL", "US"))
    context = ValidationContext.create({}, [countries])
    assert check(RuleType.LIST, "NL", {"listId": "l1"}, context=context).is_valid
    assert check(RuleType.LIST, "US", {"listId": "Countries"}, context=context).is_valid
    outcome = check(RuleType.LIST, "FR", {"listId": "l1"}, context=context)
    assert outcome.message == 'Value must be one of the values in the "Countries" list'
    missing = check(RuleType.LIST, "NL", {"listId": "l2"}, context=context)
    assert missing.configuration_error
    assert missing.message == "List with ID l2 not found"


@pytest.mark.parametrize(
    ("value", "parameters", "valid"),
    [
        ("Hello World", {"searchString": "world"}, True),
        ("Hello World", {"searchString": "world", "caseSensitive": True}, False),
        ("Hello", {"searchString": "he", "matchType": "starts-with"}, True),
        ("Hello", {"searchString": "LO", "matchType": "ends-with"}, True),
        ("Hello", {"searchString": "hello", "matchType": "exact"}, True),
        ("Hello", {"searchString": "x", "matchType": "not-contains"}, True),
        ("Hello", {"containsValue": "ell"}, True),
    ],
)
def test_contains_match_types(value, parameters, valid):
    assert check(RuleType.CONTAINS, value, parameters).is_valid is valid


def test_contains_failure_message():
    outcome = check(RuleType.CONTAINS, "abc", {"searchString": "z", "matchType": "starts-with"})
    assert outcome.message == 'Value must start with: "z"'


def test_multi_column_chains_rule_conditions():
    rule = Rule(
        "m",
        "Closed needs amount",
        "t",
        "status",
        RuleType.MULTI_COLUMN,
        conditions=(
            Condition("status", "==", "open", LogicalOperator.OR),
            Condition("amount", ">", 0),
        ),
    )
    context = ValidationContext.create({"t": []}).for_rule(rule)
    assert check(RuleType.MULTI_COLUMN, "open", row={"status": "open", "amount": 0}, context=context).is_valid
    outcome = check(RuleType.MULTI_COLUMN, "closed", row={"status": "closed", "amount": 0}, context=context)
    assert not outcome.is_valid
    assert outcome.column == "status"
