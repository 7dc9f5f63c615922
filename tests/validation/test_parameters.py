"""Tests for rule parameter parsing."""

import pytest

from dqrules.aggregation import ResultHandling
from dqrules.core.models import RuleType
from dqrules.validation import PARAMETER_TYPES, parse_parameters
from dqrules.validation.exceptions import RuleConfigurationError
from dqrules.validation.parameters import ListParameters, Operand, parameters_from_mapping


def test_every_kind_has_a_parameter_record():
    assert set(PARAMETER_TYPES) == set(RuleType)


def test_aliases_are_accepted():
    assert parse_parameters(RuleType.EQUALS, {"value": 3}).compare_value == 3
    assert parse_parameters(RuleType.TYPE, {"type": "number"}).data_type == "number"
    assert parse_parameters(RuleType.CONTAINS, {"containsValue": "x"}).search_string == "x"


def test_primary_key_wins_over_alias():
    assert parse_parameters(RuleType.EQUALS, {"compareValue": 1, "value": 2}).compare_value == 1


def test_blank_values_count_as_missing():
    assert parse_parameters(RuleType.REGEX, {"pattern": "  "}).pattern == ""
    with pytest.raises(RuleConfigurationError, match="listId"):
        parse_parameters(RuleType.LIST, {"listId": ""})


@pytest.mark.parametrize(("raw", "expected"), [(True, True), ("true", True), ("TRUE", True), ("yes", False), (1, False)])
def test_boolean_flags(raw, expected):
    assert parse_parameters(RuleType.DATE_BEFORE, {"inclusive": raw}).inclusive is expected


def test_scalar_allowed_values_become_a_tuple():
    assert parse_parameters(RuleType.ENUM, {"allowedValues": "a"}).allowed_values == ("a",)


def test_result_handling_is_parsed():
    params = parse_parameters(RuleType.FORMULA, {"formula": "x > 0", "resultHandling": "majority"})
    assert params.result_handling is ResultHandling.MAJORITY
    assert parse_parameters(RuleType.FORMULA, {"formula": "x > 0"}).result_handling is None
    with pytest.raises(RuleConfigurationError, match="Unknown result handling"):
        parse_parameters(RuleType.FORMULA, {"resultHandling": "SOME"})


def test_errors_carry_rule_context():
    with pytest.raises(RuleConfigurationError) as excinfo:
        parse_parameters(RuleType.LIST, {}, rule_id="r7")
    assert excinfo.value.context == {
        "rule_id": "r7",
        "rule_type": "list",
        "parameter": "listId",
        "reason": "Required parameter missing",
    }


@pytest.mark.parametrize(
    ("rule_type", "raw", "message"),
    [
        (RuleType.CONTAINS, {"searchString": "x", "matchType": "fuzzy"}, "Unknown match type"),
        (RuleType.DATE_FORMAT, {"format": "julian"}, "Unknown format"),
        (RuleType.DATE_FORMAT, {"format": "custom"}, "Custom format not specified"),
        (RuleType.REFERENCE_INTEGRITY, {"referenceTable": "u", "referenceColumn": "id", "checkType": "maybe"}, "Unknown check type"),
        (
            RuleType.COMPOSITE_REFERENCE,
            {"referenceTable": "u", "sourceColumns": ["a", "b"], "referenceColumns": ["a"]},
            "Invalid composite reference configuration",
        ),
        (RuleType.COLUMN_COMPARISON, {"comparisonOperator": ">"}, "rightColumn"),
        (
            RuleType.MATH_OPERATION,
            {"operation": "power", "operands": [], "comparisonOperator": ">", "comparisonValue": 0},
            "operands",
        ),
        (
            RuleType.MATH_OPERATION,
            {"operation": "power", "operands": [{"type": "constant", "value": 1}], "comparisonOperator": ">", "comparisonValue": 0},
            "Unknown operation",
        ),
    ],
)
def test_invalid_parameters(rule_type, raw, message):
    with pytest.raises(RuleConfigurationError, match=message):
        parse_parameters(rule_type, raw)


def test_operands_are_parsed():
    params = parse_parameters(
        RuleType.MATH_OPERATION,
        {
            "operation": "add",
            "operands": [{"type": "column", "value": "amount"}, {"value": 3}],
            "comparisonOperator": ">",
            "comparisonValue": 0,
        },
    )
    assert params.operands == (Operand("column", "amount"), Operand("constant", 3))


def test_parameters_from_mapping_directly():
    assert parameters_from_mapping(ListParameters, {"listId": 12}) == ListParameters(list_id="12")
