"""Tests for column-comparison and math-operation rules."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from dqrules.core.models import RuleType
from dqrules.validation import ValidationContext, parse_parameters
from dqrules.validation.arithmetic import check_column_comparison, check_math_operation
from dqrules.validation.exceptions import RuleConfigurationError

CONTEXT = ValidationContext.create({}).for_column("endDate")


def compare_columns(row, **parameters):
    params = parse_parameters(RuleType.COLUMN_COMPARISON, parameters)
    return check_column_comparison(row.get("endDate"), row, params, CONTEXT)


def math(row, operation, operands, operator, value):
    params = parse_parameters(
        RuleType.MATH_OPERATION,
        {
            "operation": operation,
            "operands": operands,
            "comparisonOperator": operator,
            "comparisonValue": value,
        },
    )
    return check_math_operation(None, row, params, CONTEXT)


def column(name):
    return {"type": "column", "value": name}


def constant(value):
    return {"type": "constant", "value": value}


def test_left_column_defaults_to_rule_column():
    row = {"startDate": "2024-02-01", "endDate": "2024-01-01"}
    outcome = compare_columns(row, rightColumn="startDate", comparisonOperator=">=")
    assert outcome.column == "endDate"
    assert outcome.message == (
        "Column comparison failed: endDate (2024-01-01) >= startDate (2024-02-01)"
    )


def test_numeric_strings_compare_as_numbers():
    row = {"low": "9", "high": "10"}
    assert compare_columns(row, leftColumn="high", rightColumn="low", comparisonOperator=">").is_valid


def test_dates_ignore_time_unless_time_aware():
    row = {"a": "2024-01-01T08:00:00", "b": "2024-01-01T20:00:00"}
    assert compare_columns(row, leftColumn="a", rightColumn="b", comparisonOperator="==").is_valid
    assert not compare_columns(
        row, leftColumn="a", rightColumn="b", comparisonOperator="==", timeAware=True
    ).is_valid


def test_null_handling():
    row = {"endDate": None, "startDate": "2024-01-01"}
    outcome = compare_columns(row, rightColumn="startDate", comparisonOperator=">")
    assert outcome.message == "Cannot compare null values: endDate=null > startDate=2024-01-01"
    assert compare_columns(row, rightColumn="startDate", comparisonOperator=">", allowNull=True).is_valid


def test_secondary_column_alias_and_bad_operator():
    row = {"endDate": 2, "other": 1}
    assert compare_columns(row, secondaryColumn="other", operator=">").is_valid
    assert compare_columns(row, rightColumn="other", comparisonOperator="=>").configuration_error


def test_net_amount_scenario():
    row = {"amount": 100, "refundAmount": 20, "processingFee": 3}
    operands = [column("amount"), column("refundAmount"), column("processingFee")]
    assert math(row, "subtract", operands, ">", 0).is_valid

    row = {"amount": 10, "refundAmount": 20, "processingFee": 3}
    outcome = math(row, "subtract", operands, ">", 0)
    assert outcome.message == (
        "Math operation failed: (amount(10) - refundAmount(20) - processingFee(3)) = -13 > 0"
    )


@given(
    numbers=st.lists(st.integers(min_value=-1000, max_value=1000), min_size=1, max_size=6),
    operation=st.sampled_from(["add", "subtract", "multiply"]),
)
def test_property_operands_fold_left_to_right(numbers, operation):
    expected = numbers[0]
    for number in numbers[1:]:
        if operation == "add":
            expected += number
        elif operation == "subtract":
            expected -= number
        else:
            expected *= number
    operands = [constant(n) for n in numbers]
    assert math({}, operation, operands, "==", expected).is_valid


def test_division():
    assert math({"a": 9}, "divide", [column("a"), constant(3)], "==", 3).is_valid
    assert math({"a": 9}, "divide", [column("a"), constant(0)], "==", 3).message == "Division by zero error"


def test_non_numeric_column_operand_fails_with_position():
    outcome = math({"a": 1, "b": "x"}, "add", [column("a"), column("b")], ">", 0)
    assert not outcome.configuration_error
    assert outcome.message == 'Invalid value for operand 2: Column "b" has non-numeric value "x"'


def test_bad_constants_are_configuration_errors():
    assert math({}, "add", [constant("x")], ">", 0).configuration_error
    assert math({}, "add", [constant(1)], ">", "zero").configuration_error


@pytest.mark.parametrize(
    "operands",
    [[{"type": "cell", "value": "a"}], ["a"]],
)
def test_malformed_operands_are_rejected(operands):
    with pytest.raises(RuleConfigurationError):
        parse_parameters(
            RuleType.MATH_OPERATION,
            {"operation": "add", "operands": operands, "comparisonOperator": ">", "comparisonValue": 0},
        )
