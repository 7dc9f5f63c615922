"""Column-comparison and math-operation rule kinds."""

from collections.abc import Mapping
from typing import Any

from dqrules.core.values import COMPARISON_OPERATORS, compare, is_absent, stringify, to_number
from dqrules.validation.context import ValidationContext
from dqrules.validation.outcome import CheckOutcome
from dqrules.validation.parameters import ColumnComparisonParameters, MathOperationParameters

_SYMBOLS = {"add": "+", "subtract": "-", "multiply": "*", "divide": "/"}


def _display(value: Any) -> str:
    return "null" if value is None else stringify(value)


def check_column_comparison(
    value: Any, row: Mapping[str, Any], params: ColumnComparisonParameters, context: ValidationContext
) -> CheckOutcome:
    """Compare two columns of the same row.

    The left column defaults to the rule's column. Numeric-looking strings
    compare as numbers and ISO dates as calendar days (or full timestamps
    with ``timeAware``).

    Example:
        A row with ``endDate`` before ``startDate`` fails
        ``endDate >= startDate`` with
        "Column comparison failed: endDate (2024-01-01) >= startDate (2024-02-01)".
    """
    operator = params.comparison_operator
    if operator not in COMPARISON_OPERATORS:
        return CheckOutcome.misconfigured(f"Invalid comparison operator: {operator}")

    left = params.left_column or context.column
    right = params.right_column
    left_value, right_value = row.get(left), row.get(right)

    if is_absent(left_value) or is_absent(right_value):
        if params.allow_null:
            return CheckOutcome.ok()
        return CheckOutcome.fail(
            f"Cannot compare null values: {left}={_display(left_value)} "
            f"{operator} {right}={_display(right_value)}",
            column=left,
        )

    if compare(left_value, operator, right_value, time_aware=params.time_aware):
        return CheckOutcome.ok()
    return CheckOutcome.fail(
        f"Column comparison failed: {left} ({_display(left_value)}) {operator} "
        f"{right} ({_display(right_value)})",
        column=left,
    )


def check_math_operation(
    value: Any, row: Mapping[str, Any], params: MathOperationParameters, context: ValidationContext
) -> CheckOutcome:
    """Fold operands with one arithmetic operation and compare the result.

    Operands are folded left to right, so ``subtract`` over ``[a, b, c]``
    computes ``(a - b) - c``.
    """
    operator = params.comparison_operator
    if operator not in COMPARISON_OPERATORS:
        return CheckOutcome.misconfigured(f"Invalid comparison operator: {operator}")
    if to_number(params.comparison_value) is None:
        return CheckOutcome.misconfigured(
            f"Comparison value must be a number, got {_display(params.comparison_value)}"
        )

    numbers: list[float] = []
    labels: list[str] = []
    for position, operand in enumerate(params.operands, start=1):
        if operand.kind == "column":
            raw = row.get(str(operand.value))
            number = to_number(raw)
            if number is None:
                return CheckOutcome.fail(
                    f'Invalid value for operand {position}: Column "{operand.value}" '
                    f'has non-numeric value "{_display(raw)}"'
                )
            labels.append(f"{operand.value}({stringify(raw)})")
        else:
            number = to_number(operand.value)
            if number is None:
                return CheckOutcome.misconfigured(
                    f'Invalid value for operand {position}: constant "{_display(operand.value)}" is not a number'
                )
            labels.append(stringify(number))
        numbers.append(number)

    result = numbers[0]
    for number in numbers[1:]:
        if params.operation == "add":
            result += number
        elif params.operation == "subtract":
            result -= number
        elif params.operation == "multiply":
            result *= number
        else:
            if number == 0:
                return CheckOutcome.fail("Division by zero error")
            result /= number

    if compare(result, operator, params.comparison_value):
        return CheckOutcome.ok()

    expression = f" {_SYMBOLS[params.operation]} ".join(labels)
    return CheckOutcome.fail(
        f"Math operation failed: ({expression}) = {stringify(result)} "
        f"{operator} {stringify(params.comparison_value)}"
    )
