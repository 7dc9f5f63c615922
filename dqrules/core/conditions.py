"""Row-level ``{column, operator, value}`` conditions and flat AND/OR chains.

The same operator set is used by multi-column rules, additional conditions,
generic cross-table conditions and aggregation filters, so it lives here
rather than in any one validator.
"""

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, NamedTuple

from dqrules.core.models import Condition, LogicalOperator
from dqrules.core.values import COMPARISON_OPERATORS, compare, is_absent, stringify

_ORDERING_WORDS = {
    "==": "equal",
    "!=": "not equal",
    ">": "be greater than",
    ">=": "be greater than or equal to",
    "<": "be less than",
    "<=": "be less than or equal to",
}

_STRING_OPERATORS = {
    "contains": ("contain", lambda text, term: term in text),
    "not-contains": ("not contain", lambda text, term: term not in text),
    "starts-with": ("start with", lambda text, term: text.startswith(term)),
    "ends-with": ("end with", lambda text, term: text.endswith(term)),
}


class ConditionOutcome(NamedTuple):
    is_valid: bool
    message: str = ""
    configuration_error: bool = False


def evaluate_operator(value: Any, operator: str, expected: Any, column: str = "") -> ConditionOutcome:
    """Apply one condition operator to a cell value.

    Args:
        value: Cell value taken from the row
        operator: One of ``CONDITION_OPERATORS``
        expected: Right-hand side of the condition
        column: Column name used in the failure message

    Returns:
        ConditionOutcome with a message describing the failure, if any

    Example:
        >>> evaluate_operator("abc", "starts-with", "a", "code")
        ConditionOutcome(is_valid=True, message='')
        >>> evaluate_operator(5, ">", 10, "amount").message
        'amount should be greater than 10'
    """
    if operator == "is-blank":
        if is_absent(value):
            return ConditionOutcome(True)
        return ConditionOutcome(False, f"{column} should be blank")

    if operator == "is-not-blank":
        if not is_absent(value):
            return ConditionOutcome(True)
        return ConditionOutcome(False, f"{column} should not be blank")

    if operator in COMPARISON_OPERATORS:
        if compare(value, operator, expected):
            return ConditionOutcome(True)
        return ConditionOutcome(
            False, f"{column} should {_ORDERING_WORDS[operator]} {stringify(expected)}"
        )

    if operator in _STRING_OPERATORS:
        words, test = _STRING_OPERATORS[operator]
        if isinstance(value, str) and test(value, stringify(expected)):
            return ConditionOutcome(True)
        return ConditionOutcome(False, f"{column} should {words} {stringify(expected)}")

    if operator == "matches":
        try:
            pattern = re.compile(stringify(expected))
        except re.error as exc:
            return ConditionOutcome(False, f"Invalid regex pattern: {exc}", configuration_error=True)
        if isinstance(value, str) and pattern.search(value):
            return ConditionOutcome(True)
        return ConditionOutcome(False, f"{column} should match pattern {stringify(expected)}")

    return ConditionOutcome(False, f"Unknown operator: {operator}", configuration_error=True)


def evaluate_condition(row: Mapping[str, Any], condition: Condition) -> ConditionOutcome:
    """Evaluate a condition against the cell it names in ``row``."""
    return evaluate_operator(row.get(condition.column), condition.operator, condition.value, condition.column)


@dataclass(frozen=True)
class ChainOutcome:
    """Verdict of a flat AND/OR chain.

    Attributes:
        is_valid: Overall verdict
        failing_column: Column of the recorded failure ("" when valid)
        message: Recorded failure reason ("" when valid)
        configuration_error: The recorded failure comes from a broken
            condition rather than from the row's data
    """

    is_valid: bool
    failing_column: str = ""
    message: str = ""
    configuration_error: bool = False


class ChainStep(NamedTuple):
    is_valid: bool
    column: str
    message: str
    logical_operator: LogicalOperator
    configuration_error: bool = False


def fold_chain(steps: Iterable[ChainStep]) -> ChainOutcome:
    """Reduce chain steps strictly left to right.

    The operator joining step ``i`` to its predecessor is the one carried by
    step ``i - 1``. There is no precedence: ``[A(AND), B(OR), C]`` is
    ``((A AND B) OR C)``. AND keeps the first recorded failure, OR clears it
    as soon as the running verdict becomes true. An empty chain is valid.

    Example:
        >>> AND, OR = LogicalOperator.AND, LogicalOperator.OR
        >>> fold_chain([
        ...     ChainStep(False, "a", "a failed", AND),
        ...     ChainStep(True, "b", "", OR),
        ...     ChainStep(False, "c", "c failed", AND),
        ... ]).is_valid
        True
    """
    verdict: bool | None = None
    failure: ChainStep | None = None
    joiner = LogicalOperator.AND

    for step in steps:
        if verdict is None:
            verdict = step.is_valid
        elif joiner is LogicalOperator.AND:
            verdict = verdict and step.is_valid
        else:
            verdict = verdict or step.is_valid
            if verdict:
                failure = None
        if not verdict and not step.is_valid and (failure is None or not failure.message):
            failure = step
        joiner = step.logical_operator

    if verdict is None or verdict or failure is None:
        return ChainOutcome(True)
    return ChainOutcome(False, failure.column, failure.message, failure.configuration_error)


def evaluate_conditions(row: Mapping[str, Any], conditions: Iterable[Condition]) -> ChainOutcome:
    """Evaluate a ``{column, operator, value}`` list as a flat AND/OR chain."""
    return fold_chain(
        ChainStep(
            outcome.is_valid,
            condition.column,
            outcome.message,
            condition.logical_operator,
            outcome.configuration_error,
        )
        for condition in conditions
        for outcome in (evaluate_condition(row, condition),)
    )
