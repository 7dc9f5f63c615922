"""Condition combinator for rules with ``columnConditions``.

A rule with column conditions is a chain of ``(column, rule kind,
parameters)`` links joined by AND/OR. The chain is reduced strictly left to
right without operator precedence::

    [A (AND), B (OR), C]  ==  ((A AND B) OR C)

The operator that joins link ``i`` to the chain is the one stored on link
``i - 1``. See :func:`dqrules.core.conditions.fold_chain`.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from dqrules.core.conditions import ChainOutcome, ChainStep, fold_chain
from dqrules.core.models import ColumnCondition
from dqrules.validation.catalog import run_check
from dqrules.validation.context import ValidationContext
from dqrules.validation.exceptions import RuleConfigurationError
from dqrules.validation.parameters import parse_parameters


@dataclass(frozen=True)
class ChainLink:
    """A column condition with its parameters parsed once per rule.

    Attributes:
        condition: The link as configured on the rule
        params: Parsed parameter record (None when parsing failed)
        error: Configuration error message when parsing failed
    """

    condition: ColumnCondition
    params: Any = None
    error: str = ""


def prepare_chain(conditions: Sequence[ColumnCondition], rule_id: str | None = None) -> tuple[ChainLink, ...]:
    """Parse the parameters of every link of a chain.

    A link with broken parameters does not abort the chain; it evaluates as
    a failed link carrying the configuration error.
    """
    links = []
    for condition in conditions:
        try:
            params = parse_parameters(condition.rule_type, condition.parameters, rule_id=rule_id)
        except RuleConfigurationError as e:
            links.append(ChainLink(condition, error=e.message))
        else:
            links.append(ChainLink(condition, params))
    return tuple(links)


def _step(link: ChainLink, row: Mapping[str, Any], context: ValidationContext) -> ChainStep:
    condition = link.condition
    if link.error:
        return ChainStep(False, condition.column, link.error, condition.logical_operator, True)
    outcome = run_check(
        condition.rule_type,
        row.get(condition.column),
        row,
        link.params,
        context.for_column(condition.column),
    )
    return ChainStep(
        outcome.is_valid,
        outcome.column or condition.column,
        outcome.message or ("" if outcome.is_valid else "Failed validation"),
        condition.logical_operator,
        outcome.configuration_error,
    )


def evaluate_chain(
    conditions: Sequence[ColumnCondition | ChainLink],
    row: Mapping[str, Any],
    context: ValidationContext,
) -> ChainOutcome:
    """Evaluate an AND/OR chain of column conditions on one row.

    Args:
        conditions: Column conditions, or links from :func:`prepare_chain`
        row: Row under test
        context: Rule-level validation context

    Returns:
        ChainOutcome with the overall verdict, and the failing column and
        message when invalid. An empty chain is valid.

    Example:
        >>> from dqrules.core.models import LogicalOperator, RuleType
        >>> chain = [
        ...     ColumnCondition("status", RuleType.EQUALS, {"compareValue": "closed"}, LogicalOperator.AND),
        ...     ColumnCondition("amount", RuleType.GREATER_THAN, {"compareValue": 0}, LogicalOperator.OR),
        ...     ColumnCondition("override", RuleType.REQUIRED),
        ... ]
        >>> evaluate_chain(chain, {"status": "open", "amount": 5, "override": "yes"},
        ...                ValidationContext.create({})).is_valid
        True
    """
    links = [c if isinstance(c, ChainLink) else prepare_chain([c])[0] for c in conditions]
    return fold_chain(_step(link, row, context) for link in links)
