"""Expression-backed rule kinds.

This module holds the rule kinds whose verdict comes from the expression
language rather than from a fixed comparison:

- formula: row arithmetic, optionally over table aggregations
- javascript-formula: script dialect with ``row.field`` access
- custom: script body bound to ``value``
- dependency: script condition bound to ``value`` and ``dependsOnValue``
- lookup: membership in (or a script over) another table's column

None of them executes host code; see :mod:`dqrules.expression`.
"""

import json
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from dqrules.aggregation.config import AggregationConfig
from dqrules.aggregation.engine import GroupedResult
from dqrules.core.values import index_key, is_absent, stringify
from dqrules.expression import (
    Dialect,
    EvalError,
    EvaluationScope,
    evaluate_formula,
    parse,
)
from dqrules.expression.ast import column_names
from dqrules.validation.context import ValidationContext
from dqrules.validation.outcome import CheckOutcome
from dqrules.validation.parameters import (
    CustomParameters,
    DependencyParameters,
    FormulaParameters,
    LookupParameters,
    ScriptParameters,
)

logger = logging.getLogger(__name__)


def _render(value: Any) -> str:
    if isinstance(value, GroupedResult):
        return str(value)
    if value is None:
        return "null"
    return stringify(value)


def _json(value: Any) -> str:
    return json.dumps(value, default=str, ensure_ascii=False)


def column_values_block(row: Mapping[str, Any], columns: Iterable[str]) -> str:
    """Render the ``Column values:`` appendix of formula messages.

    Example:
        >>> print(column_values_block({"amount": 100, "fee": None}, ["amount", "fee"]))
        Column values:
          amount = 100
          fee = null
    """
    lines = ["Column values:"]
    lines.extend(f"  {column} = {_json(row.get(column))}" for column in columns)
    return "\n".join(lines)


def _referenced_columns(formula: str, row: Mapping[str, Any], dialect: Dialect) -> list[str]:
    try:
        names = column_names(parse(formula, dialect))
    except EvalError:
        return list(row)
    # Aliases and bindings are not row columns
    return sorted(name for name in names if name in row)


def aggregation_configs(params: FormulaParameters) -> tuple[AggregationConfig, ...]:
    """Build the aggregation records configured on a formula rule.

    Raises:
        ValueError: If an entry names an unknown function or misses a key
    """
    configs = []
    for raw in params.aggregations:
        if not isinstance(raw, Mapping):
            raise ValueError(f"Aggregation entry must be an object, got {raw!r}")
        try:
            configs.append(AggregationConfig.from_dict(raw))
        except KeyError as e:
            raise ValueError(f"Aggregation entry is missing {e.args[0]!r}") from e
    return tuple(configs)


def check_formula(
    value: Any, row: Mapping[str, Any], params: FormulaParameters, context: ValidationContext
) -> CheckOutcome:
    """Row formula, optionally compared with a value, over aggregations.

    With ``useComparison`` the formula result is compared to ``value`` using
    ``operator``; otherwise a comparison or logical formula is its own
    verdict and any other result passes when it is a positive number or a
    truthy value.
    """
    formula = params.formula.strip()
    if not formula:
        return CheckOutcome.ok()

    try:
        configs = aggregation_configs(params)
    except ValueError as e:
        return CheckOutcome.misconfigured(f"Invalid aggregation configuration: {e}")

    scope = EvaluationScope(
        row=row,
        table=context.table,
        table_rows=context.rows(),
        aggregations=configs,
        cache=context.aggregation_cache,
        result_handling=params.result_handling,
    )
    compared = params.use_comparison and bool(params.operator) and params.value is not None

    try:
        if compared:
            outcome = evaluate_formula(
                formula, row, scope, operator=params.operator, comparison_value=params.value
            )
        else:
            outcome = evaluate_formula(formula, row, scope)
    except EvalError as e:
        logger.debug("Formula %r failed on row: %s", formula, e)
        return CheckOutcome.fail(
            f"Error evaluating formula: {e.message}\nFormula: {formula}\n"
            + column_values_block(row, _referenced_columns(formula, row, Dialect.FORMULA))
        )

    if outcome.is_valid:
        return CheckOutcome.ok()

    values = column_values_block(row, _referenced_columns(formula, row, Dialect.FORMULA))
    if compared:
        return CheckOutcome.fail(
            f"Formula result {_render(outcome.result)} {params.operator} "
            f"{stringify(params.value)} is false\n{values}"
        )
    return CheckOutcome.fail(
        f"Formula evaluated to false: {formula} (Result: {_render(outcome.result)})\n{values}"
    )


def check_javascript_formula(
    value: Any, row: Mapping[str, Any], params: ScriptParameters, context: ValidationContext
) -> CheckOutcome:
    """Script-dialect boolean formula reading the row through ``row.field``."""
    formula = params.formula.strip()
    if not formula:
        return CheckOutcome.ok()
    try:
        outcome = evaluate_formula(formula, row, dialect=Dialect.SCRIPT)
    except EvalError as e:
        return CheckOutcome.fail(
            f"Error evaluating JavaScript formula: {e.message}\n{column_values_block(row, row)}"
        )
    if outcome.is_valid:
        return CheckOutcome.ok()
    return CheckOutcome.fail(f"JavaScript formula evaluated to false: {formula}")


def check_custom(
    value: Any, row: Mapping[str, Any], params: CustomParameters, context: ValidationContext
) -> CheckOutcome:
    """Script body evaluated with ``value`` bound to the cell."""
    body = params.function_body.strip()
    if not body:
        return CheckOutcome.ok()
    scope = EvaluationScope(row=row, bindings={"value": value})
    try:
        outcome = evaluate_formula(body, row, scope, dialect=Dialect.SCRIPT)
    except EvalError as e:
        return CheckOutcome.fail(f"Error in custom validation: {e.message}")
    return CheckOutcome.ok() if outcome.is_valid else CheckOutcome.fail("Custom validation failed")


def check_dependency(
    value: Any, row: Mapping[str, Any], params: DependencyParameters, context: ValidationContext
) -> CheckOutcome:
    """Script condition over the cell and the column it depends on."""
    condition = params.condition.strip()
    if not condition:
        return CheckOutcome.ok()
    bindings = {"value": value, "dependsOnValue": row.get(params.depends_on)}
    scope = EvaluationScope(row=row, bindings=bindings)
    try:
        outcome = evaluate_formula(condition, row, scope, dialect=Dialect.SCRIPT)
    except EvalError as e:
        return CheckOutcome.fail(f"Invalid dependency condition: {e.message}")
    if outcome.is_valid:
        return CheckOutcome.ok()
    return CheckOutcome.fail(f"Dependency condition not met: {condition}")


def check_lookup(
    value: Any, row: Mapping[str, Any], params: LookupParameters, context: ValidationContext
) -> CheckOutcome:
    """Cell must appear in another table's column, or pass a script over it.

    The script sees ``value`` (the cell), ``lookupValues`` (the lookup
    column as a list) and ``column`` (the rule's column name).
    """
    if not params.lookup_table or not params.lookup_column:
        return CheckOutcome.ok()

    lookup_rows = context.rows(params.lookup_table)
    if not lookup_rows:
        return CheckOutcome.misconfigured(f"Lookup table {params.lookup_table} not found or empty")

    validation = params.validation.strip()
    if validation:
        lookup_values = context.memo(
            ("lookup_values", params.lookup_table, params.lookup_column),
            lambda: tuple(r.get(params.lookup_column) for r in lookup_rows),
        )
        bindings = {"value": value, "lookupValues": lookup_values, "column": context.column}
        scope = EvaluationScope(row=row, bindings=bindings)
        try:
            outcome = evaluate_formula(validation, row, scope, dialect=Dialect.SCRIPT)
        except EvalError as e:
            return CheckOutcome.fail(f"Invalid lookup validation: {e.message}")
        if outcome.is_valid:
            return CheckOutcome.ok()
        return CheckOutcome.fail(f"Lookup validation failed: {validation}")

    if not is_absent(value) and index_key(value) in context.reference_index(
        params.lookup_table, params.lookup_column
    ):
        return CheckOutcome.ok()
    return CheckOutcome.fail(
        f"Value not found in lookup table {params.lookup_table}, column {params.lookup_column}"
    )
