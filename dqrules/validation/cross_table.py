"""Cross-table rule kinds.

Three ways a row can depend on another table:

- reference-integrity: the cell must (or must not) appear in a column of a
  reference table
- composite-reference: a tuple of cells must match a row of the reference
  table, regardless of which column holds which value
- cross-table conditions: every ``{table, column, operator, value}`` needs
  at least one matching row in its table

Reference tables are indexed once per run through the context memo, so a
rule over N rows costs one scan of the reference table plus N lookups.
"""

from collections.abc import Mapping, Sequence
from typing import Any

from dqrules.core.conditions import evaluate_operator
from dqrules.core.models import CrossTableCondition
from dqrules.core.values import index_key, is_absent, stringify
from dqrules.validation.context import ValidationContext
from dqrules.validation.outcome import CheckOutcome
from dqrules.validation.parameters import CompositeReferenceParameters, ReferenceParameters


def check_reference_integrity(
    value: Any, row: Mapping[str, Any], params: ReferenceParameters, context: ValidationContext
) -> CheckOutcome:
    """Cell must exist (or, with ``checkType: not-exists``, must not exist) in another table.

    Example:
        transactions.userId = 9999 with no users.id = 9999 fails with
        "Value 9999 in userId does not exist in users.id".
    """
    if is_absent(value):
        return CheckOutcome.ok()

    table, column = params.reference_table, params.reference_column
    if context.rows(table) is None or not context.has_column(table, column):
        return CheckOutcome.misconfigured(f"Reference table {table} or column {column} not found")

    exists = index_key(value) in context.reference_index(table, column)
    if params.check_type == "exists" and not exists:
        return CheckOutcome.fail(
            f"Value {stringify(value)} in {context.column} does not exist in {table}.{column}"
        )
    if params.check_type == "not-exists" and exists:
        return CheckOutcome.fail(
            f"Value {stringify(value)} in {context.column} should not exist in {table}.{column}"
        )
    return CheckOutcome.ok()


def check_composite_reference(
    value: Any, row: Mapping[str, Any], params: CompositeReferenceParameters, context: ValidationContext
) -> CheckOutcome:
    """Tuple of source cells must match one reference row as a set of values.

    Matching is order-independent: the source values and the reference
    row's values must form the same set, so ``(a, b)`` matches a reference
    row holding ``(b, a)``. A row with any absent source value is skipped.
    """
    values = [row.get(column) for column in params.source_columns]
    if any(is_absent(v) for v in values):
        return CheckOutcome.ok()

    table = params.reference_table
    if context.rows(table) is None:
        return CheckOutcome.misconfigured(f"Reference table {table} not found")

    key = frozenset(index_key(v) for v in values)
    found = key in context.composite_index(table, tuple(params.reference_columns))
    if found == (params.check_type == "exists"):
        return CheckOutcome.ok()

    described = ", ".join(
        f"{column}={stringify(v)}" for column, v in zip(params.source_columns, values, strict=True)
    )
    verb = "does not exist" if params.check_type == "exists" else "should not exist"
    return CheckOutcome.fail(
        f"Composite key ({described}) {verb} in {table} columns "
        f"({', '.join(params.reference_columns)})",
        column=params.source_columns[0],
    )


def _condition_matches(condition: CrossTableCondition, rows: Sequence[Mapping[str, Any]]) -> bool:
    return any(
        evaluate_operator(candidate.get(condition.column), condition.operator, condition.value).is_valid
        for candidate in rows
    )


def check_cross_table_conditions(
    conditions: Sequence[CrossTableCondition], context: ValidationContext
) -> CheckOutcome:
    """Every condition needs at least one matching row in its own table.

    Conditions are AND-combined; their ``logicalOperator`` is kept on the
    record but not applied. None of them reads the current row, so each
    verdict is computed once per run.
    """
    for condition in conditions:
        rows = context.rows(condition.table)
        if rows is None:
            return CheckOutcome.misconfigured(f"Referenced table {condition.table} not found")

        matched = context.memo(
            ("cross_table", condition.table, condition.column, condition.operator, repr(condition.value)),
            lambda condition=condition, rows=rows: _condition_matches(condition, rows),
        )
        if not matched:
            return CheckOutcome.fail(
                f"No matching record found in {condition.table} for condition on {condition.column}",
            )
    return CheckOutcome.ok()
