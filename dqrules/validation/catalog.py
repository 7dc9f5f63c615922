"""Rule catalog: single-column checks and the registry of every rule kind.

Each rule kind maps to one function in :data:`CHECKS`. The primitive
column-value kinds live in this module; the others are imported from their
own modules (dates, formulas, cross-table, arithmetic).

Absent cell values (None, "", NaN) short-circuit to valid for the kinds in
:data:`SKIPS_ABSENT` before the check runs, so a blank optional field only
fails ``required`` rules and date rules declared with ``required: true``.

Example:
    >>> from dqrules.core.models import RuleType
    >>> from dqrules.validation.context import ValidationContext
    >>> from dqrules.validation.parameters import parse_parameters
    >>> params = parse_parameters(RuleType.GREATER_THAN_EQUALS, {"compareValue": 10})
    >>> run_check(RuleType.GREATER_THAN_EQUALS, "10", {}, params, ValidationContext.create({})).is_valid
    True
"""

import re
from collections.abc import Mapping
from typing import Any

from dqrules.core.conditions import evaluate_conditions
from dqrules.core.models import RuleType
from dqrules.core.values import compare, index_key, is_absent, stringify, to_number, type_name
from dqrules.validation.arithmetic import check_column_comparison, check_math_operation
from dqrules.validation.context import ValidationContext
from dqrules.validation.cross_table import check_composite_reference, check_reference_integrity
from dqrules.validation.dates import (
    check_date_after,
    check_date_before,
    check_date_between,
    check_date_format,
)
from dqrules.validation.formulas import (
    check_custom,
    check_dependency,
    check_formula,
    check_javascript_formula,
    check_lookup,
)
from dqrules.validation.outcome import CheckOutcome
from dqrules.validation.parameters import (
    CompareParameters,
    ContainsParameters,
    EnumParameters,
    ListParameters,
    NoParameters,
    RangeParameters,
    RegexParameters,
    TypeParameters,
)
from dqrules.validation.protocols import RuleCheck

DATA_TYPES = ("string", "number", "boolean", "date", "object", "array")

_ORDERING_WORDS = {
    ">": "greater than",
    ">=": "greater than or equal to",
    "<": "less than",
    "<=": "less than or equal to",
}


def check_required(
    value: Any, row: Mapping[str, Any], params: NoParameters, context: ValidationContext
) -> CheckOutcome:
    """Value must be present (not null and not an empty string)."""
    if is_absent(value):
        return CheckOutcome.fail("Field is required")
    return CheckOutcome.ok()


def check_equals(
    value: Any, row: Mapping[str, Any], params: CompareParameters, context: ValidationContext
) -> CheckOutcome:
    """Value must equal compareValue (numeric-looking strings compare as numbers)."""
    if compare(value, "==", params.compare_value):
        return CheckOutcome.ok()
    return CheckOutcome.fail(f"Value must equal {stringify(params.compare_value)}")


def check_not_equals(
    value: Any, row: Mapping[str, Any], params: CompareParameters, context: ValidationContext
) -> CheckOutcome:
    """Value must differ from compareValue."""
    if compare(value, "!=", params.compare_value):
        return CheckOutcome.ok()
    return CheckOutcome.fail(f"Value must not equal {stringify(params.compare_value)}")


def _ordering(operator: str, value: Any, params: CompareParameters) -> CheckOutcome:
    if to_number(value) is None or to_number(params.compare_value) is None:
        return CheckOutcome.fail(
            f"Cannot compare non-numeric values: {stringify(value)} {operator} "
            f"{stringify(params.compare_value)}"
        )
    if compare(value, operator, params.compare_value):
        return CheckOutcome.ok()
    return CheckOutcome.fail(f"Value must be {_ORDERING_WORDS[operator]} {stringify(params.compare_value)}")


def check_greater_than(
    value: Any, row: Mapping[str, Any], params: CompareParameters, context: ValidationContext
) -> CheckOutcome:
    """Value must be numerically greater than compareValue."""
    return _ordering(">", value, params)


def check_greater_than_equals(
    value: Any, row: Mapping[str, Any], params: CompareParameters, context: ValidationContext
) -> CheckOutcome:
    """Value must be numerically greater than or equal to compareValue."""
    return _ordering(">=", value, params)


def check_less_than(
    value: Any, row: Mapping[str, Any], params: CompareParameters, context: ValidationContext
) -> CheckOutcome:
    """Value must be numerically less than compareValue."""
    return _ordering("<", value, params)


def check_less_than_equals(
    value: Any, row: Mapping[str, Any], params: CompareParameters, context: ValidationContext
) -> CheckOutcome:
    """Value must be numerically less than or equal to compareValue."""
    return _ordering("<=", value, params)


def check_range(
    value: Any, row: Mapping[str, Any], params: RangeParameters, context: ValidationContext
) -> CheckOutcome:
    """Value must lie within [min, max]; either bound may be omitted."""
    bounds = {}
    for label, raw in (("min", params.min), ("max", params.max)):
        if is_absent(raw):
            continue
        bound = to_number(raw)
        if bound is None:
            return CheckOutcome.misconfigured(f"Range {label} is not a number: {stringify(raw)}")
        bounds[label] = bound

    number = to_number(value)
    if number is None:
        return CheckOutcome.fail(f"Cannot compare non-numeric values: {stringify(value)} is not a number")
    if "min" in bounds and number < bounds["min"]:
        return CheckOutcome.fail(f"Value {stringify(value)} is less than minimum {stringify(params.min)}")
    if "max" in bounds and number > bounds["max"]:
        return CheckOutcome.fail(f"Value {stringify(value)} is greater than maximum {stringify(params.max)}")
    return CheckOutcome.ok()


def check_regex(
    value: Any, row: Mapping[str, Any], params: RegexParameters, context: ValidationContext
) -> CheckOutcome:
    """String value must contain a match of pattern."""
    if not params.pattern:
        return CheckOutcome.ok()
    if not isinstance(value, str):
        return CheckOutcome.fail(f"Value must be a string for regex validation, got {type_name(value)}")
    try:
        pattern = re.compile(params.pattern)
    except re.error as e:
        return CheckOutcome.misconfigured(f"Invalid regex pattern: {e}")
    if pattern.search(value):
        return CheckOutcome.ok()
    return CheckOutcome.fail(f"Value does not match pattern {params.pattern}")


def check_unique(
    value: Any, row: Mapping[str, Any], params: NoParameters, context: ValidationContext
) -> CheckOutcome:
    """Value must occur only once in the rule's column."""
    counts = context.value_counts(context.table, context.column)
    if counts[index_key(value)] > 1:
        return CheckOutcome.fail(f"Value {stringify(value)} is not unique in column {context.column}")
    return CheckOutcome.ok()


def check_type(
    value: Any, row: Mapping[str, Any], params: TypeParameters, context: ValidationContext
) -> CheckOutcome:
    """Value must have dataType (string, number, boolean, date, object or array)."""
    if not params.data_type:
        return CheckOutcome.ok()
    if params.data_type not in DATA_TYPES:
        return CheckOutcome.misconfigured(f"Unknown data type: {params.data_type}")
    actual = type_name(value)
    if actual == params.data_type:
        return CheckOutcome.ok()
    return CheckOutcome.fail(f"Expected type {params.data_type}, got {actual}")


def check_enum(
    value: Any, row: Mapping[str, Any], params: EnumParameters, context: ValidationContext
) -> CheckOutcome:
    """Value must be one of allowedValues."""
    if not params.allowed_values:
        return CheckOutcome.ok()
    allowed = [stringify(v) for v in params.allowed_values]
    candidate = stringify(value)
    if params.case_insensitive:
        found = candidate.lower() in (v.lower() for v in allowed)
    else:
        found = candidate in allowed
    if found:
        return CheckOutcome.ok()
    return CheckOutcome.fail(f"Value must be one of: {', '.join(allowed)}")


def check_list(
    value: Any, row: Mapping[str, Any], params: ListParameters, context: ValidationContext
) -> CheckOutcome:
    """Value must be one of the values of the value list listId."""
    value_list = context.find_list(params.list_id)
    if value_list is None:
        return CheckOutcome.misconfigured(f"List with ID {params.list_id} not found")
    if value in value_list:
        return CheckOutcome.ok()
    return CheckOutcome.fail(f'Value must be one of the values in the "{value_list.name}" list')


_CONTAINS_TESTS = {
    "contains": ("Value must contain", lambda text, term: term in text),
    "not-contains": ("Value must not contain", lambda text, term: term not in text),
    "starts-with": ("Value must start with", lambda text, term: text.startswith(term)),
    "ends-with": ("Value must end with", lambda text, term: text.endswith(term)),
    "exact": ("Value must exactly match", lambda text, term: text == term),
}


def check_contains(
    value: Any, row: Mapping[str, Any], params: ContainsParameters, context: ValidationContext
) -> CheckOutcome:
    """String value must contain (or start with, end with, equal) searchString."""
    if not params.search_string:
        return CheckOutcome.ok()
    if not isinstance(value, str):
        return CheckOutcome.fail(f"Value must be a string for contains validation, got {type_name(value)}")

    text, term = value, params.search_string
    if not params.case_sensitive:
        text, term = text.lower(), term.lower()
    label, test = _CONTAINS_TESTS[params.match_type]
    if test(text, term):
        return CheckOutcome.ok()
    return CheckOutcome.fail(f'{label}: "{params.search_string}"')


def check_multi_column(
    value: Any, row: Mapping[str, Any], params: NoParameters, context: ValidationContext
) -> CheckOutcome:
    """The rule's conditions list must hold, chained left to right with AND/OR."""
    conditions = context.rule.conditions if context.rule is not None else ()
    outcome = evaluate_conditions(row, conditions)
    if outcome.is_valid:
        return CheckOutcome.ok()
    failed = CheckOutcome.misconfigured if outcome.configuration_error else CheckOutcome.fail
    return failed(outcome.message or "Failed validation", column=outcome.failing_column or None)


CHECKS: dict[RuleType, RuleCheck] = {
    RuleType.REQUIRED: check_required,
    RuleType.EQUALS: check_equals,
    RuleType.NOT_EQUALS: check_not_equals,
    RuleType.GREATER_THAN: check_greater_than,
    RuleType.GREATER_THAN_EQUALS: check_greater_than_equals,
    RuleType.LESS_THAN: check_less_than,
    RuleType.LESS_THAN_EQUALS: check_less_than_equals,
    RuleType.RANGE: check_range,
    RuleType.REGEX: check_regex,
    RuleType.UNIQUE: check_unique,
    RuleType.TYPE: check_type,
    RuleType.ENUM: check_enum,
    RuleType.LIST: check_list,
    RuleType.CONTAINS: check_contains,
    RuleType.DEPENDENCY: check_dependency,
    RuleType.MULTI_COLUMN: check_multi_column,
    RuleType.LOOKUP: check_lookup,
    RuleType.CUSTOM: check_custom,
    RuleType.FORMULA: check_formula,
    RuleType.JAVASCRIPT_FORMULA: check_javascript_formula,
    RuleType.DATE_BEFORE: check_date_before,
    RuleType.DATE_AFTER: check_date_after,
    RuleType.DATE_BETWEEN: check_date_between,
    RuleType.DATE_FORMAT: check_date_format,
    RuleType.REFERENCE_INTEGRITY: check_reference_integrity,
    RuleType.COMPOSITE_REFERENCE: check_composite_reference,
    RuleType.COLUMN_COMPARISON: check_column_comparison,
    RuleType.MATH_OPERATION: check_math_operation,
}

assert set(CHECKS) == set(RuleType), "every rule kind needs a check"

SKIPS_ABSENT = frozenset(
    {
        RuleType.EQUALS,
        RuleType.NOT_EQUALS,
        RuleType.GREATER_THAN,
        RuleType.GREATER_THAN_EQUALS,
        RuleType.LESS_THAN,
        RuleType.LESS_THAN_EQUALS,
        RuleType.RANGE,
        RuleType.REGEX,
        RuleType.UNIQUE,
        RuleType.TYPE,
        RuleType.ENUM,
        RuleType.LIST,
        RuleType.CONTAINS,
        RuleType.LOOKUP,
        RuleType.REFERENCE_INTEGRITY,
    }
)


def run_check(
    rule_type: RuleType,
    value: Any,
    row: Mapping[str, Any],
    params: Any,
    context: ValidationContext,
) -> CheckOutcome:
    """Run the check registered for ``rule_type`` on one cell.

    Args:
        rule_type: Kind of the rule or combinator link
        value: Cell value of the column under test
        row: Whole row
        params: Parameter record parsed for ``rule_type``
        context: Context whose ``column`` is the column under test

    Returns:
        CheckOutcome of the check, or a pass for absent values of kinds
        that only judge present values
    """
    if rule_type in SKIPS_ABSENT and is_absent(value):
        return CheckOutcome.ok()
    return CHECKS[rule_type](value, row, params, context)


def describe_rule_types() -> dict[str, str]:
    """Return ``{wire tag: one-line description}`` for every rule kind."""
    descriptions = {}
    for rule_type, check in CHECKS.items():
        doc = (check.__doc__ or "").strip()
        descriptions[rule_type.value] = doc.splitlines()[0] if doc else ""
    return descriptions
