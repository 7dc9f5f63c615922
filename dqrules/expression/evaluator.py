"""Tree-walking evaluator for parsed formulas.

Formulas never execute host code: the parser yields a closed set of nodes and
this module interprets them with a fixed operator set and the aggregation
function allow-list.

Value semantics:
    - Numeric-looking strings take part in arithmetic as numbers
    - ``+`` concatenates when one side is a non-numeric string
    - Absent operands (None, "") propagate None through arithmetic
    - Comparisons follow :func:`dqrules.core.values.compare`, so absent
      operands fail closed
    - A comparison against a grouped aggregation is reduced with the
      aggregation's ALL/ANY/MAJORITY policy
"""

import dataclasses
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from dqrules.aggregation.config import AGGREGATE_FUNCTIONS, AggregationConfig, ResultHandling, render_call
from dqrules.aggregation.engine import AggregationCache, GroupedResult, aggregate
from dqrules.core.values import COMPARISON_OPERATORS, compare, is_absent, is_truthy, stringify, to_number
from dqrules.expression.ast import BinaryOp, Call, ColumnRef, Literal, Node, UnaryOp, is_boolean_root
from dqrules.expression.errors import (
    ArityError,
    DivisionByZeroError,
    EvalError,
    OperandTypeError,
    UnknownFunctionError,
)
from dqrules.expression.parser import NESTING_MESSAGE, Dialect, parse


@dataclass
class EvaluationScope:
    """Everything a formula may read besides literals.

    Attributes:
        row: Current row (read-only)
        bindings: Named values for script formulas (``value``,
                  ``dependsOnValue``, ``lookupValues``)
        table: Name of the table aggregations run over
        table_rows: Rows of that table; aggregation calls need it
        aggregations: Aggregations configured on the rule
        cache: Per-run aggregation memo
        result_handling: Policy for grouped calls not matched by a config
    """

    row: Mapping[str, Any]
    bindings: Mapping[str, Any] = field(default_factory=dict)
    table: str = ""
    table_rows: Sequence[Mapping[str, Any]] | None = None
    aggregations: Sequence[AggregationConfig] = ()
    cache: AggregationCache | None = None
    result_handling: ResultHandling | None = None

    def with_row(self, row: Mapping[str, Any]) -> "EvaluationScope":
        return dataclasses.replace(self, row=row)


@dataclass(frozen=True)
class FormulaOutcome:
    """Verdict of a formula plus the raw value it evaluated to."""

    is_valid: bool
    result: Any


def _describe(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, str):
        return f'"{value}"'
    return stringify(value)


class _Evaluator:
    def __init__(self, formula: str, scope: EvaluationScope) -> None:
        self.formula = formula
        self.scope = scope

    def eval(self, node: Node) -> Any:
        if isinstance(node, Literal):
            return node.value
        if isinstance(node, ColumnRef):
            return self.resolve(node)
        if isinstance(node, UnaryOp):
            return self.eval_unary(node)
        if isinstance(node, BinaryOp):
            return self.eval_binary(node)
        if isinstance(node, Call):
            return self.eval_call(node)
        raise EvalError(f"Unsupported expression node {type(node).__name__}", formula=self.formula)

    def resolve(self, ref: ColumnRef) -> Any:
        scope = self.scope
        if ref.qualified:
            return scope.row.get(ref.name)
        if ref.name in scope.bindings:
            return scope.bindings[ref.name]
        if ref.name in scope.row:
            return scope.row[ref.name]
        for config in scope.aggregations:
            if config.alias == ref.name:
                return self.run_aggregation(config, ())
        return None

    def eval_unary(self, node: UnaryOp) -> Any:
        operand = self.eval(node.operand)
        if node.op == "not":
            if isinstance(operand, GroupedResult):
                return not operand.reduce(is_truthy)
            return not is_truthy(operand)
        if isinstance(operand, GroupedResult):
            return operand.map(lambda v: self.negate(node.op, v))
        return self.negate(node.op, operand)

    def negate(self, op: str, operand: Any) -> Any:
        if is_absent(operand):
            return None
        number = to_number(operand)
        if number is None:
            raise OperandTypeError(
                f"Cannot apply unary '{op}' to {_describe(operand)}", formula=self.formula
            )
        return -number if op == "-" else number

    def eval_binary(self, node: BinaryOp) -> Any:
        op = node.op
        if op == "and":
            left = self.truth(self.eval(node.left))
            return left and self.truth(self.eval(node.right))
        if op == "or":
            left = self.truth(self.eval(node.left))
            return left or self.truth(self.eval(node.right))

        left = self.eval(node.left)
        right = self.eval(node.right)

        if op == "in":
            return self.membership(left, right)
        if op in ("==", "!=", ">", ">=", "<", "<="):
            return self.comparison(op, left, right)
        return self.arithmetic(op, left, right)

    def truth(self, value: Any) -> bool:
        if isinstance(value, GroupedResult):
            return value.reduce(is_truthy)
        return is_truthy(value)

    def membership(self, left: Any, right: Any) -> bool:
        if isinstance(right, (tuple, list)):
            return any(compare(left, "==", item) for item in right)
        if isinstance(right, str):
            return not is_absent(left) and stringify(left) in right
        raise OperandTypeError(
            f"Right side of 'in' must be a list or string, got {_describe(right)}", formula=self.formula
        )

    def comparison(self, op: str, left: Any, right: Any) -> bool:
        left_grouped = isinstance(left, GroupedResult)
        right_grouped = isinstance(right, GroupedResult)
        if left_grouped and right_grouped:
            raise OperandTypeError("Cannot compare two grouped aggregations", formula=self.formula)
        if left_grouped:
            return left.reduce(lambda v: compare(v, op, right))
        if right_grouped:
            return right.reduce(lambda v: compare(left, op, v))
        return compare(left, op, right)

    def arithmetic(self, op: str, left: Any, right: Any) -> Any:
        if isinstance(left, GroupedResult) and isinstance(right, GroupedResult):
            raise OperandTypeError(
                f"Cannot apply '{op}' to two grouped aggregations", formula=self.formula
            )
        if isinstance(left, GroupedResult):
            return left.map(lambda v: self.arithmetic(op, v, right))
        if isinstance(right, GroupedResult):
            return right.map(lambda v: self.arithmetic(op, left, v))

        if is_absent(left) or is_absent(right):
            return None

        a, b = to_number(left), to_number(right)
        if a is None or b is None:
            if op == "+" and (isinstance(left, str) or isinstance(right, str)):
                return stringify(left) + stringify(right)
            raise OperandTypeError(
                f"Cannot apply '{op}' to {_describe(left)} and {_describe(right)}", formula=self.formula
            )

        if op == "+":
            return a + b
        if op == "-":
            return a - b
        if op == "*":
            return a * b
        if b == 0:
            raise DivisionByZeroError("Division by zero", formula=self.formula)
        if op == "/":
            return a / b
        return math.fmod(a, b)

    def eval_call(self, node: Call) -> Any:
        function = node.name.upper()
        if function not in AGGREGATE_FUNCTIONS:
            raise UnknownFunctionError(
                f"Unknown function '{node.name}'. Available: {', '.join(AGGREGATE_FUNCTIONS)}",
                function=node.name,
                formula=self.formula,
            )
        args = []
        for arg in node.args:
            if not isinstance(arg, Literal):
                raise OperandTypeError(
                    f"Arguments of {function} must be literal strings or lists", formula=self.formula
                )
            args.append(arg.value)

        try:
            config, filters = AggregationConfig.from_call(function, args)
        except ValueError as e:
            raise ArityError(str(e), function=function, formula=self.formula) from e

        if not filters:
            text = config.render()
            for configured in self.scope.aggregations:
                if configured.render() == text:
                    return self.run_aggregation(configured, ())
        if self.scope.result_handling is not None:
            config = dataclasses.replace(config, result_handling=self.scope.result_handling)
        return self.run_aggregation(config, filters)

    def run_aggregation(self, config: AggregationConfig, filters: tuple[str, ...]) -> Any:
        scope = self.scope
        if scope.table_rows is None:
            raise EvalError(
                f"{render_call(config.function, config.column, filters, config.group_columns, config.distinct_column)} "
                "needs a table to aggregate over",
                formula=self.formula,
            )

        filter_nodes = tuple(parse(text, Dialect.FORMULA) for text in filters)

        def row_filter(row: Mapping[str, Any]) -> bool:
            inner = _Evaluator(self.formula, scope.with_row(row))
            return all(inner.truth(inner.eval(node)) for node in filter_nodes)

        def compute() -> Any:
            return aggregate(scope.table_rows, config, row_filter if filter_nodes else None)

        if scope.cache is None:
            return compute()
        return scope.cache.get_or_compute((scope.table, config, filters), compute)


def _run(formula: str, node: Node, scope: EvaluationScope) -> Any:
    try:
        return _Evaluator(formula, scope).eval(node)
    except RecursionError:
        raise EvalError(NESTING_MESSAGE, formula=formula) from None


def evaluate(
    formula: str,
    row: Mapping[str, Any],
    scope: EvaluationScope | None = None,
    dialect: Dialect = Dialect.FORMULA,
) -> Any:
    """Evaluate a formula and return its raw value.

    Args:
        formula: Formula text
        row: Current row; overrides ``scope.row`` when a scope is given
        scope: Optional bindings and table context
        dialect: FORMULA or SCRIPT

    Raises:
        EvalError: On syntax errors, division by zero, bad operands or
            unknown functions

    Example:
        >>> evaluate("amount - refundAmount", {"amount": 100, "refundAmount": "20"})
        80.0
    """
    scope = scope.with_row(row) if scope is not None else EvaluationScope(row=row)
    return _run(formula, parse(formula, dialect), scope)


def _fallback_verdict(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    number = to_number(value) if not isinstance(value, str) else None
    if number is not None:
        return number > 0
    return is_truthy(value)


def evaluate_formula(
    formula: str,
    row: Mapping[str, Any],
    scope: EvaluationScope | None = None,
    operator: str | None = None,
    comparison_value: Any = None,
    dialect: Dialect = Dialect.FORMULA,
) -> FormulaOutcome:
    """Evaluate a formula to a pass/fail verdict.

    Three modes, tried in order:
        (a) the formula's root is a comparison or logical operator, so its
            boolean result is the verdict
        (b) an ``operator`` is supplied, so the result is compared with
            ``comparison_value``
        (c) otherwise numbers pass when ``> 0``, booleans pass through and
            anything else is judged by truthiness

    Raises:
        EvalError: If the formula cannot be parsed or evaluated

    Example:
        >>> evaluate_formula("amount - refundAmount - processingFee > 0",
        ...                  {"amount": 100, "refundAmount": 20, "processingFee": 3}).is_valid
        True
        >>> evaluate_formula("amount * 2", {"amount": 5}, operator=">=", comparison_value=10).is_valid
        True
    """
    scope = scope.with_row(row) if scope is not None else EvaluationScope(row=row)
    node = parse(formula, dialect)
    result = _run(formula, node, scope)

    if is_boolean_root(node):
        return FormulaOutcome(bool(result), result)

    if operator:
        if operator not in COMPARISON_OPERATORS:
            raise OperandTypeError(f"Unknown comparison operator: {operator}", formula=formula)
        if isinstance(result, GroupedResult):
            verdict = result.reduce(lambda v: compare(v, operator, comparison_value))
        else:
            verdict = compare(result, operator, comparison_value)
        return FormulaOutcome(verdict, result)

    if isinstance(result, GroupedResult):
        return FormulaOutcome(result.reduce(_fallback_verdict), result)
    return FormulaOutcome(_fallback_verdict(result), result)
