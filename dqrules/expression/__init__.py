"""Safe row-scoped formula language.

Formulas are tokenized, parsed into a closed AST and interpreted; no dynamic
code execution is involved.
"""

from dqrules.expression.errors import (
    ArityError,
    DivisionByZeroError,
    EvalError,
    FormulaSyntaxError,
    OperandTypeError,
    UnknownFunctionError,
)
from dqrules.expression.evaluator import EvaluationScope, FormulaOutcome, evaluate, evaluate_formula
from dqrules.expression.parser import Dialect, parse

__all__ = [
    "ArityError",
    "Dialect",
    "DivisionByZeroError",
    "EvalError",
    "EvaluationScope",
    "FormulaOutcome",
    "FormulaSyntaxError",
    "OperandTypeError",
    "UnknownFunctionError",
    "evaluate",
    "evaluate_formula",
    "parse",
]
