"""Formula evaluation errors.

Every failure of the expression language surfaces as an ``EvalError``
subclass so that validators can turn it into a readable result message.
"""

from typing import Any

from dqrules.core.exceptions import DQRulesError


class EvalError(DQRulesError):
    """Base class for all formula parsing and evaluation errors."""

    def __init__(self, message: str, formula: str | None = None, **extra_context: Any) -> None:
        context: dict[str, Any] = {}
        if formula is not None:
            context["formula"] = formula
        context.update(extra_context)
        super().__init__(message, context)


class FormulaSyntaxError(EvalError):
    """Formula text could not be tokenized or parsed.

    Example:
        >>> raise FormulaSyntaxError("Unexpected token ')'", formula="(a + )", position=5)
    """

    def __init__(self, message: str, formula: str | None = None, position: int | None = None) -> None:
        extra = {"position": position} if position is not None else {}
        super().__init__(message, formula, **extra)
        self.position = position


class DivisionByZeroError(EvalError):
    """Right operand of ``/`` or ``%`` evaluated to zero."""


class ArityError(EvalError):
    """A function was called with an unsupported number of arguments."""

    def __init__(self, message: str, function: str | None = None, **extra_context: Any) -> None:
        if function is not None:
            extra_context["function"] = function
        super().__init__(message, **extra_context)


class UnknownFunctionError(EvalError):
    """A call names a function outside the allow-list, or a dialect without calls."""

    def __init__(self, message: str, function: str | None = None, **extra_context: Any) -> None:
        if function is not None:
            extra_context["function"] = function
        super().__init__(message, **extra_context)


class OperandTypeError(EvalError):
    """An operator received operands it cannot combine."""
