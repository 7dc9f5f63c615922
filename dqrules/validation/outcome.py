"""CheckOutcome: what a single rule check reports back."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CheckOutcome:
    """Verdict of one check on one row.

    Checks never raise for data problems; they return an outcome instead.

    Attributes:
        is_valid: True if the row passed the check
        message: Failure reason ("" when valid)
        configuration_error: The rule itself is broken (unknown list, missing
            reference table, ...). The orchestrator reports such failures with
            ``failure`` severity whatever the rule declares.
        column: Column to report the failure on, when it differs from the
            rule's column

    Example:
        >>> CheckOutcome.fail("Field is required").is_valid
        False
    """

    is_valid: bool
    message: str = ""
    configuration_error: bool = False
    column: str | None = None

    @classmethod
    def ok(cls) -> "CheckOutcome":
        return _OK

    @classmethod
    def fail(cls, message: str, column: str | None = None) -> "CheckOutcome":
        return cls(False, message, column=column)

    @classmethod
    def misconfigured(cls, message: str, column: str | None = None) -> "CheckOutcome":
        return cls(False, message, configuration_error=True, column=column)


_OK = CheckOutcome(True)
