"""ValidationResult data structure.

This module defines the ValidationResult record: one outcome for one
(rule, row) pair. Results are the output contract of the engine and are
serialised to JSON with camelCase keys for UI and report consumers.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from dqrules.core.models import Severity


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of one rule on one row.

    A ``success`` result is synthesised whenever a rule's check passes, so
    consumers can compute pass rates without re-running validation.

    Attributes:
        row_index: Zero-based index of the row in its table
        table: Table the rule iterated over
        column: Column the outcome is reported on
        rule_name: Display name of the rule
        message: Failure reason, or a "Passed ..." note for successes
        severity: SUCCESS, WARNING or FAILURE
        rule_id: Id of the rule that produced the result

    Example:
        >>> result = ValidationResult(
        ...     row_index=0,
        ...     table="transactions",
        ...     column="userId",
        ...     rule_name="User exists",
        ...     message="Value 9999 in userId does not exist in users.id",
        ...     severity=Severity.FAILURE,
        ...     rule_id="r1",
        ... )
        >>> result.is_failure()
        True
        >>> print(result.format())
        [FAILURE] transactions[0].userId (User exists): Value 9999 in userId does not exist in users.id
    """

    row_index: int
    table: str
    column: str
    rule_name: str
    message: str
    severity: Severity
    rule_id: str

    @property
    def key(self) -> tuple[str, str, int]:
        """Identity used for de-duplication: (rule id, table, row index)."""
        return (self.rule_id, self.table, self.row_index)

    def is_success(self) -> bool:
        return self.severity is Severity.SUCCESS

    def is_warning(self) -> bool:
        return self.severity is Severity.WARNING

    def is_failure(self) -> bool:
        return self.severity is Severity.FAILURE

    def format(self) -> str:
        """Format the result as a single human-readable line."""
        return (
            f"[{self.severity.name}] {self.table}[{self.row_index}].{self.column} "
            f"({self.rule_name}): {self.message}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "rowIndex": self.row_index,
            "table": self.table,
            "column": self.column,
            "ruleName": self.rule_name,
            "message": self.message,
            "severity": self.severity.value,
            "ruleId": self.rule_id,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ValidationResult":
        return cls(
            row_index=int(data["rowIndex"]),
            table=str(data["table"]),
            column=str(data.get("column") or ""),
            rule_name=str(data.get("ruleName") or ""),
            message=str(data.get("message") or ""),
            severity=Severity(data["severity"]),
            rule_id=str(data.get("ruleId") or ""),
        )
