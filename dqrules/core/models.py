"""Rule, condition and value-list records.

These dataclasses are the input contract of the engine. They are usually
built from JSON produced by the rule editor, so every record has a
``from_dict`` that accepts the camelCase wire shape and a ``to_dict`` that
produces it again.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from dqrules.core.values import stringify

Row = Mapping[str, Any]
Table = Sequence[Row]
Datasets = Mapping[str, Table]


class RuleType(Enum):
    """Closed catalog of rule kinds (values are the wire tags)."""

    REQUIRED = "required"
    EQUALS = "equals"
    NOT_EQUALS = "not-equals"
    GREATER_THAN = "greater-than"
    GREATER_THAN_EQUALS = "greater-than-equals"
    LESS_THAN = "less-than"
    LESS_THAN_EQUALS = "less-than-equals"
    RANGE = "range"
    REGEX = "regex"
    UNIQUE = "unique"
    TYPE = "type"
    ENUM = "enum"
    LIST = "list"
    CONTAINS = "contains"
    DEPENDENCY = "dependency"
    MULTI_COLUMN = "multi-column"
    LOOKUP = "lookup"
    CUSTOM = "custom"
    FORMULA = "formula"
    JAVASCRIPT_FORMULA = "javascript-formula"
    DATE_BEFORE = "date-before"
    DATE_AFTER = "date-after"
    DATE_BETWEEN = "date-between"
    DATE_FORMAT = "date-format"
    REFERENCE_INTEGRITY = "reference-integrity"
    COMPOSITE_REFERENCE = "composite-reference"
    COLUMN_COMPARISON = "column-comparison"
    MATH_OPERATION = "math-operation"

    @property
    def is_date_kind(self) -> bool:
        return self.value.startswith("date-")


class Severity(Enum):
    """Outcome severity. Rules declare WARNING or FAILURE."""

    WARNING = "warning"
    FAILURE = "failure"
    SUCCESS = "success"


class LogicalOperator(Enum):
    """Operator connecting a condition to the next one in a chain."""

    AND = "AND"
    OR = "OR"

    @classmethod
    def parse(cls, raw: Any) -> "LogicalOperator":
        if isinstance(raw, LogicalOperator):
            return raw
        if raw is None or raw == "":
            return cls.AND
        return cls(str(raw).upper())


CONDITION_OPERATORS = (
    "==",
    "!=",
    ">",
    ">=",
    "<",
    "<=",
    "contains",
    "not-contains",
    "starts-with",
    "ends-with",
    "matches",
    "is-blank",
    "is-not-blank",
)


@dataclass(frozen=True)
class Condition:
    """A ``{column, operator, value}`` test on a single row.

    Used by multi-column rules, additional conditions and aggregation
    filters.
    """

    column: str
    operator: str
    value: Any = None
    logical_operator: LogicalOperator = LogicalOperator.AND

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Condition":
        return cls(
            column=str(data.get("column", "")),
            operator=str(data.get("operator", "==")),
            value=data.get("value"),
            logical_operator=LogicalOperator.parse(data.get("logicalOperator")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "column": self.column,
            "operator": self.operator,
            "value": self.value,
            "logicalOperator": self.logical_operator.value,
        }


@dataclass(frozen=True)
class CrossTableCondition(Condition):
    """A condition that must hold for at least one row of another table."""

    table: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CrossTableCondition":
        return cls(
            column=str(data.get("column", "")),
            operator=str(data.get("operator", "==")),
            value=data.get("value"),
            logical_operator=LogicalOperator.parse(data.get("logicalOperator")),
            table=str(data.get("table", "")),
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["table"] = self.table
        return data


@dataclass(frozen=True)
class ColumnCondition:
    """One link of a combinator chain: a rule kind applied to a column."""

    column: str
    rule_type: RuleType
    parameters: Mapping[str, Any] = field(default_factory=dict)
    logical_operator: LogicalOperator = LogicalOperator.AND

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ColumnCondition":
        return cls(
            column=str(data.get("column", "")),
            rule_type=RuleType(data["ruleType"]),
            parameters=dict(data.get("parameters") or {}),
            logical_operator=LogicalOperator.parse(data.get("logicalOperator")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "column": self.column,
            "ruleType": self.rule_type.value,
            "parameters": dict(self.parameters),
            "logicalOperator": self.logical_operator.value,
        }


@dataclass(frozen=True)
class Rule:
    """A user-authored validation rule.

    When ``column_conditions`` is non-empty it supersedes the primary
    ``column``/``rule_type``/``parameters`` triple: the first entry mirrors
    the primary rule and the following entries are AND/OR-chained checks,
    possibly on other columns of the same table.

    Attributes:
        id: Stable rule identifier
        name: Display name copied into every result
        table: Name of the table the rule iterates over
        column: Primary column (may be empty for cross-table-only rules)
        rule_type: Kind of the rule
        parameters: Kind-specific parameters in wire (camelCase) form
        severity: WARNING or FAILURE, used for failing rows
        enabled: Disabled rules produce no results at all
    """

    id: str
    name: str
    table: str
    column: str
    rule_type: RuleType
    parameters: Mapping[str, Any] = field(default_factory=dict)
    severity: Severity = Severity.FAILURE
    enabled: bool = True
    description: str = ""
    secondary_columns: tuple[str, ...] = ()
    column_conditions: tuple[ColumnCondition, ...] = ()
    cross_table_conditions: tuple[CrossTableCondition, ...] = ()
    conditions: tuple[Condition, ...] = ()
    additional_conditions: tuple[Condition, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Rule":
        """Build a rule from its JSON shape.

        ``tableName`` is accepted as an alias for ``table``. Structural checks
        (required keys, known rule types) belong to
        :func:`dqrules.validation.declarative.load_rules`; this constructor
        assumes they already passed.
        """
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", data["id"])),
            table=str(data.get("table") or data.get("tableName") or ""),
            column=str(data.get("column") or ""),
            rule_type=RuleType(data["ruleType"]),
            parameters=dict(data.get("parameters") or {}),
            severity=Severity(data.get("severity", "failure")),
            enabled=data.get("enabled", True) is not False,
            description=str(data.get("description") or ""),
            secondary_columns=tuple(data.get("secondaryColumns") or ()),
            column_conditions=tuple(
                ColumnCondition.from_dict(c) for c in data.get("columnConditions") or ()
            ),
            cross_table_conditions=tuple(
                CrossTableCondition.from_dict(c) for c in data.get("crossTableConditions") or ()
            ),
            conditions=tuple(Condition.from_dict(c) for c in data.get("conditions") or ()),
            additional_conditions=tuple(
                Condition.from_dict(c) for c in data.get("additionalConditions") or ()
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "table": self.table,
            "column": self.column,
            "ruleType": self.rule_type.value,
            "parameters": dict(self.parameters),
            "description": self.description,
            "severity": self.severity.value,
            "enabled": self.enabled,
        }
        if self.secondary_columns:
            data["secondaryColumns"] = list(self.secondary_columns)
        if self.column_conditions:
            data["columnConditions"] = [c.to_dict() for c in self.column_conditions]
        if self.cross_table_conditions:
            data["crossTableConditions"] = [c.to_dict() for c in self.cross_table_conditions]
        if self.conditions:
            data["conditions"] = [c.to_dict() for c in self.conditions]
        if self.additional_conditions:
            data["additionalConditions"] = [c.to_dict() for c in self.additional_conditions]
        return data


@dataclass(frozen=True)
class ValueList:
    """Named, user-maintained list of allowed string values."""

    id: str
    name: str
    values: tuple[str, ...] = ()
    description: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ValueList":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", data["id"])),
            values=tuple(str(v) for v in data.get("values") or ()),
            description=str(data.get("description") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "values": list(self.values),
        }

    def __contains__(self, candidate: object) -> bool:
        return stringify(candidate) in self.values
