"""Aggregation configuration records and their call-site rendering."""

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from dqrules.core.models import Condition, LogicalOperator

BASE_FUNCTIONS = ("SUM", "AVG", "COUNT", "MIN", "MAX", "DISTINCT_COUNT")
DISTINCT_GROUP_PREFIX = "DISTINCT_GROUP_"
AGGREGATE_FUNCTIONS = BASE_FUNCTIONS + tuple(DISTINCT_GROUP_PREFIX + name for name in BASE_FUNCTIONS)


class ResultHandling(Enum):
    """How a grouped aggregation is reduced to a single pass/fail."""

    ALL = "ALL"
    ANY = "ANY"
    MAJORITY = "MAJORITY"


@dataclass(frozen=True)
class AggregationFilter:
    """Row filter applied before aggregating."""

    conditions: tuple[Condition, ...] = ()
    type: LogicalOperator = LogicalOperator.AND

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AggregationFilter":
        # Older configs carry one bare {column, operator, value} condition.
        if "conditions" not in data:
            return cls(conditions=(Condition.from_dict(data),))
        return cls(
            conditions=tuple(Condition.from_dict(c) for c in data.get("conditions") or ()),
            type=LogicalOperator.parse(data.get("type")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "conditions": [c.to_dict() for c in self.conditions],
            "type": self.type.value,
        }


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def render_call(
    function: str,
    column: str,
    filters: Sequence[str] = (),
    group_columns: Sequence[str] = (),
    distinct_column: str | None = None,
) -> str:
    """Render the canonical call-site text of an aggregation.

    Example:
        >>> render_call("DISTINCT_GROUP_SUM", "amount", group_columns=["category"], distinct_column="region")
        'DISTINCT_GROUP_SUM("amount", ["category"], "region")'
    """
    parts = [_quote(column), *(_quote(f) for f in filters)]
    if group_columns or distinct_column:
        parts.append("[" + ", ".join(_quote(c) for c in group_columns) + "]")
    if distinct_column:
        parts.append(_quote(distinct_column))
    return f"{function}({', '.join(parts)})"


@dataclass(frozen=True)
class AggregationConfig:
    """One aggregation authored in the formula editor.

    Configs are frozen and hashable so they can key the per-run memo cache.

    Attributes:
        function: One of AGGREGATE_FUNCTIONS
        column: Aggregated column, or ``"*"`` for COUNT over rows
        alias: Optional name formulas can use instead of the call text
        filter: Optional row filter applied first
        group_columns: Composite grouping key (order matters for key identity)
        distinct_column: Deduplicate rows per group by this column first
        result_handling: Reduction policy for grouped results
    """

    function: str
    column: str
    alias: str | None = None
    filter: AggregationFilter | None = None
    group_columns: tuple[str, ...] = ()
    distinct_column: str | None = None
    result_handling: ResultHandling = ResultHandling.ALL

    def __post_init__(self) -> None:
        if self.function not in AGGREGATE_FUNCTIONS:
            raise ValueError(
                f"Unknown aggregation function '{self.function}'. "
                f"Available: {', '.join(AGGREGATE_FUNCTIONS)}"
            )

    @property
    def base_function(self) -> str:
        """Function name without the DISTINCT_GROUP_ prefix."""
        return self.function.removeprefix(DISTINCT_GROUP_PREFIX)

    @property
    def is_grouped(self) -> bool:
        return bool(self.group_columns)

    def render(self) -> str:
        return render_call(
            self.function, self.column, group_columns=self.group_columns, distinct_column=self.distinct_column
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AggregationConfig":
        raw_filter = data.get("filter")
        return cls(
            function=str(data["function"]).upper(),
            column=str(data["column"]),
            alias=data.get("alias") or None,
            filter=AggregationFilter.from_dict(raw_filter) if raw_filter else None,
            group_columns=tuple(data.get("groupColumns") or ()),
            distinct_column=data.get("distinctColumn") or None,
            result_handling=ResultHandling(str(data.get("resultHandling") or "ALL").upper()),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"function": self.function, "column": self.column}
        if self.alias:
            data["alias"] = self.alias
        if self.filter is not None:
            data["filter"] = self.filter.to_dict()
        if self.group_columns:
            data["groupColumns"] = list(self.group_columns)
        if self.distinct_column:
            data["distinctColumn"] = self.distinct_column
        data["resultHandling"] = self.result_handling.value
        return data

    @classmethod
    def from_call(cls, function: str, args: Sequence[Any]) -> tuple["AggregationConfig", tuple[str, ...]]:
        """Interpret the literal arguments of an aggregation call.

        Strings before a list are inline filter expressions, the list is the
        grouping key and a string after the list is the distinct column.

        Returns:
            Tuple of (config, inline filter expressions)

        Raises:
            ValueError: If the arguments do not follow the call syntax
        """
        if not args:
            raise ValueError(f"{function} expects a column name as first argument")
        column = args[0]
        if not isinstance(column, str):
            raise ValueError(f"{function} expects a column name as first argument")

        filters: list[str] = []
        group_columns: tuple[str, ...] | None = None
        distinct_column: str | None = None

        for arg in args[1:]:
            if isinstance(arg, tuple):
                if group_columns is not None:
                    raise ValueError(f"{function} accepts only one list of group columns")
                if not all(isinstance(c, str) for c in arg):
                    raise ValueError(f"{function} group columns must be strings")
                group_columns = arg
            elif isinstance(arg, str):
                if group_columns is None:
                    filters.append(arg)
                elif distinct_column is None:
                    distinct_column = arg
                else:
                    raise ValueError(f"{function} accepts only one distinct column")
            else:
                raise ValueError(f"{function} arguments must be strings or a list of strings")

        config = cls(
            function=function,
            column=column,
            group_columns=group_columns or (),
            distinct_column=distinct_column,
        )
        return config, tuple(filters)
