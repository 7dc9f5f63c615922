"""Aggregation over tables with polars.

Rows are free-form dictionaries, so values are first projected into a typed
polars DataFrame with an explicit schema (numeric values as Float64, keys and
distinct values as strings) and then reduced with polars expressions.

Example:
    >>> rows = [
    ...     {"category": "a", "amount": 10},
    ...     {"category": "a", "amount": 5},
    ...     {"category": "b", "amount": 1},
    ... ]
    >>> aggregate(rows, AggregationConfig("SUM", "amount"))
    16.0
    >>> grouped = aggregate(rows, AggregationConfig("SUM", "amount", group_columns=("category",)))
    >>> grouped.values
    (15.0, 1.0)
"""

import logging
import threading
from collections.abc import Callable, Hashable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import polars as pl

from dqrules.aggregation.config import AggregationConfig, ResultHandling
from dqrules.core.conditions import ChainStep, fold_chain, evaluate_condition
from dqrules.core.values import is_absent, stringify, to_number

logger = logging.getLogger(__name__)

RowFilter = Callable[[Mapping[str, Any]], bool]

_VALUE = "__value"
_DISTINCT = "__distinct"
_RESULT = "__result"


@dataclass(frozen=True)
class GroupedResult:
    """Per-group aggregation values plus the policy used to reduce them.

    Attributes:
        groups: ``(group key, value)`` pairs in first-seen order
        result_handling: ALL, ANY or MAJORITY
    """

    groups: tuple[tuple[tuple[str | None, ...], float | None], ...]
    result_handling: ResultHandling = ResultHandling.ALL

    @property
    def values(self) -> tuple[float | None, ...]:
        return tuple(value for _, value in self.groups)

    def map(self, fn: Callable[[float | None], Any]) -> "GroupedResult":
        """Apply ``fn`` to every group value, keeping keys and policy."""
        return GroupedResult(
            tuple((key, fn(value)) for key, value in self.groups), self.result_handling
        )

    def reduce(self, predicate: Callable[[Any], bool]) -> bool:
        """Reduce the groups to one verdict.

        ALL holds when every group passes (vacuously true without groups),
        ANY when at least one passes, MAJORITY when strictly more than half
        of the groups pass.
        """
        verdicts = [bool(predicate(value)) for _, value in self.groups]
        passed = sum(verdicts)
        if self.result_handling is ResultHandling.ALL:
            return passed == len(verdicts)
        if self.result_handling is ResultHandling.ANY:
            return passed > 0
        return passed * 2 > len(verdicts)

    def __str__(self) -> str:
        parts = [f"{'/'.join(stringify(k) for k in key)}={stringify(value)}" for key, value in self.groups]
        return "{" + ", ".join(parts) + "}"


def _passes_filter(row: Mapping[str, Any], config: AggregationConfig) -> bool:
    if config.filter is None or not config.filter.conditions:
        return True
    joiner = config.filter.type
    outcome = fold_chain(
        ChainStep(evaluate_condition(row, condition).is_valid, condition.column, "", joiner)
        for condition in config.filter.conditions
    )
    return outcome.is_valid


def _value_expr(config: AggregationConfig) -> pl.Expr:
    function = config.base_function
    value = pl.col(_VALUE)
    if function == "SUM":
        return value.sum()
    if function == "AVG":
        return value.mean()
    if function == "MIN":
        return value.min()
    if function == "MAX":
        return value.max()
    if function == "COUNT":
        return pl.len() if config.column == "*" else value.count()
    return value.drop_nulls().n_unique()


def _as_float(value: Any) -> float | None:
    if value is None:
        return None
    return float(value)


def _build_frame(rows: Sequence[Mapping[str, Any]], config: AggregationConfig) -> pl.DataFrame:
    numeric = config.base_function in ("SUM", "AVG", "MIN", "MAX")
    key_columns = [f"__key{i}" for i in range(len(config.group_columns))]

    data: dict[str, list[Any]] = {name: [] for name in key_columns}
    data[_VALUE] = []
    data[_DISTINCT] = []

    for row in rows:
        for name, column in zip(key_columns, config.group_columns):
            cell = row.get(column)
            data[name].append(None if is_absent(cell) else stringify(cell))
        cell = None if config.column == "*" else row.get(config.column)
        if numeric:
            data[_VALUE].append(to_number(cell))
        else:
            data[_VALUE].append(None if is_absent(cell) else stringify(cell))
        distinct = row.get(config.distinct_column) if config.distinct_column else None
        data[_DISTINCT].append(None if is_absent(distinct) else stringify(distinct))

    schema: dict[str, pl.DataType] = {name: pl.Utf8 for name in key_columns}
    schema[_VALUE] = pl.Float64 if numeric else pl.Utf8
    schema[_DISTINCT] = pl.Utf8
    return pl.DataFrame(data, schema=schema)


def aggregate(
    rows: Iterable[Mapping[str, Any]],
    config: AggregationConfig,
    row_filter: RowFilter | None = None,
) -> float | None | GroupedResult:
    """Compute an aggregation over a table.

    Args:
        rows: Rows of the table
        config: Aggregation to compute
        row_filter: Extra row predicate (inline filter expressions), ANDed
                    with the config's own filter

    Returns:
        A float (or None when undefined, e.g. AVG of nothing) for ungrouped
        aggregations, a GroupedResult when ``group_columns`` is set
    """
    selected = [
        row for row in rows if _passes_filter(row, config) and (row_filter is None or row_filter(row))
    ]
    df = _build_frame(selected, config)
    key_columns = [f"__key{i}" for i in range(len(config.group_columns))]

    if config.distinct_column:
        df = df.unique(subset=[*key_columns, _DISTINCT], keep="first", maintain_order=True)

    expr = _value_expr(config).alias(_RESULT)

    if not key_columns:
        return _as_float(df.select(expr).item())

    grouped = df.group_by(key_columns, maintain_order=True).agg(expr)
    groups = tuple(
        (tuple(record[name] for name in key_columns), _as_float(record[_RESULT]))
        for record in grouped.iter_rows(named=True)
    )
    logger.debug("%s produced %d groups over %d rows", config.render(), len(groups), len(selected))
    return GroupedResult(groups, config.result_handling)


class AggregationCache:
    """Per-run memo of aggregation results.

    Keys are ``(table, config, inline filters)``; values are computed at most
    once per key even when several worker threads ask concurrently.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._values: dict[Hashable, Any] = {}

    def get_or_compute(self, key: Hashable, compute: Callable[[], Any]) -> Any:
        with self._lock:
            if key in self._values:
                return self._values[key]
            value = compute()
            self._values[key] = value
            return value

    def __len__(self) -> int:
        return len(self._values)
