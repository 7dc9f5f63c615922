"""Validation context shared by all checks of a run."""

import dataclasses
import threading
from collections import Counter
from collections.abc import Callable, Hashable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from dqrules.aggregation.engine import AggregationCache
from dqrules.core.models import Rule, ValueList
from dqrules.core.values import index_key, is_absent


class _RunMemo:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._values: dict[Hashable, Any] = {}

    def get_or_compute(self, key: Hashable, compute: Callable[[], Any]) -> Any:
        with self._lock:
            if key not in self._values:
                self._values[key] = compute()
            return self._values[key]


@dataclass(frozen=True)
class ValidationContext:
    """Read-only view of one validation run.

    A run-level context is created once; :meth:`for_rule` derives per-rule
    views that share the run's caches. Lookup indexes over reference tables
    are built lazily and at most once per run.

    Attributes:
        datasets: Table name to rows
        value_lists: Value lists keyed by id
        rule: Rule being evaluated (None for the run-level context)
        table: Table the rule iterates over
        column: Column the current check reads
    """

    datasets: Mapping[str, Sequence[Mapping[str, Any]]]
    value_lists: Mapping[str, ValueList] = field(default_factory=dict)
    rule: Rule | None = None
    table: str = ""
    column: str = ""
    aggregation_cache: AggregationCache = field(default_factory=AggregationCache)
    _memo: _RunMemo = field(default_factory=_RunMemo, repr=False, compare=False)

    @classmethod
    def create(
        cls,
        datasets: Mapping[str, Sequence[Mapping[str, Any]]],
        value_lists: Sequence[ValueList] | Mapping[str, ValueList] = (),
    ) -> "ValidationContext":
        if isinstance(value_lists, Mapping):
            lists = dict(value_lists)
        else:
            lists = {value_list.id: value_list for value_list in value_lists}
        return cls(datasets=datasets, value_lists=lists)

    def for_rule(self, rule: Rule) -> "ValidationContext":
        return dataclasses.replace(self, rule=rule, table=rule.table, column=rule.column)

    def for_column(self, column: str) -> "ValidationContext":
        return dataclasses.replace(self, column=column)

    def rows(self, table: str | None = None) -> Sequence[Mapping[str, Any]] | None:
        return self.datasets.get(self.table if table is None else table)

    def find_list(self, list_id: str) -> ValueList | None:
        """Find a value list by id, falling back to its name."""
        if list_id in self.value_lists:
            return self.value_lists[list_id]
        for value_list in self.value_lists.values():
            if value_list.name == list_id:
                return value_list
        return None

    def memo(self, key: Hashable, compute: Callable[[], Any]) -> Any:
        return self._memo.get_or_compute(key, compute)

    def has_column(self, table: str, column: str) -> bool:
        """Check whether any row of ``table`` carries ``column``.

        Empty tables are assumed to have every column.
        """

        def compute() -> bool:
            rows = self.datasets.get(table) or ()
            return not rows or any(column in row for row in rows)

        return self.memo(("has_column", table, column), compute)

    def reference_index(self, table: str, column: str) -> frozenset:
        """Set of equality keys of the non-absent values of ``table.column``."""

        def compute() -> frozenset:
            rows = self.datasets.get(table) or ()
            return frozenset(index_key(row.get(column)) for row in rows if not is_absent(row.get(column)))

        return self.memo(("reference_index", table, column), compute)

    def composite_index(self, table: str, columns: tuple[str, ...]) -> frozenset:
        """Set of per-row value sets over ``columns`` of ``table``.

        A composite key matches a reference row when both hold the same set of
        values, whatever column each value sits in.
        """

        def compute() -> frozenset:
            rows = self.datasets.get(table) or ()
            return frozenset(frozenset(index_key(row.get(c)) for c in columns) for row in rows)

        return self.memo(("composite_index", table, columns), compute)

    def value_counts(self, table: str, column: str) -> Counter:
        """Occurrence count of each non-absent value of ``table.column``."""

        def compute() -> Counter:
            rows = self.datasets.get(table) or ()
            return Counter(index_key(row.get(column)) for row in rows if not is_absent(row.get(column)))

        return self.memo(("value_counts", table, column), compute)
