"""Aggregation engine used by formula rules.

Computes SUM/AVG/COUNT/MIN/MAX/DISTINCT_COUNT and their DISTINCT_GROUP_*
counterparts over a table, optionally filtered and grouped by a composite key.
"""

from dqrules.aggregation.config import (
    AGGREGATE_FUNCTIONS,
    AggregationConfig,
    AggregationFilter,
    ResultHandling,
    render_call,
)
from dqrules.aggregation.engine import AggregationCache, GroupedResult, aggregate

__all__ = [
    "AGGREGATE_FUNCTIONS",
    "AggregationCache",
    "AggregationConfig",
    "AggregationFilter",
    "GroupedResult",
    "ResultHandling",
    "aggregate",
    "render_call",
]
