"""Incremental multi-dimensional aggregation engine.

- ``RecordStore``: the read-only dataset
- ``Crossfilter``: filter coordinator, creates dimensions
- ``Dimension``: keyed index with one active filter
- ``Group`` / ``GroupAll``: incrementally maintained aggregates
"""

from .crossfilter import Crossfilter, Listener, ReentrantFilterError
from .dimension import Dimension
from .filters import (
    AllFilter,
    ExactFilter,
    FilterEvent,
    FilterSpec,
    NO_FILTER,
    PredicateFilter,
    RangeFilter,
    as_filter_spec,
)
from .group import (
    CountSum,
    Group,
    GroupAll,
    Reducer,
    average,
    count_reducer,
    count_sum_reducer,
    fold,
    sum_reducer,
)
from .projections import day_bucket, field_value, to_day
from .records import Record, RecordStore, finite_number

__all__ = [
    "AllFilter",
    "CountSum",
    "Crossfilter",
    "Dimension",
    "ExactFilter",
    "FilterEvent",
    "FilterSpec",
    "Group",
    "GroupAll",
    "Listener",
    "NO_FILTER",
    "PredicateFilter",
    "RangeFilter",
    "Record",
    "RecordStore",
    "ReentrantFilterError",
    "Reducer",
    "as_filter_spec",
    "average",
    "count_reducer",
    "count_sum_reducer",
    "day_bucket",
    "field_value",
    "finite_number",
    "fold",
    "sum_reducer",
    "to_day",
]
