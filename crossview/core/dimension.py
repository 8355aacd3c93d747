"""Sorted key index over the record store with one active filter."""

from __future__ import annotations

import logging
from bisect import bisect_left, bisect_right
from itertools import groupby
from typing import TYPE_CHECKING, Any, Callable, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from .filters import (
    AllFilter,
    ExactFilter,
    FilterSpec,
    NO_FILTER,
    PredicateFilter,
    RangeFilter,
)
from .group import Group, GroupAll, Reducer, count_reducer
from .projections import Projection
from .records import Record, finite_number

if TYPE_CHECKING:
    from .crossfilter import Crossfilter

logger = logging.getLogger("crossview.core")


class Dimension:
    """A projection of every record to a key, plus the dimension's filter.

    Records whose projection is ``None`` (or not finite), or whose
    ``requires`` fields are not finite numbers, have no key: they never show
    up in ``keys()`` or in this dimension's groups, and they fail any filter
    other than "no filter".
    """

    def __init__(
        self,
        crossfilter: "Crossfilter",
        dimension_id: int,
        projection: Projection,
        requires: Sequence[str] = (),
        name: Optional[str] = None,
    ):
        self._crossfilter = crossfilter
        self.id = dimension_id
        self.bit = 1 << dimension_id
        self.name = name
        self.projection = projection
        self.requires = tuple(requires)

        self._record_keys: List[Any] = [self._project(rec) for rec in crossfilter.store]
        keyed = sorted(
            (i for i, k in enumerate(self._record_keys) if k is not None),
            key=lambda i: self._record_keys[i],
        )
        self._index: List[int] = keyed
        self._sorted_keys: List[Any] = [self._record_keys[i] for i in keyed]
        self._missing: List[int] = [i for i, k in enumerate(self._record_keys) if k is None]
        # (key, start, width) of each distinct key in the sorted index
        self._runs: List[Tuple[Any, int, int]] = []
        for key, run in groupby(self._sorted_keys):
            start = self._runs[-1][1] + self._runs[-1][2] if self._runs else 0
            self._runs.append((key, start, sum(1 for _ in run)))
        self._distinct: List[Any] = [key for key, _, _ in self._runs]

        self._filter: FilterSpec = NO_FILTER
        # keys passing the current predicate filter, kept so the next
        # transition need not call the old predicate again
        self._predicate_keys: FrozenSet[Any] = frozenset()

        if self._missing:
            logger.debug(
                "dimension %s: %d of %d record(s) have no key",
                self.label,
                len(self._missing),
                len(self._record_keys),
            )

    def _project(self, record: Record) -> Any:
        if any(finite_number(record.get(f)) is None for f in self.requires):
            return None
        key = self.projection(record)
        if key is None:
            return None
        if isinstance(key, float) and finite_number(key) is None:
            return None
        return key

    @property
    def label(self) -> str:
        return self.name or f"#{self.id}"

    # ---------- read access ----------

    def key_of(self, index: int) -> Any:
        return self._record_keys[index]

    def keys(self) -> List[Any]:
        """Sorted distinct keys of the index."""
        return list(self._distinct)

    @property
    def current_filter(self) -> FilterSpec:
        return self._filter

    def has_filter(self) -> bool:
        return not isinstance(self._filter, AllFilter)

    def top(self, k: int) -> List[Record]:
        """Visible records with the highest keys, highest first."""
        return self._take(reversed(self._index), k)

    def bottom(self, k: int) -> List[Record]:
        """Visible records with the lowest keys, lowest first."""
        return self._take(iter(self._index), k)

    def _take(self, positions: Iterable[int], k: int) -> List[Record]:
        out: List[Record] = []
        if k <= 0:
            return out
        store = self._crossfilter.store
        for idx in positions:
            if self._crossfilter.is_visible(idx):
                out.append(store[idx])
                if len(out) >= k:
                    break
        return out

    # ---------- groups ----------

    def group(self, reducer: Optional[Reducer] = None, *, ignore_own_filter: bool = False) -> Group:
        group = Group(self._crossfilter, self, reducer or count_reducer(), ignore_own_filter)
        self._crossfilter.register_group(group)
        return group

    def group_all(self, reducer: Optional[Reducer] = None, *, ignore_own_filter: bool = False) -> GroupAll:
        group = GroupAll(self._crossfilter, self, reducer or count_reducer(), ignore_own_filter)
        self._crossfilter.register_group(group)
        return group

    # ---------- filtering ----------

    def filter(self, value: Any) -> "Dimension":
        """Replace the active filter; ``None`` clears, a pair is a range,
        a callable is a predicate, anything else an exact key."""
        self._crossfilter.apply_filter(self.id, value)
        return self

    def filter_exact(self, value: Any) -> "Dimension":
        return self.filter(ExactFilter(value))

    def filter_range(self, lo: Any, hi: Any) -> "Dimension":
        return self.filter(RangeFilter(lo, hi))

    def filter_function(self, predicate: Callable[[Any], bool]) -> "Dimension":
        return self.filter(PredicateFilter(predicate))

    def filter_all(self) -> "Dimension":
        return self.filter(NO_FILTER)

    def _span(self, spec: FilterSpec) -> Tuple[int, int]:
        keys = self._sorted_keys
        if isinstance(spec, AllFilter):
            return 0, len(keys)
        if isinstance(spec, ExactFilter):
            return bisect_left(keys, spec.value), bisect_right(keys, spec.value)
        lo, hi = spec.bounds()
        return bisect_left(keys, lo), bisect_left(keys, hi)

    def transition(self, new: FilterSpec) -> Tuple[List[int], List[int]]:
        """Switch to ``new`` and return the record indices that started
        passing this dimension and those that stopped passing it.

        Only called by the coordinator.
        """
        old = self._filter
        entered: List[int] = []
        exited: List[int] = []
        new_keys: FrozenSet[Any] = frozenset()

        old_plain = isinstance(old, AllFilter) or old.range_like
        new_plain = isinstance(new, AllFilter) or new.range_like
        if old_plain and new_plain:
            a0, b0 = self._span(old)
            a1, b1 = self._span(new)
            entered.extend(self._positions(a1, min(b1, a0)))
            entered.extend(self._positions(max(a1, b0), b1))
            exited.extend(self._positions(a0, min(b0, a1)))
            exited.extend(self._positions(max(a0, b1), b0))
        else:
            old_pass = self._passes_fn(old)
            new_keys = self._passing_keys(new)
            for key, start, width in self._runs:
                was, now = old_pass(key, start), key in new_keys
                if was != now:
                    (entered if now else exited).extend(self._index[start : start + width])

        old_all, new_all = isinstance(old, AllFilter), isinstance(new, AllFilter)
        if new_all and not old_all:
            entered.extend(self._missing)
        elif old_all and not new_all:
            exited.extend(self._missing)

        self._filter = new
        self._predicate_keys = new_keys if isinstance(new, PredicateFilter) else frozenset()
        return entered, exited

    def _positions(self, start: int, stop: int) -> List[int]:
        if stop <= start:
            return []
        return self._index[start:stop]

    def _passes_fn(self, spec: FilterSpec) -> Callable[[Any, int], bool]:
        if isinstance(spec, PredicateFilter):
            keys = self._predicate_keys
            return lambda key, pos: key in keys
        lo, hi = self._span(spec)
        return lambda key, pos: lo <= pos < hi

    def _passing_keys(self, spec: FilterSpec) -> FrozenSet[Any]:
        if isinstance(spec, PredicateFilter):
            if spec == self._filter:
                return self._predicate_keys
            return frozenset(k for k in self._distinct if spec.matches(k))
        a, b = self._span(spec)
        return frozenset(self._sorted_keys[a:b])


__all__ = ["Dimension"]
