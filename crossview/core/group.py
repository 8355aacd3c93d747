"""Incrementally maintained aggregates over the visible record set.

A group is driven by a ``Reducer``: ``add``/``remove``/``initial`` functions
that together form an invertible, commutative aggregate. When a filter
changes, the coordinator hands every group the records whose visibility
flipped; the group calls ``add`` for records that became visible and
``remove`` for records that left, so its values always equal
``fold(reducer, visible records)``.

Non-invertible aggregates (max, min, percentiles) cannot be expressed with
this protocol and are not provided here.
"""

from __future__ import annotations

from bisect import bisect_left
from dataclasses import dataclass
from fractions import Fraction
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    NamedTuple,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from .records import Record, finite_number

if TYPE_CHECKING:
    from .crossfilter import Crossfilter
    from .dimension import Dimension

# (record index, old filter mask, new filter mask)
Change = Tuple[int, int, int]


@dataclass(frozen=True)
class Reducer:
    """The add/remove/initial triple behind a group.

    ``fields`` lists record fields that must hold finite numbers; records
    failing that never reach ``add`` or ``remove``.
    """

    add: Callable[[Any, Record], Any]
    remove: Callable[[Any, Record], Any]
    initial: Callable[[], Any]
    fields: Tuple[str, ...] = ()

    def accepts(self, record: Record) -> bool:
        return all(finite_number(record.get(f)) is not None for f in self.fields)


class CountSum(NamedTuple):
    count: int
    total: Fraction

    @property
    def average(self) -> float:
        return average(self)


def average(acc: CountSum) -> float:
    """Mean of a ``CountSum``; 0 when nothing is counted."""
    if not acc.count:
        return 0.0
    return float(acc.total / acc.count)


def count_reducer() -> Reducer:
    return Reducer(
        add=lambda acc, record: acc + 1,
        remove=lambda acc, record: acc - 1,
        initial=lambda: 0,
    )


def exact(value: Any) -> Fraction:
    """Exact rational form of a finite number, so sums can be undone."""
    if isinstance(value, (int, Fraction)):
        return Fraction(value)
    return Fraction(float(value))


def sum_reducer(value: Union[str, Callable[[Record], float]]) -> Reducer:
    """Sum a numeric field (by name) or the result of ``value(record)``.

    The running total is a ``Fraction``: removing a record subtracts exactly
    what adding it added, so the total always equals a fresh fold.
    """
    if isinstance(value, str):
        field = value

        def number(record: Record) -> Fraction:
            return exact(finite_number(record.get(field)) or 0)

        fields: Tuple[str, ...] = (field,)
    else:

        def number(record: Record) -> Fraction:
            return exact(value(record))

        fields = ()

    return Reducer(
        add=lambda acc, record: acc + number(record),
        remove=lambda acc, record: acc - number(record),
        initial=lambda: Fraction(0),
        fields=fields,
    )


def count_sum_reducer(field: str) -> Reducer:
    """Track how many records carry ``field`` and their running total."""

    def number(record: Record) -> Fraction:
        return exact(finite_number(record.get(field)) or 0)

    return Reducer(
        add=lambda acc, record: CountSum(acc.count + 1, acc.total + number(record)),
        remove=lambda acc, record: CountSum(acc.count - 1, acc.total - number(record)),
        initial=lambda: CountSum(0, Fraction(0)),
        fields=(field,),
    )


def fold(reducer: Reducer, records: Iterable[Record]) -> Any:
    """Recompute an accumulator from scratch over ``records``."""
    acc = reducer.initial()
    for record in records:
        if reducer.accepts(record):
            acc = reducer.add(acc, record)
    return acc


class _Aggregate:
    def __init__(
        self,
        crossfilter: "Crossfilter",
        dimension: Optional["Dimension"],
        reducer: Reducer,
        ignore_own_filter: bool,
    ):
        self._crossfilter = crossfilter
        self.dimension = dimension
        self.reducer = reducer
        # filter bits this group observes
        self._observed = ~dimension.bit if (dimension is not None and ignore_own_filter) else -1
        store = crossfilter.store
        self._eligible: List[bool] = [
            (dimension is None or dimension.key_of(i) is not None) and reducer.accepts(rec)
            for i, rec in enumerate(store)
        ]

    def _visible(self, mask: int) -> bool:
        return (mask & self._observed) == 0

    def _seed(self) -> None:
        store = self._crossfilter.store
        masks = self._crossfilter.masks
        for i, rec in enumerate(store):
            if self._eligible[i] and self._visible(masks[i]):
                self._add(i, rec)

    def apply_changes(self, changes: Sequence[Change]) -> None:
        store = self._crossfilter.store
        for idx, old_mask, new_mask in changes:
            if not self._eligible[idx]:
                continue
            was, now = self._visible(old_mask), self._visible(new_mask)
            if was == now:
                continue
            if now:
                self._add(idx, store[idx])
            else:
                self._remove(idx, store[idx])

    def _add(self, idx: int, record: Record) -> None:
        raise NotImplementedError

    def _remove(self, idx: int, record: Record) -> None:
        raise NotImplementedError


class Group(_Aggregate):
    """Per-key accumulators for one dimension."""

    def __init__(self, crossfilter, dimension, reducer, ignore_own_filter=False):
        super().__init__(crossfilter, dimension, reducer, ignore_own_filter)
        self._keys: List[Any] = list(dimension.keys())
        self._values: Dict[Any, Any] = {k: reducer.initial() for k in self._keys}
        self._seed()

    def _add(self, idx: int, record: Record) -> None:
        key = self.dimension.key_of(idx)
        self._values[key] = self.reducer.add(self._values[key], record)

    def _remove(self, idx: int, record: Record) -> None:
        key = self.dimension.key_of(idx)
        self._values[key] = self.reducer.remove(self._values[key], record)

    def value(self, key: Any) -> Any:
        """Current accumulator for ``key`` (``initial()`` for unknown keys)."""
        if key in self._values:
            return self._values[key]
        return self.reducer.initial()

    def all(self) -> List[Tuple[Any, Any]]:
        """Every key of the dimension with its accumulator, in key order."""
        return [(k, self._values[k]) for k in self._keys]

    def top(self, k: int, order: Optional[Callable[[Any], Any]] = None) -> List[Tuple[Any, Any]]:
        order = order or (lambda v: v)
        ranked = sorted(self.all(), key=lambda kv: order(kv[1]), reverse=True)
        return ranked[: max(k, 0)]

    def size(self) -> int:
        return len(self._keys)

    def __contains__(self, key: Any) -> bool:
        i = bisect_left(self._keys, key)
        return i < len(self._keys) and self._keys[i] == key


class GroupAll(_Aggregate):
    """A single accumulator over the whole visible set."""

    def __init__(self, crossfilter, dimension, reducer, ignore_own_filter=False):
        super().__init__(crossfilter, dimension, reducer, ignore_own_filter)
        self._value = reducer.initial()
        self._seed()

    def _add(self, idx: int, record: Record) -> None:
        self._value = self.reducer.add(self._value, record)

    def _remove(self, idx: int, record: Record) -> None:
        self._value = self.reducer.remove(self._value, record)

    def value_all(self) -> Any:
        return self._value


__all__ = [
    "CountSum",
    "Group",
    "GroupAll",
    "Reducer",
    "average",
    "count_reducer",
    "count_sum_reducer",
    "fold",
    "sum_reducer",
]
