"""Filter specs and the event dispatched on every filter transition."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple


class FilterSpec:
    """Base class for the filter a dimension holds.

    ``bounds`` is only meaningful for range-like specs: the half-open key
    interval the filter selects, which lets the dimension locate matching
    records by binary search.
    """

    range_like = False

    def matches(self, key: Any) -> bool:
        raise NotImplementedError

    def bounds(self) -> Tuple[Any, Any]:
        raise NotImplementedError

    def describe(self) -> Any:
        """JSON-friendly description for views."""
        raise NotImplementedError


@dataclass(frozen=True)
class AllFilter(FilterSpec):
    """No filter: every key passes."""

    def matches(self, key: Any) -> bool:
        return True

    def describe(self) -> Any:
        return None


@dataclass(frozen=True)
class ExactFilter(FilterSpec):
    value: Any

    range_like = True

    def matches(self, key: Any) -> bool:
        return key == self.value

    def bounds(self) -> Tuple[Any, Any]:
        return self.value, self.value

    def describe(self) -> Any:
        return {"exact": self.value}


@dataclass(frozen=True)
class RangeFilter(FilterSpec):
    """Keys in ``[lo, hi)``, the same convention a brush produces."""

    lo: Any
    hi: Any

    range_like = True

    def __post_init__(self) -> None:
        if self.hi < self.lo:
            raise ValueError(f"range filter bounds out of order: [{self.lo!r}, {self.hi!r})")

    def matches(self, key: Any) -> bool:
        return self.lo <= key < self.hi

    def bounds(self) -> Tuple[Any, Any]:
        return self.lo, self.hi

    def describe(self) -> Any:
        return {"range": [self.lo, self.hi]}


@dataclass(frozen=True)
class PredicateFilter(FilterSpec):
    """Arbitrary predicate over keys; equal only to itself."""

    predicate: Callable[[Any], bool]

    def matches(self, key: Any) -> bool:
        return bool(self.predicate(key))

    def describe(self) -> Any:
        return {"predicate": getattr(self.predicate, "__name__", "predicate")}


NO_FILTER = AllFilter()


def as_filter_spec(value: Any) -> FilterSpec:
    """Interpret ``value`` the way a view hands it over.

    ``None`` clears, a two-item list/tuple is a range, a callable is a
    predicate, an existing spec is used as is, anything else is an exact
    match.
    """
    if value is None:
        return NO_FILTER
    if isinstance(value, FilterSpec):
        return value
    if isinstance(value, (list, tuple)):
        if len(value) != 2:
            raise ValueError(f"range filter needs two bounds, got {len(value)}")
        return RangeFilter(value[0], value[1])
    if callable(value):
        return PredicateFilter(value)
    return ExactFilter(value)


@dataclass(frozen=True)
class FilterEvent:
    """One filter transition on one dimension."""

    dimension_id: int
    old: FilterSpec
    new: FilterSpec
    added: int = 0
    removed: int = 0
    dimension_name: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "dimension_id": self.dimension_id,
            "dimension": self.dimension_name,
            "old": self.old.describe(),
            "new": self.new.describe(),
            "added": self.added,
            "removed": self.removed,
        }


__all__ = [
    "AllFilter",
    "ExactFilter",
    "FilterEvent",
    "FilterSpec",
    "NO_FILTER",
    "PredicateFilter",
    "RangeFilter",
    "as_filter_spec",
]
