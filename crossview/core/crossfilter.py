"""Filter coordinator: owns filter state across dimensions and the groups
derived from them, and tells subscribers about every transition."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from .dimension import Dimension
from .filters import FilterEvent, FilterSpec, as_filter_spec
from .group import Change, GroupAll, Reducer, _Aggregate, count_reducer
from .projections import Projection
from .records import Record, RecordStore

logger = logging.getLogger("crossview.core")

Listener = Callable[[FilterEvent], Any]


class ReentrantFilterError(RuntimeError):
    """A filter was requested while another transition was being applied."""


class Crossfilter:
    """Multi-dimensional filtering over one read-only ``RecordStore``.

    Each record carries a bit mask with one bit per dimension whose filter
    currently rejects it; a record is visible when its mask is zero. A filter
    transition only touches the records whose bit flips, and only those
    records are handed to the groups.
    """

    def __init__(self, store: Union[RecordStore, Sequence[Record]]):
        self.store = store if isinstance(store, RecordStore) else RecordStore(store)
        self.masks: List[int] = [0] * len(self.store)
        self._dimensions: List[Dimension] = []
        self._by_name: Dict[str, Dimension] = {}
        self._groups: List[_Aggregate] = []
        self._listeners: List[Listener] = []
        self._applying = False

    # ---------- setup ----------

    def dimension(
        self,
        projection: Projection,
        *,
        requires: Sequence[str] = (),
        name: Optional[str] = None,
    ) -> Dimension:
        if name is not None and name in self._by_name:
            raise ValueError(f"dimension {name!r} already exists")
        dim = Dimension(self, len(self._dimensions), projection, requires=requires, name=name)
        self._dimensions.append(dim)
        if name is not None:
            self._by_name[name] = dim
        logger.debug("registered dimension %s with %d key(s)", dim.label, len(dim.keys()))
        return dim

    def group_all(self, reducer: Optional[Reducer] = None) -> GroupAll:
        """Scalar aggregate over every visible record, independent of any dimension."""
        group = GroupAll(self, None, reducer or count_reducer())
        self.register_group(group)
        return group

    def register_group(self, group: _Aggregate) -> None:
        self._groups.append(group)

    def subscribe(self, listener: Listener) -> Listener:
        self._listeners.append(listener)
        return listener

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ---------- lookup ----------

    def get_dimension(self, dimension: Union[int, str]) -> Dimension:
        if isinstance(dimension, str):
            try:
                return self._by_name[dimension]
            except KeyError:
                raise KeyError(f"unknown dimension {dimension!r}") from None
        if not 0 <= dimension < len(self._dimensions):
            raise KeyError(f"unknown dimension id {dimension!r}")
        return self._dimensions[dimension]

    @property
    def dimensions(self) -> List[Dimension]:
        return list(self._dimensions)

    def active_filters(self) -> Dict[str, FilterSpec]:
        return {d.label: d.current_filter for d in self._dimensions if d.has_filter()}

    # ---------- filtering ----------

    def apply_filter(self, dimension: Union[int, str], spec: Any) -> FilterEvent:
        """Replace one dimension's filter, update every group, then notify.

        Runs to completion: when this returns, every group reflects the new
        visible set and every listener has been called once, in the order
        they subscribed.
        """
        if self._applying:
            raise ReentrantFilterError("filter transitions cannot be nested")
        dim = self.get_dimension(dimension)
        new = as_filter_spec(spec)

        self._applying = True
        try:
            old = dim.current_filter
            entered, exited = dim.transition(new)
            changes = self._flip(dim.bit, entered, exited)

            for group in self._groups:
                group.apply_changes(changes)

            added = sum(1 for _, o, n in changes if o and not n)
            removed = sum(1 for _, o, n in changes if n and not o)
            event = FilterEvent(
                dimension_id=dim.id,
                old=old,
                new=new,
                added=added,
                removed=removed,
                dimension_name=dim.name,
            )
            logger.debug(
                "dimension %s filter %r -> %r (+%d/-%d visible)",
                dim.label,
                old,
                new,
                added,
                removed,
            )
            for listener in list(self._listeners):
                listener(event)
        finally:
            self._applying = False
        return event

    def _flip(self, bit: int, entered: List[int], exited: List[int]) -> List[Change]:
        masks = self.masks
        changes: List[Change] = []
        for idx in entered:
            old = masks[idx]
            masks[idx] = old & ~bit
            changes.append((idx, old, masks[idx]))
        for idx in exited:
            old = masks[idx]
            masks[idx] = old | bit
            changes.append((idx, old, masks[idx]))
        return changes

    def filter_all(self) -> List[FilterEvent]:
        """Clear every active filter, one transition per filtered dimension."""
        return [self.apply_filter(d.id, None) for d in self._dimensions if d.has_filter()]

    # ---------- visible set ----------

    def is_visible(self, index: int) -> bool:
        return self.masks[index] == 0

    def visible_records(self) -> List[Record]:
        return [rec for rec, mask in zip(self.store, self.masks) if mask == 0]

    def visible_count(self) -> int:
        return sum(1 for mask in self.masks if mask == 0)

    def size(self) -> int:
        return len(self.store)


__all__ = ["Crossfilter", "Listener", "ReentrantFilterError"]
