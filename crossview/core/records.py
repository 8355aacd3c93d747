"""Read-only record store shared by every dimension and group."""

from __future__ import annotations

import math
from types import MappingProxyType
from typing import Any, Iterable, Iterator, List, Mapping, Optional, Tuple

import pandas as pd

Record = Mapping[str, Any]


def finite_number(value: Any) -> Optional[float]:
    """Return ``value`` as a float, or ``None`` when it is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(out) or math.isinf(out):
        return None
    return out


def _clean(value: Any) -> Any:
    # NaN/NaT become None; numpy scalars become plain Python values
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        return value
    if hasattr(value, "item") and not isinstance(value, pd.Timestamp):
        return value.item()
    return value


class RecordStore:
    """Immutable, ordered sequence of read-only records.

    Records are wrapped in ``MappingProxyType`` so no dimension, group or view
    can mutate them in place.
    """

    def __init__(self, rows: Iterable[Mapping[str, Any]]):
        self._records: Tuple[Record, ...] = tuple(MappingProxyType(dict(row)) for row in rows)
        fields: List[str] = []
        seen = set()
        for rec in self._records:
            for key in rec:
                if key not in seen:
                    seen.add(key)
                    fields.append(key)
        self._fields: Tuple[str, ...] = tuple(fields)

    @classmethod
    def from_frame(cls, df: pd.DataFrame) -> "RecordStore":
        columns = [str(c) for c in df.columns]
        rows = (
            {col: _clean(val) for col, val in zip(columns, values)}
            for values in df.itertuples(index=False, name=None)
        )
        return cls(rows)

    @property
    def records(self) -> Tuple[Record, ...]:
        return self._records

    @property
    def fields(self) -> Tuple[str, ...]:
        return self._fields

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self._records)

    def __getitem__(self, index: int) -> Record:
        return self._records[index]

    def extent(self, field: str) -> Tuple[Any, Any]:
        """Min and max of the non-missing values of ``field`` (``(None, None)`` if none)."""
        values = [rec.get(field) for rec in self._records]
        values = [v for v in values if _clean(v) is not None]
        numeric = [finite_number(v) for v in values]
        if values and all(n is not None for n in numeric):
            values = numeric
        if not values:
            return None, None
        return min(values), max(values)

    def max(self, field: str) -> Optional[float]:
        """Largest finite numeric value of ``field``."""
        numbers = [n for n in (finite_number(rec.get(field)) for rec in self._records) if n is not None]
        return max(numbers) if numbers else None


__all__ = ["Record", "RecordStore", "finite_number"]
