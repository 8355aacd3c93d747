"""Projection factories mapping a record to a dimension key.

A projection returns ``None`` for records it cannot key; the dimension
leaves such records out of its key space.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

import pandas as pd

from .records import Record, finite_number

Projection = Callable[[Record], Any]


def field_value(field: str) -> Projection:
    """Key records by the numeric value of ``field``."""

    def project(record: Record) -> Optional[float]:
        return finite_number(record.get(field))

    project.__name__ = f"field_value({field})"
    return project


def to_day(value: Any) -> Optional[pd.Timestamp]:
    """Truncate a date-like value to midnight; ``None`` when it is not a date."""
    if value is None or isinstance(value, bool):
        return None
    try:
        ts = pd.Timestamp(value)
    except (TypeError, ValueError):
        return None
    if pd.isna(ts):
        return None
    return ts.normalize()


def day_bucket(field: str) -> Projection:
    """Key records by the calendar day of the date in ``field``."""

    def project(record: Record) -> Optional[pd.Timestamp]:
        return to_day(record.get(field))

    project.__name__ = f"day_bucket({field})"
    return project


__all__ = ["Projection", "day_bucket", "field_value", "to_day"]
