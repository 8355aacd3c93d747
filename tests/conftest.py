"""Pytest fixtures shared across the test suite."""

from __future__ import annotations

from collections.abc import Sequence

import pytest

from crossview.core import RecordStore


@pytest.fixture
def meter_rows() -> list[dict]:
    """Five readings: two on one day, a NaN reading and an undated one."""

    return [
        {"dd": "2024-01-01 08:00", "kwh": 5, "loc": "north"},
        {"dd": "2024-01-01 17:30", "kwh": 3, "loc": "south"},
        {"dd": "2024-01-02", "kwh": 10, "loc": "north"},
        {"dd": "2024-01-03", "kwh": float("nan"), "loc": "south"},
        {"dd": None, "kwh": 2, "loc": "north"},
    ]


@pytest.fixture
def meter_store(meter_rows) -> RecordStore:
    return RecordStore(meter_rows)


def pytest_collection_modifyitems(items: Sequence[pytest.Item]) -> None:
    """Enforce that every test has exactly one speed marker.

    - `unit`: pure, fast tests with no IO.
    - `integration`: tests touching Flask, DuckDB or the filesystem.
    """

    invalid: list[str] = []
    for item in items:
        has_unit = item.get_closest_marker("unit") is not None
        has_integration = item.get_closest_marker("integration") is not None
        if has_unit == has_integration:
            invalid.append(item.nodeid)

    if invalid:
        joined = "\n".join(f"- {nodeid}" for nodeid in invalid)
        raise pytest.UsageError(
            "Each test must have exactly one speed marker: `@pytest.mark.unit` or "
            "`@pytest.mark.integration`.\n"
            f"Offending tests:\n{joined}"
        )
