"""One dashboard session: the record store, its crossfilter and the charts."""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Mapping, Optional

from crossview.charts import LineChart, LineChartSettings, build_line_charts, jsonable
from crossview.core import Crossfilter, FilterEvent, RecordStore

from .metrics import Metrics

logger = logging.getLogger("crossview.dashboard")


class Dashboard:
    """Own the crossfilter session the HTTP layer reads and filters.

    Requests may arrive on several threads while the engine is strictly
    single-threaded, so every read or filter goes through ``lock``.
    """

    def __init__(
        self,
        store: RecordStore,
        metrics: Metrics,
        *,
        date_col: str,
        layer_name: str = "",
        chart_defaults: Optional[Mapping[str, Any]] = None,
    ):
        self.store = store
        self.metrics = metrics
        self.date_col = date_col
        self.lock = threading.RLock()
        self.crossfilter = Crossfilter(store)
        self.last_event: Optional[FilterEvent] = None
        self.crossfilter.subscribe(self._on_filter)

        available = metrics.available(store.fields) if len(store) else list(metrics.mapping.items())
        missing = sorted(set(metrics.mapping) - {k for k, _ in available})
        if missing:
            logger.warning("Configured metric field(s) not in data: %s", ", ".join(missing))
        settings = [
            LineChartSettings.from_config(field, metrics.label(field), chart_defaults)
            for field, _ in available
        ]
        self.charts: List[LineChart] = build_line_charts(
            self.crossfilter, settings, date_col=date_col, layer_name=layer_name
        )

    def _on_filter(self, event: FilterEvent) -> None:
        self.last_event = event

    def chart(self, index: int) -> LineChart:
        if not 0 <= index < len(self.charts):
            raise LookupError(f"no chart with index {index}")
        return self.charts[index]

    def filters(self) -> Dict[str, Any]:
        """Active filters per dimension, the filter indicator and the last event."""
        active = {
            name: jsonable(spec.describe()) for name, spec in self.crossfilter.active_filters().items()
        }
        return {
            "active": bool(active),
            "filters": active,
            "last_event": jsonable(self.last_event.to_dict()) if self.last_event else None,
        }

    def snapshot(self) -> Dict[str, Any]:
        """Payloads for every chart plus the visible/total record counts."""
        return {
            "charts": [chart.payload() for chart in self.charts],
            "filters": self.filters(),
            "visible": self.crossfilter.visible_count(),
            "total": self.crossfilter.size(),
        }

    def brush(self, index: int, target: str, bounds: Optional[List[Any]]) -> None:
        chart = self.chart(index)
        if bounds is None:
            chart.clear(target)
            return
        if not isinstance(bounds, (list, tuple)) or len(bounds) != 2:
            raise ValueError("range must be a two-item list")
        chart.brush(target, bounds[0], bounds[1])

    def reset(self) -> int:
        """Clear every filter; returns how many dimensions were cleared."""
        return len(self.crossfilter.filter_all())


__all__ = ["Dashboard"]
