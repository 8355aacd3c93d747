"""Configuration-driven builder for the linked line/slider/aggregate charts.

One call to ``build_line_chart`` sets up, for one numeric field:

- the primary line chart: sum of the field per day,
- the aggregate readout: count and total of the field over the visible set,
- the slider chart: record count per field value, brushable.

Each view gets its own dimension on the shared ``Crossfilter`` so a brush on
one of them filters every other view.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from datetime import date, datetime
from fractions import Fraction
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import pandas as pd

from .core import (
    Crossfilter,
    Dimension,
    Group,
    GroupAll,
    count_reducer,
    count_sum_reducer,
    day_bucket,
    field_value,
    finite_number,
    sum_reducer,
    to_day,
)

logger = logging.getLogger("crossview.charts")

LINE = "line"
SLIDER = "slider"
TARGETS = (LINE, SLIDER)


@dataclass(frozen=True)
class LineChartSettings:
    field_name: str
    field_title: str
    width: int = 300
    height: int = 200
    transition_duration: int = 750
    turn_on_controls: bool = False
    color_scale: Optional[List[str]] = None
    slider_width: int = 125
    slider_transition_duration: int = 500
    date_format: str = "%d-%m-%y"
    number_format: str = "d"
    y_ticks: int = 3
    slider_ticks: int = 3

    @classmethod
    def from_config(
        cls,
        field_name: str,
        field_title: Optional[str] = None,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> "LineChartSettings":
        """Build settings for one field, ignoring unknown override keys."""
        known = {f.name for f in fields(cls)} - {"field_name", "field_title"}
        base = cls(field_name=field_name, field_title=field_title or field_name)
        extra = {k: v for k, v in (overrides or {}).items() if k in known}
        return replace(base, **extra)


def jsonable(value: Any) -> Any:
    """Convert keys/values coming out of the engine into JSON-friendly ones."""
    if isinstance(value, Fraction):
        return float(value)
    if isinstance(value, pd.Timestamp):
        return value.date().isoformat() if value == value.normalize() else value.isoformat()
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [jsonable(v) for v in value]
    return value


def _series(group: Group) -> List[Dict[str, Any]]:
    return [{"key": jsonable(k), "value": jsonable(v)} for k, v in group.all()]


@dataclass
class LineChart:
    """One field's trio of linked views and the dimensions behind them."""

    index: int
    settings: LineChartSettings
    layer_name: str
    line_dimension: Dimension
    line_group: Group
    aggregate_dimension: Dimension
    aggregate_group: GroupAll
    slider_dimension: Dimension
    slider_group: Group
    x_domain: Tuple[Any, Any]
    slider_domain: Tuple[float, float]

    @property
    def title(self) -> str:
        return f"{self.settings.field_title} over time"

    @property
    def chart_title(self) -> str:
        return f"{self.title} ({self.layer_name})" if self.layer_name else self.title

    @property
    def aggregate_title(self) -> str:
        return f"Aggregate count in: '{self.settings.field_name}'"

    def aggregate_value(self) -> float:
        """Visible total of the field, 0 when no record is visible."""
        acc = self.aggregate_group.value_all()
        return float(acc.total) if acc.count else 0

    def dimension_for(self, target: str) -> Dimension:
        if target == LINE:
            return self.line_dimension
        if target == SLIDER:
            return self.slider_dimension
        raise ValueError(f"unknown chart target {target!r}; expected one of {', '.join(TARGETS)}")

    def brush(self, target: str, lo: Any, hi: Any) -> None:
        """Apply a brush selection ``[lo, hi)`` to the line or slider chart."""
        dim = self.dimension_for(target)
        if target == LINE:
            bounds = pd.Timestamp(lo), pd.Timestamp(hi)
            if pd.isna(bounds[0]) or pd.isna(bounds[1]):
                raise ValueError(f"line brush needs two dates, got {lo!r}, {hi!r}")
        else:
            bounds = finite_number(lo), finite_number(hi)
            if bounds[0] is None or bounds[1] is None:
                raise ValueError(f"slider brush needs two numbers, got {lo!r}, {hi!r}")
        dim.filter_range(*bounds)

    def clear(self, target: Optional[str] = None) -> None:
        """Clear the brush on one target, or on every dimension of this chart."""
        if target is not None:
            self.dimension_for(target).filter_all()
            return
        for dim in (self.line_dimension, self.slider_dimension, self.aggregate_dimension):
            if dim.has_filter():
                dim.filter_all()

    def is_filtered(self) -> bool:
        return any(
            d.has_filter() for d in (self.line_dimension, self.slider_dimension, self.aggregate_dimension)
        )

    def payload(self) -> Dict[str, Any]:
        """Everything a renderer needs to draw this chart trio."""
        s = self.settings
        acc = self.aggregate_group.value_all()
        return {
            "index": self.index,
            "field": s.field_name,
            "title": self.title,
            "chart_title": self.chart_title,
            "filtered": self.is_filtered(),
            "line": {
                "width": s.width,
                "height": s.height,
                "margins": {"top": 0, "right": 50, "bottom": 50, "left": 50},
                "transition_duration": s.transition_duration,
                "turn_on_controls": s.turn_on_controls,
                "brush_on": True,
                "elastic_y": True,
                "grid_lines": {"horizontal": True, "vertical": True},
                "y_axis_label": f"no. of {self.title}",
                "y_ticks": s.y_ticks,
                "x_tick_format": s.date_format,
                "x_domain": jsonable(list(self.x_domain)),
                "tooltip": "Total number of events: {value}",
                "filter": jsonable(self.line_dimension.current_filter.describe()),
                "series": _series(self.line_group),
            },
            "slider": {
                "width": s.slider_width,
                "height": s.height / 3,
                "margins": {"top": 0, "right": 10, "bottom": 30, "left": 4},
                "transition_duration": s.slider_transition_duration,
                "colors": s.color_scale,
                "background": {"fill": "#3e4651", "height": s.height, "width": s.width},
                "x_domain": list(self.slider_domain),
                "x_ticks": s.slider_ticks,
                "filter": jsonable(self.slider_dimension.current_filter.describe()),
                "series": _series(self.slider_group),
            },
            "aggregate": {
                "title": self.aggregate_title,
                "number_format": s.number_format,
                "value": self.aggregate_value(),
                "count": acc.count,
                "average": acc.average,
            },
        }


def build_line_chart(
    index: int,
    crossfilter: Crossfilter,
    settings: LineChartSettings,
    *,
    date_col: str,
    layer_name: str = "",
) -> LineChart:
    """Create the dimensions and groups for one field and wrap them in a ``LineChart``."""
    field = settings.field_name
    store = crossfilter.store

    line_dimension = crossfilter.dimension(day_bucket(date_col), name=f"{field}:{LINE}")
    # brushed views keep drawing their full series under the brush
    line_group = line_dimension.group(sum_reducer(field), ignore_own_filter=True)

    aggregate_dimension = crossfilter.dimension(field_value(field), name=f"{field}:aggregate")
    aggregate_group = aggregate_dimension.group_all(count_sum_reducer(field))

    slider_dimension = crossfilter.dimension(field_value(field), name=f"{field}:{SLIDER}")
    slider_group = slider_dimension.group(count_reducer(), ignore_own_filter=True)

    days = [to_day(rec.get(date_col)) for rec in store]
    days = [d for d in days if d is not None]
    x_domain = (min(days), max(days)) if days else (None, None)
    top = store.max(field)
    slider_domain = (0.0, (top if top is not None else 0.0) + 1)

    logger.info(
        "built line chart %d for %r: %d day(s), %d distinct value(s)",
        index,
        field,
        line_group.size(),
        slider_group.size(),
    )
    return LineChart(
        index=index,
        settings=settings,
        layer_name=layer_name,
        line_dimension=line_dimension,
        line_group=line_group,
        aggregate_dimension=aggregate_dimension,
        aggregate_group=aggregate_group,
        slider_dimension=slider_dimension,
        slider_group=slider_group,
        x_domain=x_domain,
        slider_domain=slider_domain,
    )


def build_line_charts(
    crossfilter: Crossfilter,
    chart_settings: Iterable[LineChartSettings],
    *,
    date_col: str,
    layer_name: str = "",
) -> List[LineChart]:
    return [
        build_line_chart(i, crossfilter, s, date_col=date_col, layer_name=layer_name)
        for i, s in enumerate(chart_settings)
    ]


__all__ = [
    "LINE",
    "LineChart",
    "LineChartSettings",
    "SLIDER",
    "TARGETS",
    "build_line_chart",
    "build_line_charts",
    "jsonable",
]
