"""Application configuration objects."""

import os
import sys
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv

if getattr(sys, "frozen", False):
    load_dotenv(os.path.join(sys._MEIPASS, ".env"))
else:
    load_dotenv()


def _parse_metrics(raw: str) -> Dict[str, str]:
    """Parse ``"field:Title,field2:Title 2"`` into a field -> title mapping."""
    out: Dict[str, str] = {}
    for item in raw.split(","):
        field, _, title = item.partition(":")
        field = field.strip()
        if field:
            out[field] = title.strip() or field
    return out


class Config:
    """Base configuration for the Crossview dashboard."""

    # -------------------------
    # Data paths
    # -------------------------
    # DuckDB database file
    DUCKDB_PATH = Path(os.getenv("CROSSVIEW_DUCKDB_PATH", "data/warehouse.duckdb"))

    # Location of source CSVs
    CSV_GLOB = os.getenv("CROSSVIEW_CSV_GLOB", "data/*.csv")

    # Local parquet snapshot, used when DuckDB has no table yet
    DATA_PATH = os.getenv("CROSSVIEW_DATA_PATH", "data/records.parquet")

    # -------------------------
    # Data schema
    # -------------------------
    DATE_COL = os.getenv("CROSSVIEW_DATE_COL", "dd")
    DATE_FMT = os.getenv("CROSSVIEW_DATE_FMT", "%Y-%m-%d")

    # Name of the dataset shown in chart titles
    LAYER_NAME = os.getenv("CROSSVIEW_LAYER_NAME", "")

    # -------------------------
    # External services
    # -------------------------
    BUCKET_URL = os.getenv("BUCKET_URL")
    BUCKET_KEY = os.getenv("BUCKET_KEY")

    # -------------------------
    # Charts
    # -------------------------
    # One linked line/slider/aggregate trio per numeric field
    METRICS: Dict[str, str] = _parse_metrics(os.getenv("CROSSVIEW_METRICS", "value:Events"))

    # Merged into every chart's settings (width, height, transition_duration, ...)
    CHART_DEFAULTS: Dict[str, Any] = {}

    # -------------------------
    # Logging
    # -------------------------
    LOG_LEVEL = os.getenv("CROSSVIEW_LOG_LEVEL", "INFO")


__all__ = ["Config"]
