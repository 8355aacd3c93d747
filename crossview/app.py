"""Application factory for the Crossview dashboard."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union

from flask import Flask

from .config import Config
from .core import RecordStore
from .routes.dashboard import bp as dashboard_bp
from .services.dashboard import Dashboard
from .services.datastore import DataStore
from .services.metrics import Metrics

logger = logging.getLogger("crossview")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(
    config_object: Optional[Union[str, Mapping[str, Any], type]] = None,
    store: Optional[RecordStore] = None,
) -> Flask:
    """Create and configure the Flask application.

    ``store`` skips the DataStore load, which is how tests inject records.
    """
    app = Flask(__name__)

    app.config.from_object(Config)
    if isinstance(config_object, Mapping):
        app.config.from_mapping(config_object)
    elif config_object is not None:
        app.config.from_object(config_object)

    _configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    metrics = Metrics(app.config["METRICS"])
    datastore = DataStore(app.config, metrics)
    if store is None:
        store = datastore.records()
    logger.info("Record store ready: %d record(s), fields %s", len(store), list(store.fields))

    dashboard = Dashboard(
        store,
        metrics,
        date_col=app.config["DATE_COL"],
        layer_name=app.config.get("LAYER_NAME", ""),
        chart_defaults=app.config.get("CHART_DEFAULTS"),
    )

    app.extensions["metrics"] = metrics
    app.extensions["datastore"] = datastore
    app.extensions["dashboard"] = dashboard

    app.register_blueprint(dashboard_bp)

    return app


__all__ = ["create_app"]
