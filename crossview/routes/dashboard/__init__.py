"""Dashboard blueprint package."""

from __future__ import annotations

from flask import Blueprint

bp = Blueprint("dashboard", __name__)


def get_dashboard():
    from flask import current_app

    return current_app.extensions["dashboard"]


from . import charts, downloads, filters, health  # noqa: E402,F401

__all__ = ["bp", "get_dashboard"]
