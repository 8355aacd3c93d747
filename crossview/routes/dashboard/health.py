"""Healthcheck endpoint."""

from __future__ import annotations

from flask import current_app, jsonify

from . import get_dashboard, bp


@bp.route("/health", methods=["GET"])
def health():
    try:
        dashboard = get_dashboard()
        return (
            jsonify(
                {
                    "ok": True,
                    "rows": len(dashboard.store),
                    "charts": len(dashboard.charts),
                }
            ),
            200,
        )
    except Exception as exc:  # pragma: no cover - defensive logging path
        current_app.logger.exception("Healthcheck failed")
        return jsonify({"ok": False, "error": str(exc)}), 500
