"""Chart payload endpoints."""

from __future__ import annotations

from flask import jsonify

from . import bp, get_dashboard


@bp.route("/charts", methods=["GET"])
def list_charts():
    """Payloads for every chart trio, as the renderer draws them."""
    dashboard = get_dashboard()
    with dashboard.lock:
        return jsonify(dashboard.snapshot())


@bp.route("/charts/<int:index>", methods=["GET"])
def chart_detail(index: int):
    dashboard = get_dashboard()
    with dashboard.lock:
        try:
            chart = dashboard.chart(index)
        except LookupError as exc:
            return jsonify({"ok": False, "error": str(exc)}), 404
        return jsonify(chart.payload())
