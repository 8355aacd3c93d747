"""Filter endpoints: brushes pushed back from the renderer."""

from __future__ import annotations

import logging

from flask import jsonify, request

from crossview.charts import TARGETS

from . import bp, get_dashboard

logger = logging.getLogger("crossview.routes")


@bp.route("/filters", methods=["GET"])
def active_filters():
    dashboard = get_dashboard()
    with dashboard.lock:
        return jsonify(dashboard.filters())


@bp.route("/charts/<int:index>/filter", methods=["POST"])
def apply_brush(index: int):
    """Apply (or clear, when ``range`` is missing/null) a brush on one chart.

    Body: ``{"target": "line" | "slider", "range": [lo, hi]}``.
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"ok": False, "error": "expected a JSON object"}), 400

    target = payload.get("target")
    if target not in TARGETS:
        return jsonify({"ok": False, "error": f"target must be one of {list(TARGETS)}"}), 400

    dashboard = get_dashboard()
    with dashboard.lock:
        try:
            dashboard.brush(index, target, payload.get("range"))
        except LookupError as exc:
            return jsonify({"ok": False, "error": str(exc)}), 404
        except (TypeError, ValueError) as exc:
            logger.info("Rejected brush on chart %d/%s: %s", index, target, exc)
            return jsonify({"ok": False, "error": str(exc)}), 400
        return jsonify(dashboard.snapshot())


@bp.route("/filters/reset", methods=["POST"])
def reset_filters():
    dashboard = get_dashboard()
    with dashboard.lock:
        cleared = dashboard.reset()
        logger.info("Cleared %d filter(s)", cleared)
        return jsonify(dashboard.snapshot())
