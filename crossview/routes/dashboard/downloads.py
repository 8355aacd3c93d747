"""Download endpoints for dashboard."""

from __future__ import annotations

import io
from datetime import datetime, timezone

import pandas as pd
from flask import Response

from . import bp, get_dashboard


@bp.route("/download-csv", methods=["GET"])
def download_csv():
    """Download the currently visible records as CSV."""
    dashboard = get_dashboard()
    with dashboard.lock:
        visible = dashboard.crossfilter.visible_records()
        columns = list(dashboard.store.fields)

    frame = pd.DataFrame([dict(rec) for rec in visible], columns=columns)
    buf = io.StringIO()
    frame.to_csv(buf, index=False)
    buf.seek(0)

    ts = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    filename = f"export_{ts}.csv"

    return Response(
        buf.getvalue(),
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
