# Overview: Spreadsheet export of one business day's scan records.

import io

from flask import Blueprint, current_app, jsonify, request, send_file

from ..extensions import business_clock
from ..services import export_service, record_service
from ..time_utils import parse_ymd


export_bp = Blueprint("export", __name__, url_prefix="/export")

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@export_bp.get("/xlsx")
def export_xlsx_route():
    raw_date = request.args.get("date")
    day = parse_ymd(raw_date) if raw_date else business_clock().today()
    if day is None:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400

    date_local = day.isoformat()
    try:
        payload = export_service.build_workbook(record_service.records_for_day(date_local))
    except Exception:
        current_app.logger.exception("Failed to export records for %s", date_local)
        return jsonify({"error": "Failed to build export"}), 500

    return send_file(
        io.BytesIO(payload),
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
        download_name=export_service.export_filename(date_local),
    )
