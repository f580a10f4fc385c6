# Overview: Flask API routes for weekly plans; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request
import pytz

from ..extensions import business_clock
from ..services import plan_service
from ..validation import StorageError, ValidationError


plans_bp = Blueprint("plans", __name__, url_prefix="/plan")


@plans_bp.get("/weeks/<week_start>")
def get_week_route(week_start: str):
    try:
        return jsonify(plan_service.get_week(week_start)), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@plans_bp.put("/weeks/<week_start>")
def put_week_route(week_start: str):
    rows = request.get_json(silent=True)
    if isinstance(rows, dict):
        rows = rows.get("rows")

    try:
        stored = plan_service.put_week(week_start, rows, clock=business_clock())
        return jsonify(stored), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except StorageError:
        current_app.logger.exception("Failed to store plan for %s", week_start)
        return jsonify({"error": "Storage error"}), 500


@plans_bp.delete("/weeks/<week_start>")
def zero_week_route(week_start: str):
    try:
        return jsonify(plan_service.zero_week(week_start, clock=business_clock())), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except StorageError:
        current_app.logger.exception("Failed to zero plan for %s", week_start)
        return jsonify({"error": "Storage error"}), 500


@plans_bp.get("/weeks")
def list_weeks_route():
    limit = request.args.get("limit", plan_service.DEFAULT_WEEK_LIST_LIMIT, type=int)
    try:
        return jsonify(plan_service.list_weeks(limit)), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@plans_bp.get("/active_monday")
def active_monday_route():
    clock = business_clock()
    tz = request.args.get("tz") or clock.tz_name
    try:
        monday = clock.monday_of(tz_name=tz)
    except pytz.UnknownTimeZoneError:
        return jsonify({"error": f"Unknown timezone: {tz}"}), 400
    return jsonify({"ok": True, "tz": tz, "week_start": monday.isoformat()}), 200
