# backend/uidops/routes/analytics.py
"""
Week analytics route.

GET /analytics/weeks/<monday>
    Optional milestone overrides as query args:
    baseline_actual, inventory_actual, processing_actual, dispatched_actual,
    completion_pct. Nothing is cached; every call recomputes from the stores.
"""
from flask import Blueprint, current_app, jsonify, request

from ..extensions import business_clock
from ..services import analytics_service
from ..services.timeline_service import MILESTONES
from ..validation import ValidationError


analytics_bp = Blueprint("analytics", __name__, url_prefix="/analytics")


def _overrides_from_args() -> dict:
    overrides = {}
    for name in MILESTONES:
        value = request.args.get(f"{name}_actual")
        if value:
            overrides[f"{name}_actual"] = value
    if request.args.get("completion_pct"):
        overrides["completion_pct"] = request.args.get("completion_pct")
    return overrides


@analytics_bp.get("/weeks/<week_start>")
def week_metrics_route(week_start: str):
    try:
        metrics = analytics_service.week_metrics(
            week_start,
            clock=business_clock(),
            overrides=_overrides_from_args(),
        )
        return jsonify(metrics), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to compute metrics for %s", week_start)
        return jsonify({"error": "Failed to compute metrics"}), 500
