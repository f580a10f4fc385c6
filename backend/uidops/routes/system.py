# backend/uidops/routes/system.py
"""
System health endpoint.
"""

import time

from flask import Blueprint, current_app, jsonify

from ..extensions import completion_bus, db
from ..models import ScanRecord, WeeklyPlan
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """Count rows in the two stores; any failure reports unhealthy instead of raising."""
    start_time = time.time()
    try:
        record_count = db.session.query(ScanRecord).count()
        plan_count = db.session.query(WeeklyPlan).count()
        return {
            "status": "healthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "details": {"records": record_count, "plan_weeks": plan_count},
        }
    except Exception:
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    database = check_database_health()
    ok = database["status"] == "healthy"
    return jsonify({
        "ok": ok,
        "now": to_utc_z(utcnow()),
        "database": database,
        "listeners": len(completion_bus()),
    }), (200 if ok else 503)
