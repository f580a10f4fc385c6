# Overview: Weekly plan store; each Monday's line items are replaced wholesale on write.

from __future__ import annotations

from datetime import date
from typing import Any

from uidops.extensions import db
from uidops.models import WeeklyPlan
from uidops.time_utils import BusinessClock, parse_ymd
from uidops.validation import ValidationError
from .concurrency import run_in_transaction
from .import_schemas import SCHEMAS


DEFAULT_WEEK_LIST_LIMIT = 52


def parse_week_start(value: Any) -> date:
    """ISO date that falls on a Monday, or ValidationError."""
    parsed = parse_ymd(value)
    if parsed is None or str(value).strip()[:10] != parsed.isoformat():
        raise ValidationError("week_start must be an ISO date (YYYY-MM-DD)")
    if parsed.weekday() != 0:
        raise ValidationError(f"week_start {parsed.isoformat()} is not a Monday")
    return parsed


def normalize_plan_rows(raw_rows: Any, week_start: str) -> list[dict[str, Any]]:
    """
    Trim strings, coerce target_qty, default start_date to the week start and
    drop rows missing po_number, sku_code or due_date. Non-list input is empty.
    """
    if not isinstance(raw_rows, list):
        return []
    schema = SCHEMAS["PLAN"]
    normalized = []
    for raw in raw_rows:
        row = schema.normalize_row(raw if isinstance(raw, dict) else {}, week_start)
        if schema.validate_row(row):
            continue
        normalized.append(row)
    return normalized


def get_week(week_start: Any) -> list[dict[str, Any]]:
    """Line items for the week; a week never written is an empty list."""
    monday = parse_week_start(week_start).isoformat()
    plan = db.session.get(WeeklyPlan, monday)
    if plan is None or not isinstance(plan.data, list):
        return []
    return list(plan.data)


def put_week(week_start: Any, raw_rows: Any, *, clock: BusinessClock) -> list[dict[str, Any]]:
    """Replace the week's plan with the normalized rows; returns what was stored."""
    monday = parse_week_start(week_start).isoformat()
    rows = normalize_plan_rows(raw_rows, monday)

    def _op() -> list[dict[str, Any]]:
        plan = db.session.get(WeeklyPlan, monday)
        if plan is None:
            plan = WeeklyPlan(week_start=monday)
            db.session.add(plan)
        plan.data = rows
        plan.updated_at = clock.now()
        db.session.flush()
        return rows

    return run_in_transaction(_op)


def zero_week(week_start: Any, *, clock: BusinessClock) -> list[dict[str, Any]]:
    return put_week(week_start, [], clock=clock)


def list_weeks(limit: int = DEFAULT_WEEK_LIST_LIMIT) -> list[dict[str, Any]]:
    """Known weeks with their last update, most recent week first."""
    if limit is None or int(limit) <= 0:
        raise ValidationError("limit must be a positive integer")
    plans = (
        db.session.query(WeeklyPlan)
        .order_by(WeeklyPlan.week_start.desc())
        .limit(int(limit))
        .all()
    )
    return [plan.to_dict() for plan in plans]
