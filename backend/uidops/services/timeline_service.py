# Overview: Places week milestones (planned vs operator-entered actual) on one relative axis.

from __future__ import annotations

import math
from datetime import date, timedelta
from typing import Any, Mapping

from uidops.time_utils import add_business_days, parse_ymd, week_end


MILESTONES = ("baseline", "inventory", "processing", "dispatched")
BASELINE_LEAD_BUSINESS_DAYS = 7
PROCESSING_OFFSET_DAYS = 4
AXIS_BUFFER_DAYS = 2


def planned_dates(week_start: date) -> dict[str, date]:
    return {
        "baseline": add_business_days(week_start, -BASELINE_LEAD_BUSINESS_DAYS),
        "inventory": week_start,
        "processing": week_start + timedelta(days=PROCESSING_OFFSET_DAYS),
        "dispatched": week_end(week_start),
    }


def _override(overrides: Mapping[str, Any], name: str) -> Any:
    nested = overrides.get("actuals")
    if isinstance(nested, Mapping) and nested.get(name) not in (None, ""):
        return nested.get(name)
    return overrides.get(f"{name}_actual")


def _completion_override(value: Any) -> float | None:
    if value is None or isinstance(value, bool) or str(value).strip() == "":
        return None
    try:
        number = float(str(value).strip().rstrip("%"))
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return max(0.0, min(100.0, number))


def build_timeline(week_start: date, overrides: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """
    Milestone dots on a 0-100 axis spanning [baseline planned, dispatched planned + buffer].

    Actual dates come only from `overrides`; dates outside the axis are clamped
    to its ends and flagged, malformed ones are ignored.
    """
    overrides = overrides or {}
    planned = planned_dates(week_start)
    axis_start = planned["baseline"]
    axis_end = planned["dispatched"] + timedelta(days=AXIS_BUFFER_DAYS)
    span = (axis_end - axis_start).days

    def position(d: date) -> float:
        return round((d - axis_start).days / span * 100, 2)

    milestones = []
    for name in MILESTONES:
        planned_date = planned[name]
        actual = parse_ymd(_override(overrides, name))
        entry = {
            "name": name,
            "planned_date": planned_date.isoformat(),
            "planned_position": position(planned_date),
            "actual_date": None,
            "actual_position": None,
            "clamped": False,
            "variance_days": None,
        }
        if actual is not None:
            placed = min(max(actual, axis_start), axis_end)
            entry.update(
                actual_date=actual.isoformat(),
                actual_position=position(placed),
                clamped=placed != actual,
                variance_days=(actual - planned_date).days,
            )
        milestones.append(entry)

    return {
        "axis": {"start": axis_start.isoformat(), "end": axis_end.isoformat(), "days": span},
        "milestones": milestones,
        "progress_pct": _completion_override(overrides.get("completion_pct")),
    }
