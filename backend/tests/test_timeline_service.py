from datetime import date

from uidops.services.timeline_service import build_timeline, planned_dates


WS = date(2025, 6, 2)


def _by_name(timeline):
    return {m["name"]: m for m in timeline["milestones"]}


def test_planned_dates_for_a_week():
    planned = planned_dates(WS)
    assert planned == {
        "baseline": date(2025, 5, 22),
        "inventory": date(2025, 6, 2),
        "processing": date(2025, 6, 6),
        "dispatched": date(2025, 6, 8),
    }


def test_axis_spans_baseline_to_dispatch_plus_buffer():
    timeline = build_timeline(WS)
    assert timeline["axis"] == {"start": "2025-05-22", "end": "2025-06-10", "days": 19}
    milestones = _by_name(timeline)
    assert milestones["baseline"]["planned_position"] == 0
    assert milestones["inventory"]["planned_position"] == 57.89
    assert milestones["dispatched"]["planned_position"] == 89.47
    assert all(m["actual_date"] is None for m in timeline["milestones"])
    assert timeline["progress_pct"] is None


def test_actual_dates_and_variance():
    timeline = build_timeline(WS, {"processing_actual": "2025-06-07", "actuals": {"inventory": "2025-06-02"}})
    milestones = _by_name(timeline)
    assert milestones["processing"]["actual_date"] == "2025-06-07"
    assert milestones["processing"]["variance_days"] == 1
    assert milestones["processing"]["clamped"] is False
    assert milestones["inventory"]["variance_days"] == 0


def test_out_of_range_actuals_are_clamped_to_the_axis():
    timeline = build_timeline(WS, {"dispatched_actual": "2025-07-01", "baseline_actual": "2025-01-01"})
    milestones = _by_name(timeline)
    assert milestones["dispatched"]["actual_position"] == 100
    assert milestones["dispatched"]["clamped"] is True
    assert milestones["dispatched"]["actual_date"] == "2025-07-01"
    assert milestones["baseline"]["actual_position"] == 0
    assert milestones["baseline"]["clamped"] is True


def test_malformed_actuals_are_ignored():
    timeline = build_timeline(WS, {"inventory_actual": "next tuesday", "processing_actual": ""})
    milestones = _by_name(timeline)
    assert milestones["inventory"]["actual_date"] is None
    assert milestones["processing"]["actual_position"] is None


def test_progress_override_is_clamped():
    assert build_timeline(WS, {"completion_pct": "140"})["progress_pct"] == 100
    assert build_timeline(WS, {"completion_pct": "-3"})["progress_pct"] == 0
    assert build_timeline(WS, {"completion_pct": "42.5%"})["progress_pct"] == 42.5
    assert build_timeline(WS, {"completion_pct": "lots"})["progress_pct"] is None
