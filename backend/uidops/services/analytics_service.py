# Overview: Plan-vs-actual metrics for one week, recomputed from the stores on every read.

"""
compute_metrics is a pure function of (week_start, plan rows, record dicts,
bin dicts). week_metrics is the loader that feeds it from the database.

Zero-division rules:
- completion_pct: 0 when planned == applied == 0, 100 when planned == 0 < applied
- discrepancy averages only keys with planned > 0; no such keys -> 0
- late rate, diversity and daily stats fall back to 0 on empty input
"""
from __future__ import annotations

import math
from collections import Counter, defaultdict
from datetime import date, timedelta
from typing import Any, Iterable, Mapping

from sqlalchemy import and_, or_

from uidops.extensions import db
from uidops.models import ScanRecord, RECORD_STATUS_COMPLETE
from uidops.time_utils import BusinessClock, parse_iso_datetime, parse_ymd, week_end
from . import bin_service, plan_service, timeline_service
from .import_schemas import to_quantity, to_weight


HEAVY_BIN_KG = 12.0
ANOMALY_SIGMA = 1.5
TOP_GAP_DRIVERS = 5

# Value at which each risk axis reads 100.
RISK_CEILINGS = {
    "sku_discrepancy": 5.0,
    "po_discrepancy": 5.0,
    "heavy_bins": 3.0,
    "bin_diversity": 4.0,
    "late_rate": 5.0,
}
RISK_AXES = ("duplicates", "sku_discrepancy", "po_discrepancy", "heavy_bins", "bin_diversity", "late_rate")


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def pct(num: float, den: float) -> int:
    return round_half_up(num * 100 / den) if den > 0 else 0


def completion_pct(applied: float, planned: float) -> int:
    if planned > 0:
        return pct(applied, planned)
    return 100 if applied > 0 else 0


def _text(value: Any) -> str:
    return str(value or "").strip()


def business_date(record: Mapping[str, Any], clock: BusinessClock | None = None) -> str:
    """date_local when present, else completed_at bucketed into the business day."""
    local = _text(record.get("date_local"))
    if local:
        return local[:10]
    completed_at = record.get("completed_at")
    if completed_at and clock is not None:
        try:
            return clock.ymd_in_zone(parse_iso_datetime(completed_at))
        except (TypeError, ValueError):
            return ""
    return ""


def in_scope_records(
    records: Iterable[Mapping[str, Any]],
    week_start: date,
    *,
    clock: BusinessClock | None = None,
    lenient: bool = False,
) -> list[tuple[str, Mapping[str, Any]]]:
    """(business date, record) pairs inside [week_start, week_end] that count as applied."""
    ws = week_start.isoformat()
    we = week_end(week_start).isoformat()
    scoped = []
    for record in records:
        if lenient:
            if not _text(record.get("uid")):
                continue
        elif record.get("status") != RECORD_STATUS_COMPLETE:
            continue
        ymd = business_date(record, clock)
        if ymd and ws <= ymd <= we:
            scoped.append((ymd, record))
    return scoped


def _discrepancy_pct(planned_by_key: Mapping[Any, float], applied_by_key: Mapping[Any, int]) -> tuple[int, int]:
    total = 0.0
    keys = 0
    for key, planned in planned_by_key.items():
        if planned > 0:
            total += abs(applied_by_key.get(key, 0) - planned) / planned
            keys += 1
    return (round_half_up(total / keys * 100) if keys else 0), keys


def _duplicates(records: list[Mapping[str, Any]]) -> dict[str, Any]:
    pairs = Counter(
        (_text(r.get("sku_code")), _text(r.get("uid")))
        for r in records
        if _text(r.get("sku_code")) and _text(r.get("uid"))
    )
    dupes = sorted(
        ({"sku_code": sku, "uid": uid, "count": count} for (sku, uid), count in pairs.items() if count > 1),
        key=lambda d: (-d["count"], d["sku_code"], d["uid"]),
    )
    return {"scan_count": sum(d["count"] for d in dupes), "pairs": dupes}


def _heavy_bins(records: list[Mapping[str, Any]], bins: Iterable[Mapping[str, Any]]) -> dict[str, Any]:
    skus_by_bin: dict[str, set[str]] = defaultdict(set)
    for r in records:
        bin_id = _text(r.get("mobile_bin"))
        sku = _text(r.get("sku_code"))
        if bin_id and sku:
            skus_by_bin[bin_id].add(sku)

    heavy = []
    for b in bins:
        weight = to_weight(b.get("weight_kg"))
        bin_id = _text(b.get("mobile_bin"))
        if bin_id and weight is not None and weight > HEAVY_BIN_KG:
            heavy.append({"mobile_bin": bin_id, "weight_kg": weight, "distinct_skus": len(skus_by_bin.get(bin_id, ()))})

    diversity = sum(h["distinct_skus"] for h in heavy) / len(heavy) if heavy else 0.0
    return {
        "threshold_kg": HEAVY_BIN_KG,
        "count": len(heavy),
        "diversity": round(diversity, 2),
        "bins": sorted(heavy, key=lambda h: (-h["weight_kg"], h["mobile_bin"])),
    }


def _earliest_due_by_po(plan: list[Mapping[str, Any]]) -> dict[str, str]:
    due: dict[str, str] = {}
    for p in plan:
        po = _text(p.get("po_number"))
        d = _text(p.get("due_date"))
        if not po or not d:
            continue
        if po not in due or d < due[po]:
            due[po] = d
    return due


def _gap_drivers(planned: Mapping[tuple[str, str], float], applied: Mapping[tuple[str, str], int]) -> tuple[list[dict], float]:
    gaps = []
    for key in set(planned) | set(applied):
        p = planned.get(key, 0)
        a = applied.get(key, 0)
        gap = p - a
        if gap != 0:
            gaps.append({"po_number": key[0], "sku_code": key[1], "planned": p, "applied": a, "gap": gap})
    gaps.sort(key=lambda g: (-abs(g["gap"]), g["po_number"], g["sku_code"]))
    return gaps[:TOP_GAP_DRIVERS], sum(abs(g["gap"]) for g in gaps)


def _daily_anomalies(dates: list[str], week_start: date) -> dict[str, Any]:
    counts = Counter(dates)
    days = [(week_start + timedelta(days=i)).isoformat() for i in range(7)]
    values = [counts.get(d, 0) for d in days]
    mean = sum(values) / len(values)
    std = math.sqrt(sum((v - mean) ** 2 for v in values) / len(values))
    low = mean - ANOMALY_SIGMA * std
    high = mean + ANOMALY_SIGMA * std

    rows = []
    for day, value in zip(days, values):
        flag = None
        if value < low:
            flag = "dip"
        elif value > high:
            flag = "spike"
        rows.append({"date": day, "count": value, "flag": flag})
    return {"mean": round(mean, 2), "std": round(std, 2), "days": rows}


def risk_radar(
    *,
    duplicate_scans: int,
    sku_discrepancy_pct: float,
    po_discrepancy_pct: float,
    heavy_bin_count: int,
    bin_diversity: float,
    late_rate_pct: float,
) -> dict[str, Any]:
    """Map each signal onto 0-100 against its ceiling; the highest axis is the top driver."""
    axes = {
        "duplicates": 100 if duplicate_scans > 0 else 0,
        "sku_discrepancy": clamp(sku_discrepancy_pct / RISK_CEILINGS["sku_discrepancy"] * 100),
        "po_discrepancy": clamp(po_discrepancy_pct / RISK_CEILINGS["po_discrepancy"] * 100),
        "heavy_bins": clamp(heavy_bin_count / RISK_CEILINGS["heavy_bins"] * 100),
        # Inverted: a heavy bin carrying many SKUs is safer than a single-SKU one.
        "bin_diversity": (
            clamp(100 - bin_diversity / RISK_CEILINGS["bin_diversity"] * 100) if heavy_bin_count else 0
        ),
        "late_rate": clamp(late_rate_pct / RISK_CEILINGS["late_rate"] * 100),
    }
    axes = {name: round_half_up(axes[name]) for name in RISK_AXES}
    top = max(RISK_AXES, key=lambda name: axes[name])
    return {"axes": axes, "top_driver": top if axes[top] > 0 else None}


def _po_progress(
    planned_by_po: Mapping[str, float],
    applied_by_po: Mapping[str, int],
    due_by_po: Mapping[str, str],
) -> list[dict[str, Any]]:
    rows = []
    for po, planned in planned_by_po.items():
        applied = applied_by_po.get(po, 0)
        rows.append({
            "po_number": po,
            "planned": planned,
            "applied": applied,
            "remaining": max(planned - applied, 0),
            "pct": completion_pct(applied, planned),
            "due_date": due_by_po.get(po),
        })
    rows.sort(key=lambda r: (r["due_date"] or "9999-12-31", r["po_number"]))
    return rows


def compute_metrics(
    week_start: date | str,
    plan: list[Mapping[str, Any]],
    records: Iterable[Mapping[str, Any]],
    bins: Iterable[Mapping[str, Any]] = (),
    *,
    clock: BusinessClock | None = None,
    lenient: bool = False,
) -> dict[str, Any]:
    ws = parse_ymd(week_start)
    if ws is None:
        raise ValueError("week_start must be an ISO date")
    plan = [p for p in (plan or []) if isinstance(p, Mapping)]

    scoped = in_scope_records(records or [], ws, clock=clock, lenient=lenient)
    week_records = [r for _, r in scoped]

    planned_total = sum(to_quantity(p.get("target_qty")) for p in plan)
    applied_total = len(week_records)

    planned_by_sku: dict[str, float] = defaultdict(int)
    planned_by_po: dict[str, float] = defaultdict(int)
    planned_by_pair: dict[tuple[str, str], float] = defaultdict(int)
    for p in plan:
        qty = to_quantity(p.get("target_qty"))
        sku = _text(p.get("sku_code"))
        po = _text(p.get("po_number"))
        if sku:
            planned_by_sku[sku] += qty
        if po:
            planned_by_po[po] += qty
        if po and sku:
            planned_by_pair[(po, sku)] += qty

    applied_by_sku: Counter = Counter()
    applied_by_po: Counter = Counter()
    applied_by_pair: Counter = Counter()
    for r in week_records:
        sku = _text(r.get("sku_code"))
        po = _text(r.get("po_number"))
        if sku:
            applied_by_sku[sku] += 1
        if po:
            applied_by_po[po] += 1
        if po and sku:
            applied_by_pair[(po, sku)] += 1

    sku_disc, sku_keys = _discrepancy_pct(planned_by_sku, applied_by_sku)
    po_disc, po_keys = _discrepancy_pct(planned_by_po, applied_by_po)

    duplicates = _duplicates(week_records)
    heavy = _heavy_bins(week_records, bins or [])

    due_by_po = _earliest_due_by_po(plan)
    late_count = sum(
        1
        for ymd, r in scoped
        if _text(r.get("po_number")) in due_by_po and ymd > due_by_po[_text(r.get("po_number"))]
    )
    late_rate = pct(late_count, applied_total)

    drivers, gap_total_abs = _gap_drivers(planned_by_pair, applied_by_pair)

    in_plan_applied = sum(count for key, count in applied_by_pair.items() if key in planned_by_pair)

    return {
        "week_start": ws.isoformat(),
        "week_end": week_end(ws).isoformat(),
        "planned_total": planned_total,
        "applied_total": applied_total,
        "completion_pct": completion_pct(applied_total, planned_total),
        "discrepancy": {
            "sku_pct": sku_disc,
            "sku_keys": sku_keys,
            "po_pct": po_disc,
            "po_keys": po_keys,
        },
        "duplicates": duplicates,
        "heavy_bins": heavy,
        "late": {"count": late_count, "rate_pct": late_rate},
        "gap_drivers": drivers,
        "gap_total_abs": gap_total_abs,
        "risk": risk_radar(
            duplicate_scans=duplicates["scan_count"],
            sku_discrepancy_pct=sku_disc,
            po_discrepancy_pct=po_disc,
            heavy_bin_count=heavy["count"],
            bin_diversity=heavy["diversity"],
            late_rate_pct=late_rate,
        ),
        "daily": _daily_anomalies([ymd for ymd, _ in scoped], ws),
        "po_progress": _po_progress(planned_by_po, applied_by_po, due_by_po),
        "donut": {
            "planned": planned_total,
            "applied": applied_total,
            "in_plan_applied": in_plan_applied,
            "off_plan_applied": applied_total - in_plan_applied,
        },
    }


def _week_records(week_start: date) -> list[dict[str, Any]]:
    ws = week_start.isoformat()
    we = week_end(week_start).isoformat()
    rows = (
        db.session.query(ScanRecord)
        .filter(or_(
            and_(ScanRecord.date_local >= ws, ScanRecord.date_local <= we),
            and_(ScanRecord.date_local.is_(None), ScanRecord.completed_at.isnot(None)),
        ))
        .all()
    )
    return [r.to_dict() for r in rows]


def week_metrics(
    week_start: Any,
    *,
    clock: BusinessClock,
    overrides: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Metrics bundle plus milestone timeline, read fresh from the stores."""
    monday = plan_service.parse_week_start(week_start)
    plan = plan_service.get_week(monday.isoformat())
    records = _week_records(monday)
    bins = bin_service.list_bins(mobile_bins=[r["mobile_bin"] for r in records if r.get("mobile_bin")])

    metrics = compute_metrics(monday, plan, records, bins, clock=clock)
    metrics["timeline"] = timeline_service.build_timeline(monday, overrides)
    return metrics
