# Overview: Declarative field aliases and row normalizers for record, plan and bin imports.

from __future__ import annotations

import math
import re
from typing import Any

from uidops.time_utils import parse_iso_datetime, parse_ymd


# Accepted spellings per logical field. Matching is case-insensitive and treats
# runs of spaces, underscores and hyphens as one space ("PO_Number" == "po number").
FIELD_ALIASES: dict[str, list[str]] = {
    "id": ["id", "record id", "record_id"],
    "date_local": ["date_local", "date", "date local", "business date", "scan date"],
    "mobile_bin": ["mobile_bin", "mobile bin", "mobile bin (box)", "bin", "mobile"],
    "sscc_label": ["sscc_label", "sscc", "sscc label", "sscc label (box)"],
    "po_number": ["po_number", "po", "po#", "po #", "po no", "purchase order"],
    "sku_code": ["sku_code", "sku", "sku#", "sku code", "item code"],
    "uid": ["uid", "unit id", "unit_id", "serial"],
    "status": ["status"],
    "completed_at": ["completed_at", "completed at", "completed"],
    "start_date": ["start_date", "start", "start date"],
    "due_date": ["due_date", "due", "due date"],
    "target_qty": ["target_qty", "target", "qty", "quantity", "target qty", "planned qty"],
    "priority": ["priority"],
    "notes": ["notes", "note", "comment", "comments"],
    "weight_kg": ["weight_kg", "weight", "weight kg", "weight (kg)", "kg"],
}

_SEPARATORS = re.compile(r"[\s_\-]+")


def canonical_key(key: Any) -> str:
    return _SEPARATORS.sub(" ", str(key or "").strip().lower())


ALIAS_LOOKUP: dict[str, str] = {
    canonical_key(alias): field
    for field, aliases in FIELD_ALIASES.items()
    for alias in aliases
}


def resolve_aliases(raw_row: dict[str, Any]) -> dict[str, Any]:
    """
    Rename incoming keys to their logical field names.

    Unknown keys are dropped. When two spellings of the same field are present,
    the first non-blank value wins.
    """
    resolved: dict[str, Any] = {}
    if not isinstance(raw_row, dict):
        return resolved
    for key, value in raw_row.items():
        field = ALIAS_LOOKUP.get(canonical_key(key))
        if field is None:
            continue
        if field in resolved and _to_text(resolved[field]) is not None:
            continue
        resolved[field] = value
    return resolved


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def _to_ymd(value: Any) -> str | None:
    parsed = parse_ymd(value)
    if parsed is not None:
        return parsed.isoformat()
    return _to_text(value)


def _plan_date(value: Any) -> str | None:
    """ISO date or None; plan dates are compared as YYYY-MM-DD strings downstream."""
    parsed = parse_ymd(value)
    return parsed.isoformat() if parsed is not None else None


def to_quantity(value: Any) -> int | float:
    """Non-negative number; malformed, missing, negative or non-finite input is 0."""
    if value is None or isinstance(value, bool):
        return int(value or 0)
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return 0
        try:
            number = float(text)
        except ValueError:
            return 0
    if not math.isfinite(number) or number < 0:
        return 0
    return int(number) if number.is_integer() else number


def to_weight(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None


class RecordRowSchema:
    """Scan record rows from bulk import or single create."""

    required = ("po_number", "sku_code", "uid")

    def normalize_row(self, raw_row: dict[str, Any]) -> dict[str, Any]:
        row = resolve_aliases(raw_row)
        status = _to_text(row.get("status"))
        completed_at = row.get("completed_at")
        try:
            completed_at = parse_iso_datetime(completed_at) if completed_at not in (None, "") else None
        except (TypeError, ValueError):
            completed_at = None
        return {
            "id": _to_text(row.get("id")),
            "date_local": _to_ymd(row.get("date_local")),
            "mobile_bin": _to_text(row.get("mobile_bin")),
            "sscc_label": _to_text(row.get("sscc_label")),
            "po_number": _to_text(row.get("po_number")),
            "sku_code": _to_text(row.get("sku_code")),
            "uid": _to_text(row.get("uid")),
            "status": status.lower() if status else None,
            "completed_at": completed_at,
        }

    def validate_row(self, normalized_row: dict[str, Any]) -> list[str]:
        return [f"{field} is required" for field in self.required if not normalized_row.get(field)]


class PlanRowSchema:
    """Weekly plan line items."""

    required = ("po_number", "sku_code", "due_date")

    def normalize_row(self, raw_row: dict[str, Any], week_start: str) -> dict[str, Any]:
        row = resolve_aliases(raw_row)
        normalized = {
            "po_number": _to_text(row.get("po_number")) or "",
            "sku_code": _to_text(row.get("sku_code")) or "",
            "start_date": _plan_date(row.get("start_date")) or week_start,
            "due_date": _plan_date(row.get("due_date")) or "",
            "target_qty": to_quantity(row.get("target_qty")),
        }
        priority = _to_text(row.get("priority"))
        notes = _to_text(row.get("notes"))
        if priority:
            normalized["priority"] = priority
        if notes:
            normalized["notes"] = notes
        return normalized

    def validate_row(self, normalized_row: dict[str, Any]) -> list[str]:
        return [f"{field} is required" for field in self.required if not normalized_row.get(field)]


class BinRowSchema:
    """Bin weight rows loaded from the yard system export."""

    def normalize_row(self, raw_row: dict[str, Any]) -> dict[str, Any]:
        row = resolve_aliases(raw_row)
        return {
            "mobile_bin": _to_text(row.get("mobile_bin")),
            "weight_kg": to_weight(row.get("weight_kg")),
        }

    def validate_row(self, normalized_row: dict[str, Any]) -> list[str]:
        return [] if normalized_row.get("mobile_bin") else ["mobile_bin is required"]


SCHEMAS = {
    "RECORDS": RecordRowSchema(),
    "PLAN": PlanRowSchema(),
    "BINS": BinRowSchema(),
}
