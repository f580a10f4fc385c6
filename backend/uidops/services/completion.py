# Overview: Pure completeness predicate and upsert merge rule for scan records.

"""
Completeness policy: a record is complete once po_number, sku_code, uid,
mobile_bin and date_local are all non-blank. sscc_label is optional.

Both functions work on plain dict snapshots so they can be evaluated before
anything touches the session.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from uidops.models import (
    RECORD_STATUS_COMPLETE,
    RECORD_STATUS_DRAFT,
    SYNC_STATE_SYNCED,
)


COMPLETENESS_FIELDS = ("po_number", "sku_code", "uid", "mobile_bin", "date_local")
NATURAL_KEY_FIELDS = ("po_number", "sku_code", "uid")
OPTIONAL_FIELDS = ("date_local", "mobile_bin", "sscc_label")


def _present(value: Any) -> bool:
    return bool(str(value or "").strip())


def is_complete(snapshot: Mapping[str, Any]) -> bool:
    return all(_present(snapshot.get(field)) for field in COMPLETENESS_FIELDS)


def newly_completed(before_status: str | None, after_snapshot: Mapping[str, Any]) -> bool:
    """True only on the draft -> complete edge; re-evaluating a complete record is always False."""
    return before_status != RECORD_STATUS_COMPLETE and is_complete(after_snapshot)


def natural_key(snapshot: Mapping[str, Any]) -> tuple[str, str, str] | None:
    values = tuple(str(snapshot.get(field) or "").strip() for field in NATURAL_KEY_FIELDS)
    if not all(values):
        return None
    return values  # type: ignore[return-value]


def merge_records(
    existing: Mapping[str, Any] | None,
    incoming: Mapping[str, Any],
    *,
    now: datetime,
) -> dict[str, Any]:
    """
    Merge an incoming upsert row over the stored row.

    - non-blank incoming optional fields overwrite, blanks never erase
    - status only escalates draft -> complete (explicit or by completeness)
    - completed_at keeps the stored value; otherwise adopts incoming, else `now`
      when the merged row is complete
    - sync_state is always synced
    """
    base = dict(existing or {})
    merged: dict[str, Any] = {field: base.get(field) for field in NATURAL_KEY_FIELDS + OPTIONAL_FIELDS}

    for field in NATURAL_KEY_FIELDS:
        if _present(incoming.get(field)):
            merged[field] = str(incoming[field]).strip()
    for field in OPTIONAL_FIELDS:
        if _present(incoming.get(field)):
            merged[field] = str(incoming[field]).strip()

    prior_status = base.get("status") or RECORD_STATUS_DRAFT
    wants_complete = (
        prior_status == RECORD_STATUS_COMPLETE
        or incoming.get("status") == RECORD_STATUS_COMPLETE
        or is_complete(merged)
    )
    merged["status"] = RECORD_STATUS_COMPLETE if wants_complete else RECORD_STATUS_DRAFT

    completed_at = base.get("completed_at") or incoming.get("completed_at")
    if completed_at is None and merged["status"] == RECORD_STATUS_COMPLETE:
        completed_at = now
    merged["completed_at"] = completed_at
    merged["sync_state"] = SYNC_STATE_SYNCED
    return merged
