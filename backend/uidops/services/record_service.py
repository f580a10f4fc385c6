# backend/uidops/services/record_service.py
"""
Scan record store and reconciliation.

WHY: Every scanned unit lands here one field at a time from the intake
screen, or in bulk from spreadsheets. The store enforces the
(po_number, sku_code, uid) dedup boundary, detects the draft -> complete
edge exactly once, and tells live listeners when a unit completes.

LIFECYCLE:
1. draft: shell created by the first field edit, stamped with today's business date
2. complete: completeness fields all present; completed_at stamped once, never moved

DUPLICATES:
- a patch that would reuse another record's natural key is rejected and the
  caller gets the record already holding that key back, flagged duplicate;
  the patched record is dropped if it was still a draft
- an upsert that hits an existing key merges into it (see completion.merge_records)
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable

from sqlalchemy.exc import IntegrityError

from uidops.extensions import db
from uidops.models import (
    ScanRecord,
    RECORD_STATUS_COMPLETE,
    RECORD_STATUS_DRAFT,
    RECORD_STATUSES,
    SYNC_STATE_PENDING,
)
from uidops.time_utils import BusinessClock, parse_ymd
from uidops.validation import DuplicateKeyConflict, StorageError, ValidationError
from .completion import merge_records, natural_key, newly_completed
from .concurrency import lock_for_update, run_in_transaction
from .event_bus import CompletionEventBus
from .import_schemas import SCHEMAS


PATCHABLE_FIELDS = frozenset({"date_local", "mobile_bin", "sscc_label", "po_number", "sku_code", "uid"})

# Mandatory on single create: the natural key plus the bin that completes a unit.
CREATE_REQUIRED_FIELDS = ("po_number", "sku_code", "uid", "mobile_bin")

_RECORD_FIELDS = ("date_local", "mobile_bin", "sscc_label", "po_number", "sku_code", "uid", "status", "completed_at", "sync_state")


@dataclass
class PatchResult:
    ok: bool
    record: dict
    duplicate: bool = False
    created: bool = False
    completed: bool = False

    def to_dict(self) -> dict:
        payload = {"ok": self.ok, "record": self.record}
        if self.duplicate:
            payload["duplicate"] = True
            payload["outcome"] = "duplicate_ignored"
        return payload


@dataclass
class UpsertResult:
    record: dict
    created: bool


@dataclass
class BulkResult:
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    errors: list[dict] = field(default_factory=list)
    last_completed_at: datetime | None = None

    @property
    def applied(self) -> int:
        return self.inserted + self.updated

    def to_dict(self) -> dict:
        return {
            "ok": True,
            "applied": self.applied,
            "inserted": self.inserted,
            "updated": self.updated,
            "skipped": self.skipped,
            "errors": self.errors,
        }


def _snapshot(record: ScanRecord | None) -> dict[str, Any]:
    if record is None:
        return {}
    return {name: getattr(record, name) for name in _RECORD_FIELDS}


def _find_by_natural_key(key: tuple[str, str, str], *, exclude_id: str | None = None) -> ScanRecord | None:
    po_number, sku_code, uid = key
    query = db.session.query(ScanRecord).filter(
        ScanRecord.po_number == po_number,
        ScanRecord.sku_code == sku_code,
        ScanRecord.uid == uid,
    )
    if exclude_id is not None:
        query = query.filter(ScanRecord.id != exclude_id)
    return query.first()


def _patch_value(field_name: str, value: Any, clock: BusinessClock) -> str | None:
    text = str(value).strip() if value is not None else ""
    if field_name == "date_local":
        if not text:
            return clock.today_iso()
        parsed = parse_ymd(text)
        if parsed is None:
            raise ValidationError("date_local must be YYYY-MM-DD")
        return parsed.isoformat()
    return text or None


def get_record(record_id: str) -> ScanRecord | None:
    return db.session.get(ScanRecord, str(record_id))


def _ignore_duplicate(record_id: str, existing_id: str) -> PatchResult:
    """
    Report the record already holding the key. The patched record is dropped
    when it is still a draft: it can only be a second scan of the same unit.
    """
    record = get_record(record_id)
    if record is not None and record.status == RECORD_STATUS_DRAFT:
        delete_record(record_id)
    return PatchResult(ok=True, record=get_record(existing_id).to_dict(), duplicate=True)


def patch_field(
    record_id: str,
    field_name: str,
    value: Any,
    *,
    clock: BusinessClock,
    bus: CompletionEventBus | None = None,
) -> PatchResult:
    """
    Apply one field edit to a record, creating a draft shell if the id is new.

    Completion is decided on the resulting snapshot; the completion event is
    published after commit and only on the draft -> complete edge.

    Raises:
        ValidationError: blank id, unknown field, malformed date_local
        StorageError: persistence failure (nothing is committed)
    """
    record_id = str(record_id or "").strip()
    if not record_id:
        raise ValidationError("id is required")
    if field_name not in PATCHABLE_FIELDS:
        raise ValidationError(f"Invalid field: {field_name}")

    new_value = _patch_value(field_name, value, clock)

    def _op() -> PatchResult:
        record = lock_for_update(db.session.query(ScanRecord).filter_by(id=record_id)).first()
        created = record is None
        before = _snapshot(record) if record else {
            "date_local": clock.today_iso(),
            "status": RECORD_STATUS_DRAFT,
        }
        after = dict(before)
        after[field_name] = new_value

        key = natural_key(after)
        if key is not None:
            holder = _find_by_natural_key(key, exclude_id=record_id)
            if holder is not None:
                raise DuplicateKeyConflict(holder.id)

        if created:
            record = ScanRecord(
                id=record_id,
                date_local=before["date_local"],
                status=RECORD_STATUS_DRAFT,
                sync_state=SYNC_STATE_PENDING,
            )
            db.session.add(record)

        setattr(record, field_name, new_value)
        completed = newly_completed(before.get("status"), after)
        if completed:
            record.status = RECORD_STATUS_COMPLETE
            record.completed_at = clock.now()
        record.sync_state = SYNC_STATE_PENDING
        db.session.flush()
        return PatchResult(ok=True, record=record.to_dict(), created=created, completed=completed)

    try:
        result = run_in_transaction(_op)
    except DuplicateKeyConflict as conflict:
        return _ignore_duplicate(record_id, conflict.existing_id)
    except IntegrityError:
        # Lost a race with another writer for the same natural key.
        key = natural_key({**_snapshot(get_record(record_id)), field_name: new_value})
        holder = _find_by_natural_key(key, exclude_id=record_id) if key else None
        if holder is None:
            raise StorageError("Record write conflicted and could not be resolved")
        return _ignore_duplicate(record_id, holder.id)

    if result.completed and bus is not None:
        bus.publish(get_record(record_id).completed_at)
    return result


def _upsert_row(row: dict[str, Any], clock: BusinessClock) -> tuple[ScanRecord, bool]:
    """Merge one normalized row into the session without committing."""
    key = natural_key(row)
    existing = lock_for_update(
        db.session.query(ScanRecord).filter_by(po_number=key[0], sku_code=key[1], uid=key[2])
    ).first()

    if existing is not None:
        merged = merge_records(_snapshot(existing), row, now=clock.now())
        for name, value in merged.items():
            setattr(existing, name, value)
        db.session.flush()
        return existing, False

    if not row.get("date_local"):
        row = {**row, "date_local": clock.today_iso()}
    merged = merge_records(None, row, now=clock.now())
    record_id = row.get("id")
    if not record_id or get_record(record_id) is not None:
        record_id = uuid.uuid4().hex
    record = ScanRecord(id=record_id, **merged)
    db.session.add(record)
    db.session.flush()
    return record, True


def create_or_upsert(
    fields: dict[str, Any],
    *,
    clock: BusinessClock,
    bus: CompletionEventBus | None = None,
) -> UpsertResult:
    """
    Create a complete record, or merge into the one already holding its natural key.

    Raises:
        ValidationError: a mandatory field is blank
        StorageError: persistence failure
    """
    schema = SCHEMAS["RECORDS"]
    row = schema.normalize_row(fields if isinstance(fields, dict) else {})
    missing = [name for name in CREATE_REQUIRED_FIELDS if not row.get(name)]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    if not row.get("date_local"):
        row["date_local"] = clock.today_iso()

    def _op() -> UpsertResult:
        record, created = _upsert_row(row, clock)
        return UpsertResult(record=record.to_dict(), created=created)

    try:
        result = run_in_transaction(_op)
    except IntegrityError:
        # Another writer inserted the key first; the second pass merges into it.
        try:
            result = run_in_transaction(_op)
        except IntegrityError as exc:
            raise StorageError("Record upsert conflicted twice") from exc

    if bus is not None and result.record["status"] == RECORD_STATUS_COMPLETE:
        record = _find_by_natural_key(natural_key(row))
        bus.publish(record.completed_at if record and record.completed_at else clock.now())
    return result


def bulk_upsert(
    rows: Iterable[dict[str, Any]],
    *,
    clock: BusinessClock,
    bus: CompletionEventBus | None = None,
) -> BulkResult:
    """
    Upsert a batch in one transaction.

    Rows missing po_number, sku_code or uid are skipped (and reported), not
    failed. Any storage failure rolls back the entire batch. One completion
    event is published for the batch, stamped with the last applied row.
    """
    schema = SCHEMAS["RECORDS"]
    valid_rows: list[dict[str, Any]] = []
    skipped_errors: list[dict] = []
    for idx, raw in enumerate(rows or [], start=1):
        normalized = schema.normalize_row(raw if isinstance(raw, dict) else {})
        errors = schema.validate_row(normalized)
        if errors:
            skipped_errors.append({"row": idx, "error": "; ".join(errors)})
            continue
        valid_rows.append(normalized)

    def _op() -> BulkResult:
        result = BulkResult(skipped=len(skipped_errors), errors=list(skipped_errors))
        for row in valid_rows:
            record, created = _upsert_row(row, clock)
            if created:
                result.inserted += 1
            else:
                result.updated += 1
            result.last_completed_at = record.completed_at or clock.now()
        return result

    try:
        result = run_in_transaction(_op)
    except IntegrityError:
        try:
            result = run_in_transaction(_op)
        except IntegrityError as exc:
            raise StorageError("Bulk upsert conflicted twice") from exc

    if bus is not None and result.applied:
        bus.publish(result.last_completed_at)
    return result


def query_records(
    *,
    date_from: str | None = None,
    date_to: str | None = None,
    status: str | None = None,
    limit: int | None = None,
) -> list[ScanRecord]:
    """Records filtered by business date and status, most recently completed first."""
    query = db.session.query(ScanRecord)
    if date_from:
        query = query.filter(ScanRecord.date_local >= str(date_from))
    if date_to:
        query = query.filter(ScanRecord.date_local <= str(date_to))
    if status:
        if status not in RECORD_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(RECORD_STATUSES)}")
        query = query.filter(ScanRecord.status == status)

    # NULL completed_at sorts last; id breaks ties so paging is stable.
    query = query.order_by(
        ScanRecord.completed_at.is_(None).asc(),
        ScanRecord.completed_at.desc(),
        ScanRecord.id.asc(),
    )
    if limit is not None:
        if int(limit) <= 0:
            raise ValidationError("limit must be a positive integer")
        query = query.limit(int(limit))
    return query.all()


def records_for_day(date_local: str) -> list[ScanRecord]:
    return query_records(date_from=date_local, date_to=date_local)


def delete_by_natural_key(sku_code: str, uid: str) -> int:
    """Delete every record with this (sku_code, uid); zero matches returns 0."""
    return delete_by_natural_keys([(sku_code, uid)])


def delete_by_natural_keys(pairs: Iterable[tuple[str, str]]) -> int:
    """Batched duplicate cleanup in one transaction."""
    cleaned = []
    for sku_code, uid in pairs:
        sku_code = str(sku_code or "").strip()
        uid = str(uid or "").strip()
        if not sku_code or not uid:
            raise ValidationError("sku_code and uid are required")
        cleaned.append((sku_code, uid))

    def _op() -> int:
        deleted = 0
        for sku_code, uid in cleaned:
            deleted += (
                db.session.query(ScanRecord)
                .filter(ScanRecord.sku_code == sku_code, ScanRecord.uid == uid)
                .delete(synchronize_session=False)
            )
        return deleted

    return run_in_transaction(_op)


def delete_record(record_id: str) -> int:
    def _op() -> int:
        return (
            db.session.query(ScanRecord)
            .filter(ScanRecord.id == str(record_id))
            .delete(synchronize_session=False)
        )

    return run_in_transaction(_op)
