# Overview: Bin weight lookup for heavy-bin risk; rows arrive from the yard system export.

from __future__ import annotations

from typing import Any, Iterable

from uidops.extensions import db
from uidops.models import Bin
from uidops.time_utils import BusinessClock
from .concurrency import run_in_transaction
from .import_schemas import SCHEMAS


def list_bins(mobile_bins: Iterable[str] | None = None) -> list[dict[str, Any]]:
    query = db.session.query(Bin)
    if mobile_bins is not None:
        wanted = sorted({str(b).strip() for b in mobile_bins if str(b or "").strip()})
        if not wanted:
            return []
        query = query.filter(Bin.mobile_bin.in_(wanted))
    return [b.to_dict() for b in query.order_by(Bin.mobile_bin.asc()).all()]


def load_bins(rows: Iterable[dict[str, Any]], *, clock: BusinessClock) -> dict[str, int]:
    """Upsert bin weights keyed by mobile_bin; rows without a bin id are skipped."""
    schema = SCHEMAS["BINS"]
    normalized = []
    skipped = 0
    for raw in rows:
        row = schema.normalize_row(raw if isinstance(raw, dict) else {})
        if schema.validate_row(row):
            skipped += 1
            continue
        normalized.append(row)

    def _op() -> dict[str, int]:
        created = updated = 0
        for row in normalized:
            existing = db.session.get(Bin, row["mobile_bin"])
            if existing is None:
                db.session.add(Bin(mobile_bin=row["mobile_bin"], weight_kg=row["weight_kg"], updated_at=clock.now()))
                created += 1
            else:
                existing.weight_kg = row["weight_kg"]
                existing.updated_at = clock.now()
                updated += 1
            db.session.flush()
        return {"created": created, "updated": updated, "skipped": skipped}

    return run_in_transaction(_op)
