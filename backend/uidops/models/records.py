from __future__ import annotations

from ..extensions import db
from uidops.time_utils import to_utc_z


RECORD_STATUS_DRAFT = "draft"
RECORD_STATUS_COMPLETE = "complete"
RECORD_STATUSES = (RECORD_STATUS_DRAFT, RECORD_STATUS_COMPLETE)

SYNC_STATE_PENDING = "pending"
SYNC_STATE_SYNCED = "synced"
SYNC_STATE_UNKNOWN = "unknown"


class ScanRecord(db.Model):
    """
    One physical unit scanned at intake.

    LIFECYCLE:
    1. draft: shell created on the first field edit, filled in field by field
    2. complete: every completeness field is present; completed_at is stamped once

    DESIGN:
    - id is an opaque client or server generated string, never reused
    - (po_number, sku_code, uid) is the dedup boundary; blanks are stored as NULL
      so any number of half-filled drafts can coexist
    - status never moves back from complete to draft
    """
    __tablename__ = "records"
    __table_args__ = (
        db.UniqueConstraint("po_number", "sku_code", "uid", name="uq_records_natural_key"),
        db.Index("ix_records_sku_uid", "sku_code", "uid"),
    )

    id = db.Column(db.String(64), primary_key=True)
    date_local = db.Column(db.String(10), nullable=True, index=True)
    mobile_bin = db.Column(db.String(128), nullable=True)
    sscc_label = db.Column(db.String(128), nullable=True)
    po_number = db.Column(db.String(128), nullable=True, index=True)
    sku_code = db.Column(db.String(128), nullable=True, index=True)
    uid = db.Column(db.String(255), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=RECORD_STATUS_DRAFT, index=True)
    completed_at = db.Column(db.DateTime, nullable=True, index=True)
    sync_state = db.Column(db.String(16), nullable=False, default=SYNC_STATE_UNKNOWN)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<ScanRecord id={self.id!r} status={self.status} key=({self.po_number}, {self.sku_code}, {self.uid})>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date_local": self.date_local,
            "mobile_bin": self.mobile_bin,
            "sscc_label": self.sscc_label,
            "po_number": self.po_number,
            "sku_code": self.sku_code,
            "uid": self.uid,
            "status": self.status,
            "completed_at": to_utc_z(self.completed_at),
            "sync_state": self.sync_state,
        }
