from __future__ import annotations

from ..extensions import db
from uidops.time_utils import to_utc_z


class WeeklyPlan(db.Model):
    """
    Plan line items for one Monday-anchored week.

    The whole list lives in one JSON payload; a write replaces it wholesale,
    so there is at most one row per week_start and no line-level merge.
    """
    __tablename__ = "plans"

    week_start = db.Column(db.String(10), primary_key=True)
    data = db.Column(db.JSON, nullable=False, default=list)
    updated_at = db.Column(db.DateTime, nullable=False)

    def __repr__(self) -> str:
        return f"<WeeklyPlan week_start={self.week_start} rows={len(self.data or [])}>"

    def to_dict(self) -> dict:
        return {
            "week_start": self.week_start,
            "updated_at": to_utc_z(self.updated_at),
        }
