from __future__ import annotations

from ..extensions import db
from uidops.time_utils import to_utc_z


class Bin(db.Model):
    """Mobile bin weights, loaded from the yard system; only read by analytics."""
    __tablename__ = "bins"

    mobile_bin = db.Column(db.String(128), primary_key=True)
    weight_kg = db.Column(db.Float, nullable=True)
    updated_at = db.Column(db.DateTime, nullable=True)

    def to_dict(self) -> dict:
        return {
            "mobile_bin": self.mobile_bin,
            "weight_kg": self.weight_kg,
            "updated_at": to_utc_z(self.updated_at),
        }
