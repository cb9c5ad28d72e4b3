from __future__ import annotations

from sqlalchemy import ForeignKey, Index, func

from fieldservice.extensions import db
from fieldservice.utils.helpers import to_decimal, to_float

# (key, display name, column) in the order the editor offers them
RATE_KEYS = (
    ("standard", "Standard Rate", "standard_rate"),
    ("after_hours", "After-Hours Rate", "after_hours_rate"),
    ("emergency", "Emergency Rate", "emergency_rate"),
)


class LaborRateProfile(db.Model):
    __tablename__ = "labor_rate_profiles"

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False)
    name = db.Column(db.String(120), nullable=False, default="Default")

    standard_rate    = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    after_hours_rate = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    emergency_rate   = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("ix_labor_rate_profiles_org_active", org_id, is_active),
    )

    def rate_options(self) -> list[dict]:
        """Return the selectable rates as [{key, name, rate}] with Decimal rates."""
        return [
            {"key": key, "name": name, "rate": to_decimal(getattr(self, col))}
            for key, name, col in RATE_KEYS
        ]

    def to_dict(self) -> dict:
        return dict(
            id=self.id,
            name=self.name,
            standard_rate=to_float(self.standard_rate),
            after_hours_rate=to_float(self.after_hours_rate),
            emergency_rate=to_float(self.emergency_rate),
            is_active=self.is_active,
            rates=[
                {"key": o["key"], "name": o["name"], "rate": float(o["rate"])}
                for o in self.rate_options()
            ],
        )
