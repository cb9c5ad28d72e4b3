from __future__ import annotations

import uuid

from sqlalchemy import CheckConstraint, ForeignKey, Index

from fieldservice.extensions import db
from fieldservice.utils.helpers import to_float

ITEM_LABOR = "labor"
ITEM_PARTS = "parts"
ITEM_EQUIPMENT = "equipment"
ITEM_DISCOUNT = "discount"
ITEM_OTHER = "other"
ITEM_TYPES = (ITEM_LABOR, ITEM_PARTS, ITEM_EQUIPMENT, ITEM_DISCOUNT, ITEM_OTHER)


def _new_id() -> str:
    return str(uuid.uuid4())


class EstimateLineItem(db.Model):
    __tablename__ = "estimate_line_items"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    estimate_id = db.Column(db.Integer, ForeignKey("estimates.id", ondelete="CASCADE"), nullable=False)

    line_order  = db.Column(db.Integer, nullable=False, default=0)
    item_type   = db.Column(db.String(20), nullable=False, default=ITEM_LABOR)
    description = db.Column(db.String(500), nullable=False)
    quantity    = db.Column(db.Numeric(12, 2), nullable=False, default=1)
    unit_price  = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    line_total  = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    part_id      = db.Column(db.Integer, ForeignKey("parts.id"), nullable=True)
    equipment_id = db.Column(db.Integer, ForeignKey("equipment.id"), nullable=True)

    # Only populated for labor lines
    labor_hours = db.Column(db.Numeric(8, 2), nullable=True)
    labor_rate  = db.Column(db.Numeric(12, 2), nullable=True)

    estimate = db.relationship("Estimate", back_populates="line_items")

    __table_args__ = (
        Index("ix_estimate_line_items_estimate_order", estimate_id, line_order),
        CheckConstraint(
            "item_type IN ('labor','parts','equipment','discount','other')",
            name="ck_estimate_line_items_type_valid",
        ),
    )

    def to_dict(self) -> dict:
        return dict(
            id=self.id,
            line_order=self.line_order,
            item_type=self.item_type,
            description=self.description,
            quantity=to_float(self.quantity),
            unit_price=to_float(self.unit_price),
            line_total=to_float(self.line_total),
            part_id=self.part_id,
            equipment_id=self.equipment_id,
            labor_hours=to_float(self.labor_hours),
            labor_rate=to_float(self.labor_rate),
        )
