from sqlalchemy import ForeignKey, Index, func

from fieldservice.extensions import db
from fieldservice.utils.helpers import to_float


class Part(db.Model):
    __tablename__ = "parts"

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False, index=True)

    name        = db.Column(db.String(255), nullable=False)
    part_number = db.Column(db.String(64), nullable=True)
    cost        = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    is_active   = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("ix_parts_lower_name", func.lower(name)),
    )

    def to_dict(self) -> dict:
        return dict(
            id=self.id,
            name=self.name,
            part_number=self.part_number,
            cost=to_float(self.cost),
            is_active=self.is_active,
        )
