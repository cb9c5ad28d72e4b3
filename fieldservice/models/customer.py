from __future__ import annotations

from sqlalchemy import Index, func

from fieldservice.extensions import db


class Customer(db.Model):
    __tablename__ = "customers"

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("orgs.id", ondelete="CASCADE"), index=True, nullable=False)

    name    = db.Column(db.String(255), nullable=False)
    email   = db.Column(db.String(255), nullable=True)
    phone   = db.Column(db.String(32), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    notes   = db.Column(db.Text, nullable=True)

    # Lifecycle
    is_active  = db.Column(db.Boolean, nullable=False, server_default=db.true())
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("ix_customers_lower_name", func.lower(name)),
    )

    def __repr__(self) -> str:
        return f"<Customer id={self.id} name={self.name!r} active={self.is_active}>"

    def to_dict(self) -> dict:
        return dict(
            id=self.id,
            name=self.name,
            email=self.email,
            phone=self.phone,
            address=self.address,
        )
