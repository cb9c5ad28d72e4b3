from sqlalchemy import ForeignKey, func

from fieldservice.extensions import db


class Equipment(db.Model):
    __tablename__ = "equipment"

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, ForeignKey("customers.id"), nullable=True, index=True)

    manufacturer  = db.Column(db.String(120), nullable=False)
    model_number  = db.Column(db.String(120), nullable=False)
    serial_number = db.Column(db.String(120), nullable=True)
    is_active     = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    @property
    def display_name(self) -> str:
        return f"{self.manufacturer} {self.model_number}"

    def to_dict(self) -> dict:
        return dict(
            id=self.id,
            manufacturer=self.manufacturer,
            model_number=self.model_number,
            serial_number=self.serial_number,
            customer_id=self.customer_id,
            display_name=self.display_name,
        )
