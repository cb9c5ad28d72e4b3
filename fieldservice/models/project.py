from sqlalchemy import ForeignKey, func

from fieldservice.extensions import db
from fieldservice.utils.helpers import to_float


class Project(db.Model):
    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, ForeignKey("customers.id"), nullable=True, index=True)

    name          = db.Column(db.String(255), nullable=False)
    description   = db.Column(db.Text, nullable=True)
    status        = db.Column(db.String(32), nullable=False, default="planning")
    budget_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    project_manager_id = db.Column(db.Integer, ForeignKey("users.id"), nullable=True)
    source_estimate_id = db.Column(db.Integer, nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def to_dict(self) -> dict:
        return dict(
            id=self.id,
            customer_id=self.customer_id,
            name=self.name,
            description=self.description,
            status=self.status,
            budget_amount=to_float(self.budget_amount),
            project_manager_id=self.project_manager_id,
            source_estimate_id=self.source_estimate_id,
        )
