from sqlalchemy import ForeignKey, func

from fieldservice.extensions import db


class Ticket(db.Model):
    __tablename__ = "tickets"

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, ForeignKey("customers.id"), nullable=True, index=True)

    ticket_number = db.Column(db.String(32), nullable=True, unique=True)
    title         = db.Column(db.String(255), nullable=False)
    description   = db.Column(db.Text, nullable=True)
    ticket_type   = db.Column(db.String(10), nullable=False, default="SVC")
    status        = db.Column(db.String(32), nullable=False, default="open")
    priority      = db.Column(db.String(16), nullable=False, default="normal")

    created_by  = db.Column(db.Integer, ForeignKey("users.id"), nullable=True)
    assigned_to = db.Column(db.Integer, ForeignKey("users.id"), nullable=True)

    # Plain id (no FK) so estimates -> tickets stays acyclic
    source_estimate_id = db.Column(db.Integer, nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def to_dict(self) -> dict:
        return dict(
            id=self.id,
            ticket_number=self.ticket_number,
            customer_id=self.customer_id,
            title=self.title,
            description=self.description,
            ticket_type=self.ticket_type,
            status=self.status,
            priority=self.priority,
            assigned_to=self.assigned_to,
            source_estimate_id=self.source_estimate_id,
        )
