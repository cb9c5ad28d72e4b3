from __future__ import annotations

from sqlalchemy import CheckConstraint, Index, ForeignKey, func

from fieldservice.extensions import db
from fieldservice.utils.helpers import to_float, iso

# Lifecycle: draft -> sent -> (viewed) -> accepted | rejected; accepted -> converted
STATUS_DRAFT = "draft"
STATUS_SENT = "sent"
STATUS_VIEWED = "viewed"
STATUS_ACCEPTED = "accepted"
STATUS_REJECTED = "rejected"
STATUS_CONVERTED = "converted"
STATUS_CHOICES = (
    STATUS_DRAFT,
    STATUS_SENT,
    STATUS_VIEWED,
    STATUS_ACCEPTED,
    STATUS_REJECTED,
    STATUS_CONVERTED,
)


class Estimate(db.Model):
    __tablename__ = "estimates"

    id = db.Column(db.Integer, primary_key=True)

    # Relations
    org_id      = db.Column(db.Integer, ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, ForeignKey("customers.id"), nullable=True, index=True)
    created_by  = db.Column(db.Integer, ForeignKey("users.id"), nullable=True)

    # Basics
    estimate_number  = db.Column(db.String(32), nullable=True, unique=True)
    job_title        = db.Column(db.String(255), nullable=False)
    job_description  = db.Column(db.Text, nullable=True)
    site_location    = db.Column(db.String(255), nullable=True)
    status           = db.Column(db.String(32), nullable=False, default=STATUS_DRAFT, server_default=STATUS_DRAFT)
    notes            = db.Column(db.Text, nullable=True)
    terms_conditions = db.Column(db.Text, nullable=True)
    estimate_date    = db.Column(db.Date, nullable=True)
    expiration_date  = db.Column(db.Date, nullable=True)

    # Money (re-derivable from line items via services.pricing.compute_totals)
    subtotal        = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax_rate        = db.Column(db.Numeric(6, 3), nullable=False, default=0)
    tax_amount      = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_amount    = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    # Status stamps
    sent_date       = db.Column(db.DateTime(timezone=True), nullable=True)
    viewed_date     = db.Column(db.DateTime(timezone=True), nullable=True)
    accepted_date   = db.Column(db.DateTime(timezone=True), nullable=True)
    rejected_date   = db.Column(db.DateTime(timezone=True), nullable=True)
    conversion_date = db.Column(db.DateTime(timezone=True), nullable=True)

    # Conversion back-references
    converted_to_ticket_id  = db.Column(db.Integer, ForeignKey("tickets.id"), nullable=True)
    converted_to_project_id = db.Column(db.Integer, ForeignKey("projects.id"), nullable=True)

    # Optimistic concurrency: every UPDATE checks and bumps this
    version_id = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())

    customer = db.relationship("Customer", lazy="joined")
    line_items = db.relationship(
        "EstimateLineItem",
        back_populates="estimate",
        order_by="EstimateLineItem.line_order",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __mapper_args__ = {"version_id_col": version_id}

    __table_args__ = (
        Index("ix_estimates_org_status", org_id, status),
        Index("ix_estimates_updated_at", updated_at),
        CheckConstraint(
            "status IN ('draft','sent','viewed','accepted','rejected','converted')",
            name="ck_estimates_status_valid",
        ),
    )

    @property
    def is_converted(self) -> bool:
        return bool(self.converted_to_ticket_id or self.converted_to_project_id)

    def __repr__(self) -> str:
        return f"<Estimate id={self.id} number={self.estimate_number!r} status={self.status!r}>"

    def to_dict(self, with_items: bool = False) -> dict:
        data = dict(
            id=self.id,
            estimate_number=self.estimate_number,
            customer_id=self.customer_id,
            customer_name=self.customer.name if self.customer else None,
            job_title=self.job_title,
            job_description=self.job_description,
            site_location=self.site_location,
            status=self.status,
            subtotal=to_float(self.subtotal),
            discount_amount=to_float(self.discount_amount),
            tax_rate=to_float(self.tax_rate),
            tax_amount=to_float(self.tax_amount),
            total_amount=to_float(self.total_amount),
            estimate_date=iso(self.estimate_date),
            expiration_date=iso(self.expiration_date),
            notes=self.notes,
            terms_conditions=self.terms_conditions,
            sent_date=iso(self.sent_date),
            viewed_date=iso(self.viewed_date),
            accepted_date=iso(self.accepted_date),
            rejected_date=iso(self.rejected_date),
            conversion_date=iso(self.conversion_date),
            converted_to_ticket_id=self.converted_to_ticket_id,
            converted_to_project_id=self.converted_to_project_id,
            version=self.version_id,
            created_at=iso(self.created_at),
            updated_at=iso(self.updated_at),
        )
        if with_items:
            data["line_items"] = [li.to_dict() for li in self.line_items]
        return data
