from sqlalchemy import CheckConstraint, UniqueConstraint, func

from fieldservice.extensions import db

ROLE_OWNER = "owner"
ROLE_ADMIN = "admin"
ROLE_MEMBER = "member"
ROLE_CHOICES = (ROLE_OWNER, ROLE_ADMIN, ROLE_MEMBER)

# Roles allowed to edit catalogs and labor rates
WRITE_ROLES = (ROLE_OWNER, ROLE_ADMIN)


class OrgMembership(db.Model):
    """A user's role inside one org. Roles are plain text guarded by a CHECK."""

    __tablename__ = "org_memberships"

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = db.Column(db.String(20), nullable=False, default=ROLE_MEMBER, server_default=ROLE_MEMBER)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("org_id", "user_id", name="uq_org_memberships_org_user"),
        CheckConstraint("role IN ('owner','admin','member')", name="ck_org_memberships_role_valid"),
    )

    @classmethod
    def for_user(cls, org_id, user_id):
        return db.session.query(cls).filter_by(org_id=org_id, user_id=user_id).one_or_none()

    @classmethod
    def owner_count(cls, org_id) -> int:
        return db.session.query(cls).filter_by(org_id=org_id, role=ROLE_OWNER).count()

    @property
    def can_write(self) -> bool:
        return self.role in WRITE_ROLES

    def __repr__(self) -> str:
        return f"<OrgMembership org={self.org_id} user={self.user_id} role={self.role!r}>"
