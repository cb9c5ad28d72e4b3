"""
Explicit per-request identity.

``SessionContext`` is built once per request (``current_context``) from the
Flask-Login user and the org stashed in the session at login, and passed by
reference into services. ``open_session`` / ``close_session`` are the only
places that write or clear that state.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from flask import current_app, g, session
from flask_login import current_user, login_user, logout_user

from fieldservice.extensions import db
from fieldservice.models.org import Org
from fieldservice.models.org_membership import OrgMembership, ROLE_MEMBER, ROLE_OWNER, WRITE_ROLES

_SESSION_ORG_KEY = "current_org_id"


@dataclass(frozen=True)
class SessionContext:
    user_id: int
    org_id: int
    role: str
    email: Optional[str] = None
    full_name: Optional[str] = None

    @property
    def can_write(self) -> bool:
        return self.role in WRITE_ROLES

    def to_dict(self) -> dict:
        return dict(
            user_id=self.user_id,
            org_id=self.org_id,
            role=self.role,
            email=self.email,
            full_name=self.full_name,
            can_write=self.can_write,
        )


def _ensure_membership(user) -> OrgMembership:
    # Guarantee the user has an org (tenant) before we start a session
    if not user.org_id:
        org = Org(name=(user.email or f"Org {user.id}"))
        db.session.add(org)
        db.session.flush()
        user.org_id = org.id

    membership = OrgMembership.for_user(user.org_id, user.id)
    if membership is None:
        # first person into an org owns it
        role = ROLE_MEMBER if OrgMembership.owner_count(user.org_id) else ROLE_OWNER
        membership = OrgMembership(org_id=user.org_id, user_id=user.id, role=role)
        db.session.add(membership)
    db.session.commit()
    return membership


def open_session(user) -> SessionContext:
    """Login: ensure tenancy, stash the org, start the Flask-Login session."""
    membership = _ensure_membership(user)
    session[_SESSION_ORG_KEY] = membership.org_id
    login_user(user)
    ctx = SessionContext(
        user_id=user.id,
        org_id=membership.org_id,
        role=membership.role,
        email=user.email,
        full_name=user.full_name,
    )
    g.session_ctx = ctx
    current_app.logger.info("session opened for %s (org %s, %s)", user.display_name, ctx.org_id, ctx.role)
    return ctx


def close_session() -> None:
    """Sign-out: drop every piece of identity state."""
    if getattr(current_user, "is_authenticated", False):
        logout_user()
    session.pop(_SESSION_ORG_KEY, None)
    g.pop("session_ctx", None)


def current_context() -> Optional[SessionContext]:
    """Resolve (and memoize on ``g``) the caller's context; None if anonymous or not a member."""
    if "session_ctx" in g:
        return g.session_ctx

    ctx = None
    if getattr(current_user, "is_authenticated", False):
        org_id = session.get(_SESSION_ORG_KEY) or getattr(current_user, "org_id", None)
        if org_id:
            m = OrgMembership.for_user(org_id, current_user.id)
            if m is not None:
                ctx = SessionContext(
                    user_id=current_user.id,
                    org_id=org_id,
                    role=m.role,
                    email=getattr(current_user, "email", None),
                    full_name=getattr(current_user, "full_name", None),
                )
    g.session_ctx = ctx
    return ctx
