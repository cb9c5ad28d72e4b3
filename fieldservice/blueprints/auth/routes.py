from flask import jsonify, request
from flask_login import current_user
from flask_wtf.csrf import generate_csrf
from sqlalchemy import func

from fieldservice.errors import ErrorCode, ServiceError
from fieldservice.extensions import db, limiter
from fieldservice.models.user import User
from fieldservice.services.session_context import close_session, current_context, open_session
from . import bp


def _login_email_scope():
    data_json = request.get_json(silent=True) or {}
    email = (data_json.get("email") or "").strip().lower()
    # Keep a stable scope even if email is blank
    return f"login-email:{email or 'missing'}"


@bp.get("/csrf")
def csrf_token():
    return jsonify(csrf_token=generate_csrf())


@bp.post("/login")
@limiter.limit("10 per minute; 100 per hour")
@limiter.limit("5 per minute; 20 per hour", key_func=_login_email_scope)  # per-account
def login_post():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip()
    password = data.get("password") or ""

    if not email or not password:
        raise ServiceError(ErrorCode.VALIDATION, "Email and password are required.")

    user = db.session.execute(
        db.select(User).where(func.lower(User.email) == func.lower(email))
    ).scalar_one_or_none()

    if not user or not user.check_password(password) or not user.is_active:
        raise ServiceError(ErrorCode.UNAUTHORIZED, "Invalid credentials.")

    ctx = open_session(user)
    return jsonify(ok=True, session=ctx.to_dict())


@bp.post("/logout")
def logout_post():
    close_session()
    return jsonify(ok=True)


@bp.get("/me")
def me():
    if not getattr(current_user, "is_authenticated", False):
        raise ServiceError(ErrorCode.UNAUTHORIZED)
    ctx = current_context()
    if ctx is None:
        raise ServiceError(ErrorCode.UNAUTHORIZED)
    return jsonify(ok=True, session=ctx.to_dict())
