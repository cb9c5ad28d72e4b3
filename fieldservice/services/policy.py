from functools import wraps

from flask_login import current_user

from fieldservice.errors import ErrorCode, ServiceError
from fieldservice.services.session_context import current_context


def _resolve():
    if not getattr(current_user, "is_authenticated", False):
        raise ServiceError(ErrorCode.UNAUTHORIZED)
    ctx = current_context()
    if ctx is None:
        raise ServiceError(ErrorCode.NOT_FOUND)  # anti-enumeration
    return ctx


def require_member(fn):
    @wraps(fn)
    def _wrap(*args, **kwargs):
        _resolve()
        return fn(*args, **kwargs)
    return _wrap


def role_required(*roles):
    def deco(fn):
        @wraps(fn)
        def _wrap(*args, **kwargs):
            ctx = _resolve()
            if ctx.role not in roles:
                raise ServiceError(ErrorCode.PERMISSION_DENIED)
            return fn(*args, **kwargs)
        return _wrap
    return deco
