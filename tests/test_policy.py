
import pytest

from fieldservice.errors import ErrorCode, ServiceError
from fieldservice.services import policy
from fieldservice.services.session_context import SessionContext


class DummyUser:
    def __init__(self, uid, auth=True): self.id, self.is_authenticated, self.org_id = uid, auth, 1


def _ctx(role):
    return SessionContext(user_id=7, org_id=1, role=role)


def test_require_member_unauth(monkeypatch):
    @policy.require_member
    def v(): return "ok", 200
    monkeypatch.setattr(policy, "current_user", DummyUser(None, auth=False))
    with pytest.raises(ServiceError) as ei:
        v()
    assert ei.value.code == ErrorCode.UNAUTHORIZED and ei.value.status == 401


def test_require_member_not_found(monkeypatch):
    @policy.require_member
    def v(): return "ok", 200
    monkeypatch.setattr(policy, "current_user", DummyUser(7))
    monkeypatch.setattr(policy, "current_context", lambda: None)
    with pytest.raises(ServiceError) as ei:
        v()
    assert ei.value.code == ErrorCode.NOT_FOUND and ei.value.status == 404


def test_require_member_ok(monkeypatch):
    @policy.require_member
    def v(): return "ok", 200
    monkeypatch.setattr(policy, "current_user", DummyUser(7))
    monkeypatch.setattr(policy, "current_context", lambda: _ctx("member"))
    assert v() == ("ok", 200)


def test_role_required_forbidden(monkeypatch):
    @policy.role_required("admin", "owner")
    def v(): return "ok", 200
    monkeypatch.setattr(policy, "current_user", DummyUser(7))
    monkeypatch.setattr(policy, "current_context", lambda: _ctx("member"))
    with pytest.raises(ServiceError) as ei:
        v()
    assert ei.value.code == ErrorCode.PERMISSION_DENIED and ei.value.status == 403


def test_role_required_ok(monkeypatch):
    @policy.role_required("admin", "owner")
    def v(): return "ok", 200
    monkeypatch.setattr(policy, "current_user", DummyUser(7))
    monkeypatch.setattr(policy, "current_context", lambda: _ctx("admin"))
    assert v() == ("ok", 200)


def test_session_context_can_write():
    assert _ctx("owner").can_write and _ctx("admin").can_write
    assert not _ctx("member").can_write
    assert _ctx("member").to_dict()["can_write"] is False
