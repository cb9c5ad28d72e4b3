import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from fieldservice.errors import HTTP_STATUS, ErrorCode, ServiceError, classify_db_error
from fieldservice.extensions import db
from fieldservice.models import Estimate


class _PgError(Exception):
    def __init__(self, msg, pgcode):
        super().__init__(msg)
        self.pgcode = pgcode


def test_every_code_has_a_status():
    assert set(HTTP_STATUS) == set(ErrorCode)


def test_service_error_payload():
    err = ServiceError(ErrorCode.VALIDATION, fields={"tax_rate": "must be >= 0"})
    assert err.status == 400
    assert err.to_dict() == {
        "error": "validation_error",
        "message": "Some fields are invalid. Please review and try again.",
        "fields": {"tax_rate": "must be >= 0"},
    }
    assert "fields" not in ServiceError(ErrorCode.CONFLICT).to_dict()


@pytest.mark.parametrize(
    "pgcode,code",
    [
        ("23502", ErrorCode.MISSING_REQUIRED_FIELD),
        ("23503", ErrorCode.INVALID_REFERENCE),
        ("23505", ErrorCode.CONFLICT),
        ("42501", ErrorCode.PERMISSION_DENIED),
    ],
)
def test_classify_by_sqlstate(pgcode, code):
    exc = IntegrityError("INSERT ...", {}, _PgError("boom", pgcode))
    assert classify_db_error(exc).code == code


def test_classify_sqlite_messages():
    exc = IntegrityError("INSERT ...", {}, Exception("NOT NULL constraint failed: estimates.job_title"))
    assert classify_db_error(exc).code == ErrorCode.MISSING_REQUIRED_FIELD
    exc = IntegrityError("INSERT ...", {}, Exception("UNIQUE constraint failed: estimates.estimate_number"))
    assert classify_db_error(exc).code == ErrorCode.CONFLICT


def test_classify_fallbacks():
    assert classify_db_error(StaleDataError("stale")).code == ErrorCode.CONFLICT
    assert classify_db_error(OperationalError("SELECT", {}, Exception("db down"))).code == ErrorCode.SERVER_ERROR
    assert classify_db_error(ValueError("x")).code == ErrorCode.SERVER_ERROR


def test_real_not_null_violation_is_classified(app_ctx, seed):
    db.session.add(Estimate(org_id=seed.org_id, job_title=None))
    with pytest.raises(IntegrityError) as ei:
        db.session.flush()
    db.session.rollback()
    assert classify_db_error(ei.value).code == ErrorCode.MISSING_REQUIRED_FIELD


def test_unknown_route_is_json_404(client):
    r = client.get("/no/such/thing")
    assert r.status_code == 404
    assert r.get_json()["error"] == "not_found"
