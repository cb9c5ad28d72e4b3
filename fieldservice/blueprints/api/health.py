from sqlalchemy import text

from fieldservice.extensions import db, limiter
from . import bp


@bp.get("/healthz")
@limiter.exempt
def healthz():
    db.session.execute(text("SELECT 1"))
    return {"status": "ok"}, 200
