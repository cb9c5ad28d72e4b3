import csv
import io
from datetime import datetime

from flask import current_app, jsonify, make_response, request

from fieldservice.errors import ErrorCode, ServiceError
from fieldservice.services import estimates as svc
from fieldservice.services.line_items import LineItemEditor
from fieldservice.services.policy import require_member
from fieldservice.services.session_context import current_context
from fieldservice.services.transitions import (
    ACTION_CONVERT_PROJECT,
    ACTION_CONVERT_TICKET,
    allowed_actions,
)
from fieldservice.utils.helpers import round_currency
from . import bp
from .validators import validate_save_payload


@bp.before_request
@require_member
def _require_member_estimates():
    return None


def _estimate_json(est, **extra):
    data = est.to_dict(with_items=True)
    data["allowed_actions"] = allowed_actions(est)
    data.update(extra)
    return data


@bp.get("/list.json")
def list_json():
    rows = svc.list_estimates(
        current_context(),
        q=(request.args.get("q") or "").strip(),
        status=(request.args.get("status") or "").strip().lower(),
        customer_id=request.args.get("customer_id"),
        limit=current_app.config.get("ESTIMATES_LIST_LIMIT", 500),
    )
    return jsonify(ok=True, rows=[e.to_dict() for e in rows])


@bp.post("/")
def create():
    data = request.get_json(silent=True) or {}
    est = svc.create_estimate(current_context(), data)
    return jsonify({"id": est.id, "estimate_number": est.estimate_number}), 201


@bp.get("/<int:estimate_id>.json")
def get_estimate_json(estimate_id: int):
    est = svc.get_estimate(current_context(), estimate_id)
    return jsonify(_estimate_json(est))


@bp.get("/<int:estimate_id>/editor.json")
def editor_json(estimate_id: int):
    """Current line items (never empty) plus the picker catalogs."""
    ctx = current_context()
    est = svc.get_estimate(ctx, estimate_id)
    editor = svc.load_editor(ctx, est)
    return jsonify(
        items=[i.to_dict() for i in editor.items],
        labor_rates=[{"key": r["key"], "name": r["name"], "rate": float(r["rate"])} for r in editor.labor_rates],
        parts=[{"id": pid, "name": p["name"], "cost": float(p["cost"] or 0)} for pid, p in editor.parts.items()],
        equipment=[{"id": eid, "display_name": e["display_name"]} for eid, e in editor.equipment.items()],
        totals=editor.totals(est.tax_rate).to_dict(),
    )


@bp.post("/<int:estimate_id>/totals.json")
def totals_preview(estimate_id: int):
    """Live totals for unsaved edits; nothing is written."""
    ctx = current_context()
    est = svc.get_estimate(ctx, estimate_id)
    data = request.get_json(silent=True) or {}
    editor = LineItemEditor.from_payload(data.get("line_items") or [], **svc.load_catalogs(ctx))
    tax_rate = data.get("tax_rate", est.tax_rate)
    return jsonify(
        items=[i.to_dict() for i in editor.items],
        totals=editor.totals(tax_rate).to_dict(),
    )


@bp.put("/<int:estimate_id>")
def save(estimate_id: int):
    data = request.get_json(silent=True) or {}
    errors = validate_save_payload(data)
    if errors:
        raise ServiceError(ErrorCode.VALIDATION, fields=errors)

    header = {k: v for k, v in data.items() if k not in ("line_items", "version")}
    result = svc.save_estimate(
        current_context(),
        estimate_id,
        header,
        data.get("line_items"),
        expected_version=data.get("version"),
    )
    return jsonify(
        ok=True,
        estimate=_estimate_json(result.estimate),
        totals=result.totals.to_dict(),
        inserted=result.inserted,
        dropped_blank=result.dropped_blank,
        warnings=result.warnings,
    )


@bp.post("/<int:estimate_id>/<any(send, view, accept, reject):action>")
def change_status(estimate_id: int, action: str):
    data = request.get_json(silent=True) or {}
    est = svc.transition(current_context(), estimate_id, action, expected_version=data.get("version"))
    return jsonify(ok=True, estimate=_estimate_json(est))


@bp.post("/<int:estimate_id>/convert/<any(ticket, project):target>")
def convert(estimate_id: int, target: str):
    data = request.get_json(silent=True) or {}
    ctx = current_context()
    if target == "ticket":
        result = svc.convert_to_ticket(ctx, estimate_id, expected_version=data.get("version"))
        payload = {"ticket": result.ticket.to_dict(), "action": ACTION_CONVERT_TICKET}
    else:
        result = svc.convert_to_project(ctx, estimate_id, expected_version=data.get("version"))
        payload = {"project": result.project.to_dict(), "action": ACTION_CONVERT_PROJECT}
    return jsonify(ok=True, estimate=_estimate_json(result.estimate), **payload), 201


@bp.get("/export/index.csv")
def export_estimates_index_csv():
    rows = svc.list_estimates(
        current_context(),
        q=(request.args.get("q") or "").strip(),
        status=(request.args.get("status") or "").strip().lower(),
        limit=current_app.config.get("ESTIMATES_LIST_LIMIT", 500),
    )

    buf = io.StringIO(newline="")
    w = csv.writer(buf)
    w.writerow([
        "estimate_number", "job_title", "customer", "status", "estimate_date",
        "subtotal", "discount", "tax_rate", "tax_amount", "total",
    ])

    for est in rows:
        w.writerow([
            est.estimate_number or "",
            est.job_title,
            est.customer.name if est.customer else "",
            est.status,
            est.estimate_date.isoformat() if est.estimate_date else "",
            round_currency(est.subtotal),
            round_currency(est.discount_amount),
            f"{est.tax_rate}",
            round_currency(est.tax_amount),
            round_currency(est.total_amount),
        ])

    csv_str = buf.getvalue()
    buf.close()

    stamp = datetime.now().strftime("%Y%m%d")
    filename = f"estimates_index_{stamp}.csv"

    resp = make_response(csv_str)
    resp.headers["Content-Type"] = "text/csv; charset=utf-8"
    resp.headers["Content-Disposition"] = f'attachment; filename="{filename}"'
    return resp
