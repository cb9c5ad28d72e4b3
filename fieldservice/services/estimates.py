"""
Estimate workflow: create, save (header + line-item replace), status changes
and conversion into a ticket or project.

Every multi-step write runs in one transaction. ``Estimate.version_id`` is the
mapper's version counter, so a write based on a stale read fails with
``ErrorCode.CONFLICT`` instead of overwriting someone else's change.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from flask import current_app
from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError

from fieldservice.errors import ErrorCode, ServiceError, classify_db_error
from fieldservice.extensions import db
from fieldservice.models.customer import Customer
from fieldservice.models.equipment import Equipment
from fieldservice.models.estimate import STATUS_CHOICES, STATUS_CONVERTED, STATUS_DRAFT, Estimate
from fieldservice.models.estimate_line_item import ITEM_LABOR, EstimateLineItem
from fieldservice.models.labor_rate_profile import LaborRateProfile
from fieldservice.models.part import Part
from fieldservice.models.project import Project
from fieldservice.models.ticket import Ticket
from fieldservice.services.line_items import LineItemDraft, LineItemEditor
from fieldservice.services.pricing import Totals, compute_totals, normalize_tax_rate
from fieldservice.services.transitions import (
    ACTION_CONVERT_PROJECT,
    ACTION_CONVERT_TICKET,
    CONVERSIONS,
    TransitionResult,
    validate_transition,
)
from fieldservice.utils.helpers import parse_date, round_currency, utcnow
from fieldservice.utils.validators import clean_str, clean_text, parse_int_id

WARN_NO_LINE_ITEMS = "no_line_items"


@dataclass
class SaveResult:
    estimate: Estimate
    totals: Totals
    inserted: int
    dropped_blank: int
    warnings: list = field(default_factory=list)


@dataclass
class ConversionResult:
    estimate: Estimate
    ticket: Optional[Ticket] = None
    project: Optional[Project] = None


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------
def _commit():
    """Commit or roll back and re-raise as a classified ServiceError."""
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        err = classify_db_error(e)
        current_app.logger.warning("estimate write failed (%s): %s", err.code.value, e)
        raise err from e


def _number(prefix: str, row_id: int) -> str:
    return f"{prefix}-{row_id:05d}"


def _check_customer(ctx, customer_id):
    if customer_id is None:
        return None
    exists = db.session.query(Customer.id).filter_by(id=customer_id, org_id=ctx.org_id).one_or_none()
    if exists is None:
        raise ServiceError(ErrorCode.INVALID_REFERENCE, fields={"customer_id": "unknown customer"})
    return customer_id


def _check_version(estimate: Estimate, expected_version) -> None:
    if expected_version is None:
        return
    if parse_int_id(expected_version) != estimate.version_id:
        raise ServiceError(ErrorCode.CONFLICT)


# ---------------------------------------------------------------------------
# reads
# ---------------------------------------------------------------------------
def get_estimate(ctx, estimate_id: int) -> Estimate:
    est = db.session.query(Estimate).filter_by(id=estimate_id, org_id=ctx.org_id).one_or_none()
    if est is None:
        raise ServiceError(ErrorCode.NOT_FOUND, f"Estimate {estimate_id} not found.")
    return est


def list_estimates(ctx, q: str = "", status: str = "", customer_id=None, limit: int = 500):
    query = db.session.query(Estimate).filter(Estimate.org_id == ctx.org_id)

    if q:
        like = f"%{q.lower()}%"
        query = query.filter(or_(
            func.lower(Estimate.job_title).like(like),
            func.lower(Estimate.estimate_number).like(like),
            func.lower(Estimate.site_location).like(like),
        ))
    if status in STATUS_CHOICES:
        query = query.filter(Estimate.status == status)
    cid = parse_int_id(customer_id)
    if cid:
        query = query.filter(Estimate.customer_id == cid)

    return query.order_by(Estimate.updated_at.desc(), Estimate.id.desc()).limit(limit).all()


def load_catalogs(ctx) -> dict:
    """Lookup data the line-item pickers need, scoped to the caller's org."""
    profile = (
        db.session.query(LaborRateProfile)
        .filter_by(org_id=ctx.org_id, is_active=True)
        .order_by(LaborRateProfile.id.desc())
        .first()
    )
    parts = db.session.query(Part).filter_by(org_id=ctx.org_id, is_active=True).order_by(Part.name).all()
    equipment = (
        db.session.query(Equipment)
        .filter_by(org_id=ctx.org_id, is_active=True)
        .order_by(Equipment.manufacturer, Equipment.model_number)
        .all()
    )
    return dict(
        labor_rates=profile.rate_options() if profile else [],
        parts={p.id: {"name": p.name, "cost": p.cost} for p in parts},
        equipment={e.id: {"display_name": e.display_name} for e in equipment},
    )


def load_editor(ctx, estimate: Estimate) -> LineItemEditor:
    return LineItemEditor(
        items=[LineItemDraft.from_row(li) for li in estimate.line_items],
        **load_catalogs(ctx),
    )


# ---------------------------------------------------------------------------
# create / save
# ---------------------------------------------------------------------------
_HEADER_TEXT = {
    "job_title": 255,
    "site_location": 255,
}
_HEADER_LONG_TEXT = ("job_description", "notes", "terms_conditions")
_HEADER_DATES = ("estimate_date", "expiration_date")


def _apply_header(ctx, est: Estimate, data: dict) -> None:
    errors = {}

    if "job_title" in data or est.job_title is None:
        title = clean_str(data.get("job_title"), max_len=_HEADER_TEXT["job_title"])
        if not title:
            errors["job_title"] = "Job title is required"
        else:
            est.job_title = title

    if "site_location" in data:
        est.site_location = clean_str(data.get("site_location"), max_len=_HEADER_TEXT["site_location"])

    for key in _HEADER_LONG_TEXT:
        if key in data:
            setattr(est, key, clean_text(data.get(key)))

    for key in _HEADER_DATES:
        if key in data:
            try:
                setattr(est, key, parse_date(data.get(key)))
            except ValueError:
                errors[key] = "Use YYYY-MM-DD"

    if "tax_rate" in data:
        try:
            est.tax_rate = normalize_tax_rate(data.get("tax_rate"))
        except ServiceError:
            errors["tax_rate"] = "must be >= 0"

    if "customer_id" in data:
        est.customer_id = _check_customer(ctx, parse_int_id(data.get("customer_id")))

    if errors:
        raise ServiceError(ErrorCode.VALIDATION, fields=errors)


def create_estimate(ctx, data: dict) -> Estimate:
    data = dict(data or {})
    data.setdefault("tax_rate", current_app.config.get("DEFAULT_TAX_RATE", 0))

    est = Estimate(org_id=ctx.org_id, created_by=ctx.user_id, status=STATUS_DRAFT)
    _apply_header(ctx, est, data)
    if est.estimate_date is None:
        est.estimate_date = utcnow().date()

    db.session.add(est)
    try:
        db.session.flush()
        est.estimate_number = _number(current_app.config.get("ESTIMATE_NUMBER_PREFIX", "EST"), est.id)
    except SQLAlchemyError as e:
        db.session.rollback()
        raise classify_db_error(e) from e
    _commit()

    current_app.logger.info("estimate %s created by user %s", est.estimate_number, ctx.user_id)
    return est


def _to_row(estimate_id: int, draft: LineItemDraft, order: int) -> EstimateLineItem:
    is_labor = draft.item_type == ITEM_LABOR
    return EstimateLineItem(
        estimate_id=estimate_id,
        line_order=order,
        item_type=draft.item_type,
        description=draft.description.strip(),
        quantity=round_currency(draft.quantity),
        unit_price=round_currency(draft.unit_price),
        line_total=round_currency(draft.line_total),
        part_id=draft.part_id,
        equipment_id=draft.equipment_id,
        labor_hours=round_currency(draft.quantity) if is_labor else None,
        labor_rate=round_currency(draft.unit_price) if is_labor else None,
    )


def save_estimate(ctx, estimate_id: int, header: dict, items, expected_version=None) -> SaveResult:
    """
    Persist header + totals and replace every line item, atomically.

    ``items`` is either an editor or raw request rows. Items with a blank
    description are dropped; the rest are re-numbered from 0. Saving with no
    surviving items succeeds but reports ``WARN_NO_LINE_ITEMS``.

    ``items=None`` is a header-only save: stored line items are kept and the
    totals are re-derived from them (the tax rate may have changed).
    """
    est = get_estimate(ctx, estimate_id)
    _check_version(est, expected_version)
    if est.status == STATUS_CONVERTED or est.is_converted:
        raise ServiceError(ErrorCode.ESTIMATE_LOCKED)

    replace = items is not None
    if isinstance(items, LineItemEditor) or not replace:
        editor = items
    else:
        editor = LineItemEditor.from_payload(items, **load_catalogs(ctx))

    try:
        _apply_header(ctx, est, header or {})

        if replace:
            kept = [d for d in editor.items if d.description and d.description.strip()]
            dropped = len(editor.items) - len(kept)
        else:
            kept, dropped = list(est.line_items), 0
        totals = compute_totals(kept, est.tax_rate)

        est.subtotal = totals.subtotal
        est.discount_amount = totals.discount
        est.tax_amount = totals.tax_amount
        est.total_amount = totals.total
        est.updated_at = utcnow()

        if replace:
            # all-or-nothing replace
            est.line_items.clear()
            db.session.flush()
            est.line_items.extend(_to_row(est.id, d, i) for i, d in enumerate(kept))
    except ServiceError:
        db.session.rollback()
        raise
    except SQLAlchemyError as e:
        db.session.rollback()
        raise classify_db_error(e) from e
    _commit()

    warnings = []
    if not kept:
        warnings.append(WARN_NO_LINE_ITEMS)
        current_app.logger.warning(
            "estimate %s saved with no line items (%d blank dropped)", est.estimate_number, dropped
        )
    else:
        current_app.logger.info(
            "estimate %s saved: %d line items, total %s", est.estimate_number, len(kept), totals.total
        )

    return SaveResult(estimate=est, totals=totals, inserted=len(kept) if replace else 0, dropped_blank=dropped, warnings=warnings)


def recalculate_totals(est: Estimate) -> bool:
    """Re-derive stored totals from stored line items. Returns True if anything changed."""
    totals = compute_totals(est.line_items, est.tax_rate)
    before = (est.subtotal, est.discount_amount, est.tax_amount, est.total_amount)
    after = (totals.subtotal, totals.discount, totals.tax_amount, totals.total)
    if tuple(round_currency(v) for v in before) == after:
        return False
    est.subtotal, est.discount_amount, est.tax_amount, est.total_amount = after
    return True


# ---------------------------------------------------------------------------
# status machine
# ---------------------------------------------------------------------------
def _require(est: Estimate, action: str) -> TransitionResult:
    result = validate_transition(est, action)
    if not result:
        current_app.logger.info(
            "estimate %s: %s refused (%s)", est.estimate_number, action, result.error.value
        )
        raise ServiceError(result.error, result.message)
    return result


def _stamp(est: Estimate, result: TransitionResult) -> None:
    est.status = result.target
    setattr(est, result.stamp_field, utcnow())
    est.updated_at = utcnow()


def transition(ctx, estimate_id: int, action: str, expected_version=None) -> Estimate:
    """send / view / accept / reject. Conversions go through convert_to_*."""
    if action in CONVERSIONS:
        raise ServiceError(ErrorCode.VALIDATION, "Use the conversion endpoints to convert an estimate.")
    est = get_estimate(ctx, estimate_id)
    _check_version(est, expected_version)
    result = _require(est, action)
    _stamp(est, result)
    _commit()
    current_app.logger.info("estimate %s -> %s", est.estimate_number, est.status)
    return est


def convert_to_ticket(ctx, estimate_id: int, expected_version=None) -> ConversionResult:
    est = get_estimate(ctx, estimate_id)
    _check_version(est, expected_version)
    result = _require(est, ACTION_CONVERT_TICKET)

    ticket = Ticket(
        org_id=est.org_id,
        customer_id=est.customer_id,
        title=est.job_title,
        description=est.job_description or "Converted from estimate",
        ticket_type="SVC",
        status="open",
        priority="normal",
        created_by=ctx.user_id,
        assigned_to=ctx.user_id,
        source_estimate_id=est.id,
    )
    try:
        db.session.add(ticket)
        db.session.flush()
        ticket.ticket_number = _number(current_app.config.get("TICKET_NUMBER_PREFIX", "SVC"), ticket.id)
        est.converted_to_ticket_id = ticket.id
        _stamp(est, result)
    except SQLAlchemyError as e:
        db.session.rollback()
        raise classify_db_error(e) from e
    _commit()

    current_app.logger.info("estimate %s converted to ticket %s", est.estimate_number, ticket.ticket_number)
    return ConversionResult(estimate=est, ticket=ticket)


def convert_to_project(ctx, estimate_id: int, expected_version=None) -> ConversionResult:
    est = get_estimate(ctx, estimate_id)
    _check_version(est, expected_version)
    result = _require(est, ACTION_CONVERT_PROJECT)

    project = Project(
        org_id=est.org_id,
        customer_id=est.customer_id,
        name=est.job_title,
        description=est.job_description or "",
        status="planning",
        budget_amount=est.total_amount or 0,
        project_manager_id=ctx.user_id,
        source_estimate_id=est.id,
    )
    try:
        db.session.add(project)
        db.session.flush()
        est.converted_to_project_id = project.id
        _stamp(est, result)
    except SQLAlchemyError as e:
        db.session.rollback()
        raise classify_db_error(e) from e
    _commit()

    current_app.logger.info("estimate %s converted to project %s", est.estimate_number, project.id)
    return ConversionResult(estimate=est, project=project)
