from flask import current_app, jsonify, request
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from fieldservice.errors import ErrorCode, ServiceError, classify_db_error
from fieldservice.extensions import db
from fieldservice.models.customer import Customer
from fieldservice.models.equipment import Equipment
from fieldservice.models.labor_rate_profile import LaborRateProfile
from fieldservice.models.org_membership import WRITE_ROLES
from fieldservice.models.part import Part
from fieldservice.services.policy import require_member, role_required
from fieldservice.services.session_context import current_context
from fieldservice.utils.helpers import round_currency, to_decimal
from fieldservice.utils.validators import clean_str, clean_text, is_valid_email, normalize_phone, parse_int_id
from . import bp


@bp.before_request
@require_member
def _require_member_libraries():
    return None


def _commit():
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise classify_db_error(e) from e


def _money(data: dict, key: str, errors: dict):
    raw = data.get(key)
    val = to_decimal(raw, default="-1") if raw not in (None, "") else to_decimal(0)
    if val < 0:
        errors[key] = "must be a number >= 0"
    return round_currency(val)


# --- Parts ---
@bp.get("/parts.json")
def parts_json():
    q = (request.args.get("q") or "").strip()
    query = db.session.query(Part).filter(Part.org_id == current_context().org_id, Part.is_active.is_(True))
    if q:
        query = query.filter(func.lower(Part.name).like(f"%{q.lower()}%"))
    return jsonify([p.to_dict() for p in query.order_by(Part.name).all()])


@bp.post("/parts.json")
@role_required(*WRITE_ROLES)
def create_part():
    data = request.get_json(silent=True) or {}
    errors = {}
    name = clean_str(data.get("name"))
    if not name:
        errors["name"] = "Name is required"
    cost = _money(data, "cost", errors)
    if errors:
        raise ServiceError(ErrorCode.VALIDATION, fields=errors)

    part = Part(
        org_id=current_context().org_id,
        name=name,
        part_number=clean_str(data.get("part_number"), max_len=64),
        cost=cost,
    )
    db.session.add(part)
    _commit()
    return jsonify(part.to_dict()), 201


# --- Equipment ---
@bp.get("/equipment.json")
def equipment_json():
    query = db.session.query(Equipment).filter(
        Equipment.org_id == current_context().org_id, Equipment.is_active.is_(True)
    )
    cid = parse_int_id(request.args.get("customer_id"))
    if cid:
        query = query.filter(Equipment.customer_id == cid)
    rows = query.order_by(Equipment.manufacturer, Equipment.model_number).all()
    return jsonify([e.to_dict() for e in rows])


@bp.post("/equipment.json")
@role_required(*WRITE_ROLES)
def create_equipment():
    data = request.get_json(silent=True) or {}
    ctx = current_context()
    errors = {}
    manufacturer = clean_str(data.get("manufacturer"), max_len=120)
    model_number = clean_str(data.get("model_number"), max_len=120)
    if not manufacturer:
        errors["manufacturer"] = "Manufacturer is required"
    if not model_number:
        errors["model_number"] = "Model number is required"

    customer_id = parse_int_id(data.get("customer_id"))
    if customer_id and not db.session.query(Customer.id).filter_by(id=customer_id, org_id=ctx.org_id).one_or_none():
        errors["customer_id"] = "unknown customer"
    if errors:
        raise ServiceError(ErrorCode.VALIDATION, fields=errors)

    equip = Equipment(
        org_id=ctx.org_id,
        customer_id=customer_id,
        manufacturer=manufacturer,
        model_number=model_number,
        serial_number=clean_str(data.get("serial_number"), max_len=120),
    )
    db.session.add(equip)
    _commit()
    return jsonify(equip.to_dict()), 201


# --- Customers ---
@bp.get("/customers.json")
def customers_json():
    q = (request.args.get("q") or "").strip()
    query = db.session.query(Customer).filter(
        Customer.org_id == current_context().org_id, Customer.is_active.is_(True)
    )
    if q:
        query = query.filter(func.lower(Customer.name).like(f"%{q.lower()}%"))
    return jsonify([c.to_dict() for c in query.order_by(func.lower(Customer.name)).all()])


@bp.post("/customers.json")
@role_required(*WRITE_ROLES)
def create_customer():
    data = request.get_json(silent=True) or {}
    errors = {}

    name = clean_str(data.get("name"))
    if not name:
        errors["name"] = "Name is required"

    email = clean_str(data.get("email"))
    if email and not is_valid_email(email):
        errors["email"] = "Invalid email"

    phone_raw = clean_str(data.get("phone"), max_len=32)
    phone = normalize_phone(phone_raw) if phone_raw else None
    if phone_raw and not phone:
        errors["phone"] = "Use a 10-digit US phone number"

    if errors:
        raise ServiceError(ErrorCode.VALIDATION, fields=errors)

    cust = Customer(
        org_id=current_context().org_id,
        name=name,
        email=email,
        phone=phone,
        address=clean_str(data.get("address")),
        notes=clean_text(data.get("notes")),
    )
    db.session.add(cust)
    _commit()
    return jsonify(cust.to_dict()), 201


# --- Labor rate profile ---
def _active_profile(org_id):
    return (
        db.session.query(LaborRateProfile)
        .filter_by(org_id=org_id, is_active=True)
        .order_by(LaborRateProfile.id.desc())
        .first()
    )


@bp.get("/labor-rates.json")
def labor_rates_json():
    row = _active_profile(current_context().org_id)
    if not row:
        # No profile yet: the editor simply offers no rates
        return jsonify({})
    return jsonify(row.to_dict())


@bp.put("/labor-rates.json")
@role_required(*WRITE_ROLES)
def put_labor_rates_json():
    data = request.get_json(silent=True) or {}
    ctx = current_context()
    errors = {}
    rates = {k: _money(data, k, errors) for k in ("standard_rate", "after_hours_rate", "emergency_rate")}
    if errors:
        raise ServiceError(ErrorCode.VALIDATION, fields=errors)

    # Exactly one active profile per org
    db.session.query(LaborRateProfile).filter_by(org_id=ctx.org_id, is_active=True).update(
        {"is_active": False}, synchronize_session=False
    )
    row = LaborRateProfile(
        org_id=ctx.org_id,
        name=clean_str(data.get("name"), max_len=120) or "Default",
        is_active=True,
        **rates,
    )
    db.session.add(row)
    _commit()
    current_app.logger.info("labor rate profile %s activated for org %s", row.id, ctx.org_id)
    return jsonify(row.to_dict())
