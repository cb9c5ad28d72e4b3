from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

CENT = Decimal("0.01")


def to_decimal(value: Any, default: str = "0") -> Decimal:
    """Coerce str/int/float/Decimal/None to Decimal; junk, NaN and Infinity become ``default``."""
    if isinstance(value, Decimal):
        return value if value.is_finite() else Decimal(default)
    try:
        s = str(value).strip() if value is not None else ""
        d = Decimal(s) if s else Decimal(default)
    except (InvalidOperation, ValueError):
        return Decimal(default)
    return d if d.is_finite() else Decimal(default)


def round_currency(value: Any) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_float(value: Any):
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def iso(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_date(value):
    """Accept 'YYYY-MM-DD' (or a full ISO timestamp); None/blank -> None."""
    if value in (None, ""):
        return None
    if isinstance(value, date):
        return value
    s = str(value).strip()
    try:
        return datetime.strptime(s[:10], "%Y-%m-%d").date()
    except ValueError:
        raise ValueError(f"Invalid date: {value!r}")
