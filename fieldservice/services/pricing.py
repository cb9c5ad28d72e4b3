from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable

from fieldservice.errors import ErrorCode, ServiceError
from fieldservice.models.estimate_line_item import ITEM_DISCOUNT
from fieldservice.utils.helpers import round_currency, to_decimal

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    discount: Decimal
    tax_amount: Decimal
    total: Decimal

    def to_dict(self) -> dict:
        return dict(
            subtotal=float(self.subtotal),
            discount=float(self.discount),
            tax_amount=float(self.tax_amount),
            total=float(self.total),
        )


def _get(item: Any, key: str):
    if isinstance(item, dict):
        return item.get(key)
    return getattr(item, key, None)


def calc_line_total(quantity, unit_price) -> Decimal:
    """quantity x unit_price, rounded to cents."""
    return round_currency(to_decimal(quantity) * to_decimal(unit_price))


def normalize_tax_rate(tax_rate) -> Decimal:
    rate = to_decimal(tax_rate)
    if rate < 0:
        raise ServiceError(ErrorCode.VALIDATION, "Tax rate cannot be negative.", {"tax_rate": "must be >= 0"})
    return rate


def compute_totals(items: Iterable[Any], tax_rate) -> Totals:
    """
    Aggregate line items into estimate totals:
      - subtotal:   SUM(line_total) over non-discount items
      - discount:   SUM(|line_total|) over discount items
      - tax_amount: (subtotal - discount) * tax_rate / 100
      - total:      subtotal - discount + tax_amount

    ``items`` may be dicts, editor drafts or ORM rows. Pure; safe to call repeatedly.
    """
    rate = normalize_tax_rate(tax_rate)

    subtotal = Decimal("0")
    discount = Decimal("0")
    for item in items:
        amount = to_decimal(_get(item, "line_total"))
        if _get(item, "item_type") == ITEM_DISCOUNT:
            discount += abs(amount)
        else:
            subtotal += amount

    subtotal = round_currency(subtotal)
    discount = round_currency(discount)
    tax_amount = round_currency((subtotal - discount) * rate / HUNDRED)
    total = subtotal - discount + tax_amount

    return Totals(subtotal=subtotal, discount=discount, tax_amount=tax_amount, total=total)
