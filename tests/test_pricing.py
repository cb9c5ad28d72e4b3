from decimal import Decimal

import pytest

from fieldservice.errors import ErrorCode, ServiceError
from fieldservice.services.pricing import Totals, calc_line_total, compute_totals, normalize_tax_rate


def _item(item_type, line_total):
    return {"item_type": item_type, "line_total": line_total}


def test_labor_discount_and_tax():
    items = [_item("labor", 200), _item("discount", -20)]
    t = compute_totals(items, 10)
    assert t == Totals(
        subtotal=Decimal("200.00"),
        discount=Decimal("20.00"),
        tax_amount=Decimal("18.00"),
        total=Decimal("198.00"),
    )


def test_discount_sign_is_ignored():
    neg = compute_totals([_item("parts", 50), _item("discount", -5)], 0)
    pos = compute_totals([_item("parts", 50), _item("discount", 5)], 0)
    assert neg == pos
    assert neg.total == Decimal("45.00")


def test_empty_items_are_all_zero():
    t = compute_totals([], 8.25)
    assert (t.subtotal, t.discount, t.tax_amount, t.total) == (Decimal("0.00"),) * 4


def test_tax_rounds_half_up_to_cents():
    # 10.05 * 7.5% = 0.75375 -> 0.75 ; 10.10 * 7.5% = 0.7575 -> 0.76
    assert compute_totals([_item("other", "10.05")], "7.5").tax_amount == Decimal("0.75")
    assert compute_totals([_item("other", "10.10")], "7.5").tax_amount == Decimal("0.76")


def test_total_identity_holds():
    items = [_item("labor", "123.45"), _item("parts", "67.89"), _item("equipment", 0), _item("discount", "-12.34")]
    t = compute_totals(items, "6.35")
    assert t.total == t.subtotal - t.discount + t.tax_amount


def test_accepts_objects_with_attributes():
    class Row:
        def __init__(self, item_type, line_total):
            self.item_type, self.line_total = item_type, line_total

    t = compute_totals([Row("labor", Decimal("80")), Row("parts", Decimal("20"))], 0)
    assert t.subtotal == Decimal("100.00")


def test_negative_tax_rate_rejected():
    with pytest.raises(ServiceError) as ei:
        compute_totals([_item("labor", 10)], -1)
    assert ei.value.code == ErrorCode.VALIDATION
    assert "tax_rate" in ei.value.fields


def test_normalize_tax_rate_coerces_blank_to_zero():
    assert normalize_tax_rate("") == Decimal("0")
    assert normalize_tax_rate("8.25") == Decimal("8.25")


def test_calc_line_total():
    assert calc_line_total(2, 100) == Decimal("200.00")
    assert calc_line_total("1.5", "24.50") == Decimal("36.75")
    assert calc_line_total(None, 10) == Decimal("0.00")


def test_totals_to_dict_is_json_friendly():
    d = compute_totals([_item("labor", 200), _item("discount", -20)], 10).to_dict()
    assert d == {"subtotal": 200.0, "discount": 20.0, "tax_amount": 18.0, "total": 198.0}
