"""
In-memory line-item editor for one estimate.

All mutations are local and synchronous; nothing touches the database until
``services.estimates.save_estimate`` persists ``editor.items``.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field, asdict
from decimal import Decimal
from typing import Optional

from fieldservice.errors import ErrorCode, ServiceError
from fieldservice.models.estimate_line_item import ITEM_DISCOUNT, ITEM_LABOR, ITEM_TYPES
from fieldservice.services.pricing import Totals, calc_line_total, compute_totals
from fieldservice.utils.helpers import round_currency, to_decimal
from fieldservice.utils.validators import parse_int_id

EDITABLE_FIELDS = {"item_type", "description", "quantity", "unit_price", "line_total", "part_id", "equipment_id"}
PRICE_FIELDS = {"quantity", "unit_price"}


@dataclass
class LineItemDraft:
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    line_order: int = 0
    item_type: str = ITEM_LABOR
    description: str = ""
    quantity: Decimal = Decimal("1")
    unit_price: Decimal = Decimal("0")
    line_total: Decimal = Decimal("0")
    part_id: Optional[int] = None
    equipment_id: Optional[int] = None
    labor_rate: Optional[Decimal] = None

    @classmethod
    def from_row(cls, row) -> "LineItemDraft":
        return cls(
            id=str(row.id),
            line_order=row.line_order or 0,
            item_type=row.item_type,
            description=row.description or "",
            quantity=to_decimal(row.quantity),
            unit_price=to_decimal(row.unit_price),
            line_total=to_decimal(row.line_total),
            part_id=row.part_id,
            equipment_id=row.equipment_id,
            labor_rate=to_decimal(row.labor_rate) if row.labor_rate is not None else None,
        )

    def to_dict(self) -> dict:
        d = asdict(self)
        for k in ("quantity", "unit_price", "line_total", "labor_rate"):
            if d[k] is not None:
                d[k] = float(d[k])
        return d


class LineItemEditor:
    """
    Ordered list of drafts plus the lookup catalogs the pickers need.

    ``labor_rates`` is a list of {key, name, rate}; ``parts`` maps id -> {name, cost};
    ``equipment`` maps id -> {display_name}.
    """

    def __init__(self, items=None, labor_rates=None, parts=None, equipment=None):
        self.items: list[LineItemDraft] = list(items or [])
        self.labor_rates = list(labor_rates or [])
        self.parts = dict(parts or {})
        self.equipment = dict(equipment or {})
        if not self.items:
            self.add_line_item()

    # --- lookup ---
    def get(self, item_id: str) -> LineItemDraft:
        for item in self.items:
            if item.id == item_id:
                return item
        raise ServiceError(ErrorCode.NOT_FOUND, f"Line item {item_id} not found.")

    # --- mutations ---
    def update_field(self, item_id: str, field_name: str, value) -> LineItemDraft:
        if field_name not in EDITABLE_FIELDS:
            raise ServiceError(ErrorCode.VALIDATION, f"Field {field_name!r} cannot be edited.", {field_name: "not editable"})
        item = self.get(item_id)

        if field_name == "item_type":
            if value not in ITEM_TYPES:
                raise ServiceError(ErrorCode.VALIDATION, f"Unknown item type {value!r}.", {"item_type": "invalid"})
            item.item_type = value
        elif field_name == "description":
            item.description = "" if value is None else str(value)
        elif field_name in ("part_id", "equipment_id"):
            setattr(item, field_name, parse_int_id(value))
        elif field_name == "line_total":
            self._apply_line_total(item, round_currency(value))
        else:
            # stored at cents, so price from the stored value
            setattr(item, field_name, round_currency(value))

        if field_name in PRICE_FIELDS:
            item.line_total = calc_line_total(item.quantity, item.unit_price)
        return item

    @staticmethod
    def _apply_line_total(item: LineItemDraft, total: Decimal) -> None:
        """Back out a unit price from an entered total; only discounts keep the total as typed."""
        item.unit_price = round_currency(total / item.quantity) if item.quantity else total
        if item.item_type == ITEM_DISCOUNT:
            item.line_total = total
        else:
            item.line_total = calc_line_total(item.quantity, item.unit_price)

    def select_labor_rate(self, item_id: str, rate_key: str) -> LineItemDraft:
        item = self.get(item_id)
        rate = next((r for r in self.labor_rates if r["key"] == rate_key), None)
        if rate is None:
            return item
        amount = to_decimal(rate["rate"])
        item.description = rate["name"]
        item.unit_price = amount
        item.labor_rate = amount
        item.line_total = calc_line_total(item.quantity, amount)
        return item

    def select_part(self, item_id: str, part_id) -> LineItemDraft:
        item = self.get(item_id)
        part = self.parts.get(parse_int_id(part_id))
        if part is None:
            return item
        unit_price = to_decimal(part.get("cost"))
        item.part_id = parse_int_id(part_id)
        item.description = part["name"]
        item.unit_price = unit_price
        item.line_total = calc_line_total(item.quantity, unit_price)
        return item

    def select_equipment(self, item_id: str, equipment_id) -> LineItemDraft:
        # Equipment lines record the unit being serviced; they carry no charge.
        item = self.get(item_id)
        equip = self.equipment.get(parse_int_id(equipment_id))
        if equip is None:
            return item
        item.equipment_id = parse_int_id(equipment_id)
        item.description = equip["display_name"]
        item.unit_price = Decimal("0")
        item.line_total = Decimal("0")
        return item

    def add_line_item(self) -> LineItemDraft:
        item = LineItemDraft(line_order=len(self.items))
        self.items.append(item)
        return item

    def remove_line_item(self, item_id: str) -> bool:
        """Drop the item; the last remaining item is never removed."""
        if len(self.items) <= 1:
            return False
        before = len(self.items)
        self.items = [i for i in self.items if i.id != item_id]
        return len(self.items) < before

    # --- derived ---
    def totals(self, tax_rate) -> Totals:
        return compute_totals(self.items, tax_rate)

    # --- construction ---
    @classmethod
    def from_payload(cls, rows, labor_rates=None, parts=None, equipment=None) -> "LineItemEditor":
        """
        Build an editor from request JSON rows. A row may carry ``rate_key``,
        ``part_id`` or ``equipment_id``; those picks are applied after the raw
        fields, the same way the pickers overwrite manual entries.
        """
        if rows is not None and not isinstance(rows, list):
            raise ServiceError(ErrorCode.VALIDATION, "line_items must be a list.", {"line_items": "must be a list"})

        editor = cls(items=[LineItemDraft()], labor_rates=labor_rates, parts=parts, equipment=equipment)
        editor.items = []
        for idx, row in enumerate(rows or []):
            if not isinstance(row, dict):
                raise ServiceError(ErrorCode.VALIDATION, "Each line item must be an object.", {f"line_items[{idx}]": "must be an object"})
            item = editor.add_line_item()
            if row.get("id"):
                item.id = str(row["id"])
            editor.update_field(item.id, "item_type", row.get("item_type") or ITEM_LABOR)
            editor.update_field(item.id, "description", row.get("description"))
            item.quantity = round_currency(to_decimal(row.get("quantity"), default="1"))
            if row.get("unit_price") in (None, "") and row.get("line_total") not in (None, ""):
                editor.update_field(item.id, "line_total", row["line_total"])
            else:
                editor.update_field(item.id, "unit_price", row.get("unit_price"))
            if row.get("labor_rate") is not None:
                item.labor_rate = to_decimal(row.get("labor_rate"))

            if row.get("rate_key"):
                editor.select_labor_rate(item.id, row["rate_key"])
            if row.get("part_id") is not None:
                editor.select_part(item.id, row["part_id"])
            if row.get("equipment_id") is not None:
                editor.select_equipment(item.id, row["equipment_id"])
        return editor
