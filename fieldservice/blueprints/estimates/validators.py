import math
from typing import Any, Dict

from fieldservice.models.estimate_line_item import ITEM_TYPES

# Numeric(12,2)
MAX_AMOUNT = 9_999_999_999.99


def validate_save_payload(payload: Any) -> Dict[str, str]:
    """
    Shape checks only; value rules (required title, tax >= 0, references)
    live in services.estimates. Returns {field: message}.
    """
    if not isinstance(payload, dict):
        return {"payload": "must be a JSON object"}

    errors: Dict[str, str] = {}
    items = payload.get("line_items")
    if items is None:
        return errors
    if not isinstance(items, list):
        return {"line_items": "must be a list"}

    for idx, row in enumerate(items):
        if not isinstance(row, dict):
            errors[f"line_items[{idx}]"] = "must be an object"
            continue
        item_type = row.get("item_type")
        if item_type is not None and item_type not in ITEM_TYPES:
            errors[f"line_items[{idx}].item_type"] = f"must be one of {', '.join(ITEM_TYPES)}"
        for key in ("quantity", "unit_price", "line_total"):
            val = row.get(key)
            if val in (None, ""):
                continue
            try:
                num = float(val)
            except (TypeError, ValueError):
                num = math.nan
            if not math.isfinite(num):
                errors[f"line_items[{idx}].{key}"] = "must be a number"
            elif abs(num) > MAX_AMOUNT:
                errors[f"line_items[{idx}].{key}"] = "out of range"
    return errors
