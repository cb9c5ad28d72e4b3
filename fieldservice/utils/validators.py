import re

# Simple, pragmatic patterns
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def clean_str(val, max_len: int = 255):
    """
    Collapse whitespace, trim, enforce max length. Returns None if empty after cleaning.
    """
    if val is None:
        return None
    s = re.sub(r"\s+", " ", str(val)).strip()
    if not s:
        return None
    return s[:max_len]


def clean_text(val):
    """Like clean_str but keeps line breaks (notes, terms)."""
    if val is None:
        return None
    s = str(val).strip()
    return s or None


def is_valid_email(val) -> bool:
    if not val:
        return True
    return bool(_EMAIL_RE.match(val))


def normalize_phone(val):
    """
    Normalize US phone to (###) ###-####. Accept 10 digits or 11 starting with '1'.
    Returns None if invalid or empty.
    """
    if not val:
        return None
    digits = "".join(re.findall(r"\d", val))
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    if len(digits) != 10:
        return None
    return f"({digits[0:3]}) {digits[3:6]}-{digits[6:]}"


def parse_int_id(val):
    """'12' / 12 -> 12; anything else -> None."""
    if isinstance(val, bool):
        return None
    if isinstance(val, int):
        return val if val > 0 else None
    s = str(val or "").strip()
    return int(s) if s.isdigit() and int(s) > 0 else None
