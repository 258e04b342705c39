"""Text and value normalizers shared by template matching, extraction and comparison."""

import math
import re
import unicodedata
from datetime import date, datetime

from dateutil import parser as date_parser

DEFAULT_DATE_FORMATS: tuple[str, ...] = ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y", "%d.%m.%Y")

_WHITESPACE_RE = re.compile(r"\s+")
_NON_DIGIT_RE = re.compile(r"[^0-9]")


def normalize_whitespace(value: str) -> str:
    """Collapse runs of whitespace (including NBSP) to a single space."""
    return _WHITESPACE_RE.sub(" ", value).strip()


def remove_whitespace(value: str) -> str:
    return _WHITESPACE_RE.sub("", value)


def strip_accents(value: str) -> str:
    decomposed = unicodedata.normalize("NFKD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def apply_replacements(value: str, replacements: list[tuple[str, str]] | None) -> str:
    """Apply ordered (pattern, replacement) regex substitutions."""
    if not replacements:
        return value
    for pattern, replacement in replacements:
        value = re.sub(pattern, replacement, value)
    return value


def normalize_tin(value: str | None) -> str | None:
    """Keep digits only; None when nothing remains."""
    digits = _NON_DIGIT_RE.sub("", value or "")
    return digits or None


def normalize_invoice_number(value: object) -> str | None:
    if value is None:
        return None
    normalized = remove_whitespace(str(value).strip()).upper()
    return normalized or None


def normalize_currency(value: object) -> str | None:
    if value is None:
        return None
    normalized = str(value).strip().upper()
    return normalized or None


def parse_amount(value: str | None, decimal_separator: str = ".") -> float | None:
    """Parse a formatted amount such as 'RWF 12,500.00'.

    The thousands separator is whichever of '.' and ',' is not the decimal
    separator. Returns None when nothing numeric can be recovered.
    """
    if not value:
        return None
    thousands_separator = "," if decimal_separator == "." else "."
    allowed = re.escape(decimal_separator + thousands_separator)
    cleaned = re.sub(rf"[^0-9{allowed}\-]", "", value)
    cleaned = cleaned.replace(thousands_separator, "").replace(decimal_separator, ".", 1)
    try:
        parsed = float(cleaned)
    except ValueError:
        return None
    return parsed if math.isfinite(parsed) else None


def parse_date(value: str | None, date_formats: list[str] | None = None) -> date | None:
    """Parse a date trying each format in order, then generic parsing.

    Time of day is discarded.
    """
    if not value:
        return None
    text = value.strip()
    for fmt in date_formats or DEFAULT_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    try:
        return date_parser.parse(text, dayfirst=True).date()
    except (ValueError, OverflowError):
        return None


def to_date_string(value: object) -> str | None:
    """Render a date-like value as YYYY-MM-DD."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    parsed = parse_date(trimmed)
    if parsed is not None:
        return parsed.isoformat()
    date_part = trimmed.split(" ")[0]
    if date_part and date_part != trimmed:
        parsed = parse_date(date_part)
        if parsed is not None:
            return parsed.isoformat()
    return None


def to_number(value: object) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        return parse_amount(value, decimal_separator=".")
    return None


def to_string_value(value: object) -> str | None:
    """Render any extracted or decoded value as a trimmed string."""
    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return to_date_string(value)
    if isinstance(value, str):
        trimmed = value.strip()
        return trimmed or None
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return str(int(value)) if value.is_integer() else str(value)
    return str(value)
