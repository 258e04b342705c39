from ebm_validator.normalization.normalizers import (
    apply_replacements,
    normalize_currency,
    normalize_invoice_number,
    normalize_tin,
    normalize_whitespace,
    parse_amount,
    parse_date,
    strip_accents,
    to_date_string,
    to_number,
    to_string_value,
)

__all__ = [
    "apply_replacements",
    "normalize_currency",
    "normalize_invoice_number",
    "normalize_tin",
    "normalize_whitespace",
    "parse_amount",
    "parse_date",
    "strip_accents",
    "to_date_string",
    "to_number",
    "to_string_value",
]
