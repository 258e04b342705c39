"""Heuristic parsing of decoded QR text into a QrPayload.

EBM devices and receipt portals encode the same facts in several shapes, so
parsing tries, in order: a JSON object, URL query and fragment parameters,
then delimiter-separated ``key:value`` or ``key=value`` tokens. The token pass
only runs when the earlier passes assigned no canonical field.
"""

import json
import re
from collections.abc import Callable
from urllib.parse import parse_qsl, urlsplit

from ebm_validator.normalization.normalizers import (
    normalize_currency,
    normalize_invoice_number,
    normalize_tin,
    to_date_string,
    to_number,
    to_string_value,
)
from ebm_validator.reconciliation.models import QrPayload

_TOKEN_DELIMITERS_RE = re.compile(r"[\n;,|]+")
_NON_KEY_CHARS_RE = re.compile(r"[^a-z0-9]")

KEY_ALIASES: dict[str, str] = {
    "tin": "tin",
    "sellertin": "tin",
    "suppliertin": "tin",
    "tradetin": "tin",
    "buyertin": "buyer_tin",
    "customertin": "buyer_tin",
    "receivertin": "buyer_tin",
    "invoice": "invoice_number",
    "invoicenumber": "invoice_number",
    "invoiceno": "invoice_number",
    "invoiceid": "invoice_number",
    "receipt": "invoice_number",
    "issuedate": "issue_date",
    "invoicedate": "issue_date",
    "date": "issue_date",
    "transactiondate": "issue_date",
    "totalamount": "total_amount",
    "grandtotal": "total_amount",
    "totalsales": "total_amount",
    "amount": "total_amount",
    "total": "total_amount",
    "vatamount": "vat_amount",
    "taxamount": "vat_amount",
    "totaltax": "vat_amount",
    "vat": "vat_amount",
    "currency": "currency",
    "curr": "currency",
}

_NORMALIZERS: dict[str, Callable[[str], object]] = {
    "tin": normalize_tin,
    "buyer_tin": normalize_tin,
    "invoice_number": normalize_invoice_number,
    "issue_date": to_date_string,
    "total_amount": to_number,
    "vat_amount": to_number,
    "currency": normalize_currency,
}


def normalize_key(key: str) -> str:
    return _NON_KEY_CHARS_RE.sub("", key.strip().lower())


def parse_qr_payload(raw: str) -> QrPayload:
    """Parse decoded QR text. Unrecognized keys land in `additional`."""
    trimmed = raw.strip() if raw else ""
    if not trimmed:
        return QrPayload(raw=raw)

    fields: dict[str, object] = {}
    additional: dict[str, object] = {}

    parsed = _load_json(trimmed)
    if isinstance(parsed, dict):
        for key, value in parsed.items():
            _assign(str(key), value, fields, additional)

    if "://" in trimmed:
        for key, value in _url_parameters(trimmed):
            _assign(key, value, fields, additional)

    if not fields:
        _parse_tokens(trimmed, fields, additional)

    return QrPayload(raw=raw, additional=additional, **fields)  # type: ignore[arg-type]


def _load_json(text: str) -> object:
    try:
        return json.loads(text)
    except ValueError:
        return None


def _url_parameters(text: str) -> list[tuple[str, str]]:
    try:
        parts = urlsplit(text)
    except ValueError:
        return []
    params = parse_qsl(parts.query, keep_blank_values=True)
    params.extend(parse_qsl(parts.fragment, keep_blank_values=True))
    return params


def _parse_tokens(text: str, fields: dict[str, object], additional: dict[str, object]) -> None:
    orphan_index = 0
    for token in _TOKEN_DELIMITERS_RE.split(text):
        token = token.strip()
        if not token:
            continue
        separator = token.find(":")
        if separator == -1:
            separator = token.find("=")
        if separator == -1:
            additional[f"token_{orphan_index}"] = token
            orphan_index += 1
            continue
        _assign(token[:separator], token[separator + 1 :], fields, additional)


def _assign(key: str, value: object, fields: dict[str, object], additional: dict[str, object]) -> None:
    # A later occurrence of the same canonical key overwrites the earlier one.
    normalized_key = normalize_key(key)
    string_value = to_string_value(value)
    target = KEY_ALIASES.get(normalized_key)
    if target is None:
        if string_value is not None:
            additional[normalized_key] = string_value
        return
    fields[target] = _NORMALIZERS[target](string_value) if string_value is not None else None
