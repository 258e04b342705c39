"""Explicit mapping from template field names to canonical QR payload fields."""

from enum import StrEnum

from ebm_validator.templates.exceptions import TemplateError

NOT_COMPARED = "none"


class CanonicalField(StrEnum):
    TIN = "tin"
    BUYER_TIN = "buyer_tin"
    INVOICE_NUMBER = "invoice_number"
    ISSUE_DATE = "issue_date"
    TOTAL_AMOUNT = "total_amount"
    VAT_AMOUNT = "vat_amount"
    CURRENCY = "currency"


FIELD_MAPPING: dict[str, CanonicalField] = {
    "tin": CanonicalField.TIN,
    "seller_tin": CanonicalField.TIN,
    "seller-tin": CanonicalField.TIN,
    "supplier_tin": CanonicalField.TIN,
    "invoice_number": CanonicalField.INVOICE_NUMBER,
    "invoice-number": CanonicalField.INVOICE_NUMBER,
    "invoice": CanonicalField.INVOICE_NUMBER,
    "invoice_no": CanonicalField.INVOICE_NUMBER,
    "issue_date": CanonicalField.ISSUE_DATE,
    "invoice_date": CanonicalField.ISSUE_DATE,
    "date": CanonicalField.ISSUE_DATE,
    "total_amount": CanonicalField.TOTAL_AMOUNT,
    "grand_total": CanonicalField.TOTAL_AMOUNT,
    "amount": CanonicalField.TOTAL_AMOUNT,
    "total": CanonicalField.TOTAL_AMOUNT,
    "vat_amount": CanonicalField.VAT_AMOUNT,
    "tax_amount": CanonicalField.VAT_AMOUNT,
    "vat": CanonicalField.VAT_AMOUNT,
    "buyer_tin": CanonicalField.BUYER_TIN,
    "buyer-tin": CanonicalField.BUYER_TIN,
    "customer_tin": CanonicalField.BUYER_TIN,
    "currency": CanonicalField.CURRENCY,
}


def resolve_canonical(field_name: str, declared: str | None) -> CanonicalField | None:
    """Resolve the canonical field a template field is compared against.

    An explicit `canonical` wins; `canonical: none` marks an informational
    field. Anything else must appear in FIELD_MAPPING.

    Raises:
        TemplateError: if the field cannot be mapped.
    """
    if declared is not None:
        key = declared.strip().lower()
        if key == NOT_COMPARED:
            return None
        try:
            return CanonicalField(key)
        except ValueError as exc:
            raise TemplateError(
                f"Field '{field_name}' declares unknown canonical '{declared}'. "
                f"Choose from: {[c.value for c in CanonicalField]} or '{NOT_COMPARED}'"
            ) from exc

    mapped = FIELD_MAPPING.get(field_name.lower())
    if mapped is None:
        raise TemplateError(
            f"Field '{field_name}' has no canonical mapping; "
            f"set 'canonical: {NOT_COMPARED}' to keep it out of comparisons"
        )
    return mapped
