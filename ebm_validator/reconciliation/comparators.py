"""Field-by-field comparison of QR payload values against invoice text."""

from ebm_validator.extraction.models import ExtractedField, TextExtraction
from ebm_validator.normalization.normalizers import (
    normalize_currency,
    normalize_invoice_number,
    normalize_tin,
    to_date_string,
    to_number,
    to_string_value,
)
from ebm_validator.qr.models import QrDetection
from ebm_validator.reconciliation.models import (
    ComparisonSources,
    ComparisonStatus,
    FieldComparison,
    QrPayload,
    QrSource,
    TextSource,
)
from ebm_validator.templates.field_mapping import CanonicalField

DEFAULT_AMOUNT_TOLERANCE = 1.0
TOLERANCE_CURRENCY = "RWF"

_AMOUNT_FIELDS = frozenset({CanonicalField.TOTAL_AMOUNT, CanonicalField.VAT_AMOUNT})

_MISMATCH_DETAILS: dict[CanonicalField, str] = {
    CanonicalField.TIN: "TIN values differ between QR payload and text.",
    CanonicalField.BUYER_TIN: "TIN values differ between QR payload and text.",
    CanonicalField.INVOICE_NUMBER: "Invoice numbers do not match.",
    CanonicalField.ISSUE_DATE: "Issue dates differ.",
    CanonicalField.CURRENCY: "Currency codes differ.",
}

_NORMALIZERS = {
    CanonicalField.TIN: lambda value: normalize_tin(str(value)),
    CanonicalField.BUYER_TIN: lambda value: normalize_tin(str(value)),
    CanonicalField.INVOICE_NUMBER: normalize_invoice_number,
    CanonicalField.ISSUE_DATE: to_date_string,
    CanonicalField.CURRENCY: normalize_currency,
}


def build_comparison(
    field_name: str,
    canonical: CanonicalField,
    qr_value: object,
    text_field: ExtractedField | None,
    qr_detection: QrDetection | None = None,
    tolerance: float = DEFAULT_AMOUNT_TOLERANCE,
) -> FieldComparison:
    """Compare one QR value against one extracted text field."""
    sources = ComparisonSources(
        qr=QrSource(page_number=qr_detection.page_number, scale=qr_detection.scale)
        if qr_detection
        else None,
        text=TextSource(page_number=text_field.page_number, raw=text_field.raw)
        if text_field
        else None,
    )
    text_value = _text_value(text_field)

    def result(
        status: ComparisonStatus,
        details: str | None = None,
        qr: object = qr_value,
        text: object = None,
    ) -> FieldComparison:
        return FieldComparison(
            field=field_name,
            canonical=canonical,
            status=status,
            qr_value=qr,
            text_value=text if text is not None else to_string_value(text_value),
            details=details,
            sources=sources,
        )

    if qr_value is None and text_value is None:
        return result("unverified", "QR payload and text snapshot both missing this field.")
    if qr_value is None:
        return result("missing", "QR payload does not provide this field.")
    if text_value is None:
        return result("missing", "Invoice text does not provide this field.")

    if canonical in _AMOUNT_FIELDS:
        qr_number = to_number(qr_value)
        text_number = to_number(text_value)
        if qr_number is None or text_number is None:
            return result(
                "missing",
                "Unable to parse numeric value for comparison.",
                qr=qr_number,
                text=text_number,
            )
        if amounts_match(qr_number, text_number, tolerance):
            return result("match", qr=qr_number, text=text_number)
        return result(
            "mismatch",
            f"Values differ beyond tolerance of ±{to_string_value(float(tolerance))} {TOLERANCE_CURRENCY}.",
            qr=qr_number,
            text=text_number,
        )

    normalize = _NORMALIZERS[canonical]
    qr_normalized = normalize(qr_value)
    text_normalized = normalize(text_value)
    if qr_normalized and text_normalized and qr_normalized == text_normalized:
        return result("match", qr=qr_normalized, text=text_normalized)
    return result(
        "mismatch",
        _MISMATCH_DETAILS[canonical],
        qr=qr_normalized,
        text=text_normalized,
    )


def amounts_match(qr_amount: float, text_amount: float, tolerance: float) -> bool:
    return abs(qr_amount - text_amount) <= tolerance


def compute_comparisons(
    qr_payload: QrPayload | None,
    extraction: TextExtraction | None,
    qr_detections: list[QrDetection] | tuple[QrDetection, ...],
    tolerance: float = DEFAULT_AMOUNT_TOLERANCE,
) -> list[FieldComparison]:
    """One comparison per mapped template field, then one per canonical QR
    field the template did not cover.
    """
    qr_detection = qr_detections[0] if qr_detections else None
    comparisons: list[FieldComparison] = []
    covered: set[CanonicalField] = set()

    if extraction is not None:
        for name, extracted in extraction.fields.items():
            if extracted.canonical is None:
                continue
            qr_value = qr_payload.value_for(extracted.canonical) if qr_payload else None
            comparisons.append(
                build_comparison(
                    name, extracted.canonical, qr_value, extracted, qr_detection, tolerance
                )
            )
            covered.add(extracted.canonical)

    if qr_payload is not None:
        for canonical in CanonicalField:
            if canonical in covered:
                continue
            comparisons.append(
                build_comparison(
                    canonical.value,
                    canonical,
                    qr_payload.value_for(canonical),
                    None,
                    qr_detection,
                    tolerance,
                )
            )

    return comparisons


def _text_value(text_field: ExtractedField | None) -> object:
    if text_field is None:
        return None
    value = text_field.value if text_field.value is not None else text_field.raw
    if isinstance(value, str) and not value.strip():
        return None
    return value
