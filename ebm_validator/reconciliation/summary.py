from ebm_validator.normalization.normalizers import to_string_value
from ebm_validator.reconciliation.models import FieldComparison, ValidationSummary

VALIDATED_HEADLINE = "Invoice details match QR payload."
ISSUES_HEADLINE = "Invoice validation reported issues."
EMPTY_VALUE = "—"


def describe_comparison(comparison: FieldComparison) -> str:
    """One-line description, e.g. 'total_amount (page 1): QR=5000 | Text=4000 - ...'."""
    page = comparison.sources.text.page_number if comparison.sources.text else None
    page_hint = f" (page {page})" if page else ""
    qr_value = _display(comparison.qr_value)
    text_value = _display(comparison.text_value)
    details = f" - {comparison.details}" if comparison.details else ""
    return f"{comparison.field}{page_hint}: QR={qr_value} | Text={text_value}{details}"


def build_summary(
    comparisons: list[FieldComparison],
    errors: list[str],
    max_discrepancies: int = 5,
) -> ValidationSummary:
    matched = sum(1 for item in comparisons if item.status == "match")
    mismatched = [item for item in comparisons if item.status == "mismatch"]
    missing = [item for item in comparisons if item.status == "missing"]

    if not errors and not mismatched and not missing:
        return ValidationSummary(
            status="validated",
            headline=VALIDATED_HEADLINE,
            items=(f"Validated fields: {matched}",),
        )

    items: list[str] = []
    if matched:
        items.append(f"Matched fields: {matched}")
    if mismatched:
        items.append(f"Mismatched fields: {len(mismatched)}")
    if missing:
        items.append(f"Missing fields: {len(missing)}")
    if errors:
        items.append(f"Errors: {len(errors)}")

    discrepancies = [describe_comparison(item) for item in [*mismatched, *missing]]
    return ValidationSummary(
        status="issues_found",
        headline=ISSUES_HEADLINE,
        items=tuple(items),
        discrepancies=tuple(discrepancies[:max_discrepancies]),
    )


def _display(value: object) -> str:
    if isinstance(value, float):
        return to_string_value(value) or EMPTY_VALUE
    return EMPTY_VALUE if value is None else str(value)
