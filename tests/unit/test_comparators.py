from datetime import date

import pytest

from ebm_validator.extraction.models import ExtractedField, TextExtraction
from ebm_validator.qr.models import QrDetection
from ebm_validator.reconciliation.comparators import build_comparison, compute_comparisons
from ebm_validator.reconciliation.models import QrPayload
from ebm_validator.templates.field_mapping import CanonicalField
from ebm_validator.templates.models import RegexFieldConfig

DETECTION = QrDetection(page_number=1, scale=1.8, text="raw")


def _make_field(
    name: str,
    value: object,
    canonical: CanonicalField | None,
    raw: str | None = None,
    page_number: int | None = 1,
) -> ExtractedField:
    return ExtractedField(
        field=name,
        config=RegexFieldConfig(regex=["(.+)"]),
        canonical=canonical,
        value=value,
        raw=raw if raw is not None else (str(value) if value is not None else None),
        page_number=page_number,
    )


class TestStatusRules:
    def test_unverified_when_both_sides_empty(self) -> None:
        comparison = build_comparison("tin", CanonicalField.TIN, None, None)
        assert comparison.status == "unverified"
        assert comparison.details == "QR payload and text snapshot both missing this field."

    def test_missing_when_qr_lacks_value(self) -> None:
        text = _make_field("tin", "101234567", CanonicalField.TIN)
        comparison = build_comparison("tin", CanonicalField.TIN, None, text)
        assert comparison.status == "missing"
        assert comparison.details == "QR payload does not provide this field."

    def test_missing_when_text_lacks_value(self) -> None:
        text = _make_field("tin", None, CanonicalField.TIN)
        comparison = build_comparison("tin", CanonicalField.TIN, "101234567", text)
        assert comparison.status == "missing"
        assert comparison.details == "Invoice text does not provide this field."

    def test_sources_record_provenance(self) -> None:
        text = _make_field("tin", "101234567", CanonicalField.TIN, page_number=2)
        comparison = build_comparison("tin", CanonicalField.TIN, "101234567", text, DETECTION)
        assert comparison.sources.qr is not None and comparison.sources.qr.scale == 1.8
        assert comparison.sources.text is not None and comparison.sources.text.page_number == 2


class TestComparators:
    def test_tin_ignores_punctuation(self) -> None:
        text = _make_field("tin", "123-456-789", CanonicalField.TIN)
        comparison = build_comparison("tin", CanonicalField.TIN, "123456789", text)
        assert comparison.status == "match"
        assert comparison.text_value == "123456789"

    def test_tin_mismatch(self) -> None:
        text = _make_field("buyer_tin", "102345678", CanonicalField.BUYER_TIN)
        comparison = build_comparison("buyer_tin", CanonicalField.BUYER_TIN, "999999999", text)
        assert comparison.status == "mismatch"
        assert comparison.details == "TIN values differ between QR payload and text."

    def test_invoice_number_case_and_whitespace_insensitive(self) -> None:
        text = _make_field("invoice_number", "inv - 007", CanonicalField.INVOICE_NUMBER)
        comparison = build_comparison("invoice_number", CanonicalField.INVOICE_NUMBER, "INV-007", text)
        assert comparison.status == "match"

    def test_invoice_number_mismatch(self) -> None:
        text = _make_field("invoice_number", "INV-008", CanonicalField.INVOICE_NUMBER)
        comparison = build_comparison("invoice_number", CanonicalField.INVOICE_NUMBER, "INV-007", text)
        assert comparison.details == "Invoice numbers do not match."

    def test_dates_compare_as_calendar_dates(self) -> None:
        text = _make_field("issue_date", date(2024, 3, 15), CanonicalField.ISSUE_DATE, raw="15/03/2024")
        comparison = build_comparison("issue_date", CanonicalField.ISSUE_DATE, "2024-03-15 10:22:11", text)
        assert comparison.status == "match"
        assert comparison.qr_value == comparison.text_value == "2024-03-15"

    def test_dates_differ(self) -> None:
        text = _make_field("issue_date", date(2024, 3, 16), CanonicalField.ISSUE_DATE)
        comparison = build_comparison("issue_date", CanonicalField.ISSUE_DATE, "2024-03-15", text)
        assert comparison.details == "Issue dates differ."

    def test_currency_case_insensitive(self) -> None:
        text = _make_field("currency", "rwf", CanonicalField.CURRENCY)
        assert build_comparison("currency", CanonicalField.CURRENCY, "RWF", text).status == "match"

    def test_currency_mismatch(self) -> None:
        text = _make_field("currency", "USD", CanonicalField.CURRENCY)
        comparison = build_comparison("currency", CanonicalField.CURRENCY, "RWF", text)
        assert comparison.details == "Currency codes differ."


class TestAmountTolerance:
    @pytest.mark.parametrize(
        ("qr_amount", "text_amount", "expected"),
        [
            (1000.0, 1000.6, "match"),
            (1000.0, 1001.0, "match"),
            (1000.0, 999.0, "match"),
            (1000.0, 1001.01, "mismatch"),
            (1000.0, 998.5, "mismatch"),
        ],
    )
    def test_boundary(self, qr_amount: float, text_amount: float, expected: str) -> None:
        text = _make_field("total_amount", text_amount, CanonicalField.TOTAL_AMOUNT)
        comparison = build_comparison(
            "total_amount", CanonicalField.TOTAL_AMOUNT, qr_amount, text, tolerance=1.0
        )
        assert comparison.status == expected

    def test_mismatch_details_name_tolerance(self) -> None:
        text = _make_field("vat_amount", 10.0, CanonicalField.VAT_AMOUNT)
        comparison = build_comparison("vat_amount", CanonicalField.VAT_AMOUNT, 20.0, text)
        assert comparison.details == "Values differ beyond tolerance of ±1 RWF."

    def test_custom_tolerance(self) -> None:
        text = _make_field("total_amount", 1004.0, CanonicalField.TOTAL_AMOUNT)
        comparison = build_comparison(
            "total_amount", CanonicalField.TOTAL_AMOUNT, 1000.0, text, tolerance=5.0
        )
        assert comparison.status == "match"

    def test_unparseable_text_amount_is_missing(self) -> None:
        text = _make_field("total_amount", None, CanonicalField.TOTAL_AMOUNT, raw="n/a")
        comparison = build_comparison("total_amount", CanonicalField.TOTAL_AMOUNT, 1000.0, text)
        assert comparison.status == "missing"
        assert comparison.details == "Unable to parse numeric value for comparison."


class TestComputeComparisons:
    def _extraction(self) -> TextExtraction:
        return TextExtraction(
            template_name="t",
            issuer="Issuer",
            fields={
                "tin": _make_field("tin", "101234567", CanonicalField.TIN),
                "seller_name": _make_field("seller_name", "KIGALI", None),
                "total": _make_field("total", 5000.0, CanonicalField.TOTAL_AMOUNT),
            },
        )

    def test_template_fields_then_uncovered_canonical_fields(self) -> None:
        payload = QrPayload(raw="r", tin="101234567", total_amount=5000.0, vat_amount=10.0)

        comparisons = compute_comparisons(payload, self._extraction(), [DETECTION])

        assert [c.field for c in comparisons] == [
            "tin",
            "total",
            "buyer_tin",
            "invoice_number",
            "issue_date",
            "vat_amount",
            "currency",
        ]
        by_field = {c.field: c for c in comparisons}
        assert by_field["tin"].status == "match"
        assert by_field["total"].status == "match"
        assert by_field["vat_amount"].status == "missing"
        assert by_field["currency"].status == "unverified"

    def test_without_payload_only_template_fields(self) -> None:
        comparisons = compute_comparisons(None, self._extraction(), [])
        assert [(c.field, c.status) for c in comparisons] == [("tin", "missing"), ("total", "missing")]

    def test_without_extraction_compares_qr_fields_only(self) -> None:
        payload = QrPayload(raw="r", tin="101234567")
        comparisons = compute_comparisons(payload, None, [DETECTION])
        assert len(comparisons) == len(CanonicalField)
        assert comparisons[0].status == "missing"

    def test_nothing_to_compare(self) -> None:
        assert compute_comparisons(None, None, []) == []
