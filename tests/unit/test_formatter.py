import json
from datetime import date, datetime, timezone

from ebm_validator.extraction.models import ExtractedField, FieldMatch, TextExtraction
from ebm_validator.qr.models import QrDetection
from ebm_validator.reconciliation.formatter import (
    build_validation_sources,
    format_comparison_line,
    format_validation_message,
    serialize_outcome,
)
from ebm_validator.reconciliation.models import (
    ComparisonSources,
    FieldComparison,
    QrPayload,
    QrSource,
    TextSource,
    ValidationOutcome,
    ValidationResult,
    ValidationSummary,
)
from ebm_validator.templates.field_mapping import CanonicalField
from ebm_validator.templates.models import RegexFieldConfig

STARTED = datetime(2024, 3, 15, 10, 0, tzinfo=timezone.utc)
COMPLETED = datetime(2024, 3, 15, 10, 0, 2, tzinfo=timezone.utc)


def _make_comparisons() -> tuple[FieldComparison, ...]:
    return (
        FieldComparison(
            field="tin",
            canonical=CanonicalField.TIN,
            status="match",
            qr_value="101234567",
            text_value="101234567",
            sources=ComparisonSources(
                qr=QrSource(page_number=1, scale=1.4),
                text=TextSource(page_number=1, raw="101234567"),
            ),
        ),
        FieldComparison(
            field="total_amount",
            canonical=CanonicalField.TOTAL_AMOUNT,
            status="mismatch",
            qr_value=5000.0,
            text_value=4000.0,
            details="Values differ beyond tolerance of ±1 RWF.",
            sources=ComparisonSources(text=TextSource(page_number=1, raw="4,000.00")),
        ),
        FieldComparison(
            field="currency",
            canonical=CanonicalField.CURRENCY,
            status="unverified",
            details="QR payload and text snapshot both missing this field.",
        ),
    )


def _make_outcome(errors: tuple[str, ...] = (), warnings: tuple[str, ...] = ()) -> ValidationOutcome:
    issue_date = ExtractedField(
        field="issue_date",
        config=RegexFieldConfig(regex=[r"DATE: (\S+)"], type="date"),
        canonical=CanonicalField.ISSUE_DATE,
        value=date(2024, 3, 15),
        raw="15/03/2024",
        page_number=1,
        matches=(FieldMatch(raw="15/03/2024", normalized="15/03/2024", value=date(2024, 3, 15), page_number=1),),
    )
    result = ValidationResult(
        comparisons=_make_comparisons(),
        qr_detections=(QrDetection(page_number=1, scale=1.4, text="tin:101234567;invoice:INV-007"),),
        summary=ValidationSummary(
            status="issues_found",
            headline="Invoice validation reported issues.",
            items=("Matched fields: 1", "Mismatched fields: 1"),
            discrepancies=("total_amount (page 1): QR=5000 | Text=4000",),
        ),
        started_at=STARTED,
        completed_at=COMPLETED,
        template_name="rra_ebm_invoice",
        issuer="Rwanda Revenue Authority EBM",
        qr_payload=QrPayload(
            raw="tin:101234567;invoice:INV-007",
            tin="101234567",
            invoice_number="INV-007",
            additional={"currency_source": "text_snapshot"},
        ),
        errors=errors,
        warnings=warnings,
    )
    extraction = TextExtraction(
        template_name="rra_ebm_invoice",
        issuer="Rwanda Revenue Authority EBM",
        fields={"issue_date": issue_date},
    )
    return ValidationOutcome(result=result, extraction=extraction)


class TestFormatComparisonLine:
    def test_icons_per_status(self) -> None:
        lines = [format_comparison_line(item) for item in _make_comparisons()]
        assert lines[0] == "✅ tin (page 1): QR=101234567 | Text=101234567"
        assert lines[1].startswith("❌ total_amount (page 1): QR=5000 | Text=4000 - ")
        assert lines[2].startswith("❔ currency: QR=— | Text=—")


class TestSerializeOutcome:
    def test_is_json_serializable(self) -> None:
        data = serialize_outcome(_make_outcome())
        assert json.loads(json.dumps(data)) == data

    def test_content(self) -> None:
        data = serialize_outcome(_make_outcome(errors=("boom",)))

        assert data["template_name"] == "rra_ebm_invoice"
        assert data["summary"]["status"] == "issues_found"
        assert data["errors"] == ["boom"]
        assert data["counts"] == {"match": 1, "mismatch": 1, "missing": 0, "unverified": 1}
        assert data["comparisons"][0]["qr_source"] == {"page_number": 1, "scale": 1.4}
        assert data["comparisons"][2]["text_source"] is None
        assert data["qr_payload"]["additional"] == {"currency_source": "text_snapshot"}
        assert data["qr_detections"][0]["page_number"] == 1
        assert data["extraction"]["issue_date"]["value"] == "2024-03-15"
        assert data["extraction"]["issue_date"]["matches"][0]["value"] == "2024-03-15"
        assert data["started_at"] == "2024-03-15T10:00:00+00:00"

    def test_without_payload_or_extraction(self) -> None:
        outcome = _make_outcome()
        bare = ValidationOutcome(
            result=ValidationResult(
                comparisons=(),
                qr_detections=(),
                summary=outcome.result.summary,
                started_at=STARTED,
                completed_at=COMPLETED,
            )
        )

        data = serialize_outcome(bare)

        assert data["qr_payload"] is None
        assert data["extraction"] is None
        assert data["comparisons"] == []


class TestFormatValidationMessage:
    def test_full_report(self) -> None:
        message = format_validation_message(
            _make_outcome(errors=("No QR codes detected in the invoice.",), warnings=("w1",))
        )

        lines = message.split("\n")
        assert lines[0] == "Invoice validation reported issues."
        assert lines[1] == "Matches: 1, mismatches: 1, missing: 0, unverified: 1."
        assert "Matched fields: 1" in lines
        assert lines[lines.index("Errors:") + 1] == "- No QR codes detected in the invoice."
        assert lines[lines.index("Warnings:") + 1] == "- w1"
        key = lines.index("Key discrepancies:")
        assert lines[key + 1].startswith("❌ total_amount")
        assert lines[-1] == "Invoice number (QR): INV-007"

    def test_sections_separated_by_blank_lines(self) -> None:
        message = format_validation_message(_make_outcome())
        assert "\n\nKey discrepancies:\n" in message
        assert "Errors:" not in message
        assert "Warnings:" not in message


class TestBuildValidationSources:
    def test_source_types(self) -> None:
        sources = build_validation_sources(_make_outcome(errors=("boom",)))

        assert [source.metadata["type"] for source in sources] == [
            "ebm-validation-summary",
            "ebm-validation-mismatch",
            "ebm-validation-qr",
            "ebm-validation-json",
        ]
        assert "• Matched fields: 1" in sources[0].page_content
        assert "• boom" in sources[0].page_content
        assert sources[0].metadata["completed_at"] == COMPLETED.isoformat()
        assert sources[1].page_content.startswith("Field discrepancies:")
        assert sources[2].page_content.endswith("tin:101234567;invoice:INV-007")
        assert json.loads(sources[3].page_content)["template_name"] == "rra_ebm_invoice"

    def test_clean_result_has_summary_and_json_only(self) -> None:
        outcome = _make_outcome()
        clean = ValidationOutcome(
            result=ValidationResult(
                comparisons=(_make_comparisons()[0],),
                qr_detections=(),
                summary=ValidationSummary(status="validated", headline="Invoice details match QR payload."),
                started_at=STARTED,
                completed_at=COMPLETED,
            ),
            extraction=outcome.extraction,
        )

        sources = build_validation_sources(clean)

        assert [source.metadata["type"] for source in sources] == [
            "ebm-validation-summary",
            "ebm-validation-json",
        ]
        assert sources[0].page_content == "Invoice details match QR payload."
