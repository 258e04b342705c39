"""Render a ValidationOutcome as JSON-ready data, plain text or source documents."""

import json
from dataclasses import dataclass, field
from datetime import date

from ebm_validator.extraction.models import ExtractedField, FieldMatch
from ebm_validator.reconciliation.models import (
    FieldComparison,
    ValidationOutcome,
    ValidationResult,
)
from ebm_validator.reconciliation.summary import describe_comparison

STATUS_ICONS = {
    "match": "✅",
    "mismatch": "❌",
    "missing": "⚠️",
    "unverified": "❔",
}
KEY_DISCREPANCY_LIMIT = 3


@dataclass(frozen=True)
class ValidationSource:
    """A document handed to a narrative-generation collaborator."""

    page_content: str
    metadata: dict[str, object] = field(default_factory=dict)


def format_comparison_line(comparison: FieldComparison) -> str:
    return f"{STATUS_ICONS[comparison.status]} {describe_comparison(comparison)}"


def comparison_counts(result: ValidationResult) -> dict[str, int]:
    return {
        "match": result.count("match"),
        "mismatch": result.count("mismatch"),
        "missing": result.count("missing"),
        "unverified": result.count("unverified"),
    }


def serialize_outcome(outcome: ValidationOutcome) -> dict[str, object]:
    result = outcome.result
    extraction = None
    if outcome.extraction is not None:
        extraction = {
            name: _serialize_field(extracted)
            for name, extracted in outcome.extraction.fields.items()
        }

    payload = result.qr_payload
    return {
        "template_name": result.template_name,
        "issuer": result.issuer,
        "summary": {
            "status": result.summary.status,
            "headline": result.summary.headline,
            "items": list(result.summary.items),
            "discrepancies": list(result.summary.discrepancies),
        },
        "errors": list(result.errors),
        "warnings": list(result.warnings),
        "counts": comparison_counts(result),
        "comparisons": [_serialize_comparison(item) for item in result.comparisons],
        "qr_payload": {
            "raw": payload.raw,
            "invoice_number": payload.invoice_number,
            "tin": payload.tin,
            "buyer_tin": payload.buyer_tin,
            "issue_date": payload.issue_date,
            "total_amount": payload.total_amount,
            "vat_amount": payload.vat_amount,
            "currency": payload.currency,
            "additional": {key: _jsonable(value) for key, value in payload.additional.items()},
        }
        if payload
        else None,
        "qr_detections": [
            {"page_number": d.page_number, "scale": d.scale, "text": d.text}
            for d in result.qr_detections
        ],
        "extraction": extraction,
        "started_at": result.started_at.isoformat(),
        "completed_at": result.completed_at.isoformat(),
    }


def format_validation_message(outcome: ValidationOutcome) -> str:
    """Plain-text report: headline, counts, summary items, errors, key discrepancies."""
    result = outcome.result
    counts = comparison_counts(result)
    lines = [
        result.summary.headline,
        f"Matches: {counts['match']}, mismatches: {counts['mismatch']}, "
        f"missing: {counts['missing']}, unverified: {counts['unverified']}.",
    ]

    if result.summary.items:
        lines.extend(["", *result.summary.items])
    if result.errors:
        lines.extend(["", "Errors:", *(f"- {error}" for error in result.errors)])
    if result.warnings:
        lines.extend(["", "Warnings:", *(f"- {warning}" for warning in result.warnings)])

    notable = [
        format_comparison_line(item)
        for item in result.comparisons
        if item.status in ("mismatch", "missing")
    ][:KEY_DISCREPANCY_LIMIT]
    if notable:
        lines.extend(["", "Key discrepancies:", *notable])

    if result.qr_payload and result.qr_payload.invoice_number:
        lines.extend(["", f"Invoice number (QR): {result.qr_payload.invoice_number}"])

    return "\n".join(lines)


def build_validation_sources(outcome: ValidationOutcome) -> list[ValidationSource]:
    result = outcome.result
    summary_lines = [result.summary.headline]
    if result.summary.items:
        summary_lines.extend(["", *(f"• {item}" for item in result.summary.items)])
    if result.errors:
        summary_lines.extend(["", "Errors:", *(f"• {error}" for error in result.errors)])

    sources = [
        ValidationSource(
            page_content="\n".join(summary_lines),
            metadata={
                "url": "File",
                "title": "EBM validation summary",
                "note": result.summary.headline,
                "type": "ebm-validation-summary",
                "completed_at": result.completed_at.isoformat(),
            },
        )
    ]

    flagged = [
        format_comparison_line(item)
        for item in result.comparisons
        if item.status in ("mismatch", "missing")
    ]
    if flagged:
        sources.append(
            ValidationSource(
                page_content="\n".join(["Field discrepancies:", "", *flagged]),
                metadata={"url": "File", "title": "EBM mismatches", "type": "ebm-validation-mismatch"},
            )
        )

    if result.qr_payload and result.qr_payload.raw:
        sources.append(
            ValidationSource(
                page_content="\n".join(["Raw QR payload:", "", result.qr_payload.raw]),
                metadata={"url": "File", "title": "QR payload", "type": "ebm-validation-qr"},
            )
        )

    sources.append(
        ValidationSource(
            page_content=json.dumps(serialize_outcome(outcome), indent=2, ensure_ascii=False),
            metadata={
                "url": "File",
                "title": "EBM validation details (JSON)",
                "type": "ebm-validation-json",
            },
        )
    )
    return sources


def _serialize_comparison(comparison: FieldComparison) -> dict[str, object]:
    qr_source = comparison.sources.qr
    text_source = comparison.sources.text
    return {
        "field": comparison.field,
        "canonical": comparison.canonical.value,
        "status": comparison.status,
        "qr_value": _jsonable(comparison.qr_value),
        "text_value": _jsonable(comparison.text_value),
        "details": comparison.details,
        "qr_source": {"page_number": qr_source.page_number, "scale": qr_source.scale}
        if qr_source
        else None,
        "text_source": {"page_number": text_source.page_number, "raw": text_source.raw}
        if text_source
        else None,
    }


def _serialize_field(extracted: ExtractedField) -> dict[str, object]:
    return {
        "value": _jsonable(extracted.value),
        "raw": extracted.raw,
        "page_number": extracted.page_number,
        "matches": [_serialize_match(match) for match in extracted.matches],
    }


def _serialize_match(match: FieldMatch) -> dict[str, object]:
    return {
        "raw": match.raw,
        "normalized": match.normalized,
        "value": _jsonable(match.value),
        "page_number": match.page_number,
    }


def _jsonable(value: object) -> object:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _jsonable(item) for key, item in value.items()}
    return str(value)
