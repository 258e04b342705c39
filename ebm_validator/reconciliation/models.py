from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from ebm_validator.extraction.models import TextExtraction, TextSnapshot
from ebm_validator.qr.models import QrDetection
from ebm_validator.templates.field_mapping import CanonicalField

ComparisonStatus = Literal["match", "mismatch", "missing", "unverified"]
SummaryStatus = Literal["validated", "issues_found"]


@dataclass(frozen=True)
class QrPayload:
    """Canonical record parsed from the decoded QR text."""

    raw: str
    invoice_number: str | None = None
    tin: str | None = None
    buyer_tin: str | None = None
    issue_date: str | None = None
    total_amount: float | None = None
    vat_amount: float | None = None
    currency: str | None = None
    additional: dict[str, object] = field(default_factory=dict)

    def value_for(self, canonical: CanonicalField) -> object:
        return getattr(self, canonical.value)

    @property
    def has_identifying_fields(self) -> bool:
        return bool(self.tin or self.invoice_number or self.total_amount is not None)


@dataclass(frozen=True)
class QrSource:
    page_number: int
    scale: float


@dataclass(frozen=True)
class TextSource:
    page_number: int | None
    raw: str | None


@dataclass(frozen=True)
class ComparisonSources:
    qr: QrSource | None = None
    text: TextSource | None = None


@dataclass(frozen=True)
class FieldComparison:
    field: str
    canonical: CanonicalField
    status: ComparisonStatus
    qr_value: object = None
    text_value: object = None
    details: str | None = None
    sources: ComparisonSources = field(default_factory=ComparisonSources)


@dataclass(frozen=True)
class ValidationSummary:
    status: SummaryStatus
    headline: str
    items: tuple[str, ...] = ()
    discrepancies: tuple[str, ...] = ()


@dataclass(frozen=True)
class ValidationResult:
    comparisons: tuple[FieldComparison, ...]
    qr_detections: tuple[QrDetection, ...]
    summary: ValidationSummary
    started_at: datetime
    completed_at: datetime
    template_name: str | None = None
    issuer: str | None = None
    qr_payload: QrPayload | None = None
    text_snapshot: TextSnapshot | None = None
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    def count(self, status: ComparisonStatus) -> int:
        return sum(1 for comparison in self.comparisons if comparison.status == status)


@dataclass(frozen=True)
class ValidationOutcome:
    """Everything one validation run produced. Never persisted here."""

    result: ValidationResult
    extraction: TextExtraction | None = None
