import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime

from ebm_validator.extraction.models import TextExtraction
from ebm_validator.processor.models import FileReference, InvoiceDocument
from ebm_validator.qr.models import QrDecodeOptions, QrDetection
from ebm_validator.reconciliation.models import FieldComparison, QrPayload, ValidationSummary
from ebm_validator.templates.template import Template


@dataclass(slots=True)
class ValidationContext:
    file_ref: FileReference
    started_at: datetime
    qr_options: QrDecodeOptions | None = None
    cancel_event: threading.Event | None = None
    document: InvoiceDocument | None = None
    template: Template | None = None
    extraction: TextExtraction | None = None
    qr_detections: list[QrDetection] = field(default_factory=list)
    qr_payload: QrPayload | None = None
    comparisons: list[FieldComparison] = field(default_factory=list)
    summary: ValidationSummary | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()


class PipelineStep(ABC):
    @abstractmethod
    def run(self, context: ValidationContext) -> ValidationContext:
        raise NotImplementedError

    def close(self) -> None:
        """Release resources held by the step."""
