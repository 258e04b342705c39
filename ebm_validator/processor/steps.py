import dataclasses

from ebm_validator.extraction.exceptions import SnapshotError
from ebm_validator.extraction.field_extractor import extract_fields
from ebm_validator.logging.logger import Log
from ebm_validator.normalization.normalizers import normalize_currency
from ebm_validator.pdf.exceptions import PdfRenderError
from ebm_validator.processor.exceptions import FileReadError, ValidationCancelledError
from ebm_validator.processor.file_loader import FileLoader
from ebm_validator.processor.models import InvoiceDocument
from ebm_validator.processor.pipeline import PipelineStep, ValidationContext
from ebm_validator.qr.exceptions import ScanCancelledError
from ebm_validator.qr.extractor import QrExtractor
from ebm_validator.reconciliation.comparators import compute_comparisons
from ebm_validator.reconciliation.enrichment import ReceiptEnricher
from ebm_validator.reconciliation.qr_payload import parse_qr_payload
from ebm_validator.reconciliation.summary import build_summary
from ebm_validator.templates.loader import TemplateStore
from ebm_validator.templates.matcher import select_template

SNAPSHOT_ERROR = "Failed to load invoice text snapshot."
NO_TEMPLATE_ERROR = "No EBM template matched the invoice text."
UNSUPPORTED_FILE_ERROR = "QR validation currently supports PDF invoices only."
NO_QR_ERROR = "No QR codes detected in the invoice."
QR_DECODE_ERROR = "Failed to decode QR codes from the invoice."
UNRECOGNIZED_PAYLOAD_ERROR = "QR payload did not include recognizable invoice fields."

CURRENCY_FIELD = "currency"
CURRENCY_SOURCE_KEY = "currency_source"
CURRENCY_SOURCE_TEXT = "text_snapshot"


class LoadDocumentStep(PipelineStep):
    """Reads the page snapshot and, for PDFs, the original bytes."""

    def __init__(self, file_loader: FileLoader) -> None:
        self._file_loader = file_loader

    def run(self, context: ValidationContext) -> ValidationContext:
        file_ref = context.file_ref
        snapshot = None
        try:
            snapshot = self._file_loader.load_snapshot(file_ref)
        except (FileReadError, SnapshotError) as exc:
            context.errors.append(SNAPSHOT_ERROR)
            Log.warning("Failed to load page snapshot", file_id=file_ref.file_id, error=exc)

        pdf_bytes = None
        if file_ref.is_pdf:
            try:
                pdf_bytes = self._file_loader.load_bytes(file_ref)
            except FileReadError as exc:
                context.errors.append(QR_DECODE_ERROR)
                Log.error("Failed to read invoice file", file_id=file_ref.file_id, error=exc)

        context.document = InvoiceDocument(file_ref=file_ref, snapshot=snapshot, pdf_bytes=pdf_bytes)
        Log.info(
            "Loaded invoice document",
            file_id=file_ref.file_id,
            pages=len(snapshot.pages) if snapshot else 0,
            bytes=len(pdf_bytes) if pdf_bytes else 0,
        )
        return context


class SelectTemplateStep(PipelineStep):
    def __init__(self, template_store: TemplateStore) -> None:
        self._template_store = template_store

    def run(self, context: ValidationContext) -> ValidationContext:
        snapshot = context.document.snapshot if context.document else None
        if snapshot is None:
            return context
        context.template = select_template(snapshot, self._template_store.load())
        if context.template is None:
            context.errors.append(NO_TEMPLATE_ERROR)
        return context


class ExtractFieldsStep(PipelineStep):
    def run(self, context: ValidationContext) -> ValidationContext:
        snapshot = context.document.snapshot if context.document else None
        if context.template is None or snapshot is None:
            return context
        context.extraction = extract_fields(context.template, snapshot)

        for name in context.template.required_fields:
            extracted = context.extraction.fields.get(name)
            if extracted is None or not extracted.has_value:
                context.warnings.append(f"Required field '{name}' was not found in the invoice text.")
        return context


class DecodeQrStep(PipelineStep):
    def __init__(self, qr_extractor: QrExtractor) -> None:
        self._qr_extractor = qr_extractor

    def run(self, context: ValidationContext) -> ValidationContext:
        if not context.file_ref.is_pdf:
            context.errors.append(UNSUPPORTED_FILE_ERROR)
            return context
        pdf_bytes = context.document.pdf_bytes if context.document else None
        if pdf_bytes is None:
            return context

        try:
            detections = self._qr_extractor.decode(
                pdf_bytes, context.qr_options, cancel_event=context.cancel_event
            )
        except ScanCancelledError as exc:
            raise ValidationCancelledError(str(exc)) from exc
        except PdfRenderError as exc:
            context.errors.append(QR_DECODE_ERROR)
            Log.error("QR decoding failed", file_id=context.file_ref.file_id, error=exc)
            return context

        context.qr_detections = detections
        if not detections:
            context.errors.append(NO_QR_ERROR)
        return context


class ParseQrPayloadStep(PipelineStep):
    def run(self, context: ValidationContext) -> ValidationContext:
        if context.qr_detections:
            context.qr_payload = parse_qr_payload(context.qr_detections[0].text)
        return context


class EnrichQrPayloadStep(PipelineStep):
    """Fills empty QR fields from a receipt lookup; cancellable around the fetch."""

    def __init__(self, enricher: ReceiptEnricher | None) -> None:
        self._enricher = enricher

    def run(self, context: ValidationContext) -> ValidationContext:
        if self._enricher is None or context.qr_payload is None:
            return context
        _raise_if_cancelled(context)
        context.qr_payload = self._enricher.enrich(context.qr_payload)
        _raise_if_cancelled(context)
        return context

    def close(self) -> None:
        if self._enricher is not None:
            self._enricher.close()


class CheckQrPayloadStep(PipelineStep):
    def run(self, context: ValidationContext) -> ValidationContext:
        if context.qr_payload is not None and not context.qr_payload.has_identifying_fields:
            context.errors.append(UNRECOGNIZED_PAYLOAD_ERROR)
        return context


class BackfillCurrencyStep(PipelineStep):
    """Uses the text's currency when the QR payload carries none."""

    def run(self, context: ValidationContext) -> ValidationContext:
        payload = context.qr_payload
        if payload is None or context.extraction is None or payload.currency:
            return context
        currency_field = context.extraction.fields.get(CURRENCY_FIELD)
        if currency_field is None:
            return context
        value = currency_field.value if currency_field.value is not None else currency_field.raw
        currency = normalize_currency(value)
        if currency:
            context.qr_payload = dataclasses.replace(
                payload,
                currency=currency,
                additional={**payload.additional, CURRENCY_SOURCE_KEY: CURRENCY_SOURCE_TEXT},
            )
        return context


class CompareFieldsStep(PipelineStep):
    def __init__(self, amount_tolerance: float) -> None:
        self._amount_tolerance = amount_tolerance

    def run(self, context: ValidationContext) -> ValidationContext:
        context.comparisons = compute_comparisons(
            context.qr_payload,
            context.extraction,
            context.qr_detections,
            tolerance=self._amount_tolerance,
        )
        return context


class SummarizeStep(PipelineStep):
    def __init__(self, max_discrepancies: int) -> None:
        self._max_discrepancies = max_discrepancies

    def run(self, context: ValidationContext) -> ValidationContext:
        context.summary = build_summary(
            context.comparisons, context.errors, max_discrepancies=self._max_discrepancies
        )
        Log.info(
            "Validation summarized",
            file_id=context.file_ref.file_id,
            status=context.summary.status,
            comparisons=len(context.comparisons),
            errors=len(context.errors),
        )
        return context


def _raise_if_cancelled(context: ValidationContext) -> None:
    if context.cancelled:
        raise ValidationCancelledError("Validation cancelled")
