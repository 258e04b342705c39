import threading
from datetime import datetime, timezone

from ebm_validator.config.settings import Settings
from ebm_validator.logging.logger import Log
from ebm_validator.pdf.factory import PdfRasterizerFactory
from ebm_validator.processor.file_loader import FileLoader
from ebm_validator.processor.models import FileReference, InvoiceDocument
from ebm_validator.processor.pipeline import PipelineStep, ValidationContext
from ebm_validator.processor.steps import (
    SNAPSHOT_ERROR,
    BackfillCurrencyStep,
    CheckQrPayloadStep,
    CompareFieldsStep,
    DecodeQrStep,
    EnrichQrPayloadStep,
    ExtractFieldsStep,
    LoadDocumentStep,
    ParseQrPayloadStep,
    SelectTemplateStep,
    SummarizeStep,
)
from ebm_validator.qr.extractor import QrExtractor
from ebm_validator.qr.factory import QrDecoderFactory
from ebm_validator.qr.models import QrDecodeOptions
from ebm_validator.reconciliation.factory import ReceiptEnricherFactory
from ebm_validator.reconciliation.models import ValidationOutcome, ValidationResult
from ebm_validator.templates.loader import TemplateStore


class Processor:
    """Runs one invoice validation through the ordered pipeline steps.

    Pipeline: load -> template -> extract -> decode QR -> parse -> enrich ->
    check payload -> backfill currency -> compare -> summarize.
    Per-document problems are collected on the result; only configuration
    errors and cancellation propagate.
    """

    def __init__(
        self,
        load_step: PipelineStep,
        steps: list[PipelineStep],
        default_qr_options: QrDecodeOptions | None = None,
    ) -> None:
        self._load_step = load_step
        self._steps = steps
        self._default_qr_options = default_qr_options

    def __enter__(self) -> "Processor":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Release resources held by the steps, such as the enrichment HTTP client."""
        for step in [self._load_step, *self._steps]:
            step.close()

    def validate(
        self,
        file_ref: FileReference,
        qr_options: QrDecodeOptions | None = None,
        cancel_event: threading.Event | None = None,
    ) -> ValidationOutcome:
        """Load the stored invoice by reference and validate it."""
        context = self._new_context(file_ref, qr_options, cancel_event)
        Log.info("Validating invoice", file_id=file_ref.file_id, extension=file_ref.file_extension)
        context = self._load_step.run(context)
        return self._run(context)

    def validate_document(
        self,
        document: InvoiceDocument,
        qr_options: QrDecodeOptions | None = None,
        cancel_event: threading.Event | None = None,
    ) -> ValidationOutcome:
        """Validate inputs the caller already holds in memory."""
        context = self._new_context(document.file_ref, qr_options, cancel_event)
        context.document = document
        if document.snapshot is None:
            context.errors.append(SNAPSHOT_ERROR)
        return self._run(context)

    def _new_context(
        self,
        file_ref: FileReference,
        qr_options: QrDecodeOptions | None,
        cancel_event: threading.Event | None,
    ) -> ValidationContext:
        return ValidationContext(
            file_ref=file_ref,
            started_at=datetime.now(timezone.utc),
            qr_options=qr_options or self._default_qr_options,
            cancel_event=cancel_event,
        )

    def _run(self, context: ValidationContext) -> ValidationOutcome:
        for step in self._steps:
            context = step.run(context)
        if context.summary is None:
            raise ValueError("ValidationContext.summary must be set by the pipeline")

        result = ValidationResult(
            template_name=context.template.name if context.template else None,
            issuer=context.template.issuer if context.template else None,
            comparisons=tuple(context.comparisons),
            qr_payload=context.qr_payload,
            text_snapshot=context.document.snapshot if context.document else None,
            qr_detections=tuple(context.qr_detections),
            summary=context.summary,
            errors=tuple(context.errors),
            warnings=tuple(context.warnings),
            started_at=context.started_at,
            completed_at=datetime.now(timezone.utc),
        )
        return ValidationOutcome(result=result, extraction=context.extraction)


def build_qr_options(settings: Settings) -> QrDecodeOptions:
    return QrDecodeOptions(
        scales=tuple(settings.qr_scales),
        max_pages=settings.qr_max_pages,
        unique=settings.qr_unique,
    )


def build_processor(
    settings: Settings,
    template_store: TemplateStore | None = None,
) -> Processor:
    """Build a Processor with all required adapters.

    Templates are loaded here so a malformed template fails at startup.

    Raises:
        TemplateError: if the templates cannot be loaded.
        ValueError: if a configured engine, decoder or resolver is unknown.
    """
    file_loader = FileLoader(files_root=settings.files_root)
    template_store = template_store or TemplateStore(settings.templates_dir)
    template_store.load()
    qr_extractor = QrExtractor(
        rasterizer=PdfRasterizerFactory.create(settings),
        decoders=QrDecoderFactory.create(settings),
        page_workers=settings.qr_page_workers,
    )
    enricher = ReceiptEnricherFactory.create(settings)
    steps: list[PipelineStep] = [
        SelectTemplateStep(template_store),
        ExtractFieldsStep(),
        DecodeQrStep(qr_extractor),
        ParseQrPayloadStep(),
        EnrichQrPayloadStep(enricher),
        CheckQrPayloadStep(),
        BackfillCurrencyStep(),
        CompareFieldsStep(settings.amount_tolerance),
        SummarizeStep(settings.summary_max_discrepancies),
    ]
    return Processor(
        load_step=LoadDocumentStep(file_loader),
        steps=steps,
        default_qr_options=build_qr_options(settings),
    )
