from dataclasses import dataclass

from ebm_validator.extraction.models import TextSnapshot

PDF_EXTENSION = "pdf"


@dataclass(frozen=True)
class FileReference:
    """Identifies an uploaded invoice and its stored page snapshot."""

    file_id: str
    file_extension: str
    file_name: str | None = None

    @property
    def is_pdf(self) -> bool:
        return self.file_extension.strip().lstrip(".").lower() == PDF_EXTENSION


@dataclass(frozen=True)
class InvoiceDocument:
    """Inputs of one validation run: original bytes plus the text snapshot."""

    file_ref: FileReference
    snapshot: TextSnapshot | None = None
    pdf_bytes: bytes | None = None
