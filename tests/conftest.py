import io
import json
from collections.abc import Callable
from pathlib import Path

import pytest
from reportlab.graphics import renderPDF
from reportlab.graphics.barcode.qr import QrCodeWidget
from reportlab.graphics.shapes import Drawing
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

INVOICE_LINES = [
    "KIGALI TRADERS LTD",
    "TIN: 101234567",
    "CLIENT TIN: 102345678",
    "INVOICE NUMBER: INV-007",
    "ITEMS",
    "Sugar 1kg 2 x 1,500.00",
    "Rice 5kg 1 x 2,000.00",
    "TOTAL RWF 5,000.00",
    "TOTAL TAX-B 762.71",
    "SDC ID: SDC010000123",
    "DATE: 15/03/2024 10:22:11",
    "MRC: WIS00001234",
]

MATCHING_QR_TEXT = (
    "tin:101234567;buyertin:102345678;invoice:INV-007;"
    "date:2024-03-15;total:5000.00;vat:762.71"
)


def _draw_qr(c: canvas.Canvas, text: str, x: float, y: float, size: float = 200) -> None:
    widget = QrCodeWidget(text)
    x0, y0, x1, y1 = widget.getBounds()
    drawing = Drawing(size, size, transform=[size / (x1 - x0), 0, 0, size / (y1 - y0), 0, 0])
    drawing.add(widget)
    renderPDF.draw(drawing, c, x, y)


def build_pdf(pages: list[tuple[list[str], str | None]]) -> bytes:
    """One page per entry: text lines, and an optional QR code payload."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    for lines, qr_text in pages:
        y = 800
        for line in lines:
            c.drawString(72, y, line)
            y -= 16
        if qr_text is not None:
            _draw_qr(c, qr_text, 72, 250)
        c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def make_pdf() -> Callable[[list[tuple[list[str], str | None]]], bytes]:
    return build_pdf


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Single-page PDF with known text and no QR code."""
    return build_pdf([(["Hello PDF World"], None)])


@pytest.fixture()
def qr_pdf_bytes() -> bytes:
    """Invoice PDF whose QR code agrees with its printed text."""
    return build_pdf([(INVOICE_LINES, MATCHING_QR_TEXT)])


@pytest.fixture()
def three_page_pdf_without_qr() -> bytes:
    return build_pdf([(INVOICE_LINES, None), (["Page two"], None), (["Page three"], None)])


@pytest.fixture()
def invoice_pages_payload() -> dict[str, object]:
    return {
        "title": "invoice.pdf",
        "pages": [{"pageNumber": 1, "text": "\n".join(INVOICE_LINES)}],
    }


@pytest.fixture()
def write_upload(tmp_path: Path) -> Callable[..., Path]:
    """Store an upload the way the text extractor leaves it on disk."""

    def _write(
        file_id: str,
        pdf_bytes: bytes | None,
        pages_payload: dict[str, object] | None,
        extension: str = "pdf",
    ) -> Path:
        if pdf_bytes is not None:
            (tmp_path / f"{file_id}.{extension}").write_bytes(pdf_bytes)
        if pages_payload is not None:
            (tmp_path / f"{file_id}-pages.json").write_text(json.dumps(pages_payload))
        return tmp_path

    return _write
