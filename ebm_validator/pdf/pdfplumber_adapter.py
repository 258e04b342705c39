import io
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import numpy as np
import pdfplumber

from ebm_validator.pdf.base import BasePdfRasterizer, Bitmap, RasterDocument
from ebm_validator.pdf.exceptions import PdfRenderError

_POINTS_PER_INCH = 72


class _PdfPlumberDocument(RasterDocument):
    def __init__(self, pdf: Any) -> None:
        self._pdf = pdf

    @property
    def page_count(self) -> int:
        return len(self._pdf.pages)

    @contextmanager
    def render(self, page_number: int, scale: float) -> Iterator[Bitmap]:
        try:
            page = self._pdf.pages[page_number - 1]
            image = page.to_image(resolution=_POINTS_PER_INCH * scale).original
            rgba = np.asarray(image.convert("RGBA"), dtype=np.uint8)
            image.close()
        except Exception as exc:
            raise PdfRenderError(
                f"pdfplumber failed to render page {page_number} at scale {scale}: {exc}"
            ) from exc
        try:
            yield Bitmap(data=rgba, width=rgba.shape[1], height=rgba.shape[0])
        finally:
            del rgba
            page.flush_cache()

    def close(self) -> None:
        self._pdf.close()


class PdfPlumberAdapter(BasePdfRasterizer):
    """Rasterizes PDF pages using pdfplumber (pypdfium2 backend)."""

    def open(self, pdf_bytes: bytes) -> RasterDocument:
        try:
            pdf = pdfplumber.open(io.BytesIO(pdf_bytes))
            _ = pdf.pages
        except Exception as exc:
            raise PdfRenderError(f"pdfplumber could not open PDF: {exc}") from exc
        return _PdfPlumberDocument(pdf)
