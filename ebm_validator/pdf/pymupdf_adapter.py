from collections.abc import Iterator
from contextlib import contextmanager

import cv2
import numpy as np
import pymupdf

from ebm_validator.pdf.base import BasePdfRasterizer, Bitmap, RasterDocument
from ebm_validator.pdf.exceptions import PdfRenderError


class _PyMuPdfDocument(RasterDocument):
    def __init__(self, doc: pymupdf.Document) -> None:
        self._doc = doc

    @property
    def page_count(self) -> int:
        return int(self._doc.page_count)

    @contextmanager
    def render(self, page_number: int, scale: float) -> Iterator[Bitmap]:
        try:
            page = self._doc.load_page(page_number - 1)
            pixmap = page.get_pixmap(matrix=pymupdf.Matrix(scale, scale), alpha=False)
            rgb = np.frombuffer(pixmap.samples, dtype=np.uint8).reshape(
                pixmap.height, pixmap.width, pixmap.n
            )
            rgba = cv2.cvtColor(rgb, cv2.COLOR_RGB2RGBA)
        except Exception as exc:
            raise PdfRenderError(
                f"pymupdf failed to render page {page_number} at scale {scale}: {exc}"
            ) from exc
        del rgb, pixmap
        try:
            yield Bitmap(data=rgba, width=rgba.shape[1], height=rgba.shape[0])
        finally:
            del rgba

    def close(self) -> None:
        self._doc.close()


class PyMuPdfAdapter(BasePdfRasterizer):
    """Rasterizes PDF pages using PyMuPDF."""

    def open(self, pdf_bytes: bytes) -> RasterDocument:
        try:
            doc = pymupdf.open(stream=pdf_bytes, filetype="pdf")  # type: ignore[no-untyped-call]
        except Exception as exc:
            raise PdfRenderError(f"pymupdf could not open PDF: {exc}") from exc
        return _PyMuPdfDocument(doc)
