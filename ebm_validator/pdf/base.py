from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import AbstractContextManager
from dataclasses import dataclass
from types import TracebackType

import numpy as np


@dataclass(frozen=True)
class Bitmap:
    """A rasterized page: RGBA pixels, shape (height, width, 4)."""

    data: np.ndarray
    width: int
    height: int


class RasterDocument(ABC):
    """An opened PDF that can render its pages to bitmaps."""

    @property
    @abstractmethod
    def page_count(self) -> int:
        """Number of pages in the document."""

    @abstractmethod
    def render(self, page_number: int, scale: float) -> AbstractContextManager[Bitmap]:
        """Rasterize a 1-based page at the given scale.

        The bitmap is only valid inside the context; its buffers are released
        on exit.

        Raises:
            PdfRenderError: if the page cannot be rendered.
        """

    @abstractmethod
    def close(self) -> None:
        """Release the underlying document."""

    def __enter__(self) -> "RasterDocument":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class BasePdfRasterizer(ABC):
    """Contract for all PDF rasterization adapters."""

    @abstractmethod
    def open(self, pdf_bytes: bytes) -> RasterDocument:
        """Open PDF bytes for rendering.

        Args:
            pdf_bytes: Raw PDF file content.

        Returns:
            A RasterDocument; callers should use it as a context manager.

        Raises:
            PdfRenderError: if the bytes are not a readable PDF.
        """


def iter_page_numbers(document: RasterDocument, max_pages: int | None) -> Iterator[int]:
    """Yield 1-based page numbers up to min(page_count, max_pages)."""
    last = document.page_count if max_pages is None else min(document.page_count, max_pages)
    yield from range(1, last + 1)
