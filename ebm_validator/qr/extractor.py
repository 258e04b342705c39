"""Multi-scale QR extraction from PDF pages.

Each page is rendered at increasing scales until one of the decoders finds a
code; lower scales are cheaper, so escalation only happens on failure.
"""

import time
from concurrent.futures import FIRST_COMPLETED, Future, ProcessPoolExecutor, wait
from concurrent.futures.process import BrokenProcessPool
from contextlib import ExitStack
from multiprocessing import Manager
from typing import Protocol

from ebm_validator.logging.logger import Log
from ebm_validator.pdf.base import BasePdfRasterizer, Bitmap, RasterDocument, iter_page_numbers
from ebm_validator.pdf.exceptions import PdfRenderError
from ebm_validator.qr.base import BaseQrDecoder
from ebm_validator.qr.exceptions import QrDecodeError, ScanCancelledError
from ebm_validator.qr.models import QrDecodeOptions, QrDetection

CANCEL_POLL_SECONDS = 0.05


class CancelSignal(Protocol):
    """threading.Event, or a manager proxy of one inside worker processes."""

    def is_set(self) -> bool: ...


class QrExtractor:
    """Finds QR codes embedded in PDF pages."""

    def __init__(
        self,
        rasterizer: BasePdfRasterizer,
        decoders: list[BaseQrDecoder],
        page_workers: int = 1,
    ) -> None:
        if not decoders:
            raise ValueError("QrExtractor requires at least one decoder")
        self._rasterizer = rasterizer
        self._decoders = decoders
        self._page_workers = max(1, page_workers)

    def decode(
        self,
        pdf_bytes: bytes,
        options: QrDecodeOptions | None = None,
        cancel_event: CancelSignal | None = None,
    ) -> list[QrDetection]:
        """Decode QR codes from every page, at most one per page.

        Returns:
            Detections in page order; empty when nothing was found.

        Raises:
            PdfRenderError: if the PDF itself cannot be opened.
            ScanCancelledError: if cancel_event is set between attempts.
        """
        options = options or QrDecodeOptions()
        scales = options.ordered_scales()
        started = time.perf_counter()

        with self._rasterizer.open(pdf_bytes) as document:
            page_numbers = list(iter_page_numbers(document, options.max_pages))
            if self._page_workers > 1 and len(page_numbers) > 1:
                found = self._scan_parallel(pdf_bytes, page_numbers, scales, cancel_event)
            else:
                found = [
                    scan_page(document, page_number, scales, self._decoders, cancel_event)
                    for page_number in page_numbers
                ]

        detections = _collect(found, options.unique)
        Log.info(
            "QR extraction finished",
            pages=len(page_numbers),
            matches=len(detections),
            duration_ms=f"{(time.perf_counter() - started) * 1000:.1f}",
        )
        return detections

    def _scan_parallel(
        self,
        pdf_bytes: bytes,
        page_numbers: list[int],
        scales: list[float],
        cancel_event: CancelSignal | None,
    ) -> list[QrDetection | None]:
        rasterizer_cls = type(self._rasterizer)
        decoder_classes = [type(decoder) for decoder in self._decoders]
        results: dict[int, QrDetection | None] = {}

        with ExitStack() as stack:
            # Cancellation reaches workers through a manager-backed event.
            worker_cancel = None
            if cancel_event is not None:
                worker_cancel = stack.enter_context(Manager()).Event()
            pool = ProcessPoolExecutor(max_workers=self._page_workers)
            stack.callback(pool.shutdown, wait=True, cancel_futures=True)

            futures = {
                pool.submit(
                    _scan_page_in_worker,
                    pdf_bytes,
                    page_number,
                    scales,
                    rasterizer_cls,
                    decoder_classes,
                    worker_cancel,
                ): page_number
                for page_number in page_numbers
            }
            pending = set(futures)
            while pending:
                done, pending = wait(
                    pending, timeout=CANCEL_POLL_SECONDS, return_when=FIRST_COMPLETED
                )
                for future in done:
                    results[futures[future]] = _page_result(future, futures[future])
                if cancel_event is not None and cancel_event.is_set():
                    if worker_cancel is not None:
                        worker_cancel.set()
                    raise ScanCancelledError("QR scan cancelled")

        return [results[page_number] for page_number in page_numbers]


def scan_page(
    document: RasterDocument,
    page_number: int,
    scales: list[float],
    decoders: list[BaseQrDecoder],
    cancel_event: CancelSignal | None = None,
) -> QrDetection | None:
    """Try each scale in order and stop at the first decoded QR code."""
    for scale in scales:
        _raise_if_cancelled(cancel_event)
        started = time.perf_counter()
        try:
            with document.render(page_number, scale) as bitmap:
                text = _decode_bitmap(bitmap, decoders)
        except PdfRenderError as exc:
            Log.trace("Failed to render QR candidate", page=page_number, scale=scale, error=exc)
            continue
        duration_ms = f"{(time.perf_counter() - started) * 1000:.1f}"

        if text:
            Log.info("Detected QR code", page=page_number, scale=scale, duration_ms=duration_ms)
            return QrDetection(page_number=page_number, scale=scale, text=text)
        Log.debug("No QR match for page", page=page_number, scale=scale, duration_ms=duration_ms)
    return None


def _decode_bitmap(bitmap: Bitmap, decoders: list[BaseQrDecoder]) -> str | None:
    for decoder in decoders:
        try:
            text = decoder.decode(bitmap)
        except QrDecodeError as exc:
            Log.trace("QR decoder failed", decoder=decoder.name, error=exc)
            continue
        if text:
            return text
    return None


def _scan_page_in_worker(
    pdf_bytes: bytes,
    page_number: int,
    scales: list[float],
    rasterizer_cls: type[BasePdfRasterizer],
    decoder_classes: list[type[BaseQrDecoder]],
    cancel_event: CancelSignal | None,
) -> QrDetection | None:
    # Each worker process owns its own document and decoders.
    decoders = [decoder_cls() for decoder_cls in decoder_classes]
    with rasterizer_cls().open(pdf_bytes) as document:
        return scan_page(document, page_number, scales, decoders, cancel_event)


def _page_result(future: Future[QrDetection | None], page_number: int) -> QrDetection | None:
    """A page whose worker failed or died counts as having no QR code."""
    try:
        return future.result()
    except ScanCancelledError:
        return None
    except BrokenProcessPool as exc:
        Log.warning("QR worker process terminated", page=page_number, error=exc)
        return None
    except Exception as exc:
        Log.warning("QR worker failed", page=page_number, error=exc)
        return None


def _collect(found: list[QrDetection | None], unique: bool) -> list[QrDetection]:
    seen: set[str] = set()
    detections: list[QrDetection] = []
    for detection in found:
        if detection is None:
            continue
        if unique and detection.text in seen:
            Log.debug("Discarding duplicate QR code", page=detection.page_number)
            continue
        seen.add(detection.text)
        detections.append(detection)
    return detections


def _raise_if_cancelled(cancel_event: CancelSignal | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise ScanCancelledError("QR scan cancelled")
