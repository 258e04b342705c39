import cv2

from ebm_validator.pdf.base import Bitmap
from ebm_validator.qr.base import BaseQrDecoder
from ebm_validator.qr.exceptions import QrDecodeError


class OpenCvQrDecoder(BaseQrDecoder):
    """Decodes QR codes with OpenCV's QRCodeDetector, trying the inverted image too."""

    name = "opencv"

    def __init__(self) -> None:
        self._detector = cv2.QRCodeDetector()

    def decode(self, bitmap: Bitmap) -> str | None:
        try:
            gray = cv2.cvtColor(bitmap.data, cv2.COLOR_RGBA2GRAY)
            for candidate in (gray, cv2.bitwise_not(gray)):
                text, _points, _straight = self._detector.detectAndDecode(candidate)
                if text:
                    return str(text)
        except cv2.error as exc:
            raise QrDecodeError(f"opencv decode failed: {exc}") from exc
        return None
