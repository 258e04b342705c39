import cv2
import zxingcpp

from ebm_validator.pdf.base import Bitmap
from ebm_validator.qr.base import BaseQrDecoder
from ebm_validator.qr.exceptions import QrDecodeError


class ZxingQrDecoder(BaseQrDecoder):
    """Decodes QR codes with zxing-cpp using its hybrid (local average) binarizer."""

    name = "zxing"

    def decode(self, bitmap: Bitmap) -> str | None:
        try:
            gray = cv2.cvtColor(bitmap.data, cv2.COLOR_RGBA2GRAY)
            results = zxingcpp.read_barcodes(
                gray,
                formats=zxingcpp.BarcodeFormat.QRCode,
                try_rotate=True,
                binarizer=zxingcpp.Binarizer.LocalAverage,
            )
        except Exception as exc:
            raise QrDecodeError(f"zxing decode failed: {exc}") from exc
        for result in results:
            if result.text:
                return str(result.text)
        return None
