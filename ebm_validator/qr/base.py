from abc import ABC, abstractmethod
from typing import ClassVar

from ebm_validator.pdf.base import Bitmap


class BaseQrDecoder(ABC):
    """Contract for all QR decoding adapters."""

    name: ClassVar[str]

    @abstractmethod
    def decode(self, bitmap: Bitmap) -> str | None:
        """Decode the first QR code found in an RGBA bitmap.

        Returns:
            The decoded text, or None when no QR code is found.

        Raises:
            QrDecodeError: if the underlying decoder fails.
        """
