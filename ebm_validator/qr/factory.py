from ebm_validator.config.settings import Settings
from ebm_validator.qr.base import BaseQrDecoder
from ebm_validator.qr.opencv_decoder import OpenCvQrDecoder
from ebm_validator.qr.zxing_decoder import ZxingQrDecoder


class QrDecoderFactory:
    """Creates the ordered decoder chain based on settings."""

    DECODERS: dict[str, type[BaseQrDecoder]] = {
        "zxing": ZxingQrDecoder,
        "opencv": OpenCvQrDecoder,
    }

    @classmethod
    def create(cls, settings: Settings) -> list[BaseQrDecoder]:
        return cls.for_names(settings.qr_decoders)

    @classmethod
    def for_names(cls, names: list[str]) -> list[BaseQrDecoder]:
        if not names:
            raise ValueError("At least one QR decoder must be configured")
        decoders: list[BaseQrDecoder] = []
        for name in names:
            decoder_cls = cls.DECODERS.get(name.lower())
            if decoder_cls is None:
                raise ValueError(
                    f"Unknown QR decoder '{name}'. Choose from: {list(cls.DECODERS)}"
                )
            decoders.append(decoder_cls())
        return decoders
