from ebm_validator.config.settings import Settings
from ebm_validator.pdf.base import BasePdfRasterizer
from ebm_validator.pdf.pdfplumber_adapter import PdfPlumberAdapter
from ebm_validator.pdf.pymupdf_adapter import PyMuPdfAdapter


class PdfRasterizerFactory:
    """Creates the correct PDF rasterizer based on settings."""

    ADAPTERS: dict[str, type[BasePdfRasterizer]] = {
        "pdfplumber": PdfPlumberAdapter,
        "pymupdf": PyMuPdfAdapter,
    }

    @classmethod
    def create(cls, settings: Settings) -> BasePdfRasterizer:
        return cls.for_engine(settings.pdf_engine)

    @classmethod
    def for_engine(cls, engine: str) -> BasePdfRasterizer:
        engine = engine.lower()
        adapter_cls = cls.ADAPTERS.get(engine)
        if adapter_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {list(cls.ADAPTERS)}"
            )
        return adapter_cls()
