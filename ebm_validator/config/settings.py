from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    files_root: Path = Path("/app/files")
    templates_dir: Path | None = None

    pdf_engine: str = "pymupdf"

    qr_decoders: list[str] = Field(default_factory=lambda: ["zxing", "opencv"])
    qr_scales: list[float] = Field(
        default_factory=lambda: [1.4, 1.8, 2.2, 2.8, 3.5, 4.2]
    )
    qr_max_pages: int | None = None
    qr_unique: bool = True
    qr_page_workers: int = Field(default=1, ge=1)

    enrichment_enabled: bool = True
    enrichment_resolvers: list[str] = Field(default_factory=lambda: ["rra"])
    enrichment_timeout_seconds: float = Field(default=10.0, gt=0)

    amount_tolerance: float = Field(default=1.0, ge=0)
    summary_max_discrepancies: int = Field(default=5, ge=0)
