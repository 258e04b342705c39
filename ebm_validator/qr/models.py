from dataclasses import dataclass, field

DEFAULT_SCALES: tuple[float, ...] = (1.4, 1.8, 2.2, 2.8, 3.5, 4.2)


@dataclass(frozen=True)
class QrDetection:
    """Raw decode result for one page."""

    page_number: int
    scale: float
    text: str


@dataclass(frozen=True)
class QrDecodeOptions:
    """Per-call knobs for QR extraction."""

    scales: tuple[float, ...] = field(default=DEFAULT_SCALES)
    max_pages: int | None = None
    unique: bool = True

    def ordered_scales(self) -> list[float]:
        """Scales ascending, so cheap renders are tried first."""
        return sorted(self.scales) if self.scales else list(DEFAULT_SCALES)
