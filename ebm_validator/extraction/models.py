from dataclasses import dataclass, field

from ebm_validator.templates.field_mapping import CanonicalField
from ebm_validator.templates.models import FieldConfig


@dataclass(frozen=True)
class TextPage:
    page_number: int
    text: str


@dataclass(frozen=True)
class TextSnapshot:
    """Per-page text of one document, produced by an external extractor."""

    title: str
    pages: tuple[TextPage, ...]
    content: str

    @classmethod
    def from_pages(cls, title: str, pages: list[TextPage]) -> "TextSnapshot":
        return cls(
            title=title,
            pages=tuple(pages),
            content="\n".join(page.text for page in pages),
        )


@dataclass(frozen=True)
class FieldMatch:
    """One regex hit: original text, whitespace-normalized text and typed value."""

    raw: str
    normalized: str
    value: object = None
    page_number: int | None = None


@dataclass(frozen=True)
class ExtractedField:
    field: str
    config: FieldConfig
    canonical: CanonicalField | None = None
    value: object = None
    raw: str | None = None
    page_number: int | None = None
    matches: tuple[FieldMatch, ...] = ()

    @property
    def has_value(self) -> bool:
        return self.value is not None and self.value != ""


@dataclass(frozen=True)
class TextExtraction:
    template_name: str
    issuer: str
    fields: dict[str, ExtractedField] = field(default_factory=dict)
