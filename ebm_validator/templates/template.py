import re
from datetime import date
from pathlib import Path

from ebm_validator.normalization.normalizers import (
    apply_replacements,
    normalize_whitespace,
    parse_amount,
    parse_date,
    remove_whitespace,
    strip_accents,
)
from ebm_validator.templates.field_mapping import CanonicalField, resolve_canonical
from ebm_validator.templates.models import (
    FieldConfig,
    FieldType,
    LinesFieldConfig,
    RegexFieldConfig,
    TemplateConfig,
    TemplateOptions,
)


class Template:
    """A loaded template: keyword matcher plus field rules."""

    def __init__(self, config: TemplateConfig, source: Path | None = None) -> None:
        self.config = config
        self.source = source
        self._keywords = [self.prepare_input(k) for k in config.keywords]
        self._exclude_keywords = [self.prepare_input(k) for k in config.exclude_keywords]
        self._patterns = {
            name: [re.compile(pattern) for pattern in field.regex]
            for name, field in config.fields.items()
            if isinstance(field, RegexFieldConfig)
        }
        self.canonical_fields: dict[str, CanonicalField | None] = {
            name: resolve_canonical(name, field.canonical)
            for name, field in config.fields.items()
        }

    @property
    def name(self) -> str:
        return self.config.template_name

    @property
    def issuer(self) -> str:
        return self.config.issuer or self.config.template_name

    @property
    def options(self) -> TemplateOptions:
        return self.config.options

    @property
    def fields(self) -> dict[str, FieldConfig]:
        return self.config.fields

    @property
    def required_fields(self) -> list[str]:
        """Fields listed in required_fields plus those flagged required: true."""
        flagged = [name for name, field in self.fields.items() if field.required]
        return list(dict.fromkeys([*self.config.required_fields, *flagged]))

    def patterns_for(self, field_name: str) -> list[re.Pattern[str]]:
        return self._patterns.get(field_name, [])

    def line_patterns_for(
        self, field_name: str
    ) -> tuple[re.Pattern[str], re.Pattern[str] | None, re.Pattern[str]] | None:
        field = self.fields.get(field_name)
        if not isinstance(field, LinesFieldConfig):
            return None
        end = re.compile(field.end) if field.end is not None else None
        return re.compile(field.start), end, re.compile(field.line)

    def prepare_input(self, content: str) -> str:
        """Normalize text with this template's options."""
        options = self.options
        if options.remove_whitespace:
            result = remove_whitespace(content)
        else:
            result = normalize_whitespace(content)
        if options.remove_accents:
            result = strip_accents(result)
        if options.lowercase:
            result = result.lower()
        return apply_replacements(result, options.replace)

    def matches_input(self, content: str) -> bool:
        """All keywords present and no exclude keyword present."""
        prepared = self.prepare_input(content)
        if not all(keyword in prepared for keyword in self._keywords if keyword):
            return False
        return not any(keyword in prepared for keyword in self._exclude_keywords if keyword)

    def coerce_value(self, value: str | None, field_type: FieldType) -> str | float | date | None:
        if value is None:
            return None
        if field_type in ("amount", "number"):
            return parse_amount(value, self.options.decimal_separator)
        if field_type == "date":
            return parse_date(value, self.options.date_formats or None)
        return value.strip()

    def __repr__(self) -> str:
        return f"Template(name={self.name!r}, issuer={self.issuer!r})"
