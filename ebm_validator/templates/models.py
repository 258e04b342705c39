"""Declarative template documents, validated at load time."""

import re
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

FieldType = Literal["string", "amount", "number", "date", "raw"]
FieldGroup = Literal["first", "last", "sum", "concat"]


def _compile(pattern: str) -> str:
    try:
        re.compile(pattern)
    except re.error as exc:
        raise ValueError(f"invalid regular expression {pattern!r}: {exc}") from exc
    return pattern


def _to_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    return [str(value)]


class TemplateOptions(BaseModel):
    """Normalization applied to both keywords and document text."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    remove_whitespace: bool = False
    remove_accents: bool = False
    lowercase: bool = False
    decimal_separator: Literal[".", ","] = "."
    date_formats: list[str] = Field(default_factory=list)
    replace: list[tuple[str, str]] = Field(default_factory=list)

    @field_validator("replace")
    @classmethod
    def _check_replace(cls, value: list[tuple[str, str]]) -> list[tuple[str, str]]:
        for pattern, _replacement in value:
            _compile(pattern)
        return value


class _FieldConfigBase(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: FieldType = "string"
    required: bool = False
    canonical: str | None = None


class RegexFieldConfig(_FieldConfigBase):
    parser: Literal["regex"] = "regex"
    regex: list[str] = Field(min_length=1)
    group: FieldGroup | None = None

    @field_validator("regex", mode="before")
    @classmethod
    def _regex_list(cls, value: Any) -> list[str]:
        return _to_list(value)

    @field_validator("regex")
    @classmethod
    def _check_regex(cls, value: list[str]) -> list[str]:
        return [_compile(pattern) for pattern in value]


class StaticFieldConfig(_FieldConfigBase):
    parser: Literal["static"]
    value: Any = None


class LinesFieldConfig(_FieldConfigBase):
    parser: Literal["lines"]
    start: str
    end: str | None = None
    line: str
    group: FieldGroup | None = None

    @field_validator("start", "end", "line")
    @classmethod
    def _check_pattern(cls, value: str | None) -> str | None:
        return _compile(value) if value is not None else None


FieldConfig = Annotated[
    RegexFieldConfig | StaticFieldConfig | LinesFieldConfig,
    Field(discriminator="parser"),
]


class TemplateConfig(BaseModel):
    """One template document as written in YAML."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    template_name: str = Field(min_length=1)
    issuer: str | None = None
    keywords: list[str] = Field(default_factory=list)
    exclude_keywords: list[str] = Field(default_factory=list)
    fields: dict[str, FieldConfig] = Field(default_factory=dict)
    required_fields: list[str] = Field(default_factory=list)
    options: TemplateOptions = Field(default_factory=TemplateOptions)

    @field_validator("keywords", "exclude_keywords", "required_fields", mode="before")
    @classmethod
    def _string_list(cls, value: Any) -> list[str]:
        return _to_list(value)

    @field_validator("fields", mode="before")
    @classmethod
    def _default_parser(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        fields: dict[str, Any] = {}
        for name, config in value.items():
            if isinstance(config, dict) and "parser" not in config:
                config = {**config, "parser": "regex"}
            fields[str(name)] = config
        return fields
