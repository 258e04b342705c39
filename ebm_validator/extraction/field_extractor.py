"""Apply a template's field rules to a text snapshot."""

import re
from dataclasses import dataclass

from ebm_validator.extraction.models import (
    ExtractedField,
    FieldMatch,
    TextExtraction,
    TextSnapshot,
)
from ebm_validator.logging.logger import Log
from ebm_validator.normalization.normalizers import normalize_whitespace, to_string_value
from ebm_validator.templates.field_mapping import CanonicalField
from ebm_validator.templates.models import (
    FieldConfig,
    FieldGroup,
    LinesFieldConfig,
    StaticFieldConfig,
)
from ebm_validator.templates.template import Template


@dataclass(frozen=True)
class _PreparedPage:
    page_number: int
    raw_text: str
    prepared_text: str


def extract_fields(template: Template, snapshot: TextSnapshot) -> TextExtraction:
    """Extract every field the template defines.

    A field without any match is still present, with no value.
    """
    prepared_content = template.prepare_input(snapshot.content)
    pages = [
        _PreparedPage(
            page_number=page.page_number,
            raw_text=page.text,
            prepared_text=template.prepare_input(page.text),
        )
        for page in snapshot.pages
    ]

    fields = {
        name: _extract_field(name, config, template, prepared_content, pages)
        for name, config in template.fields.items()
    }
    found = sum(1 for field in fields.values() if field.has_value)
    Log.debug("Extracted template fields", template=template.name, fields=len(fields), found=found)
    return TextExtraction(template_name=template.name, issuer=template.issuer, fields=fields)


def _extract_field(
    name: str,
    config: FieldConfig,
    template: Template,
    prepared_content: str,
    pages: list[_PreparedPage],
) -> ExtractedField:
    canonical = template.canonical_fields.get(name)
    if isinstance(config, StaticFieldConfig):
        return _static_field(name, config, canonical)

    if isinstance(config, LinesFieldConfig):
        matches = _collect_line_matches(name, template, pages)
    else:
        matches = []
        for pattern in template.patterns_for(name):
            matches = _collect_pattern_matches(pattern, name, prepared_content, pages)
            if matches:
                break

    matches = [
        FieldMatch(
            raw=match.raw,
            normalized=match.normalized,
            value=template.coerce_value(match.raw, config.type),
            page_number=match.page_number,
        )
        for match in matches
    ]
    matches = apply_grouping(matches, config.group)

    primary = matches[0] if matches else None
    return ExtractedField(
        field=name,
        config=config,
        canonical=canonical,
        value=primary.value if primary else None,
        raw=primary.raw if primary else None,
        page_number=primary.page_number if primary else None,
        matches=tuple(matches),
    )


def _static_field(
    name: str, config: StaticFieldConfig, canonical: CanonicalField | None
) -> ExtractedField:
    raw = to_string_value(config.value)
    matches: tuple[FieldMatch, ...] = ()
    if raw is not None:
        matches = (FieldMatch(raw=raw, normalized=normalize_whitespace(raw), value=config.value),)
    return ExtractedField(
        field=name,
        config=config,
        canonical=canonical,
        value=config.value,
        raw=raw,
        matches=matches,
    )


def _collect_pattern_matches(
    pattern: re.Pattern[str],
    name: str,
    prepared_content: str,
    pages: list[_PreparedPage],
) -> list[FieldMatch]:
    """Matches per page, deduplicated by normalized value.

    Falls back to the whole document when no single page matches, which
    catches values split across a page break.
    """
    seen: set[str] = set()
    found: list[FieldMatch] = []
    for page in pages:
        for match in _find_matches(pattern, page.prepared_text, name, page.page_number):
            if match.normalized not in seen:
                seen.add(match.normalized)
                found.append(match)
    if found:
        return found

    for match in _find_matches(pattern, prepared_content, name, None):
        if match.normalized not in seen:
            seen.add(match.normalized)
            found.append(match)
    return found


def _collect_line_matches(name: str, template: Template, pages: list[_PreparedPage]) -> list[FieldMatch]:
    line_patterns = template.line_patterns_for(name)
    if line_patterns is None:
        return []
    start, end, line_pattern = line_patterns

    found: list[FieldMatch] = []
    for page in pages:
        in_region = False
        for raw_line in page.raw_text.splitlines():
            line = template.prepare_input(raw_line)
            if not in_region:
                in_region = start.search(line) is not None
                continue
            if end is not None and end.search(line):
                break
            match = line_pattern.search(line)
            if match is None:
                continue
            candidate = _candidate(match, name)
            if candidate:
                found.append(_make_match(candidate, page.page_number))
    return found


def _find_matches(
    pattern: re.Pattern[str], content: str, name: str, page_number: int | None
) -> list[FieldMatch]:
    matches = []
    for match in pattern.finditer(content):
        candidate = _candidate(match, name)
        if candidate:
            matches.append(_make_match(candidate, page_number))
    return matches


def _candidate(match: re.Match[str], name: str) -> str | None:
    """Group named like the field, else any named group, else group 1, else the match."""
    named = match.groupdict()
    if named.get(name) is not None:
        return named[name]
    for value in named.values():
        if value is not None:
            return value
    if match.re.groups >= 1 and match.group(1) is not None:
        return match.group(1)
    return match.group(0)


def _make_match(candidate: str, page_number: int | None) -> FieldMatch:
    return FieldMatch(
        raw=candidate,
        normalized=normalize_whitespace(candidate),
        value=candidate,
        page_number=page_number,
    )


def apply_grouping(matches: list[FieldMatch], group: FieldGroup | None) -> list[FieldMatch]:
    """Collapse multiple matches according to the field's group policy."""
    if not group or not matches:
        return matches
    if group == "first":
        return matches[:1]
    if group == "last":
        return matches[-1:]
    if group == "sum":
        total = sum(
            match.value
            for match in matches
            if isinstance(match.value, (int, float)) and not isinstance(match.value, bool)
        )
        raw = to_string_value(float(total)) or "0"
        return [FieldMatch(raw=raw, normalized=raw, value=total, page_number=matches[0].page_number)]

    raw = " ".join(match.raw for match in matches)
    return [
        FieldMatch(
            raw=raw,
            normalized=normalize_whitespace(raw),
            value=raw,
            page_number=matches[0].page_number,
        )
    ]
