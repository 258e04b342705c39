import re

from ebm_validator.extraction.models import TextSnapshot
from ebm_validator.logging.logger import Log
from ebm_validator.templates.template import Template


def select_template(snapshot: TextSnapshot, templates: list[Template]) -> Template | None:
    """Return the first template, in load order, whose keyword rules match."""
    for template in templates:
        try:
            matched = template.matches_input(snapshot.content)
        except re.error as exc:
            Log.warning("Template evaluation failed", template=template.name, error=exc)
            continue
        if matched:
            Log.debug("Matched snapshot with template", template=template.name)
            return template

    Log.info("No template matched snapshot", title=snapshot.title)
    return None
