import json
from typing import Any

from ebm_validator.extraction.exceptions import SnapshotError
from ebm_validator.extraction.models import TextPage, TextSnapshot


def build_snapshot(payload: dict[str, Any]) -> TextSnapshot:
    """Build a TextSnapshot from a stored pages payload.

    Accepts both `page_number` and `pageNumber` keys; pages without a number
    are numbered by position.

    Raises:
        SnapshotError: if the payload has no pages.
    """
    raw_pages = payload.get("pages")
    if not isinstance(raw_pages, list) or not raw_pages:
        raise SnapshotError("Page snapshot payload is empty")

    pages: list[TextPage] = []
    for index, raw_page in enumerate(raw_pages):
        if not isinstance(raw_page, dict):
            raise SnapshotError(f"Page entry at index {index} must be an object")
        number = raw_page.get("page_number", raw_page.get("pageNumber"))
        text = raw_page.get("text")
        pages.append(
            TextPage(
                page_number=number if isinstance(number, int) else index + 1,
                text=text if isinstance(text, str) else "",
            )
        )

    title = payload.get("title")
    return TextSnapshot.from_pages(title if isinstance(title, str) else "", pages)


def parse_snapshot_json(data: bytes | str) -> TextSnapshot:
    """Parse a stored pages JSON document.

    Raises:
        SnapshotError: if the JSON is invalid or carries no pages.
    """
    try:
        payload = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise SnapshotError(f"Invalid page snapshot JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise SnapshotError("Page snapshot JSON must be an object")
    return build_snapshot(payload)
