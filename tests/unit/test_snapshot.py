import json

import pytest

from ebm_validator.extraction.exceptions import SnapshotError
from ebm_validator.extraction.models import TextPage
from ebm_validator.extraction.snapshot import build_snapshot, parse_snapshot_json


class TestBuildSnapshot:
    def test_accepts_camel_and_snake_page_numbers(self) -> None:
        snapshot = build_snapshot(
            {
                "title": "invoice.pdf",
                "pages": [{"pageNumber": 1, "text": "A"}, {"page_number": 2, "text": "B"}],
            }
        )
        assert snapshot.pages == (TextPage(1, "A"), TextPage(2, "B"))
        assert snapshot.content == "A\nB"
        assert snapshot.title == "invoice.pdf"

    def test_missing_numbers_and_text_get_defaults(self) -> None:
        snapshot = build_snapshot({"pages": [{"text": "A"}, {}]})
        assert snapshot.pages == (TextPage(1, "A"), TextPage(2, ""))
        assert snapshot.title == ""

    @pytest.mark.parametrize("payload", [{}, {"pages": []}, {"pages": "text"}])
    def test_empty_payload_raises(self, payload: dict[str, object]) -> None:
        with pytest.raises(SnapshotError, match="empty"):
            build_snapshot(payload)

    def test_non_object_page_raises(self) -> None:
        with pytest.raises(SnapshotError, match="index 0"):
            build_snapshot({"pages": ["just text"]})


class TestParseSnapshotJson:
    def test_parses_bytes(self, invoice_pages_payload: dict[str, object]) -> None:
        snapshot = parse_snapshot_json(json.dumps(invoice_pages_payload).encode())
        assert len(snapshot.pages) == 1
        assert "TIN: 101234567" in snapshot.content

    def test_invalid_json_raises(self) -> None:
        with pytest.raises(SnapshotError, match="Invalid page snapshot JSON"):
            parse_snapshot_json(b"{not json")

    def test_non_object_raises(self) -> None:
        with pytest.raises(SnapshotError, match="must be an object"):
            parse_snapshot_json("[1, 2]")
