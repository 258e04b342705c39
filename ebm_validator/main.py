import argparse
import json
import sys
from collections.abc import Sequence
from pathlib import Path

from pydantic import ValidationError

from ebm_validator.config.settings import Settings
from ebm_validator.logging.logger import Log
from ebm_validator.processor.models import FileReference
from ebm_validator.processor.processor import build_processor
from ebm_validator.reconciliation.formatter import format_validation_message, serialize_outcome
from ebm_validator.templates.exceptions import TemplateError

EXIT_VALIDATED = 0
EXIT_ISSUES = 1
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ebm-validate",
        description="Cross-check an EBM invoice's QR code against its printed text.",
    )
    parser.add_argument("file_id", help="Stored upload id ({file_id}.{ext} and {file_id}-pages.json)")
    parser.add_argument("--extension", default="pdf", help="Original file extension (default: pdf)")
    parser.add_argument("--files-root", type=Path, help="Directory holding uploads and page snapshots")
    parser.add_argument("--format", choices=("json", "text"), default="json", dest="output_format")
    parser.add_argument("--max-pages", type=int, help="Scan at most this many pages for QR codes")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point: settings -> logging -> processor -> validate -> print."""
    args = build_parser().parse_args(argv)

    overrides: dict[str, object] = {}
    if args.files_root is not None:
        overrides["files_root"] = args.files_root
    if args.max_pages is not None:
        overrides["qr_max_pages"] = args.max_pages

    try:
        settings = Settings(**overrides)  # type: ignore[arg-type]
        Log.configure(settings.log_level)
        processor = build_processor(settings)
    except (ValidationError, TemplateError, ValueError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    with processor:
        outcome = processor.validate(
            FileReference(file_id=args.file_id, file_extension=args.extension)
        )

    if args.output_format == "text":
        print(format_validation_message(outcome))
    else:
        print(json.dumps(serialize_outcome(outcome), indent=2, ensure_ascii=False))

    return EXIT_VALIDATED if outcome.result.summary.status == "validated" else EXIT_ISSUES


if __name__ == "__main__":
    sys.exit(main())
