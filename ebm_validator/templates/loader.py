import threading
from pathlib import Path

import yaml  # type: ignore[import-untyped]
from pydantic import ValidationError

from ebm_validator.logging.logger import Log
from ebm_validator.templates.exceptions import TemplateError
from ebm_validator.templates.models import TemplateConfig
from ebm_validator.templates.template import Template

DEFAULT_TEMPLATES_DIR = Path(__file__).parent / "definitions"
_TEMPLATE_SUFFIXES = frozenset({".yml", ".yaml"})


def discover_template_files(root: Path) -> list[Path]:
    """Find template documents recursively, in a stable path order."""
    return sorted(
        path
        for path in root.rglob("*")
        if path.is_file() and path.suffix.lower() in _TEMPLATE_SUFFIXES
    )


def load_template_file(path: Path) -> Template | None:
    """Load one template document. Empty documents are skipped.

    Raises:
        TemplateError: if the document cannot be read or is malformed.
    """
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise TemplateError(f"Failed to read template file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise TemplateError(f"Invalid YAML in template file {path}: {exc}") from exc

    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise TemplateError(f"Template file {path} must contain a mapping")
    if not raw.get("template_name"):
        raise TemplateError(f"Template file {path} is missing template_name")

    try:
        config = TemplateConfig.model_validate(raw)
    except ValidationError as exc:
        raise TemplateError(f"Invalid template schema in {path}: {exc}") from exc

    try:
        return Template(config, source=path)
    except TemplateError as exc:
        raise TemplateError(f"Invalid template {path}: {exc}") from exc


def load_templates(root: Path) -> list[Template]:
    """Load every template under root, in path order.

    Raises:
        TemplateError: if root is not a directory or any document is malformed.
    """
    if not root.is_dir():
        raise TemplateError(f"Templates directory not found: {root}")
    templates: list[Template] = []
    for path in discover_template_files(root):
        template = load_template_file(path)
        if template is not None:
            templates.append(template)
    return templates


class TemplateStore:
    """Process-wide, read-mostly template cache.

    The first load() populates the cache under a lock; later calls read it
    without locking. reset() exists for test isolation and must not race with
    in-flight readers.
    """

    def __init__(self, templates_dir: Path | None = None) -> None:
        self._templates_dir = templates_dir or DEFAULT_TEMPLATES_DIR
        self._templates: tuple[Template, ...] | None = None
        self._lock = threading.Lock()

    @property
    def templates_dir(self) -> Path:
        return self._templates_dir

    def load(self) -> list[Template]:
        templates = self._templates
        if templates is None:
            with self._lock:
                if self._templates is None:
                    self._templates = tuple(load_templates(self._templates_dir))
                    Log.info(
                        "Loaded EBM templates",
                        count=len(self._templates),
                        directory=self._templates_dir,
                    )
                templates = self._templates
        return list(templates)

    def reset(self) -> None:
        with self._lock:
            self._templates = None
