from pathlib import Path

from ebm_validator.extraction.models import TextSnapshot
from ebm_validator.extraction.snapshot import parse_snapshot_json
from ebm_validator.processor.exceptions import FileReadError
from ebm_validator.processor.models import FileReference


def original_file_path(files_root: Path, file_ref: FileReference) -> Path:
    """Build path to the original upload: {files_root}/{file_id}.{ext}"""
    extension = file_ref.file_extension.strip().lstrip(".")
    return files_root / f"{file_ref.file_id}.{extension}"


def pages_file_path(files_root: Path, file_id: str) -> Path:
    """Build path to the page snapshot: {files_root}/{file_id}-pages.json"""
    return files_root / f"{file_id}-pages.json"


class FileLoader:
    """Resolves filesystem paths for an uploaded invoice and reads them."""

    FILES_ROOT = Path("/app/files")

    def __init__(self, files_root: Path | None = None) -> None:
        self._files_root = files_root if files_root is not None else self.FILES_ROOT

    @property
    def files_root(self) -> Path:
        return self._files_root

    def load_bytes(self, file_ref: FileReference) -> bytes:
        """Read the original upload.

        Raises:
            FileReadError: if the file is missing or unreadable.
        """
        path = original_file_path(self._files_root, file_ref)
        return self._read(path)

    def load_snapshot(self, file_ref: FileReference) -> TextSnapshot:
        """Read and parse the stored page snapshot.

        Raises:
            FileReadError: if the snapshot file is missing or unreadable.
            SnapshotError: if its content is not a usable snapshot.
        """
        path = pages_file_path(self._files_root, file_ref.file_id)
        return parse_snapshot_json(self._read(path))

    def _read(self, path: Path) -> bytes:
        if not path.exists():
            raise FileReadError(f"File not found: {path}")
        try:
            return path.read_bytes()
        except OSError as exc:
            raise FileReadError(f"Failed to read {path}: {exc}") from exc
