import logging
import shutil
import uuid
from pathlib import Path
from typing import BinaryIO, List

from session_uploads.utils.errors import CleanupError


class TemporaryUploadFiles:
    """
    Request-scoped owner of temporary upload buffers on disk.

    Every path handed out by :meth:`spool` or registered with :meth:`track`
    is deleted when the context exits, whatever the exit path.
    """

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)
        self.paths: List[Path] = []

    def __enter__(self) -> "TemporaryUploadFiles":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    def track(self, path: Path) -> Path:
        self.paths.append(path)
        return path

    def spool(self, source: BinaryIO, suffix: str = "", chunk_size: int = 1024 * 1024) -> Path:
        """Copies ``source`` into a new temporary file and returns its path."""
        self.directory.mkdir(parents=True, exist_ok=True)
        target = self.track(self.directory / f"{uuid.uuid4().hex}{suffix}")
        if hasattr(source, "seek"):
            source.seek(0)
        with target.open("wb") as buffer:
            shutil.copyfileobj(source, buffer, length=chunk_size)
        return target

    def cleanup(self) -> None:
        while self.paths:
            path = self.paths.pop()
            try:
                remove_temp_file(path)
            except CleanupError as e:
                logging.warning(f"⚠️ {e.message}")


def remove_temp_file(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        raise CleanupError(f"Failed to delete temp file {path}: {e}") from e
