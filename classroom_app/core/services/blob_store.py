"""File-blob storage used by assignment submissions."""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging
from pathlib import Path, PurePosixPath

from classroom_app.core.errors import CollaboratorFailure, ValidationFailure

logger = logging.getLogger(__name__)


class BlobStore(ABC):
    @abstractmethod
    def upload(self, path: str, data: bytes) -> str:
        """Store ``data`` under ``path`` and return a URL for it."""

    @abstractmethod
    def delete(self, path: str) -> None:
        """Remove the blob at ``path`` if it exists."""


class LocalBlobStore(BlobStore):
    """Keeps blobs as files below a root directory."""

    def __init__(self, root: Path, base_url: str = "/files") -> None:
        self._root = root.resolve()
        self._base_url = base_url.rstrip("/")

    def upload(self, path: str, data: bytes) -> str:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            logger.error("Failed to store blob %s: %s", path, exc)
            raise CollaboratorFailure("Unable to store the uploaded file.") from exc
        return f"{self._base_url}/{PurePosixPath(path)}"

    def delete(self, path: str) -> None:
        target = self._resolve(path)
        try:
            target.unlink(missing_ok=True)
        except OSError as exc:
            logger.error("Failed to delete blob %s: %s", path, exc)
            raise CollaboratorFailure("Unable to delete the stored file.") from exc

    def _resolve(self, path: str) -> Path:
        relative = PurePosixPath(path)
        if relative.is_absolute() or ".." in relative.parts:
            raise ValidationFailure(f"Invalid blob path '{path}'.")
        return self._root.joinpath(*relative.parts)
