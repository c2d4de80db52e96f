"""
storage.py — Photo storage backend
===================================
Report photos are validated here and handed to a ``Storage`` backend,
which returns the public URL recorded on the report. The filesystem
backend writes under ``settings.storage_dir``; other backends (object
stores) implement the same three methods.
"""
from __future__ import annotations

import io
import logging
import uuid
from abc import ABC, abstractmethod
from pathlib import Path

from .config import settings
from .constants import ALLOWED_PHOTO_TYPES, MAX_PHOTO_BYTES
from .errors import FileTooLargeError, InvalidFileTypeError
from .schemas import PhotoUpload

logger = logging.getLogger("easymat.storage")


class Storage(ABC):
    def __init__(self, volume: str, base_path: str = ""):
        """
        :param volume: Root directory, mount point or bucket.
        :param base_path: Prefix inside the volume.
        """
        self.volume = volume
        self.base_path = base_path

    def _get_bytes(self, content: bytes | io.BytesIO) -> bytes:
        if isinstance(content, io.BytesIO):
            return content.getvalue()
        if isinstance(content, bytes):
            return content
        raise TypeError("Unsupported content. Must be BytesIO or bytes.")

    @abstractmethod
    def save(self, content: bytes | io.BytesIO, filepath: str, content_type: str | None = None) -> str:
        """Persist ``content`` at ``filepath`` and return the stored path."""
        raise NotImplementedError

    @abstractmethod
    def get_path(self, filepath: str) -> str:
        raise NotImplementedError

    @abstractmethod
    def get_url(self, filepath: str) -> str:
        raise NotImplementedError


class FileSystemStorage(Storage):
    def __init__(self, volume: str, base_path: str = "", url_prefix: str | None = None):
        super().__init__(volume, base_path)
        self.url_prefix = (url_prefix or "").rstrip("/")

    def save(self, content, filepath, content_type=None):
        full_path = Path(self.volume) / self.base_path / filepath
        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)
            full_path.write_bytes(self._get_bytes(content))
        except OSError as exc:
            raise IOError(f"Failed to save file to {full_path}: {exc}") from exc
        return str(full_path)

    def get_path(self, filepath):
        return str(Path(self.volume) / self.base_path / filepath)

    def get_url(self, filepath):
        relative = str(Path(self.base_path) / filepath).lstrip("/")
        if self.url_prefix:
            return f"{self.url_prefix}/{relative}"
        return self.get_path(filepath)


def validate_photo(photo: PhotoUpload) -> str:
    """Check MIME type then size; return the file extension to store under."""
    extension = ALLOWED_PHOTO_TYPES.get((photo.content_type or "").lower())
    if extension is None:
        raise InvalidFileTypeError()
    if photo.size > MAX_PHOTO_BYTES:
        raise FileTooLargeError()
    return extension


def store_photo(storage: Storage, photo: PhotoUpload, folder: str = "reports") -> str:
    """Validate and save a photo, returning its public URL."""
    extension = validate_photo(photo)
    filepath = f"{folder}/{uuid.uuid4().hex}.{extension}"
    storage.save(photo.content, filepath, content_type=photo.content_type)
    logger.info("Stored photo %s (%d bytes)", filepath, photo.size)
    return storage.get_url(filepath)


default_storage = FileSystemStorage(
    volume=settings.storage_dir,
    url_prefix=settings.storage_url_prefix,
)


def get_storage() -> Storage:
    """FastAPI dependency; override in tests or to plug in an object store."""
    return default_storage
