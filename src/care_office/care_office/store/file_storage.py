from __future__ import annotations

import logging
import os
import secrets
import string
import time
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional, Protocol
from urllib.parse import quote

from werkzeug.utils import secure_filename

from ..core.exceptions import StorageError

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


@dataclass(frozen=True)
class UploadedFile:
    """A file selected by the user but not yet written to storage."""

    filename: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def extension(self) -> str:
        _, _, ext = self.filename.rpartition(".")
        return ext.lower() if ext and ext != self.filename else "bin"


def unique_object_name(upload: UploadedFile, *, prefix: str = "") -> str:
    """``<prefix><millis>-<random>.<ext>``, unique enough for per-entity folders."""
    token = "".join(secrets.choice(_BASE36) for _ in range(7))
    return f"{prefix}{int(time.time() * 1000)}-{token}.{upload.extension}"


class FileStorage(Protocol):
    def upload(self, bucket: str, path: str, content: bytes, *, content_type: Optional[str] = None, upsert: bool = False) -> None:
        raise NotImplementedError

    def download(self, bucket: str, path: str) -> bytes:
        raise NotImplementedError

    def remove(self, bucket: str, path: str) -> None:
        raise NotImplementedError

    def public_url(self, bucket: str, path: str) -> str:
        raise NotImplementedError


class LocalFileStorage(FileStorage):
    """Bucketed blob storage on the local filesystem.

    ``<root>/<bucket>/<path>``; public URLs are ``<public_base>/<bucket>/<path>``.
    """

    def __init__(self, root: str | Path, *, public_base_url: str = "/files"):
        self._root = Path(root)
        self._public_base_url = public_base_url.rstrip("/")

    def _resolve(self, bucket: str, path: str) -> Path:
        parts = PurePosixPath(path).parts
        if not parts or any(p in ("..", "/") for p in parts) or secure_filename(bucket) != bucket:
            raise StorageError(f"Invalid storage path: {bucket}/{path}", code="400")
        return self._root.joinpath(bucket, *parts)

    def upload(self, bucket: str, path: str, content: bytes, *, content_type: Optional[str] = None, upsert: bool = False) -> None:
        target = self._resolve(bucket, path)
        if target.exists() and not upsert:
            raise StorageError("The resource already exists", code="409")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        except OSError as e:
            raise StorageError(f"Failed to upload {path}: {e.strerror or e}") from e
        logger.debug("Stored %s/%s (%s bytes, %s)", bucket, path, len(content), content_type)

    def download(self, bucket: str, path: str) -> bytes:
        target = self._resolve(bucket, path)
        try:
            return target.read_bytes()
        except FileNotFoundError as e:
            raise StorageError(f"Object not found: {bucket}/{path}", code="404") from e
        except OSError as e:
            raise StorageError(f"Failed to download {path}: {e.strerror or e}") from e

    def remove(self, bucket: str, path: str) -> None:
        target = self._resolve(bucket, path)
        try:
            os.remove(target)
        except FileNotFoundError:
            logger.info("Storage object %s/%s already gone", bucket, path)
        except OSError as e:
            raise StorageError(f"Failed to remove {path}: {e.strerror or e}") from e

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self._public_base_url}/{quote(bucket)}/{quote(path)}"
