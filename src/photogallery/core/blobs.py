"""Image blob passthrough.

Images are stored once per size under deterministic keys:

- ``thumbnails/<filename>`` for gallery thumbnails
- ``photos/<filename>`` for full-size images

Objects never change in place, so they are served with a one-year public
cache lifetime.  No resizing or re-encoding happens here.
"""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from photogallery.core.config import GalleryConfig
from photogallery.core.errors import InvalidArgument, NotFound, StoreUnavailable

logger = logging.getLogger(__name__)

CACHE_CONTROL = "public, max-age=31536000"
DEFAULT_CONTENT_TYPE = "image/jpeg"


class ImageKind(str, Enum):
    """Stored image size; the value is the key prefix."""

    THUMBNAIL = "thumbnails"
    FULL = "photos"


@dataclass(frozen=True)
class BlobObject:
    """Bytes of one stored image plus the content type to serve it with."""

    body: bytes
    content_type: str = DEFAULT_CONTENT_TYPE


def guess_content_type(name: str) -> str:
    content_type, _ = mimetypes.guess_type(name)
    if content_type and content_type.startswith("image/"):
        return content_type
    return DEFAULT_CONTENT_TYPE


def blob_key(kind: str, name: str) -> str:
    """Build the blob key for an image.

    Raises:
        InvalidArgument: if *kind* is not a known image kind or *name* is
            empty or contains a path separator.
    """
    try:
        image_kind = ImageKind(kind)
    except ValueError as e:
        raise InvalidArgument(f"Unknown image kind: {kind}") from e

    if not name or "/" in name or "\\" in name or name in (".", ".."):
        raise InvalidArgument("Invalid image path")

    return f"{image_kind.value}/{name}"


class BlobStore(ABC):
    """Read-only view of an image blob store."""

    @abstractmethod
    async def get(self, key: str) -> BlobObject | None:
        """Return the object stored at *key*, or ``None`` if absent."""


class MemoryBlobStore(BlobStore):
    """Dictionary-backed blob store for tests and local development."""

    def __init__(self, objects: dict[str, bytes] | None = None):
        self._objects: dict[str, bytes] = dict(objects or {})

    def put(self, key: str, body: bytes) -> None:
        self._objects[key] = body

    async def get(self, key: str) -> BlobObject | None:
        body = self._objects.get(key)
        if body is None:
            return None
        return BlobObject(body=body, content_type=guess_content_type(key))


class FilesystemBlobStore(BlobStore):
    """Blob store rooted at a local directory.

    Keys map to paths below ``root``.  Reads run in a worker thread so the
    event loop is never blocked on disk I/O.
    """

    def __init__(self, root: Path):
        self.root = Path(root).resolve()

    def _read(self, key: str) -> BlobObject | None:
        """Blocking lookup; called in a worker thread."""
        path = (self.root / key).resolve()
        # Keys must not escape the root directory.
        if not path.is_relative_to(self.root) or not path.is_file():
            return None
        try:
            body = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StoreUnavailable(f"Reading {key} failed: {e}") from e
        return BlobObject(body=body, content_type=guess_content_type(path.name))

    async def get(self, key: str) -> BlobObject | None:
        return await asyncio.to_thread(self._read, key)


def create_blob_store(cfg: GalleryConfig) -> BlobStore:
    """Build the blob backend selected by ``cfg.blob_backend``."""
    if cfg.blob_backend == "memory":
        logger.info("Using in-memory blob store")
        return MemoryBlobStore()
    logger.info(f"Using filesystem blob store at {cfg.blob_dir}")
    return FilesystemBlobStore(cfg.blob_dir)


class ImageService:
    """Resolves image requests against a :class:`BlobStore`."""

    def __init__(self, blobs: BlobStore):
        self.blobs = blobs

    async def get_image(self, kind: str, name: str) -> BlobObject:
        """Return the stored image for *kind* and *name*.

        Raises:
            InvalidArgument: for an unknown kind or malformed name.
            NotFound: if no object is stored under the derived key.
            StoreUnavailable: if the blob store cannot be read.
        """
        key = blob_key(kind, name)
        obj = await self.blobs.get(key)
        if obj is None:
            raise NotFound("Image not found")
        return obj
