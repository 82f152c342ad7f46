"""Metadata store accessor.

:class:`MetadataStore` owns every read and write of durable gallery state:
the catalog document and the per-photo click counters.  The ranking engine
and the click recorder receive an instance of it and hold no state of their
own.

Storage format
--------------
- The catalog lives under a single key as ``{"photos": [<photo>, ...]}``.
- Each counter lives under ``<counter_prefix><photo id>`` as a decimal
  string.  A missing counter is zero.

Failure handling
----------------
Every backend call is bounded by ``timeout``.  Timeouts and backend errors
surface as :class:`~photogallery.core.errors.StoreUnavailable`.  Reads are
retried at most ``read_retries`` times; increments are never retried because
a failed increment may still have been applied.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Iterable
from pathlib import Path
from typing import Any, TypeVar

from pydantic import ValidationError

from photogallery.core.config import GalleryConfig
from photogallery.core.errors import StoreUnavailable
from photogallery.core.kv import KeyValueStore, parse_counter
from photogallery.core.models import Photo

logger = logging.getLogger(__name__)

T = TypeVar("T")


def parse_catalog(document: Any) -> list[Photo]:
    """Turn a decoded catalog document into :class:`Photo` records.

    Both ``{"photos": [...]}`` and a bare list are accepted.  Entries that do
    not validate are skipped with a warning rather than failing the listing.

    Args:
        document: Decoded JSON value.

    Returns:
        Valid catalog entries in stored order.
    """
    if isinstance(document, dict):
        raw_entries = document.get("photos") or []
    elif isinstance(document, list):
        raw_entries = document
    else:
        raw_entries = []

    if not isinstance(raw_entries, list):
        logger.warning("Catalog 'photos' field is not a list; treating catalog as empty")
        return []

    photos: list[Photo] = []
    for index, entry in enumerate(raw_entries):
        try:
            photos.append(Photo.model_validate(entry))
        except ValidationError as e:
            logger.warning(f"Skipping invalid catalog entry #{index}: {e.error_count()} error(s)")
    return photos


def load_catalog_file(path: Path) -> list[Photo]:
    """Read catalog entries from a JSON file on disk.

    The file may hold either the stored document shape
    (``{"photos": [...]}``) or a bare list of entries.

    Raises:
        FileNotFoundError: if *path* does not exist.
        ValueError: if the file is not valid JSON.
    """
    with open(path, encoding="utf-8") as handle:
        document = json.load(handle)
    return parse_catalog(document)


class MetadataStore:
    """Reads and writes the catalog and click counters in a key-value store."""

    def __init__(
        self,
        kv: KeyValueStore,
        *,
        catalog_key: str = "photo-metadata",
        counter_prefix: str = "clicks-",
        timeout: float = 5.0,
        read_retries: int = 1,
        increment_max_attempts: int = 64,
    ):
        self.kv = kv
        self.catalog_key = catalog_key
        self.counter_prefix = counter_prefix
        self.timeout = timeout
        self.read_retries = read_retries
        self.increment_max_attempts = increment_max_attempts

    @classmethod
    def from_config(cls, kv: KeyValueStore, cfg: GalleryConfig) -> MetadataStore:
        return cls(
            kv,
            catalog_key=cfg.catalog_key,
            counter_prefix=cfg.counter_prefix,
            timeout=cfg.store_timeout,
            read_retries=cfg.read_retries,
            increment_max_attempts=cfg.increment_max_attempts,
        )

    def counter_key(self, photo_id: str) -> str:
        return f"{self.counter_prefix}{photo_id}"

    # ------------------------------------------------------------------
    # Call helpers
    # ------------------------------------------------------------------

    async def _call(self, operation: str, factory: Callable[[], Awaitable[T]]) -> T:
        """Await one backend call under the configured timeout."""
        try:
            return await asyncio.wait_for(factory(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"Store call {operation} timed out after {self.timeout}s")
            raise StoreUnavailable(f"{operation} timed out") from e
        except StoreUnavailable as e:
            logger.error(f"Store call {operation} failed: {e}")
            raise
        except OSError as e:
            logger.error(f"Store call {operation} failed: {e}")
            raise StoreUnavailable(f"{operation} failed: {e}") from e

    async def _read(self, operation: str, factory: Callable[[], Awaitable[T]]) -> T:
        """Like :meth:`_call`, with up to ``read_retries`` extra attempts."""
        attempts = self.read_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                return await self._call(operation, factory)
            except StoreUnavailable:
                if attempt == attempts:
                    raise
                logger.info(f"Retrying {operation} after transient failure")

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    async def get_catalog(self) -> list[Photo]:
        """Return every catalog entry.

        Returns:
            Catalog entries in stored order; empty if no catalog was written.

        Raises:
            StoreUnavailable: if the store cannot be read or the catalog
                document is not valid JSON.
        """
        raw = await self._read(f"get {self.catalog_key}", lambda: self.kv.get(self.catalog_key))
        if not raw:
            return []
        try:
            document = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Catalog document under {self.catalog_key} is not valid JSON: {e}")
            raise StoreUnavailable("catalog document is corrupt") from e
        return parse_catalog(document)

    async def put_catalog(self, photos: Iterable[Photo]) -> int:
        """Replace the catalog document.

        Used by catalog seeding; the ranking and click paths never write the
        catalog.

        Returns:
            Number of entries written.
        """
        entries = [photo.to_dict() for photo in photos]
        payload = json.dumps({"photos": entries}, indent=2)
        await self._call(f"put {self.catalog_key}", lambda: self.kv.put(self.catalog_key, payload))
        logger.info(f"Wrote catalog with {len(entries)} photo(s)")
        return len(entries)

    # ------------------------------------------------------------------
    # Counters
    # ------------------------------------------------------------------

    async def get_counter(self, photo_id: str) -> int:
        """Return the click count for *photo_id*; 0 when none is stored."""
        key = self.counter_key(photo_id)
        raw = await self._read(f"get {key}", lambda: self.kv.get(key))
        return parse_counter(raw)

    async def increment_counter(self, photo_id: str) -> int:
        """Atomically add one click to *photo_id* and return the new count."""
        key = self.counter_key(photo_id)
        value = await self._call(
            f"increment {key}",
            lambda: self.kv.increment(key, max_attempts=self.increment_max_attempts),
        )
        logger.debug(f"Counter {key} is now {value}")
        return value
