"""Core ranking, click accounting, and storage for the Photo Gallery API.

Architecture Overview
---------------------
The core module follows a layered architecture:

1. **Configuration Layer** (config.py):
   - Environment-based configuration using Pydantic Settings
   - All settings prefixed with PHOTOGALLERY_ in .env files

2. **Storage Layer** (kv.py, blobs.py, store.py):
   - Key-value backends (in-memory, Redis) for the catalog and counters
   - Blob backends (in-memory, filesystem) for image bytes
   - MetadataStore: the only component that touches durable state

3. **Service Layer** (ranking.py, clicks.py):
   - RankingEngine: filter, rank by clicks, paginate
   - ClickRecorder: validated, atomic counter increments

Usage Example
-------------
    from photogallery.core import MemoryKeyValueStore, MetadataStore, RankingEngine

    store = MetadataStore(MemoryKeyValueStore())
    page = await RankingEngine(store).list_photos("travel", page=1, per_page=30)
"""

from photogallery.core.blobs import BlobStore, FilesystemBlobStore, ImageService, MemoryBlobStore
from photogallery.core.clicks import ClickRecorder
from photogallery.core.config import GalleryConfig, config
from photogallery.core.kv import KeyValueStore, MemoryKeyValueStore, RedisKeyValueStore
from photogallery.core.models import Photo, RankedPage, RankedPhoto
from photogallery.core.ranking import RankingEngine
from photogallery.core.store import MetadataStore

__all__ = [
    "BlobStore",
    "ClickRecorder",
    "FilesystemBlobStore",
    "GalleryConfig",
    "ImageService",
    "KeyValueStore",
    "MemoryBlobStore",
    "MemoryKeyValueStore",
    "MetadataStore",
    "Photo",
    "RankedPage",
    "RankedPhoto",
    "RankingEngine",
    "RedisKeyValueStore",
    "config",
]
