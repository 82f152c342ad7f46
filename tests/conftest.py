"""Shared pytest fixtures for Photo Gallery tests."""

import json
import shutil
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from photogallery.api.main import create_app
from photogallery.core.blobs import MemoryBlobStore
from photogallery.core.config import GalleryConfig
from photogallery.core.kv import MemoryKeyValueStore
from photogallery.core.store import MetadataStore


def _photo(photo_id: str, category: str, **extra) -> dict:
    entry = {
        "id": photo_id,
        "category": category,
        "filename": f"{photo_id}.jpg",
        "uploadDate": "2026-02-01T10:00:00Z",
        "width": 1920,
        "height": 1280,
        "thumbnailUrl": f"/api/image/thumbnails/{photo_id}.jpg",
        "fullUrl": f"/api/image/photos/{photo_id}.jpg",
    }
    entry.update(extra)
    return entry


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> GalleryConfig:
    """Create a test configuration backed by in-memory stores.

    Args:
        temp_dir: Temporary directory from fixture

    Returns:
        GalleryConfig instance for testing
    """
    return GalleryConfig(
        _env_file=None,
        kv_backend="memory",
        blob_backend="memory",
        blob_dir=str(temp_dir / "images"),
        default_per_page=30,
        store_timeout=1.0,
        read_retries=1,
    )


@pytest.fixture
def make_kv() -> Callable[..., MemoryKeyValueStore]:
    """Factory for key-value stores pre-loaded with a catalog and counters.

    Returns:
        Callable taking ``photos`` (list of catalog dicts) and ``clicks``
        (mapping of photo id to count).
    """

    def _make(photos: list[dict] | None = None, clicks: dict[str, int] | None = None) -> MemoryKeyValueStore:
        initial: dict[str, str] = {}
        if photos is not None:
            initial["photo-metadata"] = json.dumps({"photos": photos})
        for photo_id, count in (clicks or {}).items():
            initial[f"clicks-{photo_id}"] = str(count)
        return MemoryKeyValueStore(initial)

    return _make


@pytest.fixture
def sample_photos() -> list[dict]:
    """The worked example catalog: two travel photos and one theatre photo."""
    return [
        _photo("b", "travel"),
        _photo("c", "theatre"),
        _photo("a", "travel"),
    ]


@pytest.fixture
def sample_clicks() -> dict[str, int]:
    return {"a": 5, "b": 5, "c": 9}


@pytest.fixture
def sample_kv(make_kv, sample_photos, sample_clicks) -> MemoryKeyValueStore:
    return make_kv(sample_photos, sample_clicks)


@pytest.fixture
def sample_store(sample_kv) -> MetadataStore:
    return MetadataStore(sample_kv, timeout=1.0)


@pytest.fixture
def large_catalog() -> tuple[list[dict], dict[str, int]]:
    """Twenty-three photos over two categories with many tied counts.

    Returns:
        Tuple of ``(photos, clicks)``.
    """
    photos = [
        _photo(f"p{i:02d}", "theatre" if i % 3 == 0 else "travel")
        for i in range(23)
    ]
    # Counts cycle through 0..3 so most photos share a count with others.
    clicks = {f"p{i:02d}": i % 4 for i in range(23) if i % 4}
    return photos, clicks


@pytest.fixture
def sample_blobs() -> MemoryBlobStore:
    return MemoryBlobStore(
        {
            "thumbnails/a.jpg": b"thumb-bytes",
            "photos/a.jpg": b"full-bytes",
            "photos/c.png": b"png-bytes",
        }
    )


@pytest.fixture
def test_client(test_config, sample_kv, sample_blobs) -> Generator[TestClient, None, None]:
    """TestClient for an app wired to the sample catalog and blobs."""
    app = create_app(test_config, kv=sample_kv, blobs=sample_blobs)
    with TestClient(app) as client:
        yield client
