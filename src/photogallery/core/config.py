"""Configuration management for the Photo Gallery API.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the PHOTOGALLERY_
prefix, allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (PHOTOGALLERY_* prefix)
2. .env file in the project root
3. Default values defined in GalleryConfig

Example .env file:
    PHOTOGALLERY_KV_BACKEND=redis
    PHOTOGALLERY_REDIS_URL=redis://cache:6379/0
    PHOTOGALLERY_BLOB_DIR=/srv/gallery/images
    PHOTOGALLERY_CATALOG_FILE=metadata.json

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.

Usage Example
-------------
    from photogallery.core.config import config

    print(config.kv_backend)
    print(config.default_per_page)

Storage Layout
--------------
- The catalog is a single JSON document stored under ``catalog_key``.
- Click counters are stored one per photo under ``counter_prefix + photo_id``.
- Image blobs are keyed ``thumbnails/<filename>`` and ``photos/<filename>``.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GalleryConfig(BaseSettings):
    """Main configuration for the Photo Gallery API.

    Attributes
    ----------
    Storage backends:
        kv_backend : Literal["memory", "redis"]
            Key-value store holding the catalog and click counters
        redis_url : str
            Connection URL used when ``kv_backend`` is ``redis``
        blob_backend : Literal["memory", "filesystem"]
            Blob store holding thumbnail and full-size images
        blob_dir : Path
            Root directory of the filesystem blob store

    Keys:
        catalog_key : str
            Key of the catalog document
        counter_prefix : str
            Prefix of every click counter key

    Behaviour:
        catalog_file : Path | None
            JSON file written to the catalog key on startup
        default_per_page : int
            Page size used when ``perPage`` is absent or invalid
        store_timeout : float
            Seconds allowed for a single store call
        read_retries : int
            Extra attempts for failed catalog/counter reads
        increment_max_attempts : int
            Upper bound on compare-and-swap rounds per increment
        require_known_photo : bool
            Reject clicks for ids missing from the catalog

    Server:
        server_host : str
            Server bind address
        server_port : int
            Server port
        log_level : str
            Root logging level

    Notes
    -----
    - ``blob_dir`` is created automatically when the filesystem backend is used
    - To modify config, set environment variables and restart the application
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PHOTOGALLERY_",
        case_sensitive=False,
    )

    # Storage backends
    kv_backend: Literal["memory", "redis"] = Field(
        default="memory",
        description="Key-value backend for the catalog and click counters",
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL (kv_backend=redis)",
    )
    blob_backend: Literal["memory", "filesystem"] = Field(
        default="filesystem",
        description="Blob backend for image bytes",
    )
    blob_dir: Path = Field(
        default=Path("images"),
        description="Root directory of the filesystem blob store",
    )

    # Keys
    catalog_key: str = Field(
        default="photo-metadata",
        description="Key holding the catalog document",
    )
    counter_prefix: str = Field(
        default="clicks-",
        description="Prefix for per-photo click counter keys",
    )

    # Behaviour
    catalog_file: Path | None = Field(
        default=None,
        description="Optional catalog JSON file seeded into the store on startup",
    )
    default_per_page: int = Field(default=30, ge=1, le=500)
    store_timeout: float = Field(
        default=5.0,
        description="Timeout in seconds for a single store call",
        gt=0,
    )
    read_retries: int = Field(
        default=1,
        description="Bounded retries for transient read failures",
        ge=0,
        le=1,
    )
    increment_max_attempts: int = Field(
        default=64,
        description="Compare-and-swap rounds before an increment gives up",
        ge=1,
    )
    require_known_photo: bool = Field(
        default=False,
        description="Reject clicks for photo ids that are not in the catalog",
    )

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address",
    )
    server_port: int = Field(
        default=8787,
        description="Server port",
        ge=1024,
        le=65535,
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")

    def __init__(self, **kwargs):
        """Initialize configuration and create the blob directory.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        if self.blob_backend == "filesystem":
            self.blob_dir.mkdir(parents=True, exist_ok=True)


# Global configuration instance, loaded from PHOTOGALLERY_* variables and .env.
config = GalleryConfig()
