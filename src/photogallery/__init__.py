"""Photo Gallery API - ranked, paginated photo listing with click tracking."""

__version__ = "0.1.0"

from photogallery.core.config import GalleryConfig, config
from photogallery.core.errors import GalleryError, InvalidArgument, NotFound, StoreUnavailable

__all__ = [
    "GalleryConfig",
    "config",
    "GalleryError",
    "InvalidArgument",
    "NotFound",
    "StoreUnavailable",
]
