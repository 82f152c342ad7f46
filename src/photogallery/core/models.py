"""Pydantic models for catalog entries and ranked listing pages.

Models
------
Photo
    One catalog entry as stored in the catalog document.  Only the fields
    ranking depends on are validated; every other key written by the
    ingestion tooling is kept verbatim and passed through to the listing.
RankedPhoto
    A catalog entry paired with the click count observed for it.
RankedPage
    One page of the ranked listing plus its pagination metadata.
"""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Photo(BaseModel):
    """A catalog entry.

    ``id`` and ``category`` are validated because filtering and ranking use
    them.  Descriptive keys (``filename``, ``uploadDate`` or the older
    ``uploadedAt``, ``width``, ``height``, ``thumbnailUrl``, ``fullUrl``, and
    anything else) are stored as extras exactly as they were read and are
    never parsed or rewritten.

    Attributes:
        id: Unique, stable identifier.  Also the ranking tie-break key.
        category: Browsing section tag (e.g. ``"travel"``).
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    id: str = Field(..., min_length=1)
    category: str

    def to_dict(self) -> dict[str, Any]:
        """Return the record with the keys and values it was stored with."""
        return {"id": self.id, "category": self.category, **(self.model_extra or {})}


class RankedPhoto(BaseModel):
    """A :class:`Photo` with the click count read for it during ranking."""

    photo: Photo
    clicks: int = Field(default=0, ge=0)

    @property
    def id(self) -> str:
        return self.photo.id

    def sort_key(self) -> tuple[int, str]:
        # Most clicked first; equal counts ordered by id so pages never overlap.
        return (-self.clicks, self.photo.id)

    def to_dict(self) -> dict[str, Any]:
        return {**self.photo.to_dict(), "clicks": self.clicks}


class RankedPage(BaseModel):
    """One page of the ranked photo listing.

    Attributes:
        photos: Ranked entries on this page (at most ``per_page``).
        total_count: Number of entries after the category filter.
        page: Requested one-based page number.
        per_page: Requested page size.
        total_pages: ``ceil(total_count / per_page)``; 0 for an empty listing.
    """

    photos: list[RankedPhoto] = Field(default_factory=list)
    total_count: int = Field(default=0, ge=0)
    page: int = Field(default=1, ge=1)
    per_page: int = Field(default=30, ge=1)
    total_pages: int = Field(default=0, ge=0)

    @staticmethod
    def count_pages(total_count: int, per_page: int) -> int:
        return math.ceil(total_count / per_page) if total_count > 0 else 0

    def to_response(self) -> dict[str, Any]:
        """Return the JSON body served by ``GET /api/photos``."""
        return {
            "photos": [entry.to_dict() for entry in self.photos],
            "totalCount": self.total_count,
            "page": self.page,
            "perPage": self.per_page,
            "totalPages": self.total_pages,
        }
