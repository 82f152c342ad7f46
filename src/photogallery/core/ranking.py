"""Ranking and pagination of the photo catalog.

The listing is ordered by click count, most clicked first.  Photos with
equal counts are ordered by ascending ``id``.  That tie-break is what keeps
consecutive pages disjoint and gap-free: freshly uploaded photos all share a
count of zero, and without a total order the same photo could appear on two
pages or on none.

Counter reads for the surviving photos are issued concurrently.  They are
not a consistent snapshot; a click recorded mid-listing may or may not be
reflected for a given photo.
"""

from __future__ import annotations

import asyncio
import logging

from photogallery.core.models import Photo, RankedPage, RankedPhoto
from photogallery.core.store import MetadataStore

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "all"


def filter_by_category(photos: list[Photo], category: str | None) -> list[Photo]:
    """Keep photos whose category equals *category* exactly.

    ``None``, the empty string and ``"all"`` disable the filter.
    """
    if not category or category == ALL_CATEGORIES:
        return photos
    return [photo for photo in photos if photo.category == category]


def rank_photos(entries: list[RankedPhoto]) -> list[RankedPhoto]:
    """Sort by clicks descending, then id ascending."""
    return sorted(entries, key=RankedPhoto.sort_key)


def paginate(entries: list[RankedPhoto], page: int, per_page: int) -> RankedPage:
    """Cut one page out of an already ranked list.

    Pages past the end produce an empty ``photos`` list; the requested page
    number is echoed back unchanged.

    Args:
        entries: Ranked entries.
        page: One-based page number (>= 1).
        per_page: Page size (>= 1).

    Returns:
        The requested :class:`RankedPage`.
    """
    total_count = len(entries)
    start = (page - 1) * per_page
    end = start + per_page

    return RankedPage(
        photos=entries[start:end],
        total_count=total_count,
        page=page,
        per_page=per_page,
        total_pages=RankedPage.count_pages(total_count, per_page),
    )


class RankingEngine:
    """Builds ranked listing pages from the metadata store."""

    def __init__(self, store: MetadataStore):
        self.store = store

    async def list_photos(self, category: str | None, page: int = 1, per_page: int = 30) -> RankedPage:
        """Return one page of the ranked listing.

        Args:
            category: Category to filter by; ``None`` or ``"all"`` lists every photo.
            page: One-based page number.
            per_page: Page size.

        Returns:
            The ranked page.

        Raises:
            ValueError: if ``page`` or ``per_page`` is below 1.
            StoreUnavailable: if the catalog or a counter cannot be read.
        """
        if page < 1 or per_page < 1:
            raise ValueError("page and per_page must be >= 1")

        catalog = await self.store.get_catalog()
        photos = filter_by_category(catalog, category)

        # Every read finishes before the first failure, if any, is raised.
        results = await asyncio.gather(
            *(self.store.get_counter(photo.id) for photo in photos),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        counts: list[int] = results
        ranked = rank_photos(
            [RankedPhoto(photo=photo, clicks=count) for photo, count in zip(photos, counts)]
        )

        result = paginate(ranked, page, per_page)
        logger.debug(
            f"Listed category={category!r} page={page}/{result.total_pages} "
            f"({len(result.photos)} of {result.total_count})"
        )
        return result
