"""Click recording."""

from __future__ import annotations

import logging

from photogallery.core.errors import InvalidArgument, NotFound
from photogallery.core.store import MetadataStore

logger = logging.getLogger(__name__)


class ClickRecorder:
    """Increments per-photo click counters.

    By default any non-empty id is accepted and an unknown id simply starts
    a new counter, keeping the write path to a single store round trip.
    With ``require_known_photo`` the catalog is read first and unknown ids
    are rejected.
    """

    def __init__(self, store: MetadataStore, *, require_known_photo: bool = False):
        self.store = store
        self.require_known_photo = require_known_photo

    async def record_click(self, photo_id: str | None) -> int:
        """Record one click and return the photo's new click count.

        Raises:
            InvalidArgument: if *photo_id* is missing, empty, or not a string.
            NotFound: if ``require_known_photo`` is set and the id is not in
                the catalog.
            StoreUnavailable: if the store cannot be reached.
        """
        if not isinstance(photo_id, str) or not photo_id:
            raise InvalidArgument("photoId is required")

        if self.require_known_photo:
            catalog = await self.store.get_catalog()
            if not any(photo.id == photo_id for photo in catalog):
                raise NotFound(f"Unknown photo: {photo_id}")

        clicks = await self.store.increment_counter(photo_id)
        logger.debug(f"Recorded click for {photo_id} ({clicks} total)")
        return clicks
