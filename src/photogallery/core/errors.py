"""Error taxonomy shared by the core and the HTTP boundary.

Every error carries the HTTP status it maps to so the API layer can
translate it without a lookup table.  ``public_message`` is what the client
sees; for :class:`StoreUnavailable` it never contains backend detail.
"""

from __future__ import annotations


class GalleryError(Exception):
    """Base class for all photo gallery errors."""

    status_code: int = 500
    public_message: str = "Internal Server Error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.public_message)

    @property
    def client_message(self) -> str:
        return str(self)


class InvalidArgument(GalleryError):
    """Missing or malformed client input."""

    status_code = 400
    public_message = "Invalid request"


class NotFound(GalleryError):
    """Unknown image key, unknown photo, or unmatched route."""

    status_code = 404
    public_message = "Not Found"


class StoreUnavailable(GalleryError):
    """The key-value or blob store could not be read or written."""

    status_code = 500
    public_message = "Internal Server Error"

    @property
    def client_message(self) -> str:
        return self.public_message
