"""Pydantic request models for the Photo Gallery API.

Models
------
ClickRequest
    Payload for ``POST /api/click`` — identifies the photo that was opened.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ClickRequest(BaseModel):
    """Request body for the ``POST /api/click`` endpoint.

    ``photoId`` is optional at the schema level so that a missing id is
    reported by the click recorder with the same message as an empty one.

    Attributes:
        photo_id: Identifier of the clicked photo (``photoId`` on the wire).
    """

    model_config = ConfigDict(populate_by_name=True)

    photo_id: str | None = Field(
        default=None,
        alias="photoId",
        description="Identifier of the photo that was clicked.",
    )
