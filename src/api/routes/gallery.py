"""
Gallery listing endpoint.

Serves pages of presigned media URLs, newest first, from the listing
cache. The browser client keeps requesting with the returned nextOffset
until it comes back null.
"""

import logging
from datetime import datetime
from typing import Annotated, Optional

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, ConfigDict, Field

from ..dependencies import AuthenticatedUser, GalleryAPIError, GalleryServiceDep

logger = logging.getLogger(__name__)

router = APIRouter()


class MediaItemResponse(BaseModel):
    """One gallery entry."""
    model_config = ConfigDict(populate_by_name=True)

    url: str = Field(description="Presigned URL, valid for a limited time")
    type: str = Field(description="'image' or 'video'")
    last_modified: datetime = Field(alias="lastModified", description="When the object was stored")
    key: str = Field(description="Object key in the bucket")


class GalleryResponse(BaseModel):
    """A page of gallery entries."""
    model_config = ConfigDict(populate_by_name=True)

    media: list[MediaItemResponse]
    next_offset: Optional[int] = Field(
        default=None,
        alias="nextOffset",
        description="Offset for the next page, or null at the end",
    )


@router.get(
    "/gallery",
    response_model=GalleryResponse,
    status_code=status.HTTP_200_OK,
    summary="List gallery media",
    description="Paginated list of presigned URLs, most recently modified first.",
)
async def list_gallery(
    user: AuthenticatedUser,
    gallery: GalleryServiceDep,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> GalleryResponse:
    """Return one page of the gallery."""
    try:
        page = await gallery.list_page(limit=limit, offset=offset)
    except Exception as e:
        logger.error("Error fetching gallery", extra={"error": str(e)})
        raise GalleryAPIError(str(e))

    return GalleryResponse(
        media=[
            MediaItemResponse(
                url=item.url,
                type=item.type.value,
                last_modified=item.last_modified,
                key=item.key,
            )
            for item in page.media
        ],
        next_offset=page.next_offset,
    )
