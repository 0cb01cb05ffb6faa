"""
Media upload endpoint.

Accepts up to max_files_per_upload files in the multipart field "media",
runs them through the upload pipeline and reports the stored keys.

The batch is all-or-nothing from the client's point of view: if any file
fails the response is a 500, even though the files that succeeded are
already in the bucket.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, File, UploadFile, status
from pydantic import BaseModel, ConfigDict, Field

from ...core.gallery.models import IncomingFile
from ...core.gallery.pipeline import UploadBatchError
from ...infrastructure.storage.client import StorageError
from ...infrastructure.video.transcoder import TranscodeError
from ..dependencies import (
    AuthenticatedUser,
    GalleryAPIError,
    SettingsDep,
    UploadPipelineDep,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------

class UploadedObject(BaseModel):
    """One stored object."""
    model_config = ConfigDict(populate_by_name=True)

    key: str = Field(alias="Key", description="Object key in the bucket")


class UploadResponse(BaseModel):
    """Response after a successful upload batch."""
    message: str = Field(description="Status message")
    results: list[UploadedObject] = Field(description="Stored objects, in request order")


class ErrorResponse(BaseModel):
    error: str


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/upload",
    response_model=UploadResponse,
    status_code=status.HTTP_200_OK,
    summary="Upload images and videos",
    description="Upload up to 10 files. QuickTime videos are converted to H.264 MP4 first.",
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def upload_media(
    media: Annotated[list[UploadFile], File(description="Images and videos to add to the gallery")],
    user: AuthenticatedUser,
    pipeline: UploadPipelineDep,
    settings: SettingsDep,
) -> UploadResponse:
    """
    Upload a batch of files.

    Each file is staged on disk, sniffed, converted if it's a QuickTime
    video, stored, and cleaned up. The listing cache is refreshed before
    responding so the new files show up in the next gallery request.
    """
    if len(media) > settings.max_files_per_upload:
        raise GalleryAPIError(
            f"Too many files: {len(media)}. Maximum per upload: {settings.max_files_per_upload}",
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    files = [
        IncomingFile(
            filename=upload.filename or "",
            content_type=upload.content_type or "application/octet-stream",
            data=await upload.read(),
        )
        for upload in media
    ]

    logger.info(
        "Upload request received",
        extra={
            "user": user,
            "files": [f.filename for f in files],
            "size_bytes": sum(len(f.data) for f in files),
        }
    )

    try:
        results = await pipeline.upload_batch(files)
    except (UploadBatchError, StorageError, TranscodeError, OSError) as e:
        logger.error("Error uploading files", extra={"error": str(e)})
        raise GalleryAPIError(str(e))

    return UploadResponse(
        message="Files uploaded successfully",
        results=[UploadedObject(key=result.key) for result in results],
    )
