"""
Health check endpoint.

Used by load balancers and orchestrators to see whether the process is
alive. It does not touch the bucket; it only reports what the listing
cache currently holds.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, status
from pydantic import BaseModel

from ..dependencies import ListingCacheDep, SettingsDep

logger = logging.getLogger(__name__)

router = APIRouter()


class CacheStatus(BaseModel):
    """Listing cache state."""
    records: int
    total_size_bytes: int
    max_size_bytes: int
    last_refreshed_at: Optional[datetime] = None


class HealthResponse(BaseModel):
    """
    Health check response.

    Standardized format makes it easy for monitoring tools to parse.
    """
    status: str
    version: str
    cache: CacheStatus
    details: dict[str, Any] = {}


@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
    description="Returns 200 if the service is running. Does not check dependencies.",
)
async def health_check(settings: SettingsDep, cache: ListingCacheDep) -> HealthResponse:
    """Liveness check - is the process alive?"""
    missing_fields = settings.validate_required_fields()

    return HealthResponse(
        status="ok",
        version=settings.api_version,
        cache=CacheStatus(
            records=len(cache),
            total_size_bytes=cache.total_size,
            max_size_bytes=cache.max_size_bytes,
            last_refreshed_at=cache.last_refreshed_at,
        ),
        details={
            "mock_mode": {
                "storage": settings.storage_mock_mode,
                "transcoder": settings.transcoder_mock_mode,
            },
            "missing_configuration": missing_fields,
        }
    )
