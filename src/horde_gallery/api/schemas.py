"""Pydantic schemas for gallery server payloads."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from horde_gallery.core.types import RequestStatus


class QueueStatus(BaseModel):
    """Response for GET /requests/queue/status."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    active: int = Field(0, ge=0, description="Jobs in flight on the Horde")
    pending_requests: int = Field(
        0, ge=0, alias="pendingRequests", description="Requests queued locally"
    )
    max_active: int | None = Field(None, alias="maxActive")
    is_processing: bool | None = Field(None, alias="isProcessing")
    pending_downloads: int | None = Field(None, alias="pendingDownloads")

    @property
    def has_activity(self) -> bool:
        """True while anything is running or waiting to be submitted."""
        return self.active > 0 or self.pending_requests > 0


class GenerationRequest(BaseModel):
    """A generation request as listed by GET /requests."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(..., alias="uuid", description="Unique request identifier")
    status: RequestStatus
    prompt: str | None = None
    message: str | None = None


class GalleryImage(BaseModel):
    """A generated image as listed by GET /images."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(..., alias="uuid", description="Unique image identifier")
    request_id: str | None = None


class ImagePage(BaseModel):
    """One page of images, with the overall count when the server sends it."""

    data: list[GalleryImage] = Field(default_factory=list)
    total: int | None = None


class RetryResponse(BaseModel):
    """Response for POST /requests/{id}/retry."""

    model_config = ConfigDict(extra="allow")

    request: GenerationRequest


class KudosEstimate(BaseModel):
    """Response for POST /requests/estimate (dry run)."""

    model_config = ConfigDict(extra="allow")

    # Dry-run costs can be fractional
    kudos: float


# Request parameters are passed through untouched; the server validates them
RequestParams = dict[str, Any]
