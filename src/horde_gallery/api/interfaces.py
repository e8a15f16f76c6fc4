"""Interfaces the coordination core consumes.

``GalleryApiClient`` implements all of them over HTTP; tests substitute
in-memory fakes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from horde_gallery.api.schemas import (
        GenerationRequest,
        ImagePage,
        KudosEstimate,
        QueueStatus,
        RequestParams,
        RetryResponse,
    )
    from horde_gallery.core.types import DeleteMode, ImageFilters


class RequestService(Protocol):
    """Remote operations on generation requests."""

    async def list_requests(self) -> list[GenerationRequest]: ...

    async def get_queue_status(self) -> QueueStatus: ...

    async def create_request(self, params: RequestParams) -> GenerationRequest: ...

    async def delete_request(self, request_id: str, mode: DeleteMode) -> None: ...

    async def retry_request(self, request_id: str) -> RetryResponse: ...


class ImageSource(Protocol):
    """Paged access to the gallery's images, newest first."""

    async def list_images(
        self,
        limit: int,
        offset: int = 0,
        filters: ImageFilters | None = None,
    ) -> ImagePage: ...


class EstimateSource(Protocol):
    """Dry-run cost estimation of a generation request."""

    async def estimate(self, params: RequestParams) -> KudosEstimate: ...
