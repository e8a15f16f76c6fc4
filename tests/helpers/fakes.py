"""In-memory fakes of the gallery server and a manual clock."""

from __future__ import annotations

import asyncio
from typing import Any

from horde_gallery.api.schemas import (
    GalleryImage,
    GenerationRequest,
    ImagePage,
    KudosEstimate,
    QueueStatus,
    RetryResponse,
)
from horde_gallery.core.exceptions import RemoteServiceError
from horde_gallery.core.types import DeleteMode, ImageFilters


def make_request(request_id: str, status: str = "completed", **extra: Any) -> GenerationRequest:
    """Build a GenerationRequest the way the server sends it."""
    return GenerationRequest.model_validate({"uuid": request_id, "status": status, **extra})


def make_image(image_id: str) -> GalleryImage:
    return GalleryImage.model_validate({"uuid": image_id})


class FakeClock:
    """Manual clock whose sleep advances time instead of waiting."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        # Still a suspension point, like a real sleep
        await asyncio.sleep(0)


class FakeRequestService:
    """RequestService backed by a list, with per-id failure injection."""

    def __init__(self, requests: list[GenerationRequest] | None = None) -> None:
        self.requests = list(requests or [])
        self.status = QueueStatus(active=0, pending_requests=0)
        self.fail_delete: set[str] = set()
        self.fail_retry: set[str] = set()
        self.fail_fetch = False
        self.delete_calls: list[tuple[str, DeleteMode]] = []
        self.retry_calls: list[str] = []
        self.created: list[dict[str, Any]] = []

    async def list_requests(self, limit: int = 100) -> list[GenerationRequest]:
        if self.fail_fetch:
            raise RemoteServiceError("server unavailable", status_code=503)
        return list(self.requests)

    async def get_queue_status(self) -> QueueStatus:
        if self.fail_fetch:
            raise RemoteServiceError("server unavailable", status_code=503)
        return self.status

    async def create_request(self, params: dict[str, Any]) -> GenerationRequest:
        self.created.append(params)
        request = make_request(f"new-{len(self.created)}", "pending")
        self.requests.insert(0, request)
        return request

    async def delete_request(self, request_id: str, mode: DeleteMode) -> None:
        self.delete_calls.append((request_id, mode))
        await asyncio.sleep(0)
        if request_id in self.fail_delete:
            raise RemoteServiceError(f"Failed to delete {request_id}", status_code=500)
        self.requests = [r for r in self.requests if r.id != request_id]

    async def retry_request(self, request_id: str) -> RetryResponse:
        self.retry_calls.append(request_id)
        if request_id in self.fail_retry:
            raise RemoteServiceError("Request is not in failed state", status_code=400)
        new_request = make_request(f"{request_id}-retry", "pending")
        return RetryResponse(request=new_request)


class FakeImageSource:
    """ImageSource returning a configurable page."""

    def __init__(self) -> None:
        self.page = ImagePage()
        self.calls: list[tuple[int, int, ImageFilters | None]] = []
        self.error: Exception | None = None

    async def list_images(
        self,
        limit: int,
        offset: int = 0,
        filters: ImageFilters | None = None,
    ) -> ImagePage:
        self.calls.append((limit, offset, filters))
        if self.error is not None:
            raise self.error
        return self.page


class FakeEstimateSource:
    """EstimateSource answering with a fixed cost."""

    def __init__(self, kudos: float = 12) -> None:
        self.kudos = kudos
        self.estimate_calls: list[dict[str, Any]] = []
        self.estimate_error: Exception | None = None

    async def estimate(self, params: dict[str, Any]) -> KudosEstimate:
        self.estimate_calls.append(params)
        if self.estimate_error is not None:
            raise self.estimate_error
        return KudosEstimate(kudos=self.kudos)


class FakeGalleryClient(FakeRequestService, FakeImageSource, FakeEstimateSource):
    """All three server interfaces in one object, like GalleryApiClient."""

    def __init__(self, requests: list[GenerationRequest] | None = None) -> None:
        FakeRequestService.__init__(self, requests)
        FakeImageSource.__init__(self)
        FakeEstimateSource.__init__(self)
        self.closed = False

    async def aclose(self) -> None:
        self.closed = True

    async def __aenter__(self) -> FakeGalleryClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
