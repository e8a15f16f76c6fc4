"""HTTP client for the gallery server's REST API.

The server proxies the AI Horde and stores requests and images. Endpoints:

- GET    /requests?limit=N             request list, newest first
- POST   /requests                     create a request
- DELETE /requests/{id}?imageAction=M  delete (M: delete | prune)
- POST   /requests/{id}/retry          replace a failed request with a new one
- GET    /requests/queue/status        queue status
- POST   /requests/estimate            dry-run kudos estimate
- GET    /images?limit=&offset=        images, newest first

The client does not throttle; callers pass the throttle gate themselves.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx
from pydantic import TypeAdapter, ValidationError

from horde_gallery.api.schemas import (
    GalleryImage,
    GenerationRequest,
    ImagePage,
    KudosEstimate,
    QueueStatus,
    RetryResponse,
)
from horde_gallery.core.exceptions import RemoteServiceError
from horde_gallery.core.logging import get_logger

if TYPE_CHECKING:
    from types import TracebackType

    from horde_gallery.api.schemas import RequestParams
    from horde_gallery.core.config import Settings
    from horde_gallery.core.types import DeleteMode, ImageFilters

logger = get_logger(__name__)

_request_list = TypeAdapter(list[GenerationRequest])
_image_list = TypeAdapter(list[GalleryImage])


def _error_detail(response: httpx.Response) -> str:
    """Best-effort error message from an error response body."""
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        for key in ("error", "message", "detail"):
            if body.get(key):
                return str(body[key])
    return f"HTTP {response.status_code}"


class GalleryApiClient:
    """Async client implementing RequestService, ImageSource and EstimateSource.

    Usage:
        async with GalleryApiClient("http://localhost:8005/api") as client:
            status = await client.get_queue_status()
    """

    DEFAULT_TIMEOUT_SECONDS = 30.0

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: API root, e.g. http://localhost:8005/api
            timeout: Per-request timeout in seconds
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> GalleryApiClient:
        return cls(settings.api_root, timeout=settings.api_timeout_seconds)

    async def __aenter__(self) -> GalleryApiClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _call(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        """Send one request and return the decoded JSON body (None if empty).

        Raises:
            RemoteServiceError: On transport errors, error statuses and
                undecodable bodies
        """
        try:
            response = await self._http.request(method, path, params=params, json=json)
        except httpx.HTTPError as e:
            raise RemoteServiceError(f"{method} {path} failed: {e}") from e

        if response.is_error:
            raise RemoteServiceError(
                f"{method} {path} failed: {_error_detail(response)}",
                status_code=response.status_code,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise RemoteServiceError(
                f"{method} {path} returned invalid JSON",
                status_code=response.status_code,
            ) from e

    def _parse(self, adapter: Any, data: Any, what: str) -> Any:
        try:
            return adapter(data)
        except ValidationError as e:
            raise RemoteServiceError(f"Unexpected {what} payload: {e}") from e

    # RequestService

    async def list_requests(self, limit: int = 100) -> list[GenerationRequest]:
        data = await self._call("GET", "/requests", params={"limit": limit})
        return self._parse(_request_list.validate_python, data or [], "request list")

    async def get_request(self, request_id: str) -> GenerationRequest:
        data = await self._call("GET", f"/requests/{request_id}")
        return self._parse(GenerationRequest.model_validate, data, "request")

    async def get_queue_status(self) -> QueueStatus:
        data = await self._call("GET", "/requests/queue/status")
        return self._parse(QueueStatus.model_validate, data or {}, "queue status")

    async def create_request(self, params: RequestParams) -> GenerationRequest:
        data = await self._call("POST", "/requests", json=params)
        # The server answers with the request itself or wrapped as {"request": ...}
        if isinstance(data, dict) and isinstance(data.get("request"), dict):
            data = data["request"]
        return self._parse(GenerationRequest.model_validate, data, "request")

    async def delete_request(self, request_id: str, mode: DeleteMode | None = None) -> None:
        params = {"imageAction": mode.value} if mode is not None else None
        await self._call("DELETE", f"/requests/{request_id}", params=params)

    async def retry_request(self, request_id: str) -> RetryResponse:
        data = await self._call("POST", f"/requests/{request_id}/retry")
        return self._parse(RetryResponse.model_validate, data, "retry")

    # EstimateSource

    async def estimate(self, params: RequestParams) -> KudosEstimate:
        data = await self._call("POST", "/requests/estimate", json={"params": params})
        return self._parse(KudosEstimate.model_validate, data, "estimate")

    # ImageSource

    async def list_images(
        self,
        limit: int,
        offset: int = 0,
        filters: ImageFilters | None = None,
    ) -> ImagePage:
        params: dict[str, Any] = {"limit": limit, "offset": offset}
        if filters is not None:
            if filters.favorites:
                params["favorites"] = "true"
            if filters.hidden:
                params["hidden"] = "true"

        data = await self._call("GET", "/images", params=params)
        # Older servers return a bare list, newer ones {"data": [...], "total": N}
        if isinstance(data, list):
            images = self._parse(_image_list.validate_python, data, "image list")
            return ImagePage(data=images)
        return self._parse(ImagePage.model_validate, data or {}, "image page")
