"""Local collection of generation requests and the actions users take on it.

The collection mirrors the server's request list. Mutations (delete, retry,
submit) call the server first and touch the local list only after the call
succeeded, so a failed action leaves the list exactly as it was and the user
can simply try again.

The collection also acts as the queue-status source: every status fetched
from the server is pushed to subscribers, typically
``PollingCoordinator.on_status_change``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from horde_gallery.core.exceptions import BulkDeleteError, RemoteServiceError
from horde_gallery.core.logging import get_logger
from horde_gallery.core.types import DeleteMode, RequestStatus
from horde_gallery.polling import PeriodicTask

if TYPE_CHECKING:
    from collections.abc import Callable

    from horde_gallery.api.interfaces import RequestService
    from horde_gallery.api.schemas import (
        GenerationRequest,
        QueueStatus,
        RequestParams,
        RetryResponse,
    )
    from horde_gallery.throttle import ThrottleGate

    StatusListener = Callable[[QueueStatus], None]

logger = get_logger(__name__)

_DELETABLE = (RequestStatus.COMPLETED, RequestStatus.FAILED)
_ACTIVE = (RequestStatus.PENDING, RequestStatus.PROCESSING)


class RequestLifecycle:
    """Request list, queue status, and delete/retry/submit actions.

    Usage:
        lifecycle = RequestLifecycle(client, throttle=gate)
        lifecycle.subscribe(coordinator.on_status_change)
        lifecycle.start_polling()
        await lifecycle.confirm_delete(request_id, DeleteMode.PRUNE)
    """

    DEFAULT_POLL_INTERVAL = 2.0

    def __init__(
        self,
        service: RequestService,
        *,
        throttle: ThrottleGate | None = None,
        auto_prune_failed: bool = True,
    ) -> None:
        """Initialize an empty collection.

        Args:
            service: Remote request operations
            throttle: Gate passed before user-initiated submissions
            auto_prune_failed: Prune failed requests without asking for confirmation
        """
        self._service = service
        self._throttle = throttle
        self.auto_prune_failed = auto_prune_failed

        self.requests: list[GenerationRequest] = []
        self.queue_status: QueueStatus | None = None
        self.pending_delete: GenerationRequest | None = None

        self._deleting: set[str] = set()
        self._listeners: list[StatusListener] = []
        self._poller = PeriodicTask(self.refresh, name="request-refresh", immediate=True)

    # Derived views

    @property
    def deletable(self) -> list[GenerationRequest]:
        """Requests in a final state (completed or failed)."""
        return [r for r in self.requests if r.status in _DELETABLE]

    @property
    def active(self) -> list[GenerationRequest]:
        """Requests waiting for or undergoing generation."""
        return [r for r in self.requests if r.status in _ACTIVE]

    @property
    def has_active_requests(self) -> bool:
        return any(r.status in _ACTIVE for r in self.requests)

    @property
    def request_count(self) -> int:
        return len(self.requests)

    @property
    def is_deleting(self) -> bool:
        """True while any delete call is in flight."""
        return bool(self._deleting)

    def is_deleting_request(self, request_id: str) -> bool:
        return request_id in self._deleting

    def get_request(self, request_id: str) -> GenerationRequest | None:
        for request in self.requests:
            if request.id == request_id:
                return request
        return None

    # Local mutations (no-ops when the request is already gone)

    def _remove(self, request_id: str) -> None:
        self.requests = [r for r in self.requests if r.id != request_id]

    def _insert_front(self, request: GenerationRequest) -> None:
        self.requests = [request] + [r for r in self.requests if r.id != request.id]

    # Status source

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """Register a queue-status listener.

        Returns:
            A function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, status: QueueStatus) -> None:
        for listener in list(self._listeners):
            try:
                listener(status)
            except Exception:
                logger.exception("Queue status listener failed")

    # Fetching

    async def fetch_requests(self) -> None:
        """Replace the local list with the server's. Errors keep the old list."""
        try:
            self.requests = await self._service.list_requests()
        except RemoteServiceError:
            logger.exception("Error fetching requests")

    async def fetch_queue_status(self) -> None:
        """Fetch the queue status and push it to subscribers."""
        try:
            status = await self._service.get_queue_status()
        except RemoteServiceError:
            logger.exception("Error fetching queue status")
            return
        self.queue_status = status
        self._publish(status)

    async def refresh(self) -> None:
        await self.fetch_requests()
        await self.fetch_queue_status()

    def start_polling(self, interval: float = DEFAULT_POLL_INTERVAL) -> None:
        """Fetch now, then every ``interval`` seconds. No-op if already polling."""
        if self._poller.start(interval):
            logger.debug("Started request polling every %.1fs", interval)

    def stop_polling(self) -> None:
        if self._poller.stop():
            logger.debug("Stopped request polling")

    @property
    def is_polling(self) -> bool:
        return self._poller.running

    async def aclose(self) -> None:
        """Stop polling and cancel a fetch still in flight."""
        await self._poller.shutdown()

    # Actions

    async def submit(self, params: RequestParams) -> GenerationRequest:
        """Create a request on the server and show it first in the list."""
        if self._throttle is not None:
            await self._throttle.acquire()
        request = await self._service.create_request(params)
        self._insert_front(request)
        logger.info("Submitted request %s", request.id)
        return request

    async def show_delete(self, request: GenerationRequest) -> bool:
        """Entry point for deleting a single request from the list.

        Failed requests are pruned straight away when ``auto_prune_failed``
        is set. Anything else is parked in ``pending_delete`` until the user
        confirms (``confirm_pending_delete``) or cancels (``cancel_delete``).

        Returns:
            True if the request was deleted immediately
        """
        if self.auto_prune_failed and request.status == RequestStatus.FAILED:
            await self.confirm_delete(request.id, DeleteMode.PRUNE)
            return True
        self.pending_delete = request
        return False

    def cancel_delete(self) -> None:
        self.pending_delete = None

    async def confirm_pending_delete(self, mode: DeleteMode) -> None:
        """Delete the request parked by ``show_delete``. No-op if none."""
        if self.pending_delete is None:
            return
        await self.confirm_delete(self.pending_delete.id, mode)

    async def confirm_delete(self, request_id: str, mode: DeleteMode) -> None:
        """Delete one request on the server, then drop it locally.

        Raises:
            RemoteServiceError: The delete call failed; the list is unchanged
        """
        self._deleting.add(request_id)
        try:
            await self._service.delete_request(request_id, mode)
        except Exception:
            logger.exception("Error deleting request %s", request_id)
            raise
        finally:
            self._deleting.discard(request_id)

        self._remove(request_id)
        if self.pending_delete is not None and self.pending_delete.id == request_id:
            self.pending_delete = None
        logger.info("Deleted request %s (%s)", request_id, DeleteMode(mode).value)

    async def confirm_delete_all(self, mode: DeleteMode) -> list[str]:
        """Delete every deletable request, one after another.

        The deletable set is taken when the call starts. Each request is
        dropped locally as soon as its delete succeeded; the first failure
        stops the run.

        Returns:
            IDs of the deleted requests

        Raises:
            BulkDeleteError: A delete call failed. Earlier deletions stay applied.
        """
        targets = [r.id for r in self.deletable]
        deleted: list[str] = []
        for request_id in targets:
            try:
                await self.confirm_delete(request_id, mode)
            except Exception as e:
                raise BulkDeleteError(request_id, deleted) from e
            deleted.append(request_id)

        if deleted:
            logger.info("Deleted %d request(s)", len(deleted))
        return deleted

    async def retry_request(self, request_id: str) -> RetryResponse:
        """Retry a failed request.

        The server replaces the failed request with a new one; locally the old
        entry is dropped and the new one shown first.

        Raises:
            RemoteServiceError: The retry call failed; the list is unchanged
        """
        try:
            response = await self._service.retry_request(request_id)
        except Exception:
            logger.exception("Error retrying request %s", request_id)
            raise

        self._remove(request_id)
        self._insert_front(response.request)
        logger.info("Retried request %s as %s", request_id, response.request.id)
        return response

    def clear_state(self) -> None:
        """Stop polling and forget everything."""
        self.stop_polling()
        self.requests = []
        self.queue_status = None
        self.pending_delete = None
