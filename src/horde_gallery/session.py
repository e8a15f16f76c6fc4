"""Wiring of the coordination core for one gallery session."""

from __future__ import annotations

from typing import TYPE_CHECKING

from horde_gallery.api.client import GalleryApiClient
from horde_gallery.core.config import get_settings
from horde_gallery.core.logging import get_logger
from horde_gallery.estimation import KudosEstimator
from horde_gallery.gallery import Gallery, ImageRefresher
from horde_gallery.lifecycle import RequestLifecycle
from horde_gallery.polling import PollingCoordinator
from horde_gallery.throttle import init_throttle_gate

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from horde_gallery.api.schemas import GalleryImage
    from horde_gallery.core.config import Settings
    from horde_gallery.throttle import ThrottleGate

logger = get_logger(__name__)


class GallerySession:
    """Client, throttle gate, gallery, polling and request list, wired together.

    The request poller feeds queue statuses to the polling coordinator, which
    refreshes the gallery while the queue is busy.

    Usage:
        async with GallerySession() as session:
            await asyncio.sleep(60)
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        client: GalleryApiClient | None = None,
        throttle: ThrottleGate | None = None,
        on_new_images: Callable[[list[GalleryImage]], None] | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.client = client or GalleryApiClient.from_settings(self.settings)
        self.throttle = throttle or init_throttle_gate(self.settings.min_api_interval_seconds)

        self.gallery = Gallery()
        self.refresher = ImageRefresher(
            self.client,
            self.gallery,
            page_size=self.settings.image_page_size,
            throttle=self.throttle,
            on_new_images=on_new_images,
        )
        self.coordinator = PollingCoordinator(
            self.refresher,
            interval=self.settings.image_poll_interval_seconds,
            final_check_delay=self.settings.final_check_delay_seconds,
        )
        self.lifecycle = RequestLifecycle(
            self.client,
            throttle=self.throttle,
            auto_prune_failed=self.settings.auto_prune_failed,
        )
        self.estimator = KudosEstimator(self.client, self.throttle)
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def started(self) -> bool:
        return self._unsubscribe is not None

    def start(self) -> None:
        """Start request polling and status-driven image polling."""
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self.lifecycle.subscribe(self.coordinator.on_status_change)
        self.lifecycle.start_polling(self.settings.requests_poll_interval_seconds)
        logger.info("Gallery session started (%s)", self.settings.api_root)

    async def close(self) -> None:
        """Stop all timers, cancel refreshes in flight, then close the HTTP client."""
        await self.coordinator.aclose()
        await self.lifecycle.aclose()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self.client.aclose()
        logger.info("Gallery session closed")

    async def __aenter__(self) -> GallerySession:
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
