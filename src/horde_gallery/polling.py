"""Queue-status driven image polling.

While the server reports activity (jobs in flight or requests waiting to be
submitted) the gallery refreshes itself on a fixed period. When the queue goes
idle the periodic refresh stops, and one delayed "final check" runs to catch
images that were still being saved when the last job finished.

State machine (driven by ``PollingCoordinator.on_status_change``):

    IDLE ──activity──> POLLING ──idle──> PENDING_FINAL_CHECK ──delay──> IDLE
                          ^                       │
                          └───────activity────────┘

Timing:
- The first periodic refresh fires one interval after polling starts.
- Ticks follow the wall clock. Each refresh runs as its own task, so a slow
  refresh never delays the next tick (overlapping refreshes are possible).
- Refresh errors are logged and swallowed here; they never stop polling.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import TYPE_CHECKING

from horde_gallery.core.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from horde_gallery.api.schemas import QueueStatus

    RefreshAction = Callable[[], Awaitable[object]]

logger = get_logger(__name__)


def _spawn_guarded(
    action: RefreshAction,
    label: str,
    inflight: set[asyncio.Task[None]],
) -> asyncio.Task[None]:
    """Run ``action`` in its own task, logging instead of raising on failure."""

    async def invoke() -> None:
        try:
            await action()
        except Exception:
            logger.exception("Error during %s", label)

    task = asyncio.get_running_loop().create_task(invoke(), name=label)
    # Keep a reference until done so the task is not garbage collected
    inflight.add(task)
    task.add_done_callback(inflight.discard)
    return task


async def _cancel_inflight(inflight: set[asyncio.Task[None]]) -> None:
    """Cancel running invocations and wait until they have unwound."""
    tasks = list(inflight)
    for task in tasks:
        task.cancel()
    if tasks:
        await asyncio.gather(*tasks, return_exceptions=True)


class PeriodicTask:
    """Invoke an async action on a fixed period until stopped.

    Args:
        action: Zero-argument coroutine function to invoke on each tick
        name: Label used for the task name and log messages
        immediate: Also invoke once right away when started
    """

    def __init__(
        self,
        action: RefreshAction,
        *,
        name: str,
        immediate: bool = False,
    ) -> None:
        self._action = action
        self._name = name
        self._immediate = immediate
        self._ticker: asyncio.Task[None] | None = None
        self._inflight: set[asyncio.Task[None]] = set()

    @property
    def running(self) -> bool:
        return self._ticker is not None

    @property
    def inflight(self) -> int:
        """Number of invocations that have not finished yet."""
        return len(self._inflight)

    def start(self, interval: float) -> bool:
        """Start ticking every ``interval`` seconds.

        Returns:
            False if already running (nothing changes), True otherwise
        """
        if self._ticker is not None:
            return False
        if interval <= 0:
            raise ValueError(f"interval must be positive: {interval!r}")
        self._ticker = asyncio.get_running_loop().create_task(
            self._run(interval), name=f"{self._name}-ticker"
        )
        return True

    def stop(self) -> bool:
        """Stop ticking. Invocations already started are left to finish.

        Returns:
            False if it was not running, True otherwise
        """
        if self._ticker is None:
            return False
        self._ticker.cancel()
        self._ticker = None
        return True

    async def shutdown(self) -> None:
        """Stop ticking and cancel invocations still in flight.

        Use before closing whatever the action talks to.
        """
        self.stop()
        await _cancel_inflight(self._inflight)

    async def _run(self, interval: float) -> None:
        if self._immediate:
            _spawn_guarded(self._action, self._name, self._inflight)
        while True:
            await asyncio.sleep(interval)
            _spawn_guarded(self._action, self._name, self._inflight)


class PollingState(str, Enum):
    """Observable state of a PollingCoordinator."""

    IDLE = "idle"
    POLLING = "polling"
    PENDING_FINAL_CHECK = "pending_final_check"


class PollingCoordinator:
    """Start and stop a refresh action according to the queue status.

    Each coordinator owns its own timers. Two coordinators over the same
    gallery poll independently (and redundantly).

    Usage:
        coordinator = PollingCoordinator(refresher)
        lifecycle.subscribe(coordinator.on_status_change)
        ...
        coordinator.cleanup()
    """

    DEFAULT_INTERVAL = 3.0
    DEFAULT_FINAL_CHECK_DELAY = 3.0

    def __init__(
        self,
        refresh: RefreshAction,
        *,
        interval: float = DEFAULT_INTERVAL,
        final_check_delay: float = DEFAULT_FINAL_CHECK_DELAY,
    ) -> None:
        """Initialize the coordinator in the IDLE state.

        Args:
            refresh: Refresh action invoked on every tick and by the final check
            interval: Default polling period in seconds
            final_check_delay: Default delay of the final check in seconds
        """
        self._refresh = refresh
        self._interval = interval
        self._final_check_delay = final_check_delay
        self._poller = PeriodicTask(refresh, name="image-refresh")
        self._final_check: asyncio.TimerHandle | None = None
        self._inflight: set[asyncio.Task[None]] = set()
        self.was_active = False

    @property
    def is_polling(self) -> bool:
        return self._poller.running

    @property
    def has_pending_final_check(self) -> bool:
        return self._final_check is not None

    @property
    def state(self) -> PollingState:
        if self._poller.running:
            return PollingState.POLLING
        if self._final_check is not None:
            return PollingState.PENDING_FINAL_CHECK
        return PollingState.IDLE

    def start_polling(self, interval: float | None = None) -> None:
        """Start periodic refreshes. No-op if already polling."""
        period = interval if interval is not None else self._interval
        if self._poller.start(period):
            logger.info("Starting image polling every %.1fs (active requests detected)", period)

    def stop_polling(self) -> None:
        """Stop periodic refreshes. No-op if not polling."""
        if self._poller.stop():
            logger.info("Stopping image polling (no active requests)")

    def schedule_final_check(self, delay: float | None = None) -> None:
        """Schedule one delayed refresh, replacing any pending one."""
        wait = delay if delay is not None else self._final_check_delay
        self.clear_final_check()
        logger.info("Queue became idle, scheduling final image check in %.1fs", wait)
        self._final_check = asyncio.get_running_loop().call_later(wait, self._run_final_check)

    def clear_final_check(self) -> None:
        """Cancel the pending final check. No-op if none is pending."""
        if self._final_check is not None:
            self._final_check.cancel()
            self._final_check = None

    def _run_final_check(self) -> None:
        self._final_check = None
        self.was_active = False
        logger.info("Running final image check")
        _spawn_guarded(self._refresh, "final image check", self._inflight)

    def on_status_change(self, status: QueueStatus | None) -> None:
        """React to a new queue status.

        Must be called from within the running event loop.
        """
        if status is None:
            return

        if status.has_activity:
            self.clear_final_check()
            self.start_polling()
            self.was_active = True
            return

        self.stop_polling()
        # A final check already pending keeps its original deadline
        if self.was_active and self._final_check is None:
            self.schedule_final_check()

    def cleanup(self) -> None:
        """Stop polling and drop any pending final check."""
        self.stop_polling()
        self.clear_final_check()

    async def aclose(self) -> None:
        """Like cleanup(), and also cancel refreshes still in flight."""
        self.cleanup()
        await self._poller.shutdown()
        await _cancel_inflight(self._inflight)
