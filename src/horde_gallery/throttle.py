"""Outbound call throttle for the gallery server and the AI Horde behind it.

The Horde rate-limits clients, and the UI can fire bursts of estimations and
submissions (every form change triggers an estimate). The ThrottleGate is a
single serialized lane: callers are authorized one at a time, strictly in the
order they called ``acquire()``, and never more than once per ``min_interval``.

Ordering comes from an explicit chain of futures. Each caller appends its own
"turn" future to the tail and waits for the previous caller's turn before
measuring how long remains in the interval. Independent timers could fire out
of order; the chain cannot.

One gate is shared by the whole process. It is created at startup with
``init_throttle_gate()`` and handed to the components that talk to the server.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING

from horde_gallery.core.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = get_logger(__name__)


class ThrottleGate:
    """FIFO gate enforcing a minimum interval between authorized calls.

    Usage:
        gate = ThrottleGate(min_interval=1.0)
        await gate.acquire()
        response = await client.estimate(params)
    """

    # Minimum seconds between two authorized calls
    DEFAULT_MIN_INTERVAL = 1.0

    def __init__(
        self,
        min_interval: float = DEFAULT_MIN_INTERVAL,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the gate.

        Args:
            min_interval: Minimum seconds between authorizations
            clock: Monotonic time source in seconds
            sleep: Coroutine function used to wait (injectable for tests)
        """
        if min_interval < 0:
            raise ValueError(f"min_interval must not be negative: {min_interval!r}")
        self._min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_release: float | None = None
        self._tail: asyncio.Future[None] | None = None

    @property
    def min_interval(self) -> float:
        return self._min_interval

    @property
    def last_release(self) -> float | None:
        """Clock time of the most recent authorization (None if never)."""
        return self._last_release

    def _remaining(self) -> float:
        if self._last_release is None:
            return 0.0
        return self._last_release + self._min_interval - self._clock()

    async def acquire(self) -> None:
        """Wait for this caller's turn in the lane.

        Returns once the caller is authorized. Never raises on its own; only
        cancellation of the awaiting task propagates.
        """
        loop = asyncio.get_running_loop()
        previous = self._tail
        if previous is not None and previous.get_loop() is not loop:
            # Left over from an event loop that has since been closed
            previous = None
        turn: asyncio.Future[None] = loop.create_future()
        self._tail = turn

        try:
            if previous is not None and not previous.done():
                # shield: our cancellation must not cancel the previous turn
                await asyncio.shield(previous)

            remaining = self._remaining()
            if remaining > 0:
                logger.debug("Waiting %.3fs before next API call", remaining)
                await self._sleep(remaining)

            self._last_release = self._clock()
        finally:
            self._pass_turn(previous, turn)

    def _pass_turn(
        self,
        previous: asyncio.Future[None] | None,
        turn: asyncio.Future[None],
    ) -> None:
        """Resolve ``turn`` so the next caller may proceed.

        A caller cancelled while still queued must not let its successor
        overtake the predecessor, so its turn resolves only after the
        previous one has.
        """

        def release(_: object = None) -> None:
            if not turn.done():
                turn.set_result(None)
            if self._tail is turn:
                self._tail = None

        if previous is None or previous.done():
            release()
        else:
            previous.add_done_callback(release)

    def reset(self) -> None:
        """Forget the last authorization and drop the chain (useful for testing)."""
        self._last_release = None
        self._tail = None


# Global throttle gate instance
# Initialized once at startup (see init_throttle_gate)
throttle_gate: ThrottleGate | None = None


def get_throttle_gate() -> ThrottleGate:
    """Get the process-wide throttle gate.

    Raises:
        RuntimeError: If the gate has not been initialized
    """
    if throttle_gate is None:
        raise RuntimeError("Throttle gate not initialized. Call init_throttle_gate() first.")
    return throttle_gate


def init_throttle_gate(min_interval: float = ThrottleGate.DEFAULT_MIN_INTERVAL) -> ThrottleGate:
    """Initialize the process-wide throttle gate.

    Calling it again returns the existing gate, so every component in the
    process shares one lane.

    Args:
        min_interval: Minimum seconds between authorized calls

    Returns:
        The process-wide ThrottleGate
    """
    global throttle_gate
    if throttle_gate is None:
        throttle_gate = ThrottleGate(min_interval)
        logger.info("Initialized throttle gate (min_interval=%.2fs)", min_interval)
    return throttle_gate
