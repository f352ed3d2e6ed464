"""Poll scheduler for mounted conversations.

Each named cadence is a background task that sleeps for its interval and
then fetches the conversation. Cadences are started and stopped
independently; a view runs ``passive_refresh`` for as long as it is
mounted and ``reply_wait`` only while an assistant reply is awaited.
"""

import asyncio
import contextlib
from collections.abc import Awaitable, Callable

from convsync.client.classify import is_connectivity_error
from convsync.observability.logging import get_logger
from convsync.observability.metrics import POLL_TICKS, POLL_TICKS_SKIPPED
from convsync.sync.results import FetchResult, FetchSuccess

logger = get_logger(__name__)

REPLY_WAIT = "reply_wait"
PASSIVE_REFRESH = "passive_refresh"

FetchFn = Callable[[], Awaitable[FetchResult]]
SuccessHandler = Callable[[FetchSuccess], None]


class Cadence:
    """One repeating fetch with at most one request in flight."""

    def __init__(
        self,
        name: str,
        interval: float,
        fetch: FetchFn,
        on_success: SuccessHandler,
    ) -> None:
        self.name = name
        self.interval = interval
        self._fetch = fetch
        self._on_success = on_success
        self._task: asyncio.Task | None = None
        self._in_flight: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def in_flight(self) -> bool:
        return self._in_flight is not None and not self._in_flight.done()

    def start(self) -> None:
        """Start the timer. Starting a running cadence does nothing."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run(), name=f"poll:{self.name}")
        logger.debug("cadence_started", cadence=self.name, interval=self.interval)

    def stop(self) -> None:
        """Cancel the timer. A fetch already in flight is left to finish."""
        if self._task is None:
            return
        self._task.cancel()
        self._task = None
        logger.debug("cadence_stopped", cadence=self.name)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.tick()
            except Exception as e:
                logger.error("poll_loop_error", cadence=self.name, error=str(e))

    def tick(self) -> bool:
        """Start one fetch unless the previous one is still pending.

        Returns:
            True if a fetch was started
        """
        if self.in_flight:
            POLL_TICKS_SKIPPED.labels(cadence=self.name).inc()
            logger.debug("poll_tick_skipped", cadence=self.name)
            return False

        self._in_flight = asyncio.create_task(self._fetch_and_dispatch())
        return True

    async def _fetch_and_dispatch(self) -> None:
        result = await self._fetch()
        try:
            self._dispatch(result)
        except Exception as e:
            logger.error("poll_dispatch_error", cadence=self.name, error=str(e))

    def _dispatch(self, result: FetchResult) -> None:
        if isinstance(result, FetchSuccess):
            POLL_TICKS.labels(cadence=self.name, outcome="success").inc()
            self._on_success(result)
            return

        POLL_TICKS.labels(cadence=self.name, outcome="failure").inc()
        # Background failures are invisible; the next tick retries
        if not is_connectivity_error(result.error):
            logger.warning(
                "poll_tick_failed",
                cadence=self.name,
                error=str(result.error),
                error_type=type(result.error).__name__,
            )

    async def wait_idle(self) -> None:
        """Wait for the fetch in flight, if any, to finish."""
        task = self._in_flight
        if task is not None and not task.done():
            with contextlib.suppress(asyncio.CancelledError):
                await task


class PollScheduler:
    """Registry of named cadences for one mounted conversation."""

    def __init__(self) -> None:
        self._cadences: dict[str, Cadence] = {}

    def add(
        self,
        name: str,
        interval: float,
        fetch: FetchFn,
        on_success: SuccessHandler,
    ) -> Cadence:
        """Register a cadence without starting it."""
        if name in self._cadences:
            raise ValueError(f"Cadence already registered: {name}")
        cadence = Cadence(name, interval, fetch, on_success)
        self._cadences[name] = cadence
        return cadence

    def get(self, name: str) -> Cadence:
        return self._cadences[name]

    def start(self, name: str) -> None:
        self._cadences[name].start()

    def stop(self, name: str) -> None:
        self._cadences[name].stop()

    def is_running(self, name: str) -> bool:
        cadence = self._cadences.get(name)
        return cadence is not None and cadence.is_running

    def stop_all(self) -> None:
        """Cancel every timer. Safe to call more than once."""
        for cadence in self._cadences.values():
            cadence.stop()

    async def wait_idle(self) -> None:
        """Wait for every fetch in flight to finish."""
        for cadence in list(self._cadences.values()):
            await cadence.wait_idle()
