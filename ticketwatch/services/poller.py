from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Generic, TypeVar

from ticketwatch.common import logging_config
from ticketwatch.constants import LOG_POLL_INTERVAL_S, STATUS_POLL_INTERVAL_S
from ticketwatch.services.ticket_client import TicketApiError

if TYPE_CHECKING:
    from collections.abc import Callable

    from ticketwatch.services.ticket_client import TicketApiClient
    from ticketwatch.state import LogState, SampleBuffer, TicketStatus

T = TypeVar("T")

logger = logging.getLogger(__name__)


class MalformedStatusError(ValueError):
    """Status body is not of the form '<label>: <non-negative integer>'."""


def parse_status(text: str) -> int:
    """Parse 'Tickets remaining: 7' into 7."""
    _, sep, value = text.partition(":")
    if not sep:
        raise MalformedStatusError(f"No ':' in status body: {text!r}")
    try:
        count = int(value.strip())
    except ValueError as e:
        raise MalformedStatusError(f"Non-numeric status count: {text!r}") from e
    if count < 0:
        raise MalformedStatusError(f"Negative status count: {text!r}")
    return count


def split_log(text: str) -> list[str]:
    # str.split keeps a trailing empty line and maps "" to [""]
    return text.split("\n")


class Poller(Generic[T]):
    """
    Fixed-interval poller against the remote service.

    The scheduler task never awaits a tick: each tick runs as its own task so a
    slow fetch does not stretch the cadence, and two ticks may be in flight at
    once. Every tick gets a sequence number and its result is applied only if
    it is newer than the last applied one, so the latest observed value wins.
    """

    name = "poller"

    def __init__(self, interval_s: float) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        self.interval_s = interval_s
        self._task: asyncio.Task | None = None
        self._ticks: set[asyncio.Task] = set()
        self._generation = 0
        self._issued_seq = 0
        self._applied_seq = 0
        self.fetch_count = 0

    @property
    def running(self) -> bool:
        return self._task is not None

    def start(self) -> None:
        """Begin polling; the first tick fires immediately."""
        if self._task is not None:
            return
        self._generation += 1
        self._task = asyncio.create_task(
            self._run(self._generation), name=f"{self.name}-scheduler"
        )
        logging.debug("%s started (every %.3fs)", self.name, self.interval_s)

    def stop(self) -> bool:
        """
        Cancel the schedule. Ticks already fetching run to completion; ticks that
        were scheduled but have not begun fetching are skipped.

        Returns True if a running schedule was cancelled.
        """
        task = self._task
        if task is None:
            return False
        self._task = None
        self._generation += 1
        task.cancel()
        logging.debug("%s stopped", self.name)
        return True

    async def __aenter__(self) -> Poller[T]:
        self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.stop()

    async def _run(self, generation: int) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        while generation == self._generation:
            tick = asyncio.create_task(self._tick(generation))
            self._ticks.add(tick)
            tick.add_done_callback(self._ticks.discard)
            next_tick += self.interval_s
            # Sleep until next_tick (avoid drift); skip missed slots after a stall
            now = loop.time()
            if next_tick < now:
                next_tick = now
            await asyncio.sleep(next_tick - now)

    async def _tick(self, generation: int) -> None:
        if generation != self._generation:
            return
        try:
            await self.poll_once()
        except Exception as e:
            # apply() or its view callback failed (e.g. the page was deleted)
            logging.warning("%s tick failed to apply: %s", self.name, e)

    async def poll_once(self) -> bool:
        """Run one fetch-and-apply cycle; returns True if its result was applied."""
        self._issued_seq += 1
        seq = self._issued_seq
        self.fetch_count += 1
        try:
            result = await self.fetch()
        except (TicketApiError, ValueError) as e:
            logging.debug("%s tick %d dropped: %s", self.name, seq, e)
            return False
        if seq <= self._applied_seq:
            if logging_config.TRACE_ENABLED:
                logger.trace(  # type: ignore[attr-defined]
                    "%s tick %d stale (applied %d)", self.name, seq, self._applied_seq
                )
            return False
        self._applied_seq = seq
        self.apply(result)
        return True

    async def fetch(self) -> T:
        raise NotImplementedError

    def apply(self, result: T) -> None:
        raise NotImplementedError


class StatusPoller(Poller[int]):
    """Sample tickets remaining into the buffer and mark sold out at zero."""

    name = "status-poller"

    def __init__(
        self,
        client: TicketApiClient,
        samples: SampleBuffer,
        status: TicketStatus,
        on_sample: Callable[[], None] | None = None,
        interval_s: float = STATUS_POLL_INTERVAL_S,
    ) -> None:
        super().__init__(interval_s)
        self.client = client
        self.samples = samples
        self.status = status
        self.on_sample = on_sample

    async def fetch(self) -> int:
        return parse_status(await self.client.status())

    def apply(self, result: int) -> None:
        self.samples.push(result)
        self.status.tickets_remaining = result
        self.status.sold_out = result == 0
        self.status.last_update_ts = time.time()
        if logging_config.TRACE_ENABLED:
            logger.trace(  # type: ignore[attr-defined]
                "status sample %d -> %s", result, self.samples.snapshot()
            )
        if self.on_sample:
            self.on_sample()


class LogPoller(Poller[list[str]]):
    """Replace the displayed log lines with the full remote log on every tick."""

    name = "log-poller"

    def __init__(
        self,
        client: TicketApiClient,
        logs: LogState,
        on_lines: Callable[[list[str]], None] | None = None,
        interval_s: float = LOG_POLL_INTERVAL_S,
    ) -> None:
        super().__init__(interval_s)
        self.client = client
        self.logs = logs
        self.on_lines = on_lines

    async def fetch(self) -> list[str]:
        return split_log(await self.client.logs())

    def apply(self, result: list[str]) -> None:
        self.logs.lines = result
        self.logs.last_update_ts = time.time()
        if self.on_lines:
            self.on_lines(result)
