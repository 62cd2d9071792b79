"""Triggers that decide when a sync cycle runs.

Three triggers exist: an explicit request, a debounced notification after
each local mutation, and a transition of the server from unreachable to
reachable.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable

from notico.cli.client import is_online
from notico.cli.config import (
    DEFAULT_DEBOUNCE_SECONDS,
    DEFAULT_POLL_SECONDS,
    get_float_setting,
)
from notico.cli.sync.engine import SyncEngine
from notico.cli.sync.protocol import SyncResult

logger = logging.getLogger(__name__)


async def _fresh_online_check() -> bool:
    return await is_online(use_cache=False)


class SyncScheduler:
    """Schedules sync cycles for a :class:`SyncEngine` on the running loop."""

    def __init__(
        self,
        engine: SyncEngine,
        debounce_seconds: float | None = None,
        poll_seconds: float | None = None,
        online_check: Callable[[], Awaitable[bool]] | None = None,
    ) -> None:
        """Initialize the scheduler and attach it to the engine.

        Args:
            engine: Engine whose mutations and cycles are scheduled
            debounce_seconds: Quiet window after the last mutation
                (default: ``sync_debounce_seconds`` config key)
            poll_seconds: Connectivity poll interval
                (default: ``connectivity_poll_seconds`` config key)
            online_check: Coroutine reporting whether the server is reachable
        """
        self.engine = engine
        self.debounce_seconds = (
            debounce_seconds
            if debounce_seconds is not None
            else get_float_setting("sync_debounce_seconds", DEFAULT_DEBOUNCE_SECONDS)
        )
        self.poll_seconds = (
            poll_seconds
            if poll_seconds is not None
            else get_float_setting("connectivity_poll_seconds", DEFAULT_POLL_SECONDS)
        )
        self._online_check = online_check or _fresh_online_check
        self._timer: asyncio.TimerHandle | None = None
        self._monitor: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[SyncResult]] = set()
        self._was_online: bool | None = None
        self.last_result: SyncResult | None = None
        engine.scheduler = self

    @property
    def pending(self) -> bool:
        """Check if a debounced cycle is waiting to fire."""
        return self._timer is not None

    def notify_mutation(self) -> None:
        """Restart the debounce window after a local mutation.

        Does nothing outside a running event loop; one-shot callers sync
        explicitly instead.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        if self._timer is not None:
            self._timer.cancel()
        self._timer = loop.call_later(self.debounce_seconds, self._fire)

    def _fire(self) -> None:
        self._timer = None
        self._spawn()

    def _spawn(self) -> asyncio.Task[SyncResult]:
        task = asyncio.get_running_loop().create_task(self._run())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self) -> SyncResult:
        result = await self.engine.perform_sync()
        self.last_result = result
        return result

    async def request_sync(self) -> SyncResult:
        """Run a cycle now, superseding any pending debounced one."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        return await self._run()

    def start(self) -> None:
        """Start watching connectivity on the running loop."""
        if self._monitor is None:
            self._monitor = asyncio.get_running_loop().create_task(
                self._watch_connectivity()
            )

    async def _watch_connectivity(self) -> None:
        while True:
            online = await self._online_check()
            if online and self._was_online is False:
                logger.info("Server reachable again; triggering sync")
                self._spawn()
            self._was_online = online
            await asyncio.sleep(self.poll_seconds)

    async def wait_idle(self) -> None:
        """Wait for cycles already started by triggers to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def close(self) -> None:
        """Cancel the pending debounce and stop the connectivity monitor."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._monitor is not None:
            self._monitor.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._monitor
            self._monitor = None
        await self.wait_idle()
        if self.engine.scheduler is self:
            self.engine.scheduler = None
