"""Timer-driven refresh of the effective schedule for a viewed date.

Every fetch carries a monotonic sequence number. A response is applied only
when it is newer than the last applied one and was issued for the view that
is still current, so a slow old request can never overwrite a newer result.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from app.core.config import Settings, get_settings
from app.core.exceptions import AppError

logger = logging.getLogger(__name__)

View = tuple[str, str]
FetchFn = Callable[[str, str], Awaitable[Any]]
ApplyFn = Callable[[View, Any], None]
ErrorFn = Callable[[View, Exception], None]


class SyncPoller:
    def __init__(
        self,
        fetch: FetchFn,
        on_update: ApplyFn,
        *,
        interval_seconds: float = 3.0,
        on_error: ErrorFn | None = None,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._fetch = fetch
        self._on_update = on_update
        self._on_error = on_error
        self.interval_seconds = interval_seconds
        self._sequence = itertools.count(1)
        self.last_issued = 0
        self.last_applied = 0
        self.view: View | None = None
        self._task: asyncio.Task | None = None
        self._inflight: set[asyncio.Task] = set()

    @classmethod
    def from_settings(
        cls,
        fetch: FetchFn,
        on_update: ApplyFn,
        *,
        settings: Settings | None = None,
        on_error: ErrorFn | None = None,
    ) -> "SyncPoller":
        settings = settings or get_settings()
        return cls(fetch, on_update, interval_seconds=settings.sync_poll_interval_seconds, on_error=on_error)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def next_sequence(self) -> int:
        self.last_issued = next(self._sequence)
        return self.last_issued

    async def refresh_now(self) -> bool:
        """Fetch once for the current view; True when the response was applied."""
        if self.view is None:
            return False
        view = self.view
        seq = self.next_sequence()
        try:
            result = await self._fetch(*view)
        except (AppError, OSError) as exc:
            logger.warning("Schedule poll #%d for %s %s failed: %s", seq, view[0], view[1], exc)
            if self._on_error is not None:
                self._on_error(view, exc)
            return False
        return self._accept(seq, view, result)

    def _accept(self, seq: int, view: View, result: Any) -> bool:
        if seq <= self.last_applied or view != self.view:
            logger.debug("Discarding stale schedule poll #%d (last applied #%d)", seq, self.last_applied)
            return False
        self.last_applied = seq
        self._on_update(view, result)
        return True

    def apply_optimistic(self, result: Any) -> None:
        """Show a local write immediately; polls issued before it are now stale."""
        if self.view is None:
            return
        self.last_applied = self.next_sequence()
        self._on_update(self.view, result)

    def set_view(self, date_str: str, day_name: str) -> None:
        view = (date_str, day_name)
        if view == self.view:
            return
        self.view = view
        # In-flight polls for the previous view must not land.
        self.last_applied = self.next_sequence()
        if self.running:
            self._spawn()

    def _spawn(self) -> None:
        task = asyncio.get_running_loop().create_task(self.refresh_now())
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _loop(self) -> None:
        while True:
            # One slow fetch must not delay the next tick, so each poll is its own task.
            self._spawn()
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._loop())

    async def stop(self) -> None:
        if self._task is None:
            return
        inflight = list(self._inflight)
        self._task.cancel()
        for task in inflight:
            task.cancel()
        await asyncio.gather(self._task, *inflight, return_exceptions=True)
        self._task = None
