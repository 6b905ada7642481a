"""Activity-gated background refresh for the status cache."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from portfolio_agent.cache.status_cache import Clock, StatusCache

if TYPE_CHECKING:
    from portfolio_agent.cache.providers import ProviderStatus

logger = logging.getLogger(__name__)

RefreshFn = Callable[[list[str]], Awaitable[Iterable["ProviderStatus"]]]


class ActivityMonitor:
    """Tracks the last explicit activity ping against an injected clock."""

    def __init__(self, clock: Clock, window_minutes: float = 30.0) -> None:
        self.clock = clock
        self.window = timedelta(minutes=window_minutes)
        self.last_activity: datetime | None = None

    def mark_active(self) -> datetime:
        self.last_activity = self.clock.now()
        return self.last_activity

    def is_recently_active(self) -> bool:
        if self.last_activity is None:
            return False
        return self.clock.now() - self.last_activity < self.window


class BackgroundRefresher:
    """Periodically re-queries expired cache keys while someone is watching.

    Each cycle refreshes only keys that are already expired, and only when
    the activity monitor reports a recent ping. The loop is never started
    when the cache config disables background refresh.
    """

    def __init__(self, cache: StatusCache, refresh: RefreshFn, monitor: ActivityMonitor) -> None:
        self.cache = cache
        self.refresh = refresh
        self.monitor = monitor
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def interval_seconds(self) -> float:
        return self.cache.config.background_refresh_interval_minutes * 60.0

    async def run_cycle(self) -> list[str]:
        if not self.monitor.is_recently_active():
            return []
        expired = self.cache.expired_keys()
        if not expired:
            return []
        try:
            statuses = await self.refresh(expired)
        except Exception as exc:
            logger.warning("Background status refresh failed: %s", exc)
            return []

        refreshed = []
        for status in statuses:
            if status.name in expired:
                self.cache.set(status.name, status)
                refreshed.append(status.name)
        logger.info("Background refresh completed for %d providers", len(refreshed))
        return refreshed

    def start(self) -> bool:
        if not self.cache.config.background_refresh_enabled:
            logger.info("Background status refresh disabled")
            return False
        if self.running:
            return True
        self._task = asyncio.get_running_loop().create_task(self._loop())
        return True

    async def stop(self) -> None:
        task, self._task = self._task, None
        self.cache.mark_next_background_refresh(None)
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _loop(self) -> None:
        while True:
            interval = self.interval_seconds
            self.cache.mark_next_background_refresh(
                self.cache.clock.now() + timedelta(seconds=interval)
            )
            await asyncio.sleep(interval)
            await self.run_cycle()
