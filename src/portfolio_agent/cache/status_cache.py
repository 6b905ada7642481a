"""TTL cache for provider availability statuses."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Protocol

from portfolio_agent.config import StatusCacheConfig

if TYPE_CHECKING:
    from portfolio_agent.cache.providers import ProviderStatus

logger = logging.getLogger(__name__)

FORCED_EXPIRY_OFFSET = timedelta(seconds=1)


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._now

    def advance(self, *, seconds: float = 0.0, minutes: float = 0.0) -> datetime:
        self._now += timedelta(seconds=seconds, minutes=minutes)
        return self._now


@dataclass(slots=True)
class CachedStatus:
    status: ProviderStatus
    cached_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


@dataclass(slots=True)
class CacheStats:
    total_requests: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    last_refresh: datetime | None = None
    next_background_refresh: datetime | None = None

    @property
    def hit_rate(self) -> float:
        return self.cache_hits / self.total_requests if self.total_requests else 0.0

    def to_wire(self) -> dict[str, Any]:
        return {
            "totalRequests": self.total_requests,
            "cacheHits": self.cache_hits,
            "cacheMisses": self.cache_misses,
            "hitRate": self.hit_rate,
            "lastRefresh": _iso(self.last_refresh),
            "nextBackgroundRefresh": _iso(self.next_background_refresh),
        }


class StatusCache:
    """Provider-keyed status cache with per-entry expiry.

    A read past ``expires_at`` counts as a miss and evicts the entry.
    :meth:`force_refresh` expires every entry in place instead of deleting
    it, so :meth:`peek` can still serve stale data until the next refresh.
    """

    def __init__(self, config: StatusCacheConfig | None = None, *, clock: Clock | None = None) -> None:
        self._config = config or StatusCacheConfig()
        self.clock = clock or SystemClock()
        self._entries: dict[str, CachedStatus] = {}
        self._stats = CacheStats()

    @property
    def config(self) -> StatusCacheConfig:
        return self._config

    def update_config(self, **changes: Any) -> StatusCacheConfig:
        self._config = self._config.model_copy(update=changes)
        return self._config

    def get(self, provider: str) -> ProviderStatus | None:
        self._stats.total_requests += 1
        entry = self._entries.get(provider)
        if entry is None:
            self._stats.cache_misses += 1
            return None
        if entry.is_expired(self.clock.now()):
            del self._entries[provider]
            self._stats.cache_misses += 1
            return None
        self._stats.cache_hits += 1
        return entry.status

    def peek(self, provider: str) -> ProviderStatus | None:
        """Return the stored status even if expired; no stats, no eviction."""
        entry = self._entries.get(provider)
        return entry.status if entry is not None else None

    def set(self, provider: str, status: ProviderStatus) -> ProviderStatus:
        now = self.clock.now()
        stored = replace(status, last_tested=now)
        self._entries[provider] = CachedStatus(
            status=stored,
            cached_at=now,
            expires_at=now + timedelta(minutes=self._config.default_ttl_minutes),
        )
        self._stats.last_refresh = now
        return stored

    def get_all(self) -> dict[str, ProviderStatus]:
        now = self.clock.now()
        fresh: dict[str, ProviderStatus] = {}
        for provider, entry in list(self._entries.items()):
            if entry.is_expired(now):
                del self._entries[provider]
            else:
                fresh[provider] = entry.status
        return fresh

    def set_all(self, statuses: list[ProviderStatus]) -> None:
        for status in statuses:
            self.set(status.name, status)

    def has(self, provider: str) -> bool:
        entry = self._entries.get(provider)
        return entry is not None and not entry.is_expired(self.clock.now())

    def delete(self, provider: str) -> None:
        self._entries.pop(provider, None)

    def clear(self) -> None:
        self._entries.clear()
        self._stats.last_refresh = None

    def stats(self) -> CacheStats:
        return replace(self._stats)

    def mark_next_background_refresh(self, when: datetime | None) -> None:
        self._stats.next_background_refresh = when

    def force_refresh(self) -> None:
        expired_at = self.clock.now() - FORCED_EXPIRY_OFFSET
        for entry in self._entries.values():
            entry.expires_at = expired_at
        logger.info("Forced expiry of %d cached provider statuses", len(self._entries))

    def time_until_expiration(self, provider: str) -> float | None:
        """Seconds until ``provider`` expires, floored at zero; ``None`` if absent."""
        entry = self._entries.get(provider)
        if entry is None:
            return None
        return max(0.0, (entry.expires_at - self.clock.now()).total_seconds())

    def expired_keys(self) -> list[str]:
        now = self.clock.now()
        return [provider for provider, entry in self._entries.items() if entry.is_expired(now)]

    def entries(self) -> list[dict[str, Any]]:
        now = self.clock.now()
        return [
            {
                "provider": provider,
                "status": entry.status.to_wire(),
                "cached": _iso(entry.cached_at),
                "expires": _iso(entry.expires_at),
                "timeUntilExpiration": max(0.0, (entry.expires_at - now).total_seconds()),
                "isExpired": entry.is_expired(now),
            }
            for provider, entry in self._entries.items()
        ]

    def size(self) -> dict[str, int]:
        expired = len(self.expired_keys())
        return {
            "totalEntries": len(self._entries),
            "validEntries": len(self._entries) - expired,
            "expiredEntries": expired,
        }

    def cleanup(self) -> int:
        expired = self.expired_keys()
        for provider in expired:
            del self._entries[provider]
        if expired:
            logger.debug("Removed %d expired status entries", len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None
