"""Provider availability checks backed by the status cache."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from portfolio_agent.cache.status_cache import StatusCache

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ProviderStatus:
    name: str
    available: bool
    configured: bool
    model: str | None = None
    error: str | None = None
    last_tested: datetime | None = None

    def to_wire(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "available": self.available,
            "configured": self.configured,
            "model": self.model,
            "error": self.error,
            "lastTested": self.last_tested.isoformat() if self.last_tested else None,
        }


ProviderChecker = Callable[[], Awaitable[ProviderStatus]]

DEFAULT_PROVIDER_KEYS: dict[str, tuple[str, str]] = {
    "openai": ("OPENAI_API_KEY", "gpt-4o-mini"),
    "anthropic": ("ANTHROPIC_API_KEY", "claude-3-5-haiku-latest"),
    "elevenlabs": ("ELEVENLABS_API_KEY", "eleven_turbo_v2"),
}


def env_key_checker(
    name: str,
    env_var: str,
    model: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> ProviderChecker:
    """Checker reporting a provider as available when its API key is set."""

    async def _check() -> ProviderStatus:
        env = os.environ if environ is None else environ
        configured = bool(env.get(env_var, "").strip())
        return ProviderStatus(
            name=name,
            available=configured,
            configured=configured,
            model=model,
            error=None if configured else f"{env_var} is not set",
        )

    return _check


def default_checkers(environ: Mapping[str, str] | None = None) -> dict[str, ProviderChecker]:
    return {
        name: env_key_checker(name, env_var, model, environ)
        for name, (env_var, model) in DEFAULT_PROVIDER_KEYS.items()
    }


class ProviderAvailabilityService:
    """Answers "which providers are usable" through the status cache.

    Cache misses fall through to the provider's checker. A checker that
    raises leaves any stale cached status in place and reports it with the
    error attached.
    """

    def __init__(self, cache: StatusCache, checkers: Mapping[str, ProviderChecker]) -> None:
        self.cache = cache
        self.checkers = dict(checkers)

    async def get_status(self, name: str, *, force: bool = False) -> ProviderStatus:
        if name not in self.checkers:
            raise KeyError(f"Unknown provider: {name}")
        stale = self.cache.peek(name)
        if not force:
            cached = self.cache.get(name)
            if cached is not None:
                return cached
        return await self._check(name, stale)

    async def get_all_statuses(self, *, force: bool = False) -> list[ProviderStatus]:
        return list(
            await asyncio.gather(*(self.get_status(name, force=force) for name in self.checkers))
        )

    async def fetch(self, names: Iterable[str]) -> list[ProviderStatus]:
        """Run checkers for ``names`` without touching the cache; failures are skipped."""
        known = [name for name in names if name in self.checkers]
        checked = await asyncio.gather(*(self._run_checker(name) for name in known))
        return [status for status in checked if status is not None]

    async def _run_checker(self, name: str) -> ProviderStatus | None:
        try:
            return await self.checkers[name]()
        except Exception as exc:
            logger.warning("Provider check failed for %s: %s", name, exc)
            return None

    async def _check(self, name: str, stale: ProviderStatus | None = None) -> ProviderStatus:
        status = await self._run_checker(name)
        if status is not None:
            return self.cache.set(name, status)
        if stale is not None:
            return replace(stale, error="Provider check failed; serving last known status")
        return ProviderStatus(
            name=name, available=False, configured=False, error="Provider check failed"
        )
