import asyncio

from portfolio_agent.cache.providers import (
    ProviderAvailabilityService,
    ProviderStatus,
    default_checkers,
    env_key_checker,
)
from portfolio_agent.cache.scheduler import ActivityMonitor, BackgroundRefresher
from portfolio_agent.cache.status_cache import ManualClock, StatusCache
from portfolio_agent.config import AppConfig, StatusCacheConfig


def _setup() -> tuple[StatusCache, ManualClock, ActivityMonitor]:
    clock = ManualClock()
    cache = StatusCache(StatusCacheConfig(background_refresh_enabled=False), clock=clock)
    return cache, clock, ActivityMonitor(clock, window_minutes=30)


def test_activity_window_expires_after_thirty_minutes() -> None:
    _, clock, monitor = _setup()
    assert monitor.is_recently_active() is False

    monitor.mark_active()
    clock.advance(minutes=29)
    assert monitor.is_recently_active() is True

    clock.advance(minutes=1)
    assert monitor.is_recently_active() is False


def test_cycle_refreshes_only_expired_keys_when_active() -> None:
    cache, clock, monitor = _setup()
    cache.set("openai", ProviderStatus(name="openai", available=False, configured=False))
    clock.advance(minutes=5)
    cache.set("anthropic", ProviderStatus(name="anthropic", available=True, configured=True))
    clock.advance(minutes=6)
    requested: list[list[str]] = []

    async def refresh(names: list[str]) -> list[ProviderStatus]:
        requested.append(names)
        return [
            ProviderStatus(name="openai", available=True, configured=True),
            ProviderStatus(name="anthropic", available=False, configured=False),
        ]

    refresher = BackgroundRefresher(cache, refresh, monitor)

    assert asyncio.run(refresher.run_cycle()) == []
    assert requested == []

    monitor.mark_active()
    refreshed = asyncio.run(refresher.run_cycle())

    assert refreshed == ["openai"]
    assert requested == [["openai"]]
    assert cache.get("openai").available is True
    assert cache.get("anthropic").available is True


def test_cycle_with_nothing_expired_does_no_work() -> None:
    cache, _, monitor = _setup()
    cache.set("openai", ProviderStatus(name="openai", available=True, configured=True))
    monitor.mark_active()
    calls = []

    async def refresh(names: list[str]) -> list[ProviderStatus]:
        calls.append(names)
        return []

    assert asyncio.run(BackgroundRefresher(cache, refresh, monitor).run_cycle()) == []
    assert calls == []


def test_failed_refresh_keeps_stale_entries() -> None:
    cache, _, monitor = _setup()
    cache.set("openai", ProviderStatus(name="openai", available=True, configured=True))
    cache.force_refresh()
    monitor.mark_active()

    async def refresh(names: list[str]) -> list[ProviderStatus]:
        raise ConnectionError("provider API unreachable")

    assert asyncio.run(BackgroundRefresher(cache, refresh, monitor).run_cycle()) == []
    assert cache.peek("openai").available is True


def test_refresher_does_not_start_when_disabled() -> None:
    cache, _, monitor = _setup()

    async def refresh(names: list[str]) -> list[ProviderStatus]:
        return []

    refresher = BackgroundRefresher(cache, refresh, monitor)

    async def scenario() -> bool:
        started = refresher.start()
        await refresher.stop()
        return started

    assert asyncio.run(scenario()) is False
    assert refresher.running is False


def test_refresher_loop_starts_and_stops_when_enabled() -> None:
    cache, _, monitor = _setup()
    cache.update_config(background_refresh_enabled=True)

    async def refresh(names: list[str]) -> list[ProviderStatus]:
        return []

    refresher = BackgroundRefresher(cache, refresh, monitor)

    async def scenario() -> tuple[bool, bool, bool]:
        started = refresher.start()
        await asyncio.sleep(0)
        running = refresher.running
        await refresher.stop()
        return started, running, refresher.running

    assert asyncio.run(scenario()) == (True, True, False)
    assert cache.stats().next_background_refresh is None


def test_background_refresh_disabled_under_pytest() -> None:
    assert StatusCacheConfig().background_refresh_enabled is False
    assert AppConfig.from_env().status_cache.background_refresh_enabled is False


def test_env_key_checker_reports_configuration() -> None:
    configured = asyncio.run(env_key_checker("openai", "OPENAI_API_KEY", environ={"OPENAI_API_KEY": "k"})())
    missing = asyncio.run(env_key_checker("openai", "OPENAI_API_KEY", environ={})())

    assert configured.available is True
    assert missing.available is False
    assert "OPENAI_API_KEY" in missing.error


def test_availability_service_uses_cache_then_checker() -> None:
    cache, _, _ = _setup()
    calls: list[str] = []

    async def checker() -> ProviderStatus:
        calls.append("openai")
        return ProviderStatus(name="openai", available=True, configured=True)

    service = ProviderAvailabilityService(cache, {"openai": checker})

    first = asyncio.run(service.get_status("openai"))
    second = asyncio.run(service.get_status("openai"))
    forced = asyncio.run(service.get_status("openai", force=True))

    assert first.available and second.available and forced.available
    assert calls == ["openai", "openai"]
    assert cache.stats().cache_hits == 1


def test_availability_service_falls_back_to_stale_status() -> None:
    cache, _, _ = _setup()
    cache.set("openai", ProviderStatus(name="openai", available=True, configured=True))
    cache.force_refresh()

    async def broken() -> ProviderStatus:
        raise TimeoutError("slow provider")

    service = ProviderAvailabilityService(cache, {"openai": broken})
    status = asyncio.run(service.get_status("openai"))

    assert status.available is True
    assert status.error is not None


def test_default_checkers_cover_known_providers() -> None:
    statuses = asyncio.run(
        ProviderAvailabilityService(
            _setup()[0], default_checkers({"ELEVENLABS_API_KEY": "x"})
        ).get_all_statuses()
    )

    by_name = {status.name: status.available for status in statuses}
    assert by_name == {"openai": False, "anthropic": False, "elevenlabs": True}
