"""Configuration models for the tool dispatch core."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field


def running_under_tests() -> bool:
    return "PYTEST_CURRENT_TEST" in os.environ or os.getenv("APP_ENV") == "test"


class DispatchConfig(BaseModel):
    """Configures server-side tool execution."""

    handler_timeout_s: float | None = Field(default=None, gt=0.0)
    source: str = "server"


class BudgetConfig(BaseModel):
    """Configures usage accounting for reflink-backed calls."""

    cost_per_tool_call_usd: float = Field(default=0.001, ge=0.0)
    average_request_cost_usd: float = Field(default=0.01, gt=0.0)
    usage_endpoint: str = "/ai/tools/execute"


class StatusCacheConfig(BaseModel):
    """Configures the provider status cache and its background refresh."""

    default_ttl_minutes: float = Field(default=10.0, gt=0.0)
    background_refresh_enabled: bool = Field(
        default_factory=lambda: not running_under_tests()
    )
    background_refresh_interval_minutes: float = Field(default=10.0, gt=0.0)
    activity_window_minutes: float = Field(default=30.0, gt=0.0)


class AppConfig(BaseModel):
    dispatch: DispatchConfig = Field(default_factory=DispatchConfig)
    budget: BudgetConfig = Field(default_factory=BudgetConfig)
    status_cache: StatusCacheConfig = Field(default_factory=StatusCacheConfig)

    @classmethod
    def from_env(cls) -> AppConfig:
        ttl = float(os.getenv("STATUS_CACHE_TTL_MINUTES", "10"))
        refresh_flag = os.getenv("STATUS_CACHE_BACKGROUND_REFRESH")
        timeout = os.getenv("TOOL_HANDLER_TIMEOUT_SECONDS")

        cache_kwargs: dict[str, object] = {
            "default_ttl_minutes": ttl,
            "background_refresh_interval_minutes": ttl,
        }
        if refresh_flag is not None:
            cache_kwargs["background_refresh_enabled"] = (
                refresh_flag.lower() in ("1", "true", "yes") and not running_under_tests()
            )

        return cls(
            dispatch=DispatchConfig(handler_timeout_s=float(timeout) if timeout else None),
            budget=BudgetConfig(
                cost_per_tool_call_usd=float(os.getenv("TOOL_CALL_COST_USD", "0.001"))
            ),
            status_cache=StatusCacheConfig(**cache_kwargs),
        )
