"""FastAPI entrypoint for tool catalog, execution, status and telemetry endpoints."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import Field

from portfolio_agent.access.gate import AccessGate
from portfolio_agent.access.reflinks import InMemoryReflinkService
from portfolio_agent.agent.dispatcher import ExecutionDispatcher
from portfolio_agent.agent.gateway import ToolGateway
from portfolio_agent.agent.handlers import ServerToolHandlers
from portfolio_agent.agent.registry import ToolRegistry
from portfolio_agent.cache.providers import ProviderAvailabilityService, default_checkers
from portfolio_agent.cache.scheduler import ActivityMonitor, BackgroundRefresher
from portfolio_agent.cache.status_cache import StatusCache
from portfolio_agent.config import AppConfig
from portfolio_agent.content.store import NavigationHistoryStore, PortfolioStore
from portfolio_agent.errors import ToolValidationError
from portfolio_agent.obs.tracing import ToolEventLog
from portfolio_agent.types import ToolResult, ToolResultMetadata, WireModel, now_ms


@dataclass(slots=True)
class AppServices:
    config: AppConfig
    registry: ToolRegistry
    store: PortfolioStore
    history: NavigationHistoryStore
    handlers: ServerToolHandlers
    dispatcher: ExecutionDispatcher
    reflinks: InMemoryReflinkService
    gateway: ToolGateway
    events: ToolEventLog
    status_cache: StatusCache
    providers: ProviderAvailabilityService
    activity: ActivityMonitor
    refresher: BackgroundRefresher


def build_services(
    config: AppConfig | None = None,
    *,
    store: PortfolioStore | None = None,
    environ: Mapping[str, str] | None = None,
) -> AppServices:
    config = config or AppConfig()
    registry = ToolRegistry.with_default_tools()
    store = store or PortfolioStore()
    history = NavigationHistoryStore()
    handlers = ServerToolHandlers(store, history=history)
    dispatcher = ExecutionDispatcher(registry, handlers.handler_table(), config.dispatch)
    reflinks = InMemoryReflinkService(config.budget)
    events = ToolEventLog()
    gateway = ToolGateway(
        registry,
        dispatcher,
        AccessGate(reflinks),
        telemetry=events,
        reflinks=reflinks,
        history=history,
        budget=config.budget,
    )
    status_cache = StatusCache(config.status_cache)
    providers = ProviderAvailabilityService(status_cache, default_checkers(environ))
    activity = ActivityMonitor(status_cache.clock, config.status_cache.activity_window_minutes)
    refresher = BackgroundRefresher(status_cache, providers.fetch, activity)
    return AppServices(
        config=config,
        registry=registry,
        store=store,
        history=history,
        handlers=handlers,
        dispatcher=dispatcher,
        reflinks=reflinks,
        gateway=gateway,
        events=events,
        status_cache=status_cache,
        providers=providers,
        activity=activity,
        refresher=refresher,
    )


class NavigationRequest(WireModel):
    session_id: str = "anonymous"
    path: str = Field(min_length=1)


services = build_services(AppConfig.from_env())


@asynccontextmanager
async def _lifespan(_: FastAPI) -> AsyncIterator[None]:
    services.refresher.start()
    try:
        yield
    finally:
        await services.refresher.stop()


app = FastAPI(title="Portfolio Agent Tools", version="0.1.0", lifespan=_lifespan)


@app.get("/health")
def health() -> dict[str, Any]:
    return {
        "status": "ok",
        "tools": services.registry.stats()["totalTools"],
        "background_refresh": services.refresher.running,
        "event_count": len(services.events.list_recent(limit=10_000)),
    }


@app.get("/ai/tools")
def server_tools() -> dict[str, Any]:
    tools = [
        {**function, "executionContext": "server"}
        for function in services.registry.as_function_array("server")
    ]
    return {
        "success": True,
        "tools": tools,
        "count": len(tools),
        "metadata": {"timestamp": now_ms(), "source": services.config.dispatch.source},
    }


@app.get("/ai/tools/catalog")
def tool_catalog() -> dict[str, Any]:
    return {
        "stats": services.registry.stats(),
        "tools": services.registry.as_function_array(),
        "clientTools": services.registry.get_tool_names_by_context("client"),
        "serverTools": services.registry.get_tool_names_by_context("server"),
    }


@app.post("/ai/tools/execute")
async def execute_tool(request: Request) -> JSONResponse:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        error = ToolValidationError("Request body must be valid JSON.")
        result = ToolResult(
            success=False,
            error=error.message,
            error_code=error.code,
            metadata=ToolResultMetadata(source=services.config.dispatch.source),
        )
        return JSONResponse(status_code=error.status_code, content=result.to_wire())

    response = await services.gateway.handle(body, provider="http")
    return JSONResponse(status_code=response.status_code, content=response.to_wire())


@app.get("/ai/status")
async def provider_status() -> dict[str, Any]:
    statuses = await services.providers.get_all_statuses()
    return {
        "providers": [status.to_wire() for status in statuses],
        "cache": {
            "stats": services.status_cache.stats().to_wire(),
            "size": services.status_cache.size(),
            "entries": services.status_cache.entries(),
        },
    }


@app.post("/ai/status/refresh")
async def refresh_provider_status() -> dict[str, Any]:
    services.status_cache.force_refresh()
    statuses = await services.providers.get_all_statuses()
    return {
        "refreshed": [status.name for status in statuses],
        "providers": [status.to_wire() for status in statuses],
    }


@app.post("/ai/activity")
def mark_activity() -> dict[str, Any]:
    when = services.activity.mark_active()
    return {"active": True, "lastActivity": when.isoformat()}


@app.post("/ai/navigation")
def record_navigation(request: NavigationRequest) -> dict[str, Any]:
    entry = services.history.record_page_visit(request.session_id, request.path)
    return {"recorded": True, "entry": entry.to_wire()}


@app.get("/telemetry/events")
def telemetry_events(limit: int = 20) -> dict[str, Any]:
    if limit < 0:
        raise HTTPException(status_code=400, detail="limit must be non-negative")
    return {"items": services.events.as_dicts(limit=limit)}


@app.get("/metrics")
def metrics() -> dict[str, Any]:
    return services.events.summary()
