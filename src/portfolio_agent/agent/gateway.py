"""Synchronous tool execution entrypoint shared by every provider."""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, replace
from typing import Any

from portfolio_agent.access.gate import AccessDecision, ContextValidator
from portfolio_agent.access.reflinks import ReflinkBudgetService, UsageEvent
from portfolio_agent.agent.dispatcher import ExecutionDispatcher
from portfolio_agent.agent.registry import ToolRegistry
from portfolio_agent.config import BudgetConfig
from portfolio_agent.content.store import NavigationHistoryStore
from portfolio_agent.errors import (
    AuthorizationError,
    HandlerError,
    MisroutedToolError,
    ToolError,
    ToolNotFoundError,
    ToolValidationError,
    status_for_code,
)
from portfolio_agent.obs.tracing import (
    TOOL_CALL_COMPLETE,
    TOOL_CALL_START,
    TelemetrySink,
    estimate_token_count,
)
from portfolio_agent.types import (
    AccessLevel,
    CostTracking,
    ToolCall,
    ToolEvent,
    ToolResult,
    ToolResultMetadata,
    new_call_id,
)

logger = logging.getLogger(__name__)

DEFAULT_SESSION_ID = "anonymous"


@dataclass(slots=True)
class GatewayResponse:
    status_code: int
    result: ToolResult

    def to_wire(self) -> dict[str, Any]:
        return self.result.to_wire()


@dataclass(slots=True)
class _Request:
    tool_name: str
    parameters: dict[str, Any]
    session_id: str
    tool_call_id: str
    reflink_code: str | None


class ToolGateway:
    """Validates, gates and dispatches one server tool call.

    ``handle`` accepts the raw request body ``{toolName, parameters,
    sessionId?, toolCallId?, reflinkId?}`` and always returns a
    :class:`GatewayResponse`; failures are mapped onto HTTP statuses
    (400 malformed or misrouted, 403 denied, 404 unknown, 500 handler).
    Usage is charged to a reflink only after a successful premium call.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        dispatcher: ExecutionDispatcher,
        validator: ContextValidator,
        *,
        telemetry: TelemetrySink | None = None,
        reflinks: ReflinkBudgetService | None = None,
        history: NavigationHistoryStore | None = None,
        budget: BudgetConfig | None = None,
    ) -> None:
        self.registry = registry
        self.dispatcher = dispatcher
        self.validator = validator
        self.telemetry = telemetry
        self.reflinks = reflinks
        self.history = history
        self.budget = budget or BudgetConfig()

    async def handle(self, body: Any, *, provider: str = "http") -> GatewayResponse:
        started = time.perf_counter()
        try:
            request = _parse_request(body)
        except ToolValidationError as exc:
            metadata = ToolResultMetadata(
                source=self.dispatcher.config.source, execution_time=_elapsed_ms(started)
            )
            return GatewayResponse(exc.status_code, _failure(exc, metadata))

        self._emit(
            TOOL_CALL_START,
            request,
            provider,
            payload={"args": request.parameters, "hasReflink": request.reflink_code is not None},
        )
        try:
            result = await self._execute(request, started)
        except Exception as exc:
            logger.exception(
                "Unified tool execution error: tool=%s session=%s call=%s",
                request.tool_name,
                request.session_id,
                request.tool_call_id,
            )
            result = _failure(
                HandlerError(str(exc) or type(exc).__name__),
                self._metadata(request, started),
            )

        status = 200 if result.success else status_for_code(result.error_code)
        self._emit(
            TOOL_CALL_COMPLETE,
            request,
            provider,
            payload=(
                {"result": result.data}
                if result.success
                else {"result": None, "errorCode": result.error_code}
            ),
            success=result.success,
            error=result.error,
            execution_time_ms=result.metadata.execution_time,
        )
        if self.history is not None and self.registry.has_tool_definition(request.tool_name):
            self.history.record_tool_call(
                request.session_id,
                request.tool_name,
                success=result.success,
                tool_call_id=request.tool_call_id,
            )
        return GatewayResponse(status, result)

    async def execute_tool_call(self, call: ToolCall, provider: str = "callable-map") -> dict[str, Any]:
        """Executor for callable-map wrappers: run ``call`` and return the wire result."""
        body = {
            "toolName": call.name,
            "parameters": call.arguments,
            "sessionId": call.session_id,
            "toolCallId": call.id,
            "reflinkId": call.reflink_id,
        }
        response = await self.handle(body, provider=provider)
        return response.to_wire()

    def executor_for(
        self,
        session_id: str | None = None,
        reflink_code: str | None = None,
        provider: str = "callable-map",
    ) -> Callable[[ToolCall], Awaitable[dict[str, Any]]]:
        """Bind a session and reflink to every call made through a callable map."""

        async def _execute(call: ToolCall) -> dict[str, Any]:
            bound = replace(
                call,
                session_id=call.session_id or session_id,
                reflink_id=call.reflink_id or reflink_code,
            )
            return await self.execute_tool_call(bound, provider)

        return _execute

    async def _execute(self, request: _Request, started: float) -> ToolResult:
        definition = self.registry.get_tool_definition(request.tool_name)
        if definition is None:
            error = ToolNotFoundError(f"Tool '{request.tool_name}' not found in registry.")
            return _failure(error, self._metadata(request, started))
        if definition.execution_context != "server":
            error = MisroutedToolError(f"Tool '{request.tool_name}' is not a server-side tool.")
            return _failure(error, self._metadata(request, started))

        decision = await self.validator.validate_and_filter_context(
            request.session_id, request.reflink_code
        )
        if not decision.valid:
            error = AuthorizationError(decision.error or "Access denied.")
            metadata = self._metadata(request, started, access_level=decision.access_level)
            return _failure(error, metadata)

        result = await self.dispatcher.execute_tool(
            request.tool_name,
            request.parameters,
            request.session_id,
            decision.access_level,
            reflink_id=decision.reflink_id,
            tool_call_id=request.tool_call_id,
        )
        if request.reflink_code:
            result.metadata.cost_tracking = await self._cost_tracking(request, decision, result)
        result.metadata.execution_time = _elapsed_ms(started)
        return result

    async def _cost_tracking(
        self, request: _Request, decision: AccessDecision, result: ToolResult
    ) -> CostTracking:
        remaining = decision.budget_status.spend_remaining if decision.budget_status else None
        billable = (
            result.success
            and decision.reflink_id is not None
            and decision.access_level == AccessLevel.PREMIUM
            and self.reflinks is not None
        )
        if billable:
            event = UsageEvent(
                type="llm_request",
                cost=self.budget.cost_per_tool_call_usd,
                tokens=estimate_token_count(result.data),
                model_used=f"tool:{request.tool_name}",
                endpoint=self.budget.usage_endpoint,
                metadata={
                    "toolName": request.tool_name,
                    "sessionId": request.session_id,
                    "toolCallId": request.tool_call_id,
                },
            )
            try:
                status = await self.reflinks.track_usage(decision.reflink_id, event)
            except Exception:
                # usage tracking is not idempotent; never retried
                logger.warning(
                    "Usage tracking failed for reflink %s (tool=%s)",
                    decision.reflink_id,
                    request.tool_name,
                    exc_info=True,
                )
            else:
                if status is not None:
                    remaining = status.spend_remaining

        return CostTracking(
            reflink_id=decision.reflink_id or request.reflink_code,
            estimated_cost=self.budget.cost_per_tool_call_usd,
            remaining_budget=remaining,
        )

    def _metadata(
        self,
        request: _Request,
        started: float,
        *,
        access_level: AccessLevel | None = None,
    ) -> ToolResultMetadata:
        return ToolResultMetadata(
            source=self.dispatcher.config.source,
            session_id=request.session_id,
            tool_call_id=request.tool_call_id,
            execution_time=_elapsed_ms(started),
            access_level=access_level.value if access_level is not None else None,
        )

    def _emit(
        self,
        event_type: str,
        request: _Request,
        provider: str,
        *,
        payload: dict[str, Any],
        success: bool | None = None,
        error: str | None = None,
        execution_time_ms: float = 0.0,
    ) -> None:
        if self.telemetry is None:
            return
        event = ToolEvent(
            event_type=event_type,
            tool_name=request.tool_name,
            session_id=request.session_id,
            tool_call_id=request.tool_call_id,
            execution_context="server",
            provider=provider,
            payload=payload,
            success=success,
            error=error,
            execution_time_ms=execution_time_ms,
        )
        try:
            self.telemetry.emit(event)
        except Exception:
            logger.warning("Telemetry sink rejected %s event", event_type, exc_info=True)


def _parse_request(body: Any) -> _Request:
    if not isinstance(body, Mapping):
        raise ToolValidationError("Request body must be a JSON object.")
    tool_name = body.get("toolName")
    if not tool_name or not isinstance(tool_name, str):
        raise ToolValidationError("Tool name is required and must be a string.")
    parameters = body.get("parameters")
    if not isinstance(parameters, Mapping):
        raise ToolValidationError(
            "Parameters are required and must be an object.", tool_name=tool_name
        )
    session_id = body.get("sessionId")
    tool_call_id = body.get("toolCallId")
    reflink_code = body.get("reflinkId")
    return _Request(
        tool_name=tool_name,
        parameters=dict(parameters),
        session_id=str(session_id) if session_id else DEFAULT_SESSION_ID,
        tool_call_id=str(tool_call_id) if tool_call_id else new_call_id("tool"),
        reflink_code=str(reflink_code) if reflink_code else None,
    )


def _failure(error: ToolError, metadata: ToolResultMetadata) -> ToolResult:
    return ToolResult(success=False, error=error.message, error_code=error.code, metadata=metadata)


def _elapsed_ms(started: float) -> float:
    return max(0.0, (time.perf_counter() - started) * 1000.0)
