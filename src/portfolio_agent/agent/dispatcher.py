"""Server-side tool execution with result normalisation."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from portfolio_agent.access.gate import require_access
from portfolio_agent.agent.handlers import ToolHandler
from portfolio_agent.agent.registry import ToolRegistry
from portfolio_agent.config import DispatchConfig
from portfolio_agent.errors import (
    HandlerError,
    MisroutedToolError,
    ToolError,
    ToolNotFoundError,
    ToolTimeoutError,
    ToolValidationError,
)
from portfolio_agent.types import AccessLevel, ExecutionContext, ToolResult, ToolResultMetadata

logger = logging.getLogger(__name__)


class ExecutionDispatcher:
    """Resolves a server tool call to its handler and runs it.

    Every outcome comes back as a :class:`ToolResult`; no exception raised
    during execution escapes :meth:`execute_tool`. The dispatcher keeps no
    per-call state, so concurrent calls for different sessions are
    independent.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        handlers: Mapping[str, ToolHandler],
        config: DispatchConfig | None = None,
    ) -> None:
        self.registry = registry
        self.handlers = dict(handlers)
        self.config = config or DispatchConfig()
        self._detached: set[asyncio.Task[Any]] = set()

    def register_handler(self, name: str, handler: ToolHandler) -> None:
        self.handlers[name] = handler

    async def execute_tool(
        self,
        name: str,
        parameters: Mapping[str, Any] | None,
        session_id: str,
        access_level: AccessLevel | str,
        reflink_id: str | None = None,
        user_id: str | None = None,
        *,
        tool_call_id: str | None = None,
    ) -> ToolResult:
        metadata = ToolResultMetadata(
            source=self.config.source,
            session_id=session_id,
            tool_call_id=tool_call_id,
        )
        started = time.perf_counter()
        try:
            level = _resolve_level(access_level)
            metadata.access_level = level.value
            data = await self._run(name, parameters or {}, session_id, level, reflink_id, user_id)
        except ToolError as exc:
            metadata.execution_time = _elapsed_ms(started)
            log = logger.warning if exc.status_code < 500 else logger.error
            log("Tool %s failed [%s]: %s", name, exc.code, exc.message)
            return ToolResult(success=False, error=exc.message, error_code=exc.code, metadata=metadata)
        except Exception as exc:
            metadata.execution_time = _elapsed_ms(started)
            logger.exception("Tool %s raised an unexpected error", name)
            return ToolResult(
                success=False,
                error=f"Tool execution failed: {exc}",
                error_code=HandlerError.code,
                metadata=metadata,
            )

        metadata.execution_time = _elapsed_ms(started)
        return ToolResult(success=True, data=data, metadata=metadata)

    async def _run(
        self,
        name: str,
        parameters: Mapping[str, Any],
        session_id: str,
        level: AccessLevel,
        reflink_id: str | None,
        user_id: str | None,
    ) -> Any:
        definition = self.registry.get_tool_definition(name)
        if definition is None:
            raise ToolNotFoundError(f"Tool '{name}' not found", tool_name=name)
        if definition.execution_context != "server":
            raise MisroutedToolError(
                f"Tool '{name}' is a {definition.execution_context} tool and cannot be executed "
                "on the server",
                tool_name=name,
            )
        entry = self.handlers.get(name)
        if entry is None:
            raise ToolNotFoundError(f"No handler registered for tool '{name}'", tool_name=name)

        context = ExecutionContext(
            session_id=session_id,
            access_level=level,
            reflink_id=reflink_id,
            user_id=user_id,
        )
        require_access(context, entry.min_access, name)
        args = _parse_arguments(name, entry.args_model or definition.args_model, parameters)
        return await self._invoke(entry, args, context)

    async def _invoke(self, entry: ToolHandler, args: Any, context: ExecutionContext) -> Any:
        timeout = self.config.handler_timeout_s
        if timeout is None:
            return await entry.handler(args, context)

        task = asyncio.ensure_future(entry.handler(args, context))
        try:
            return await asyncio.wait_for(asyncio.shield(task), timeout)
        except asyncio.TimeoutError:
            # the handler keeps running; hold a reference until it settles
            self._detached.add(task)
            task.add_done_callback(self._settle_detached)
            raise ToolTimeoutError(
                f"Tool execution exceeded {timeout:g}s time budget"
            ) from None

    def _settle_detached(self, task: asyncio.Task[Any]) -> None:
        self._detached.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning("Timed-out handler later failed: %s", task.exception())


def _resolve_level(value: AccessLevel | str) -> AccessLevel:
    try:
        return AccessLevel(value)
    except ValueError:
        raise ToolValidationError(f"Unknown access level: {value!r}") from None


def _parse_arguments(name: str, model: Any, parameters: Mapping[str, Any]) -> Any:
    if model is None:
        return dict(parameters)
    try:
        return model.model_validate(dict(parameters))
    except ValidationError as exc:
        errors = [
            f"{'.'.join(str(part) for part in err['loc']) or 'arguments'}: {err['msg']}"
            for err in exc.errors()
        ]
        raise ToolValidationError(
            f"Invalid arguments for tool '{name}': {'; '.join(errors)}",
            tool_name=name,
            errors=errors,
        ) from exc


def _elapsed_ms(started: float) -> float:
    return max(0.0, (time.perf_counter() - started) * 1000.0)
