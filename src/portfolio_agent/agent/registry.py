"""Tool registry with provider-specific catalog formatters."""

from __future__ import annotations

import copy
import inspect
import logging
import re
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import replace
from typing import Any

from langchain_core.tools import StructuredTool

from portfolio_agent.errors import ToolValidationError
from portfolio_agent.types import EXECUTION_CONTEXTS, ToolCall, ToolDefinition, new_call_id

logger = logging.getLogger(__name__)

_TOOL_NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")

ToolExecutor = Callable[[ToolCall], Any]
CallableTool = Callable[..., Awaitable[Any]]


def validate_tool_definition(definition: ToolDefinition) -> list[str]:
    """Return every rule the definition violates; empty when valid."""
    errors: list[str] = []
    name = getattr(definition, "name", None)
    description = getattr(definition, "description", None)
    execution_context = getattr(definition, "execution_context", None)
    parameters = getattr(definition, "parameters", None)

    if not name or not isinstance(name, str):
        errors.append("Tool name is required and must be a string")
    elif not _TOOL_NAME_PATTERN.match(name):
        errors.append(
            "Tool name must start with a letter and contain only letters, numbers, and underscores"
        )

    if not description or not isinstance(description, str) or not description.strip():
        errors.append("Tool description is required and must be a non-empty string")

    if execution_context not in EXECUTION_CONTEXTS:
        errors.append('Tool execution_context must be either "client" or "server"')

    if not isinstance(parameters, dict):
        errors.append("Tool parameters is required and must be an object")
    else:
        if parameters.get("type") != "object":
            errors.append('Tool parameters.type must be "object"')
        if not isinstance(parameters.get("properties"), dict):
            errors.append("Tool parameters.properties is required and must be an object")

    return errors


class ToolRegistry:
    """Catalog of tool definitions, partitioned by execution context.

    Shape is validated strictly on every registration; a valid definition
    whose name is already taken replaces the previous entry with a warning.
    """

    def __init__(self, definitions: Iterable[ToolDefinition] = ()) -> None:
        self._tools: dict[str, ToolDefinition] = {}
        self._seed: tuple[ToolDefinition, ...] = tuple(definitions)
        self._load_seed()

    @classmethod
    def with_default_tools(cls) -> ToolRegistry:
        from portfolio_agent.agent.client_tools import CLIENT_TOOL_DEFINITIONS
        from portfolio_agent.agent.server_tools import SERVER_TOOL_DEFINITIONS

        registry = cls((*CLIENT_TOOL_DEFINITIONS, *SERVER_TOOL_DEFINITIONS))
        logger.info("Tool registry initialized with %d tools", len(registry))
        return registry

    def register_tool(self, definition: ToolDefinition) -> None:
        errors = validate_tool_definition(definition)
        if errors:
            name = getattr(definition, "name", None)
            raise ToolValidationError(
                f"Invalid tool definition for '{name}': {', '.join(errors)}",
                tool_name=name if isinstance(name, str) else None,
                errors=errors,
            )
        if definition.name in self._tools:
            logger.warning("Tool '%s' is being overridden in registry", definition.name)
        self._tools[definition.name] = _snapshot(definition)

    def get_tool_definition(self, name: str) -> ToolDefinition | None:
        tool = self._tools.get(name)
        return _snapshot(tool) if tool is not None else None

    def has_tool_definition(self, name: str) -> bool:
        return name in self._tools

    def get_all_tool_definitions(self) -> list[ToolDefinition]:
        return [_snapshot(tool) for tool in self._tools.values()]

    def get_client_tool_definitions(self) -> list[ToolDefinition]:
        return self.get_tools_by_execution_context("client")

    def get_server_tool_definitions(self) -> list[ToolDefinition]:
        return self.get_tools_by_execution_context("server")

    def get_tools_by_execution_context(self, context: str) -> list[ToolDefinition]:
        return [_snapshot(tool) for tool in self._by_context(context)]

    def get_tool_names_by_context(self, context: str) -> list[str]:
        return [tool.name for tool in self._by_context(context)]

    def stats(self) -> dict[str, Any]:
        return {
            "totalTools": len(self._tools),
            "clientTools": len(self.get_tool_names_by_context("client")),
            "serverTools": len(self.get_tool_names_by_context("server")),
            "toolNames": sorted(self._tools),
        }

    def as_function_array(self, context: str | None = None) -> list[dict[str, Any]]:
        """Flat-array format for providers that take an upfront function catalog.

        Each entry carries its own copy of the parameter schema.
        """
        tools = self._tools.values() if context is None else self._by_context(context)
        return [
            {
                "type": "function",
                "name": tool.name,
                "description": tool.description,
                "parameters": copy.deepcopy(tool.parameters),
            }
            for tool in tools
        ]

    def as_callable_map(self, executor: ToolExecutor) -> dict[str, CallableTool]:
        """Callable-map format: tool name -> async wrapper forwarding a ToolCall."""
        return {name: self._build_callable(name, executor) for name in self._tools}

    def as_langchain_tools(self, executor: ToolExecutor) -> list[StructuredTool]:
        tools: list[StructuredTool] = []
        for tool in self._tools.values():
            wrapper = self._build_callable(tool.name, executor)

            async def _coroutine(_wrapper: CallableTool = wrapper, **kwargs: Any) -> Any:
                return await _wrapper(kwargs)

            tools.append(
                StructuredTool.from_function(
                    coroutine=_coroutine,
                    name=tool.name,
                    description=tool.description,
                    args_schema=copy.deepcopy(tool.parameters),
                )
            )
        return tools

    def clear(self) -> None:
        self._tools.clear()

    def reinitialize(self) -> None:
        self.clear()
        self._load_seed()

    def __len__(self) -> int:
        return len(self._tools)

    def _load_seed(self) -> None:
        for definition in self._seed:
            self.register_tool(definition)

    @staticmethod
    def _build_callable(name: str, executor: ToolExecutor) -> CallableTool:
        async def _callable(arguments: dict[str, Any] | None = None) -> Any:
            call = ToolCall(id=new_call_id("el"), name=name, arguments=dict(arguments or {}))
            result = executor(call)
            if inspect.isawaitable(result):
                result = await result
            return result

        return _callable

    def _by_context(self, context: str) -> list[ToolDefinition]:
        return [tool for tool in self._tools.values() if tool.execution_context == context]


def _snapshot(definition: ToolDefinition) -> ToolDefinition:
    """Copy with private schema dicts, so no caller can edit a registered tool."""
    return replace(
        definition,
        parameters=copy.deepcopy(definition.parameters),
        output_schema=copy.deepcopy(definition.output_schema),
    )
