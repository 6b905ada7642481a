"""Shared domain models."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ExecutionContextKind = Literal["client", "server"]
EXECUTION_CONTEXTS: tuple[str, ...] = ("client", "server")


class AccessLevel(str, Enum):
    """Caller tier, ordered ``no_access < basic < limited < premium``."""

    NO_ACCESS = "no_access"
    BASIC = "basic"
    LIMITED = "limited"
    PREMIUM = "premium"

    @property
    def rank(self) -> int:
        return _ACCESS_RANK[self]

    def meets(self, required: AccessLevel) -> bool:
        return self.rank >= required.rank


_ACCESS_RANK = {
    AccessLevel.NO_ACCESS: 0,
    AccessLevel.BASIC: 1,
    AccessLevel.LIMITED: 2,
    AccessLevel.PREMIUM: 3,
}


@dataclass(frozen=True, slots=True)
class ToolDefinition:
    """A named, schema-described capability an agent may invoke.

    ``parameters`` is the JSON-Schema object sent to providers. When the
    schema was generated from a pydantic model, ``args_model`` keeps a
    reference to it so server-side arguments are parsed by the same model.
    """

    name: str
    description: str
    parameters: dict[str, Any]
    execution_context: str
    output_schema: dict[str, Any] | None = None
    args_model: type[BaseModel] | None = None

    @classmethod
    def from_model(
        cls,
        *,
        name: str,
        description: str,
        args_model: type[BaseModel],
        execution_context: ExecutionContextKind,
        output_schema: dict[str, Any] | None = None,
    ) -> ToolDefinition:
        return cls(
            name=name,
            description=description,
            parameters=args_model.model_json_schema(by_alias=True),
            execution_context=execution_context,
            output_schema=output_schema,
            args_model=args_model,
        )


@dataclass(frozen=True, slots=True)
class ToolCall:
    """One invocation of a tool. Created per call and never persisted."""

    id: str
    name: str
    arguments: dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    session_id: str | None = None
    reflink_id: str | None = None


@dataclass(frozen=True, slots=True)
class ExecutionContext:
    """Per-call caller context handed to server handlers."""

    session_id: str
    access_level: AccessLevel
    reflink_id: str | None = None
    user_id: str | None = None


class WireModel(BaseModel):
    """Base for models serialised with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class CostTracking(WireModel):
    reflink_id: str
    estimated_cost: float | None = None
    remaining_budget: float | None = None


class ToolResultMetadata(WireModel):
    timestamp: int = Field(default_factory=lambda: now_ms())
    execution_time: float = Field(default=0.0, ge=0.0)
    source: str = "server"
    session_id: str | None = None
    tool_call_id: str | None = None
    access_level: str | None = None
    cost_tracking: CostTracking | None = None


class ToolResult(WireModel):
    """Normalised outcome of a tool call; failures are values, not raises."""

    success: bool
    data: Any = None
    error: str | None = None
    error_code: str | None = None
    metadata: ToolResultMetadata = Field(default_factory=ToolResultMetadata)


@dataclass(slots=True)
class ToolEvent:
    """Telemetry record for a tool call lifecycle event."""

    event_type: str
    tool_name: str
    session_id: str
    tool_call_id: str
    execution_context: str
    provider: str
    payload: dict[str, Any] = field(default_factory=dict)
    success: bool | None = None
    error: str | None = None
    execution_time_ms: float = 0.0
    timestamp_utc: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )


def now_ms() -> int:
    return int(time.time() * 1000)


def new_call_id(prefix: str) -> str:
    return f"{prefix}_{now_ms()}_{uuid.uuid4().hex[:9]}"
