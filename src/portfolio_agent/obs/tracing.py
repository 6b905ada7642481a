"""Tool call telemetry, latency timing and token estimation."""

from __future__ import annotations

import json
import logging
import math
import threading
import time
from abc import ABC, abstractmethod
from collections import Counter, deque
from dataclasses import asdict
from typing import Any

from portfolio_agent.types import ToolEvent

logger = logging.getLogger(__name__)

TOOL_CALL_START = "tool_call_start"
TOOL_CALL_COMPLETE = "tool_call_complete"


class TelemetrySink(ABC):
    @abstractmethod
    def emit(self, event: ToolEvent) -> None:
        """Accept one lifecycle event. Must not raise into the caller."""


class ToolEventLog(TelemetrySink):
    """In-memory telemetry storage for API-level observability."""

    def __init__(self, max_events: int = 5000) -> None:
        self._events: deque[ToolEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    def emit(self, event: ToolEvent) -> None:
        with self._lock:
            self._events.append(event)
        logger.debug(
            "%s tool=%s session=%s call=%s",
            event.event_type,
            event.tool_name,
            event.session_id,
            event.tool_call_id,
        )

    def list_recent(self, limit: int = 20, *, event_type: str | None = None) -> list[ToolEvent]:
        with self._lock:
            events = list(self._events)
        if event_type is not None:
            events = [event for event in events if event.event_type == event_type]
        return events[-limit:] if limit > 0 else []

    def as_dicts(self, limit: int = 20) -> list[dict[str, Any]]:
        return [asdict(event) for event in self.list_recent(limit)]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    def summary(self) -> dict[str, Any]:
        """Aggregate completed-call metrics for dashboard display."""
        completed = self.list_recent(limit=len(self._events), event_type=TOOL_CALL_COMPLETE)
        total = len(completed)
        if total == 0:
            return {
                "total_calls": 0,
                "success_rate": 0.0,
                "avg_latency_ms": 0.0,
                "p95_latency_ms": 0.0,
                "calls_by_tool": {},
                "errors_by_code": {},
            }

        latencies = sorted(event.execution_time_ms for event in completed)
        p95_index = max(0, int((len(latencies) * 0.95) - 1))
        successes = sum(1 for event in completed if event.success)
        errors = Counter(
            str(event.payload.get("errorCode", "unknown")) for event in completed if not event.success
        )
        return {
            "total_calls": total,
            "success_rate": successes / total,
            "avg_latency_ms": sum(latencies) / total,
            "p95_latency_ms": latencies[p95_index],
            "calls_by_tool": dict(Counter(event.tool_name for event in completed)),
            "errors_by_code": dict(errors),
        }


class Timer:
    """Simple context timer for wall-clock milliseconds."""

    def __init__(self) -> None:
        self._start = 0.0
        self.elapsed_ms = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000.0


def estimate_token_count(payload: Any) -> int:
    """Rough token estimate: one token per four characters of JSON."""
    if payload is None:
        return 0
    text = payload if isinstance(payload, str) else json.dumps(payload, default=str)
    return math.ceil(len(text) / 4)
