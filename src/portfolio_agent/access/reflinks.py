"""Reflink budget collaborator: validation and usage accounting."""

from __future__ import annotations

import logging
import secrets
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Literal

from portfolio_agent.config import BudgetConfig

logger = logging.getLogger(__name__)

UsageType = Literal["llm_request", "voice_generation", "voice_processing"]
RejectReason = Literal["not_found", "expired", "budget_exhausted", "inactive"]


@dataclass(slots=True)
class Reflink:
    """A shareable access token carrying a premium tier and a usage budget."""

    id: str
    code: str
    recipient_name: str | None = None
    custom_context: str | None = None
    is_active: bool = True
    expires_at: datetime | None = None
    token_limit: int | None = None
    tokens_used: int = 0
    spend_limit: float = 10.0
    spend_used: float = 0.0
    enable_voice_ai: bool = True
    enable_job_analysis: bool = True
    enable_advanced_navigation: bool = True


@dataclass(slots=True)
class BudgetStatus:
    spend_remaining: float
    is_exhausted: bool
    estimated_requests_remaining: int
    tokens_remaining: int | None = None

    def to_wire(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "spendRemaining": self.spend_remaining,
            "isExhausted": self.is_exhausted,
            "estimatedRequestsRemaining": self.estimated_requests_remaining,
        }
        if self.tokens_remaining is not None:
            payload["tokensRemaining"] = self.tokens_remaining
        return payload


@dataclass(slots=True)
class UsageEvent:
    type: UsageType
    cost: float
    tokens: int = 0
    model_used: str | None = None
    endpoint: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ReflinkValidation:
    valid: bool
    reflink: Reflink | None = None
    budget_status: BudgetStatus | None = None
    reason: RejectReason | None = None
    welcome_message: str | None = None


class ReflinkBudgetService(ABC):
    """Boundary to the service that owns reflinks and their budgets."""

    @abstractmethod
    async def validate_reflink_with_budget(self, code: str) -> ReflinkValidation:
        """Resolve a reflink code, rejecting inactive, expired or exhausted links."""

    @abstractmethod
    async def track_usage(self, reflink_id: str, event: UsageEvent) -> BudgetStatus | None:
        """Charge one billable operation and return the budget left afterwards."""


class InMemoryReflinkService(ReflinkBudgetService):
    """Process-local reflink store used by the API and tests."""

    def __init__(
        self,
        config: BudgetConfig | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config or BudgetConfig()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._by_code: dict[str, Reflink] = {}
        self._usage: list[tuple[str, UsageEvent]] = []
        self._lock = threading.Lock()

    def create_reflink(self, code: str | None = None, **fields: Any) -> Reflink:
        reflink = Reflink(
            id=fields.pop("id", f"rl_{secrets.token_hex(6)}"),
            code=code or f"ref-{secrets.token_urlsafe(6)}",
            **fields,
        )
        with self._lock:
            self._by_code[reflink.code] = reflink
        return reflink

    def get_by_code(self, code: str) -> Reflink | None:
        return self._by_code.get(code)

    def usage_log(self) -> list[tuple[str, UsageEvent]]:
        return list(self._usage)

    def budget_status(self, reflink: Reflink) -> BudgetStatus:
        spend_remaining = max(0.0, reflink.spend_limit - reflink.spend_used)
        tokens_remaining = (
            max(0, reflink.token_limit - reflink.tokens_used)
            if reflink.token_limit is not None
            else None
        )
        is_exhausted = spend_remaining <= 0.0 or tokens_remaining == 0
        return BudgetStatus(
            spend_remaining=round(spend_remaining, 6),
            is_exhausted=is_exhausted,
            estimated_requests_remaining=int(
                spend_remaining // self.config.average_request_cost_usd
            ),
            tokens_remaining=tokens_remaining,
        )

    async def validate_reflink_with_budget(self, code: str) -> ReflinkValidation:
        reflink = self._by_code.get(code)
        if reflink is None:
            return ReflinkValidation(valid=False, reason="not_found")
        if not reflink.is_active:
            return ReflinkValidation(valid=False, reflink=reflink, reason="inactive")
        if reflink.expires_at is not None and reflink.expires_at <= self._clock():
            return ReflinkValidation(valid=False, reflink=reflink, reason="expired")

        status = self.budget_status(reflink)
        if status.is_exhausted:
            return ReflinkValidation(
                valid=False, reflink=reflink, budget_status=status, reason="budget_exhausted"
            )

        name = reflink.recipient_name or "there"
        return ReflinkValidation(
            valid=True,
            reflink=replace(reflink),
            budget_status=status,
            welcome_message=f"Hello {name}! You have special access to enhanced AI features.",
        )

    async def track_usage(self, reflink_id: str, event: UsageEvent) -> BudgetStatus | None:
        with self._lock:
            reflink = next((r for r in self._by_code.values() if r.id == reflink_id), None)
            if reflink is None:
                logger.warning("Usage tracked for unknown reflink %s", reflink_id)
                return None
            reflink.tokens_used += event.tokens
            reflink.spend_used += event.cost
            self._usage.append((reflink_id, event))
            status = self.budget_status(reflink)

        logger.info(
            "Usage tracked: reflink=%s type=%s tokens=%d cost=%.4f remaining=%.4f",
            reflink_id,
            event.type,
            event.tokens,
            event.cost,
            status.spend_remaining,
        )
        return status
