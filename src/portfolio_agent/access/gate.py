"""Access tier resolution and enforcement.

Two checkpoints use this module. The coarse one runs before dispatch and
resolves ``(session_id, reflink)`` into an :class:`AccessDecision`; an
invalid decision rejects the whole call. The fine one runs inside
individual handlers through :func:`require_access`, independently of what
the coarse gate decided.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from portfolio_agent.access.reflinks import BudgetStatus, ReflinkBudgetService
from portfolio_agent.errors import AuthorizationError
from portfolio_agent.types import AccessLevel, ExecutionContext

logger = logging.getLogger(__name__)

_REJECTION_MESSAGES = {
    "not_found": "Invalid reflink code",
    "expired": "Reflink has expired. Please contact the portfolio owner for a new one.",
    "budget_exhausted": "Reflink budget has been exhausted. Please contact the portfolio owner.",
    "inactive": "Reflink is inactive",
}


@dataclass(slots=True)
class AccessDecision:
    valid: bool
    access_level: AccessLevel
    capabilities: dict[str, bool] = field(default_factory=dict)
    reflink_id: str | None = None
    budget_status: BudgetStatus | None = None
    welcome_message: str | None = None
    error: str | None = None


class ContextValidator(ABC):
    @abstractmethod
    async def validate_and_filter_context(
        self, session_id: str, reflink_code: str | None = None
    ) -> AccessDecision:
        """Resolve the caller's tier; never raises for an ordinary rejection."""


class AccessGate(ContextValidator):
    """Resolves reflink codes into tiers through the budget collaborator.

    No reflink means anonymous ``basic`` access. A valid reflink grants
    ``premium``; any rejected reflink yields ``no_access`` with a
    human-readable reason.
    """

    def __init__(self, reflinks: ReflinkBudgetService) -> None:
        self.reflinks = reflinks

    async def validate_and_filter_context(
        self, session_id: str, reflink_code: str | None = None
    ) -> AccessDecision:
        if not reflink_code:
            return AccessDecision(
                valid=True,
                access_level=AccessLevel.BASIC,
                capabilities=_capabilities(False, False, False),
            )

        validation = await self.reflinks.validate_reflink_with_budget(reflink_code)
        if not validation.valid or validation.reflink is None:
            message = _REJECTION_MESSAGES.get(validation.reason or "", "Reflink validation failed")
            logger.info(
                "Reflink rejected for session %s: %s", session_id, validation.reason or "unknown"
            )
            return AccessDecision(
                valid=False,
                access_level=AccessLevel.NO_ACCESS,
                capabilities=_capabilities(False, False, False),
                budget_status=validation.budget_status,
                error=message,
            )

        reflink = validation.reflink
        return AccessDecision(
            valid=True,
            access_level=AccessLevel.PREMIUM,
            capabilities=_capabilities(
                reflink.enable_voice_ai,
                reflink.enable_job_analysis,
                reflink.enable_advanced_navigation,
            ),
            reflink_id=reflink.id,
            budget_status=validation.budget_status,
            welcome_message=validation.welcome_message,
        )


def require_access(context: ExecutionContext, required: AccessLevel, feature: str) -> None:
    """Raise :class:`AuthorizationError` unless the caller's tier meets ``required``."""
    if not context.access_level.meets(required):
        raise AuthorizationError(
            f"{feature} requires {required.value} access "
            f"(current access level: {context.access_level.value})"
        )


def _capabilities(voice: bool, job_analysis: bool, navigation: bool) -> dict[str, bool]:
    return {
        "voiceAI": voice,
        "jobAnalysis": job_analysis,
        "advancedNavigation": navigation,
    }
