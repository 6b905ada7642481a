"""Keyword-based user intent classification and navigation suggestions."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from portfolio_agent.matching.job_spec import STOP_WORDS

# Checked in order; the first matching rule wins.
_INTENT_RULES: tuple[tuple[str, re.Pattern[str], str], ...] = (
    (
        "project_inquiry",
        re.compile(r"\b(project|work|portfolio|example|show|demo)\b"),
        "User asking about projects or portfolio work",
    ),
    (
        "skills_inquiry",
        re.compile(r"\b(skill|technology|tech|experience|know|can you|able)\b"),
        "User asking about technical skills or capabilities",
    ),
    (
        "about_inquiry",
        re.compile(r"\b(about|background|bio|who|tell me|yourself)\b"),
        "User wants to learn about background and experience",
    ),
    (
        "contact_inquiry",
        re.compile(r"\b(contact|hire|available|reach|email|phone)\b"),
        "User interested in making contact or hiring",
    ),
    (
        "job_analysis",
        re.compile(r"\b(job|position|role|requirement|match|fit)\b"),
        "User wants job specification analysis",
    ),
    (
        "navigation_request",
        re.compile(r"\b(show|open|go to|navigate|find|where)\b"),
        "User requesting navigation to specific content",
    ),
)
GENERAL_INTENT = "general_inquiry"

_TECH_PATTERN = re.compile(
    r"\b(javascript|typescript|react|vue|angular|node|python|java|php|ruby|go|rust|swift|"
    r"kotlin|html|css|sql|mongodb|postgresql|mysql|redis|docker|kubernetes|aws|azure|gcp)\b"
)
_PROJECT_TERM_PATTERN = re.compile(r"\b(project|portfolio|work|example|demo)\b")

_SUGGESTED_ACTIONS = {
    "project_inquiry": ("showProjects", "User interested in viewing projects"),
    "skills_inquiry": ("showSkills", "User asking about technical skills"),
    "contact_inquiry": ("showContact", "User wants to make contact"),
}

# (trigger words, target section, reason, confidence)
_SECTION_RULES: tuple[tuple[tuple[str, ...], str, str, float], ...] = (
    (("skill", "technology"), "skills-section", "User inquiring about technical skills and experience", 0.8),
    (("about", "background"), "about-section", "User wants to learn about background and experience", 0.85),
    (("contact", "hire"), "contact-section", "User interested in making contact", 0.9),
)
_PROJECT_TRIGGERS = ("project", "work", "portfolio")
PROJECT_SUGGESTION_CONFIDENCE = 0.7
MAX_PROJECT_SUGGESTIONS = 3


@dataclass(slots=True)
class IntentAnalysis:
    intent: str
    reasoning: str
    confidence: float
    entities: dict[str, list[str]] = field(default_factory=dict)
    suggested_actions: list[dict[str, str]] = field(default_factory=list)


@dataclass(slots=True)
class NavigationSuggestion:
    action: str
    target: str
    reason: str
    confidence: float
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_wire(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "target": self.target,
            "reason": self.reason,
            "confidence": self.confidence,
            "metadata": dict(self.metadata),
        }


def classify_intent(message: str) -> tuple[str, str]:
    text = message.lower()
    for intent, pattern, reasoning in _INTENT_RULES:
        if pattern.search(text):
            return intent, reasoning
    return GENERAL_INTENT, "General conversation or unclear intent"


def extract_technologies(text: str) -> list[str]:
    return _unique(_TECH_PATTERN.findall(text.lower()))


def extract_entities(message: str) -> dict[str, list[str]]:
    text = message.lower()
    entities: dict[str, list[str]] = {}
    technologies = extract_technologies(text)
    if technologies:
        entities["technologies"] = technologies
    project_terms = _unique(_PROJECT_TERM_PATTERN.findall(text))
    if project_terms:
        entities["projectTerms"] = project_terms
    return entities


def extract_intent_keywords(text: str, limit: int = 10) -> list[str]:
    words = [word for word in text.lower().split() if len(word) > 3 and word not in STOP_WORDS]
    return words[:limit]


def intent_confidence(intent: str, entities: dict[str, list[str]]) -> float:
    confidence = 0.5
    if intent != GENERAL_INTENT:
        confidence += 0.2
    if entities.get("technologies"):
        confidence += 0.1
    if entities.get("projectTerms"):
        confidence += 0.1
    return round(min(confidence, 1.0), 4)


def analyze_intent(message: str) -> IntentAnalysis:
    intent, reasoning = classify_intent(message)
    entities = extract_entities(message)
    actions = []
    if intent in _SUGGESTED_ACTIONS:
        action, reason = _SUGGESTED_ACTIONS[intent]
        actions.append({"type": "navigation", "action": action, "reason": reason})
    return IntentAnalysis(
        intent=intent,
        reasoning=reasoning,
        confidence=intent_confidence(intent, entities),
        entities=entities,
        suggested_actions=actions,
    )


def suggest_navigation(
    user_intent: str,
    projects: Sequence[dict[str, Any]],
    max_suggestions: int = 5,
) -> tuple[list[NavigationSuggestion], int]:
    """Rank navigation targets for an intent string.

    ``projects`` are plain mappings with at least ``id``, ``title`` and
    ``tags``. Returns the top ``max_suggestions`` suggestions together with
    the number generated before truncation.
    """
    text = user_intent.lower()
    suggestions: list[NavigationSuggestion] = []

    if any(trigger in text for trigger in _PROJECT_TRIGGERS):
        for project in projects[:MAX_PROJECT_SUGGESTIONS]:
            suggestions.append(
                NavigationSuggestion(
                    action="openProjectModal",
                    target=str(project["id"]),
                    reason=f'Relevant project for "{user_intent}" - matches keyword match',
                    confidence=PROJECT_SUGGESTION_CONFIDENCE,
                    metadata={"projectTitle": project.get("title"), "tags": list(project.get("tags", []))},
                )
            )

    for triggers, target, reason, confidence in _SECTION_RULES:
        if any(trigger in text for trigger in triggers):
            suggestions.append(
                NavigationSuggestion(
                    action="scrollToSection",
                    target=target,
                    reason=reason,
                    confidence=confidence,
                    metadata={"sectionType": target.removesuffix("-section")},
                )
            )

    # stable: ties keep insertion order
    suggestions.sort(key=lambda s: s.confidence, reverse=True)
    return suggestions[:max_suggestions], len(suggestions)


def _unique(items: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(items))
