"""Job specification analysis and weighted candidate matching."""

from __future__ import annotations

import math
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

_LEFT = r"(?<![a-z0-9_])"
_RIGHT = r"(?![a-z0-9_+#])"


def _group(*terms: str) -> re.Pattern[str]:
    return re.compile(_LEFT + "(" + "|".join(terms) + ")" + _RIGHT, re.IGNORECASE)


TECHNOLOGY_PATTERNS: tuple[re.Pattern[str], ...] = (
    # languages
    _group(
        "javascript", "typescript", "python", "java", r"c\+\+", "c#", "php",
        "ruby", "go", "rust", "swift", "kotlin",
    ),
    # frameworks
    _group(
        "react", "vue", "angular", "svelte", r"next\.?js", "nuxt", "express",
        "django", "flask", "spring", "laravel",
    ),
    # datastores
    _group("mysql", "postgresql", "mongodb", "redis", "sqlite", "firebase", "supabase"),
    # cloud and devops
    _group("aws", "azure", "gcp", "docker", "kubernetes", "vercel", "netlify", "heroku"),
    # dev tooling
    _group("git", "webpack", "vite", "babel", "eslint", "prettier", "jest", "cypress"),
)

SKILL_PATTERNS: tuple[re.Pattern[str], ...] = (
    _group("frontend", "backend", "fullstack", "full-stack"),
    _group("ui", "ux", "design", "responsive"),
    _group("api", "rest", "graphql", "microservices"),
    _group("testing", "debugging", "optimization"),
    _group("agile", "scrum", "devops", r"ci/cd"),
)

EXPERIENCE_PATTERN = re.compile(
    r"(\d+)\+?\s*(?:years?|yrs?)\s*(?:of\s*)?(?:experience|exp)",
    re.IGNORECASE,
)

# Abbreviations folded to a canonical name before containment checks.
TERM_ALIASES: dict[str, str] = {
    "js": "javascript",
    "ts": "typescript",
    "py": "python",
    "golang": "go",
    "k8s": "kubernetes",
    "node": "node.js",
    "nodejs": "node.js",
    "postgres": "postgresql",
    "mongo": "mongodb",
    "nextjs": "next.js",
}

STOP_WORDS = frozenset(
    """
    the and or but in on at to for of with by is are was were be been have has had
    do does did will would could should may might must can this that these those
    i you he she it we they me him her us them
    """.split()
)

MAX_KEYWORDS = 20
SKILLS_WEIGHT = 0.4
TECH_WEIGHT = 0.4
EXPERIENCE_WEIGHT = 0.2
EXPERIENCE_PENALTY_FACTOR = 0.7


@dataclass(slots=True)
class JobRequirements:
    skills: list[str]
    technologies: list[str]
    experience_mentions: list[str]
    keywords: list[str]

    @property
    def required_years(self) -> int | None:
        years = [int(m.group(1)) for m in map(EXPERIENCE_PATTERN.search, self.experience_mentions) if m]
        return max(years) if years else None


@dataclass(slots=True)
class CategoryMatch:
    matches: list[str] = field(default_factory=list)
    gaps: list[str] = field(default_factory=list)
    score: float = 0.0

    def to_wire(self) -> dict[str, Any]:
        return {"matches": list(self.matches), "gaps": list(self.gaps), "score": self.score}


@dataclass(slots=True)
class MatchResult:
    requirements: JobRequirements
    skills: CategoryMatch | None
    technologies: CategoryMatch
    experience_factor: float
    score: int
    recommendations: list[str]
    report: str | None = None

    @property
    def strengths(self) -> list[str]:
        return [*(self.skills.matches if self.skills else []), *self.technologies.matches]

    @property
    def gaps(self) -> list[str]:
        return [*(self.skills.gaps if self.skills else []), *self.technologies.gaps]


def _collect(patterns: Iterable[re.Pattern[str]], text: str) -> list[str]:
    found: list[str] = []
    for pattern in patterns:
        for match in pattern.finditer(text):
            term = match.group(1).lower()
            if term not in found:
                found.append(term)
    return found


def extract_keywords(text: str, limit: int = MAX_KEYWORDS) -> list[str]:
    keywords: list[str] = []
    for raw in text.lower().split():
        word = raw.strip(".,;:!?()[]{}\"'`")
        if len(word) <= 3 or word in STOP_WORDS or word in keywords:
            continue
        keywords.append(word)
        if len(keywords) >= limit:
            break
    return keywords


def extract_requirements(text: str) -> JobRequirements:
    """Pull structured requirements out of free-text job specification.

    Technologies and skills come from fixed lexical pattern groups, tenure
    from the "N+ years experience" pattern, and keywords are a stop-word
    filtered fallback capped at ``MAX_KEYWORDS`` terms.
    """
    lowered = text.lower()
    return JobRequirements(
        skills=_collect(SKILL_PATTERNS, lowered),
        technologies=_collect(TECHNOLOGY_PATTERNS, lowered),
        experience_mentions=[m.group(0).strip() for m in EXPERIENCE_PATTERN.finditer(lowered)],
        keywords=extract_keywords(lowered),
    )


def normalize_term(term: str) -> str:
    lowered = term.strip().lower()
    return TERM_ALIASES.get(lowered, lowered)


def fuzzy_contains(required: str, candidate: str) -> bool:
    """Loose bidirectional containment: "js" matches "javascript" and vice versa.

    Both sides go through :data:`TERM_ALIASES` first, so abbreviations that
    are not substrings of their long form still match.
    """
    required = normalize_term(required)
    candidate = normalize_term(candidate)
    if not required or not candidate:
        return False
    return required in candidate or candidate in required


def analyze_overlap(candidate: Iterable[str], required: Iterable[str]) -> CategoryMatch:
    """Split ``required`` into matches and gaps against the candidate set.

    ``score`` is ``len(matches) / len(required)`` and 0 when nothing is
    required. Items are compared case-insensitively with
    :func:`fuzzy_contains`.
    """
    candidate_items = [item.lower() for item in candidate if item and item.strip()]
    required_items: list[str] = []
    for item in required:
        lowered = item.lower()
        if lowered.strip() and lowered not in required_items:
            required_items.append(lowered)

    matches = [
        req for req in required_items if any(fuzzy_contains(req, cand) for cand in candidate_items)
    ]
    gaps = [req for req in required_items if req not in matches]
    score = len(matches) / len(required_items) if required_items else 0.0
    return CategoryMatch(matches=matches, gaps=gaps, score=score)


def experience_factor(requirements: JobRequirements) -> float:
    return EXPERIENCE_PENALTY_FACTOR if requirements.experience_mentions else 1.0


def composite_score(skills_score: float, tech_score: float, exp_factor: float) -> int:
    """Weighted 0-100 integer score, rounded half-up."""
    raw = (
        _unit(skills_score) * SKILLS_WEIGHT
        + _unit(tech_score) * TECH_WEIGHT
        + _unit(exp_factor) * EXPERIENCE_WEIGHT
    )
    return max(0, min(100, math.floor(raw * 100 + 0.5)))


def build_recommendations(
    skills: CategoryMatch | None,
    technologies: CategoryMatch,
    analysis_type: str = "detailed",
) -> list[str]:
    recommendations: list[str] = []
    if skills and skills.matches:
        recommendations.append(f"Highlight your {', '.join(skills.matches)} experience")
    if technologies.matches:
        recommendations.append(f"Emphasize projects using {', '.join(technologies.matches)}")
    if skills and skills.gaps:
        recommendations.append(f"Consider learning: {', '.join(skills.gaps[:3])}")
    if analysis_type == "quick":
        return recommendations[:1]
    if analysis_type == "comprehensive" and technologies.gaps:
        recommendations.append(
            f"Address technology gaps with a side project in {', '.join(technologies.gaps[:3])}"
        )
    return recommendations


def build_report(score: int, skills: CategoryMatch | None, technologies: CategoryMatch) -> str:
    def _list(items: list[str] | None) -> str:
        return ", ".join(items) if items else "None identified"

    return "\n".join(
        [
            "Job Analysis Report",
            "",
            f"Match Score: {score}%",
            "",
            "Skills Analysis:",
            f"- Matching Skills: {_list(skills.matches if skills else None)}",
            f"- Skill Gaps: {_list(skills.gaps if skills else None)}",
            "",
            "Technology Analysis:",
            f"- Matching Technologies: {_list(technologies.matches)}",
            f"- Technology Gaps: {_list(technologies.gaps)}",
            "",
            "This analysis was generated automatically and should be reviewed for accuracy.",
        ]
    )


class JobSpecMatcher:
    """Scores a candidate profile against an extracted job specification."""

    def match(
        self,
        job_spec: str,
        *,
        candidate_skills: Iterable[str],
        candidate_technologies: Iterable[str],
        analysis_type: str = "detailed",
        include_skills: bool = True,
        include_report: bool = True,
    ) -> MatchResult:
        requirements = extract_requirements(job_spec)
        skills = (
            analyze_overlap(list(candidate_skills), requirements.skills) if include_skills else None
        )
        technologies = analyze_overlap(list(candidate_technologies), requirements.technologies)
        factor = experience_factor(requirements)
        score = composite_score(skills.score if skills else 0.0, technologies.score, factor)
        return MatchResult(
            requirements=requirements,
            skills=skills,
            technologies=technologies,
            experience_factor=factor,
            score=score,
            recommendations=build_recommendations(skills, technologies, analysis_type),
            report=build_report(score, skills, technologies) if include_report else None,
        )


def _unit(value: float) -> float:
    return min(1.0, max(0.0, float(value)))
