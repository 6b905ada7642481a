"""In-memory portfolio content, contact inbox and navigation history."""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict, deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

logger = logging.getLogger(__name__)

Visibility = Literal["public", "private"]
HistoryKind = Literal["page_visit", "tool_call"]


@dataclass(slots=True)
class ProjectSection:
    title: str
    summary: str
    importance: float = 0.5


@dataclass(slots=True)
class Project:
    id: str
    slug: str
    title: str
    description: str
    category: str
    tags: list[str] = field(default_factory=list)
    technologies: list[str] = field(default_factory=list)
    sections: list[ProjectSection] = field(default_factory=list)
    media: list[str] = field(default_factory=list)
    content: str = ""
    visibility: Visibility = "public"
    priority: int = 0
    last_updated: str = ""

    def searchable_text(self) -> str:
        return " ".join([self.title, self.description, self.category, *self.tags]).lower()


@dataclass(slots=True)
class OwnerProfile:
    name: str
    title: str
    bio: str
    skills: list[str]
    technologies: list[str]
    experience: str
    location: str
    availability: str
    interests: list[str] = field(default_factory=list)
    education: str | None = None
    certifications: list[str] = field(default_factory=list)
    links: dict[str, str] = field(default_factory=dict)
    private_email: str | None = None


@dataclass(slots=True)
class UploadedFile:
    id: str
    file_type: str
    filename: str
    text: str


class PortfolioStore:
    """Read-mostly portfolio content backing the server tools."""

    def __init__(
        self,
        projects: list[Project] | None = None,
        profile: OwnerProfile | None = None,
        uploads: list[UploadedFile] | None = None,
    ) -> None:
        self._projects = {p.id: p for p in (projects if projects is not None else _seed_projects())}
        self.profile = profile or _seed_profile()
        self._uploads = {u.id: u for u in (uploads if uploads is not None else _seed_uploads())}

    def list_projects(self, *, include_private: bool = False) -> list[Project]:
        return [
            project
            for project in self._projects.values()
            if include_private or project.visibility == "public"
        ]

    def get_project(self, id_or_slug: str) -> Project | None:
        project = self._projects.get(id_or_slug)
        if project is not None:
            return project
        key = id_or_slug.strip().lower()
        return next((p for p in self._projects.values() if p.slug == key), None)

    def search_projects(
        self,
        query: str,
        *,
        tags: list[str] | None = None,
        category: str | None = None,
        include_private: bool = False,
    ) -> list[tuple[Project, float]]:
        """Return ``(project, relevance)`` pairs, best first.

        Relevance is the share of query terms found in the project's title,
        description, category and tags, with a bonus when the whole query
        appears verbatim in the title.
        """
        terms = [term for term in query.lower().split() if term]
        wanted_tags = {tag.lower() for tag in tags or []}
        hits: list[tuple[Project, float]] = []
        for project in self.list_projects(include_private=include_private):
            if category and project.category.lower() != category.lower():
                continue
            if wanted_tags and not wanted_tags & {tag.lower() for tag in project.tags}:
                continue
            haystack = project.searchable_text()
            matched = sum(1 for term in terms if term in haystack)
            if terms and matched == 0:
                continue
            relevance = matched / len(terms) if terms else 0.0
            if query.strip().lower() in project.title.lower():
                relevance = min(1.0, relevance + 0.25)
            hits.append((project, round(relevance, 4)))
        hits.sort(key=lambda item: (-item[1], -item[0].priority, item[0].title))
        return hits

    def get_upload(self, file_id: str) -> UploadedFile | None:
        return self._uploads.get(file_id)

    def add_upload(self, upload: UploadedFile) -> None:
        self._uploads[upload.id] = upload


@dataclass(slots=True)
class ContactSubmission:
    contact_id: str
    confirmation_number: str
    name: str
    email: str
    message: str
    source: str
    priority: str
    session_id: str
    submitted_at: str
    subject: str | None = None
    company: str | None = None
    phone: str | None = None
    reflink_id: str | None = None


class ContactInbox:
    """Append-only store of contact submissions."""

    def __init__(self) -> None:
        self._items: list[ContactSubmission] = []
        self._lock = threading.Lock()

    def submit(self, submission: ContactSubmission) -> ContactSubmission:
        with self._lock:
            self._items.append(submission)
        logger.info(
            "Contact form submitted: id=%s source=%s priority=%s session=%s",
            submission.contact_id,
            submission.source,
            submission.priority,
            submission.session_id,
        )
        return submission

    def submissions(self) -> list[ContactSubmission]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)


@dataclass(slots=True)
class HistoryEntry:
    kind: HistoryKind
    target: str
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    details: dict[str, Any] = field(default_factory=dict)

    def to_wire(self) -> dict[str, Any]:
        return asdict(self)


class NavigationHistoryStore:
    """Bounded per-session history of page visits and tool calls.

    Both the entries per session and the number of sessions are capped;
    the least recently written session is dropped first.
    """

    def __init__(self, max_entries_per_session: int = 200, max_sessions: int = 1000) -> None:
        self.max_entries_per_session = max_entries_per_session
        self.max_sessions = max_sessions
        self._sessions: OrderedDict[str, deque[HistoryEntry]] = OrderedDict()
        self._lock = threading.Lock()

    def record_page_visit(self, session_id: str, path: str, **details: Any) -> HistoryEntry:
        return self._append(session_id, HistoryEntry(kind="page_visit", target=path, details=details))

    def record_tool_call(
        self, session_id: str, tool_name: str, *, success: bool, tool_call_id: str
    ) -> HistoryEntry:
        entry = HistoryEntry(
            kind="tool_call",
            target=tool_name,
            details={"success": success, "toolCallId": tool_call_id},
        )
        return self._append(session_id, entry)

    def history(
        self, session_id: str, *, limit: int = 20, include_tool_calls: bool = True
    ) -> list[HistoryEntry]:
        with self._lock:
            entries = list(self._sessions.get(session_id, ()))
        if not include_tool_calls:
            entries = [entry for entry in entries if entry.kind != "tool_call"]
        return entries[-limit:] if limit > 0 else []

    def session_count(self) -> int:
        return len(self._sessions)

    def _append(self, session_id: str, entry: HistoryEntry) -> HistoryEntry:
        with self._lock:
            entries = self._sessions.get(session_id)
            if entries is None:
                entries = self._sessions[session_id] = deque(maxlen=self.max_entries_per_session)
            else:
                self._sessions.move_to_end(session_id)
            entries.append(entry)
            while len(self._sessions) > self.max_sessions:
                evicted, _ = self._sessions.popitem(last=False)
                logger.debug("Navigation history evicted for session %s", evicted)
        return entry


def _seed_projects() -> list[Project]:
    return [
        Project(
            id="project-1",
            slug="react-dashboard",
            title="React Dashboard Application",
            description="Modern dashboard built with React and TypeScript",
            category="web development",
            tags=["react", "typescript", "dashboard"],
            technologies=["react", "typescript", "vite", "postgresql"],
            sections=[
                ProjectSection(
                    "Technical Implementation",
                    "Built using React hooks and TypeScript for type safety",
                    0.9,
                ),
                ProjectSection("Data Layer", "Typed API client over a PostgreSQL backend", 0.6),
            ],
            media=["dashboard-overview.png"],
            content="A responsive analytics dashboard with live charts and role-based views.",
            priority=3,
            last_updated="2024-01-15",
        ),
        Project(
            id="project-2",
            slug="api-gateway",
            title="Node.js API Gateway",
            description="Microservices API gateway with authentication",
            category="api development",
            tags=["nodejs", "api", "microservices"],
            technologies=["javascript", "express", "redis", "docker"],
            sections=[
                ProjectSection(
                    "Architecture Overview",
                    "RESTful API with JWT authentication and rate limiting",
                    0.8,
                ),
            ],
            content="Gateway routing traffic to a fleet of services with per-client quotas.",
            priority=2,
            last_updated="2024-01-10",
        ),
        Project(
            id="project-3",
            slug="voice-portfolio-assistant",
            title="Voice Portfolio Assistant",
            description="AI assistant that navigates a portfolio by voice",
            category="artificial intelligence",
            tags=["ai", "python", "voice"],
            technologies=["python", "fastapi", "docker", "aws"],
            sections=[
                ProjectSection("Tool Calling", "Agent tools split between browser and backend", 0.9),
            ],
            content="Conversational agent that drives page navigation and answers questions.",
            priority=1,
            last_updated="2023-11-02",
        ),
        Project(
            id="project-4",
            slug="client-crm",
            title="Client CRM Prototype",
            description="Internal CRM prototype for a consulting client",
            category="web development",
            tags=["vue", "crm"],
            technologies=["vue", "supabase"],
            visibility="private",
            priority=0,
            last_updated="2023-08-21",
        ),
    ]


def _seed_profile() -> OwnerProfile:
    return OwnerProfile(
        name="Portfolio Owner",
        title="Full-Stack Developer",
        bio="Experienced developer with expertise in modern web technologies",
        skills=["frontend", "backend", "full-stack", "api", "testing", "responsive design"],
        technologies=["JavaScript", "TypeScript", "React", "Node.js", "Python", "Docker", "PostgreSQL"],
        experience="5+ years of professional development experience",
        location="Remote",
        availability="Available for new opportunities",
        interests=["Web Development", "AI/ML", "Open Source"],
        education="Computer Science Degree",
        certifications=["AWS Certified", "React Certified"],
        links={
            "linkedin": "https://linkedin.com/in/developer",
            "github": "https://github.com/developer",
            "website": "https://portfolio.example.com",
        },
        private_email="contact@example.com",
    )


def _seed_uploads() -> list[UploadedFile]:
    return [
        UploadedFile(
            id="file-resume-1",
            file_type="resume",
            filename="resume.txt",
            text=(
                "Senior engineer with 6 years of experience in Python, React and AWS. "
                "Led backend API design and testing for microservices."
            ),
        ),
        UploadedFile(
            id="file-job-1",
            file_type="job_spec",
            filename="job.txt",
            text=(
                "We are hiring a frontend developer with 3+ years experience in React, "
                "TypeScript and GraphQL. Docker and CI/CD knowledge is a plus."
            ),
        ),
    ]
