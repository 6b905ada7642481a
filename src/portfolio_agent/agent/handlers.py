"""Server tool handlers and the name-keyed handler table."""

from __future__ import annotations

import logging
import string
from collections import Counter
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel

from portfolio_agent.access.gate import require_access
from portfolio_agent.agent import intent as intent_analysis
from portfolio_agent.agent.schemas import (
    AnalyzeUserIntentArgs,
    GenerateNavigationSuggestionsArgs,
    GetNavigationHistoryArgs,
    GetProjectSummaryArgs,
    LoadProjectContextArgs,
    LoadUserProfileArgs,
    OpenProjectArgs,
    ProcessJobSpecArgs,
    ProcessUploadedFileArgs,
    SearchProjectsArgs,
    SubmitContactFormArgs,
)
from portfolio_agent.content.store import (
    ContactInbox,
    ContactSubmission,
    NavigationHistoryStore,
    PortfolioStore,
    Project,
)
from portfolio_agent.errors import HandlerError, ToolValidationError
from portfolio_agent.matching.job_spec import (
    JobSpecMatcher,
    analyze_overlap,
    extract_requirements,
)
from portfolio_agent.types import AccessLevel, ExecutionContext, new_call_id, now_ms

logger = logging.getLogger(__name__)

HandlerFn = Callable[[Any, ExecutionContext], Awaitable[dict[str, Any]]]

_BASE36 = string.digits + string.ascii_uppercase


@dataclass(frozen=True, slots=True)
class ToolHandler:
    """Table entry binding a tool name to its async handler.

    ``args_model`` parses the raw call arguments before the handler runs.
    ``min_access`` is checked by the dispatcher before invocation.
    """

    handler: HandlerFn
    args_model: type[BaseModel] | None = None
    min_access: AccessLevel = AccessLevel.BASIC


class ServerToolHandlers:
    """Implementations of every server-side tool.

    Each handler takes parsed arguments plus the per-call
    :class:`ExecutionContext` and returns a JSON-ready ``dict``. Handlers
    raise :mod:`portfolio_agent.errors` exceptions on failure; the
    dispatcher converts them into results.
    """

    def __init__(
        self,
        store: PortfolioStore,
        *,
        inbox: ContactInbox | None = None,
        history: NavigationHistoryStore | None = None,
        matcher: JobSpecMatcher | None = None,
    ) -> None:
        self.store = store
        self.inbox = inbox or ContactInbox()
        self.history = history or NavigationHistoryStore()
        self.matcher = matcher or JobSpecMatcher()

    def handler_table(self) -> dict[str, ToolHandler]:
        return {
            "loadProjectContext": ToolHandler(self.load_project_context, LoadProjectContextArgs),
            "loadUserProfile": ToolHandler(self.load_user_profile, LoadUserProfileArgs),
            "searchProjects": ToolHandler(self.search_projects, SearchProjectsArgs),
            "getProjectSummary": ToolHandler(self.get_project_summary, GetProjectSummaryArgs),
            "openProject": ToolHandler(self.open_project, OpenProjectArgs),
            "processJobSpec": ToolHandler(
                self.process_job_spec, ProcessJobSpecArgs, AccessLevel.PREMIUM
            ),
            "analyzeUserIntent": ToolHandler(self.analyze_user_intent, AnalyzeUserIntentArgs),
            "generateNavigationSuggestions": ToolHandler(
                self.generate_navigation_suggestions, GenerateNavigationSuggestionsArgs
            ),
            "getNavigationHistory": ToolHandler(
                self.get_navigation_history, GetNavigationHistoryArgs
            ),
            "submitContactForm": ToolHandler(self.submit_contact_form, SubmitContactFormArgs),
            "processUploadedFile": ToolHandler(
                self.process_uploaded_file, ProcessUploadedFileArgs, AccessLevel.PREMIUM
            ),
        }

    async def load_project_context(
        self, args: LoadProjectContextArgs, context: ExecutionContext
    ) -> dict[str, Any]:
        project = self._visible_project(args.project_id, context)
        data: dict[str, Any] = {
            "projectId": project.id,
            "slug": project.slug,
            "title": project.title,
            "briefSummary": project.description,
            "detailedSummary": project.content or project.description,
            "keyTechnologies": project.technologies[:5],
            "mainTopics": [project.category],
            "tags": list(project.tags),
            "accessLevel": context.access_level.value,
            "filteredForReflink": context.reflink_id is not None,
        }
        if args.include_content:
            data["sections"] = [_section_wire(section) for section in project.sections]
            data["content"] = project.content
        if args.include_media:
            data["mediaContext"] = list(project.media)
        if args.include_technical_details:
            data["technologies"] = list(project.technologies)
        return data

    async def load_user_profile(
        self, args: LoadUserProfileArgs, context: ExecutionContext
    ) -> dict[str, Any]:
        profile = self.store.profile
        show_private = args.include_private and _is_premium(context)
        contact = dict(profile.links)
        if show_private and profile.private_email:
            contact["email"] = profile.private_email
        data: dict[str, Any] = {
            "name": profile.name,
            "title": profile.title,
            "bio": profile.bio,
            "skills": list(profile.skills) if args.include_skills else [],
            "technologies": list(profile.technologies) if args.include_skills else [],
            "contact": contact,
            "location": profile.location,
            "availability": profile.availability,
            "interests": list(profile.interests),
            "education": profile.education,
            "certifications": list(profile.certifications),
            "accessLevel": context.access_level.value,
            "filteredForReflink": context.reflink_id is not None,
        }
        if args.include_experience:
            data["experience"] = profile.experience
        return data

    async def search_projects(
        self, args: SearchProjectsArgs, context: ExecutionContext
    ) -> dict[str, Any]:
        hits = self.store.search_projects(
            args.query,
            tags=args.tags,
            category=args.category,
            include_private=_is_premium(context),
        )
        with_sections = args.include_content and context.access_level != AccessLevel.BASIC
        results = []
        for project, relevance in hits[: args.limit]:
            item = _project_wire(project)
            item["relevanceScore"] = relevance
            if with_sections:
                item["matchingSections"] = [_section_wire(s) for s in project.sections]
            results.append(item)
        return {
            "query": args.query,
            "tags": args.tags,
            "category": args.category,
            "results": results,
            "totalResults": len(hits),
            "accessLevel": context.access_level.value,
            "filteredForReflink": context.reflink_id is not None,
        }

    async def get_project_summary(
        self, args: GetProjectSummaryArgs, context: ExecutionContext
    ) -> dict[str, Any]:
        include_private = args.include_private and _is_premium(context)
        projects = self.store.list_projects(include_private=include_private)
        ordered = sorted(projects, key=_SORT_KEYS[args.sort_by][0], reverse=_SORT_KEYS[args.sort_by][1])

        tags = Counter(tag for p in projects for tag in p.tags)
        technologies = Counter(tech for p in projects for tech in p.technologies)
        visibility = Counter(p.visibility for p in projects)
        return {
            "totalProjects": len(projects),
            "categories": dict(Counter(p.category for p in projects)),
            "recentProjects": [_project_wire(p) for p in ordered[: args.max_projects]],
            "topTags": [tag for tag, _ in tags.most_common(7)],
            "topTechnologies": [tech for tech, _ in technologies.most_common(7)],
            "projectsByVisibility": {
                "public": visibility.get("public", 0),
                "private": visibility.get("private", 0),
            },
            "lastUpdated": max((p.last_updated for p in projects), default=None),
            "accessLevel": context.access_level.value,
            "filteredForReflink": context.reflink_id is not None,
        }

    async def open_project(self, args: OpenProjectArgs, context: ExecutionContext) -> dict[str, Any]:
        project = self.store.get_project(args.query)
        if project is not None and not _can_see(project, context):
            project = None
        if project is None:
            hits = self.store.search_projects(args.query, include_private=_is_premium(context))
            project = hits[0][0] if hits else None
        if project is None:
            return {
                "found": False,
                "query": args.query,
                "message": f'No project matches "{args.query}"',
            }

        path = f"/projects/{project.slug}"
        self.history.record_page_visit(context.session_id, path, projectId=project.id)
        return {
            "found": True,
            "query": args.query,
            "project": _project_wire(project),
            "path": path,
            "clientAction": {
                "toolName": "showProjectDetails",
                "parameters": {
                    "projectId": project.slug,
                    "highlightSections": list(args.highlight_sections),
                },
            },
        }

    async def process_job_spec(
        self, args: ProcessJobSpecArgs, context: ExecutionContext
    ) -> dict[str, Any]:
        require_access(context, AccessLevel.PREMIUM, "Job analysis")
        profile = self.store.profile
        result = self.matcher.match(
            args.job_spec,
            candidate_skills=profile.skills,
            candidate_technologies=profile.technologies,
            analysis_type=args.analysis_type,
            include_skills=args.include_skills_match,
            include_report=args.generate_report,
        )
        required_tech = set(result.requirements.technologies)
        relevant = [
            _project_wire(p)
            for p in self.store.list_projects(include_private=True)
            if required_tech & {tech.lower() for tech in p.technologies}
        ]
        logger.info(
            "Job analysis completed: score=%d type=%s session=%s",
            result.score,
            args.analysis_type,
            context.session_id,
        )
        return {
            "jobSpec": args.job_spec,
            "analysisType": args.analysis_type,
            "matchScore": result.score,
            "requirements": {
                "skills": result.requirements.skills,
                "technologies": result.requirements.technologies,
                "experienceMentions": result.requirements.experience_mentions,
                "keywords": result.requirements.keywords,
            },
            "skillsAnalysis": result.skills.to_wire() if result.skills else None,
            "technologyAnalysis": result.technologies.to_wire(),
            "experienceAnalysis": (
                {
                    "mentions": result.requirements.experience_mentions,
                    "requiredYears": result.requirements.required_years,
                    "factor": result.experience_factor,
                }
                if args.include_experience_match
                else None
            ),
            "strengths": result.strengths,
            "gaps": result.gaps,
            "recommendations": result.recommendations,
            "relevantProjects": relevant,
            "report": result.report,
            "timestamp": now_ms(),
            "accessLevel": context.access_level.value,
            "processedWithReflink": context.reflink_id is not None,
        }

    async def analyze_user_intent(
        self, args: AnalyzeUserIntentArgs, context: ExecutionContext
    ) -> dict[str, Any]:
        analysis = intent_analysis.analyze_intent(args.user_message)
        current = args.current_context
        return {
            "userMessage": args.user_message,
            "intent": analysis.intent,
            "confidence": analysis.confidence,
            "entities": analysis.entities,
            "contextualInfo": {
                "conversationLength": len(args.conversation_history),
                "currentPage": current.current_page or "unknown",
                "currentModal": current.current_modal,
                "recentActions": list(current.recent_actions),
            },
            "suggestedActions": analysis.suggested_actions,
            "reasoning": analysis.reasoning,
            "conversationTurn": len(args.conversation_history) + 1,
            "accessLevel": context.access_level.value,
        }

    async def generate_navigation_suggestions(
        self, args: GenerateNavigationSuggestionsArgs, context: ExecutionContext
    ) -> dict[str, Any]:
        if args.available_projects:
            projects = [p.model_dump() for p in args.available_projects]
        else:
            projects = [_project_wire(p) for p in self.store.list_projects()]
        suggestions, total = intent_analysis.suggest_navigation(
            args.user_intent, projects, args.max_suggestions
        )
        return {
            "userIntent": args.user_intent,
            "currentLocation": args.current_location,
            "suggestions": [s.to_wire() for s in suggestions],
            "totalSuggestions": total,
            "analysisMetadata": {
                "extractedTechnologies": intent_analysis.extract_technologies(args.user_intent),
                "intentKeywords": intent_analysis.extract_intent_keywords(args.user_intent),
                "contextFactors": {
                    "hasProjects": bool(projects),
                    "currentLocation": args.current_location,
                    "accessLevel": context.access_level.value,
                },
            },
        }

    async def get_navigation_history(
        self, args: GetNavigationHistoryArgs, context: ExecutionContext
    ) -> dict[str, Any]:
        session_id = args.session_id or context.session_id
        entries = self.history.history(
            session_id, limit=args.limit, include_tool_calls=args.include_tool_calls
        )
        return {
            "sessionId": session_id,
            "history": [entry.to_wire() for entry in entries],
            "totalEntries": len(entries),
            "includeToolCalls": args.include_tool_calls,
            "accessLevel": context.access_level.value,
        }

    async def submit_contact_form(
        self, args: SubmitContactFormArgs, context: ExecutionContext
    ) -> dict[str, Any]:
        form = args.form_data
        missing = [name for name in ("name", "email", "message") if not getattr(form, name).strip()]
        if missing:
            raise ToolValidationError(
                f"Missing required contact form fields: {', '.join(missing)}",
                tool_name="submitContactForm",
                errors=[f"{name} is required" for name in missing],
            )

        submission = self.inbox.submit(
            ContactSubmission(
                contact_id=new_call_id("contact"),
                confirmation_number=f"CONF_{_base36(now_ms())}",
                name=form.name,
                email=form.email,
                message=form.message,
                subject=form.subject,
                company=form.company,
                phone=form.phone,
                source=args.source,
                priority=args.priority,
                session_id=context.session_id,
                reflink_id=context.reflink_id,
                submitted_at=datetime.now(timezone.utc).isoformat(),
            )
        )
        return {
            "contactId": submission.contact_id,
            "confirmationNumber": submission.confirmation_number,
            "estimatedResponse": "2-4 hours" if args.priority == "urgent" else "24-48 hours",
            "message": "Contact form submitted successfully",
            "submittedAt": submission.submitted_at,
            "source": submission.source,
            "priority": submission.priority,
        }

    async def process_uploaded_file(
        self, args: ProcessUploadedFileArgs, context: ExecutionContext
    ) -> dict[str, Any]:
        require_access(context, AccessLevel.PREMIUM, "File processing")
        upload = self.store.get_upload(args.file_id)
        if upload is None:
            raise HandlerError(f"Uploaded file not found: {args.file_id}", tool_name="processUploadedFile")

        mode = args.analysis_type
        requirements = extract_requirements(upload.text)
        data: dict[str, Any] = {
            "fileId": upload.id,
            "fileType": args.file_type,
            "analysisType": mode,
            "includeInContext": args.include_in_context,
            "processedAt": datetime.now(timezone.utc).isoformat(),
        }
        if mode in ("extract_text", "full_analysis"):
            data["extractedText"] = upload.text
        if mode in ("analyze_content", "full_analysis"):
            data["analysis"] = {
                "documentType": args.file_type,
                "wordCount": len(upload.text.split()),
                "keyTopics": requirements.keywords[:5],
                "technologies": requirements.technologies,
                "skills": requirements.skills,
            }
        if mode in ("compare_skills", "full_analysis"):
            profile = self.store.profile
            data["skillsComparison"] = analyze_overlap(
                [*profile.skills, *profile.technologies],
                [*requirements.skills, *requirements.technologies],
            ).to_wire()
        data["summary"] = f"Processed {args.file_type} file with {mode} analysis"
        logger.info(
            "File processed: id=%s type=%s analysis=%s session=%s",
            upload.id,
            args.file_type,
            mode,
            context.session_id,
        )
        return data

    def _visible_project(self, project_id: str, context: ExecutionContext) -> Project:
        project = self.store.get_project(project_id)
        if project is None or not _can_see(project, context):
            raise HandlerError(f"Project not found: {project_id}", tool_name="loadProjectContext")
        return project


_SORT_KEYS: dict[str, tuple[Callable[[Project], Any], bool]] = {
    "date": (lambda p: p.last_updated, True),
    "title": (lambda p: p.title.lower(), False),
    "category": (lambda p: (p.category, p.title.lower()), False),
    "priority": (lambda p: p.priority, True),
}


def _is_premium(context: ExecutionContext) -> bool:
    return context.access_level.meets(AccessLevel.PREMIUM)


def _can_see(project: Project, context: ExecutionContext) -> bool:
    return project.visibility == "public" or _is_premium(context)


def _project_wire(project: Project) -> dict[str, Any]:
    return {
        "id": project.id,
        "slug": project.slug,
        "title": project.title,
        "description": project.description,
        "category": project.category,
        "tags": list(project.tags),
        "lastUpdated": project.last_updated,
        "visibility": project.visibility.upper(),
    }


def _section_wire(section: Any) -> dict[str, Any]:
    return {"title": section.title, "summary": section.summary, "importance": section.importance}


def _base36(value: int) -> str:
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits)) or "0"
