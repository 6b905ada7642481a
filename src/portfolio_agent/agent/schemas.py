"""Argument models for every tool in the catalog.

Each model is the single source of a tool's wire parameter schema
(``model_json_schema(by_alias=True)``) and of server-side argument parsing.
Wire names are camelCase; Python attributes are snake_case.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ToolArgs(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# Client tools -----------------------------------------------------------------


class NavigateToArgs(ToolArgs):
    path: str = Field(
        min_length=1,
        description='The URL path to navigate to (e.g., "/projects", "/about", "/contact")',
    )
    new_tab: bool = Field(default=False, description="Whether to open in a new tab")


class ShowProjectDetailsArgs(ToolArgs):
    project_id: str = Field(min_length=1, description="The ID or slug of the project to show")
    highlight_sections: list[str] = Field(
        default_factory=list,
        description="Array of section IDs to highlight within the project",
    )


class ScrollIntoViewArgs(ToolArgs):
    selector: str = Field(min_length=1, description="CSS selector for the element to scroll to")
    behavior: Literal["auto", "smooth"] = Field(
        default="smooth", description="Scroll behavior animation"
    )
    block: Literal["start", "center", "end", "nearest"] = Field(
        default="start", description="Vertical alignment of the element"
    )


class HighlightTextArgs(ToolArgs):
    selector: str = Field(min_length=1, description="CSS selector for elements to search within")
    text: str | None = Field(
        default=None,
        description="Specific text to highlight; highlights entire elements when omitted",
    )
    class_name: str = Field(
        default="voice-highlight", description="CSS class name for highlighting style"
    )
    type: Literal["spotlight", "outline", "color", "glow"] = Field(
        default="color", description="Type of highlighting effect"
    )


class ClearHighlightsArgs(ToolArgs):
    class_name: str = Field(
        default="voice-highlight",
        description="CSS class name to remove; removes all highlights when omitted",
    )
    selector: str | None = Field(
        default=None,
        description="Specific selector to clear highlights from; clears all when omitted",
    )


class FocusElementArgs(ToolArgs):
    selector: str = Field(min_length=1, description="CSS selector for the element to focus")
    scroll_into_view: bool = Field(
        default=True, description="Whether to scroll the element into view"
    )


class UIState(ToolArgs):
    current_modal: str | None = Field(default=None, description="Currently open modal identifier")
    current_section: str | None = Field(default=None, description="Current section being viewed")
    active_highlights: list[str] = Field(
        default_factory=list, description="List of currently active highlight selectors"
    )
    scroll_position: float | None = Field(
        default=None, description="Current scroll position in pixels"
    )
    timestamp: float = Field(description="Timestamp of the state capture")


class ReportUIStateArgs(ToolArgs):
    state: UIState = Field(description="Current UI state information")


class FillFormFieldArgs(ToolArgs):
    selector: str = Field(min_length=1, description="CSS selector for the form field to fill")
    value: str = Field(description="Value to fill in the form field")
    field_type: Literal["text", "email", "textarea", "select", "checkbox", "radio"] = Field(
        default="text", description="Type of form field"
    )


class SubmitFormArgs(ToolArgs):
    form_selector: str = Field(min_length=1, description="CSS selector for the form to submit")
    confirmation_required: bool = Field(
        default=True, description="Whether to ask for user confirmation before submitting"
    )


class AnimationSpec(ToolArgs):
    type: Literal["pulse", "bounce", "shake", "glow", "fade"] = Field(
        description="Type of animation effect"
    )
    duration: int = Field(default=1000, ge=0, description="Animation duration in milliseconds")
    iterations: int = Field(
        default=1, ge=0, description="Number of animation iterations (0 for infinite)"
    )


class AnimateElementArgs(ToolArgs):
    selector: str = Field(min_length=1, description="CSS selector for elements to animate")
    animation: AnimationSpec = Field(description="Animation configuration")


# Server tools -----------------------------------------------------------------


class LoadProjectContextArgs(ToolArgs):
    project_id: str = Field(
        min_length=1, description="The ID or slug of the project to load context for"
    )
    include_content: bool = Field(default=False, description="Whether to include full article content")
    include_media: bool = Field(
        default=False, description="Whether to include media information and metadata"
    )
    include_technical_details: bool = Field(
        default=True, description="Whether to include technical implementation details"
    )


class LoadUserProfileArgs(ToolArgs):
    include_private: bool = Field(
        default=False,
        description="Whether to include private profile information (requires premium access)",
    )
    include_skills: bool = Field(
        default=True, description="Whether to include skills and expertise information"
    )
    include_experience: bool = Field(
        default=True, description="Whether to include work experience details"
    )


class SearchProjectsArgs(ToolArgs):
    query: str = Field(min_length=1, description="Search query string")
    tags: list[str] = Field(default_factory=list, description="Filter by specific tags")
    category: str | None = Field(default=None, description="Filter by project category")
    limit: int = Field(default=10, ge=1, le=50, description="Maximum number of results to return")
    include_content: bool = Field(
        default=True, description="Whether to search within project content"
    )


class GetProjectSummaryArgs(ToolArgs):
    include_private: bool = Field(default=False, description="Whether to include private projects")
    max_projects: int = Field(
        default=20, ge=1, le=100, description="Maximum number of projects to include"
    )
    sort_by: Literal["date", "title", "category", "priority"] = Field(
        default="date", description="Sort order for projects"
    )


class OpenProjectArgs(ToolArgs):
    query: str = Field(
        min_length=1,
        description="Project ID, slug, title or free-text description of the project to open",
    )
    highlight_sections: list[str] = Field(
        default_factory=list,
        description="Section IDs to highlight once the project is shown",
    )


class ProcessJobSpecArgs(ToolArgs):
    job_spec: str = Field(min_length=1, description="The job specification text to analyze")
    analysis_type: Literal["quick", "detailed", "comprehensive"] = Field(
        default="detailed", description="Type of analysis to perform"
    )
    include_skills_match: bool = Field(
        default=True, description="Whether to include skills matching analysis"
    )
    include_experience_match: bool = Field(
        default=True, description="Whether to include experience matching analysis"
    )
    generate_report: bool = Field(default=True, description="Whether to generate a formatted report")


class ConversationMessage(ToolArgs):
    role: Literal["user", "assistant"] = Field(description="Message role")
    content: str = Field(description="Message content")
    timestamp: float | None = Field(default=None, description="Message timestamp")


class CurrentContext(ToolArgs):
    current_page: str | None = None
    current_modal: str | None = None
    recent_actions: list[Any] = Field(default_factory=list)


class AnalyzeUserIntentArgs(ToolArgs):
    user_message: str = Field(min_length=1, description="The user message to analyze")
    conversation_history: list[ConversationMessage] = Field(
        default_factory=list, description="Previous conversation messages for context"
    )
    current_context: CurrentContext = Field(
        default_factory=CurrentContext, description="Current navigation and UI context"
    )


class AvailableProject(ToolArgs):
    id: str
    title: str = ""
    tags: list[str] = Field(default_factory=list)
    category: str | None = None


class GenerateNavigationSuggestionsArgs(ToolArgs):
    user_intent: str = Field(min_length=1, description="Analyzed user intent or explicit request")
    current_location: str | None = Field(
        default=None, description="Current page or section user is viewing"
    )
    available_projects: list[AvailableProject] = Field(
        default_factory=list, description="List of available projects for navigation"
    )
    max_suggestions: int = Field(
        default=5, ge=1, le=20, description="Maximum number of suggestions to generate"
    )


class GetNavigationHistoryArgs(ToolArgs):
    session_id: str | None = Field(default=None, description="Optional session ID to get history for")
    limit: int = Field(
        default=20, ge=1, le=200, description="Maximum number of history entries to return"
    )
    include_tool_calls: bool = Field(default=True, description="Whether to include tool call history")


class ContactFormData(ToolArgs):
    name: str = Field(description="Contact name")
    email: str = Field(description="Contact email address")
    message: str = Field(description="Message content")
    subject: str | None = Field(default=None, description="Message subject")
    company: str | None = Field(default=None, description="Company name (optional)")
    phone: str | None = Field(default=None, description="Phone number (optional)")


class SubmitContactFormArgs(ToolArgs):
    form_data: ContactFormData = Field(description="Contact form data")
    source: str = Field(default="voice", description="Source of the contact (voice, chat, form)")
    priority: Literal["low", "normal", "high", "urgent"] = Field(
        default="normal", description="Priority level for the contact"
    )


class ProcessUploadedFileArgs(ToolArgs):
    file_id: str = Field(min_length=1, description="ID of the uploaded file to process")
    file_type: Literal["resume", "job_spec", "document", "other"] = Field(
        description="Type of file being processed"
    )
    analysis_type: Literal["extract_text", "analyze_content", "compare_skills", "full_analysis"] = (
        Field(default="full_analysis", description="Type of analysis to perform")
    )
    include_in_context: bool = Field(
        default=True,
        description="Whether to include processed content in conversation context",
    )
