"""Server-side tool definitions.

These tools need trusted backend processing: content access, job analysis,
intent analysis, contact handling and file processing.
"""

from __future__ import annotations

from typing import Any

from portfolio_agent.agent import schemas
from portfolio_agent.types import ToolDefinition


def _data_schema(**properties: str) -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "success": {"type": "boolean"},
            "data": {
                "type": "object",
                "properties": {key: {"type": value} for key, value in properties.items()},
            },
            "message": {"type": "string"},
        },
    }


SERVER_TOOL_DEFINITIONS: tuple[ToolDefinition, ...] = (
    ToolDefinition.from_model(
        name="loadProjectContext",
        description="Load detailed context for a specific project from the server database.",
        args_model=schemas.LoadProjectContextArgs,
        execution_context="server",
        output_schema=_data_schema(
            project="object", content="string", media="array", technicalDetails="object"
        ),
    ),
    ToolDefinition.from_model(
        name="loadUserProfile",
        description="Load user profile information for AI context and personalization.",
        args_model=schemas.LoadUserProfileArgs,
        execution_context="server",
        output_schema=_data_schema(
            profile="object", skills="array", experience="array", education="array"
        ),
    ),
    ToolDefinition.from_model(
        name="searchProjects",
        description="Search projects by keywords, tags, or content for relevant matches.",
        args_model=schemas.SearchProjectsArgs,
        execution_context="server",
        output_schema=_data_schema(results="array", totalResults="number", query="string"),
    ),
    ToolDefinition.from_model(
        name="getProjectSummary",
        description="Get a comprehensive summary of all projects for context building.",
        args_model=schemas.GetProjectSummaryArgs,
        execution_context="server",
        output_schema=_data_schema(
            projects="array", totalProjects="number", categories="object", topTags="array"
        ),
    ),
    ToolDefinition.from_model(
        name="openProject",
        description=(
            "Find a project by ID, slug, title or description and resolve it to a "
            "navigable reference the client can open."
        ),
        args_model=schemas.OpenProjectArgs,
        execution_context="server",
        output_schema=_data_schema(
            found="boolean", project="object", path="string", clientAction="object"
        ),
    ),
    ToolDefinition.from_model(
        name="processJobSpec",
        description="Process and analyze a job specification against portfolio owner background.",
        args_model=schemas.ProcessJobSpecArgs,
        execution_context="server",
        output_schema=_data_schema(
            matchScore="number",
            skillsAnalysis="object",
            technologyAnalysis="object",
            experienceAnalysis="object",
            report="string",
        ),
    ),
    ToolDefinition.from_model(
        name="analyzeUserIntent",
        description="Analyze user intent from conversation context for better responses.",
        args_model=schemas.AnalyzeUserIntentArgs,
        execution_context="server",
        output_schema=_data_schema(
            intent="string", confidence="number", entities="object", suggestedActions="array"
        ),
    ),
    ToolDefinition.from_model(
        name="generateNavigationSuggestions",
        description="Generate navigation suggestions based on user intent and available content.",
        args_model=schemas.GenerateNavigationSuggestionsArgs,
        execution_context="server",
        output_schema=_data_schema(suggestions="array", totalSuggestions="number"),
    ),
    ToolDefinition.from_model(
        name="getNavigationHistory",
        description="Get navigation history for the current session to avoid repetition.",
        args_model=schemas.GetNavigationHistoryArgs,
        execution_context="server",
        output_schema=_data_schema(history="array", sessionId="string", totalEntries="number"),
    ),
    ToolDefinition.from_model(
        name="submitContactForm",
        description="Submit contact form data to the server for processing and notification.",
        args_model=schemas.SubmitContactFormArgs,
        execution_context="server",
        output_schema=_data_schema(
            contactId="string", confirmationNumber="string", estimatedResponse="string"
        ),
    ),
    ToolDefinition.from_model(
        name="processUploadedFile",
        description="Process uploaded files (resumes, job specs) for analysis and context.",
        args_model=schemas.ProcessUploadedFileArgs,
        execution_context="server",
        output_schema=_data_schema(
            extractedText="string", analysis="object", skills="array", summary="string"
        ),
    ),
)
