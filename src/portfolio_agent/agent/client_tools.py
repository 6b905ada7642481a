"""Client-side tool definitions.

These tools run inside the caller's own process (the browser or voice
client). The server only publishes their schemas; it never executes them.
"""

from __future__ import annotations

from typing import Any

from portfolio_agent.agent import schemas
from portfolio_agent.types import ToolDefinition


def _result_schema(**properties: str) -> dict[str, Any]:
    props: dict[str, Any] = {"success": {"type": "boolean"}, "message": {"type": "string"}}
    props.update({key: {"type": value} for key, value in properties.items()})
    return {"type": "object", "properties": props}


CLIENT_TOOL_DEFINITIONS: tuple[ToolDefinition, ...] = (
    ToolDefinition.from_model(
        name="navigateTo",
        description="Navigate to a specific page or URL in the portfolio.",
        args_model=schemas.NavigateToArgs,
        execution_context="client",
        output_schema=_result_schema(currentUrl="string"),
    ),
    ToolDefinition.from_model(
        name="showProjectDetails",
        description="Show details for a specific project in a modal, optionally highlighting sections.",
        args_model=schemas.ShowProjectDetailsArgs,
        execution_context="client",
        output_schema=_result_schema(projectId="string", highlightedSections="array"),
    ),
    ToolDefinition.from_model(
        name="scrollIntoView",
        description="Scroll to bring a specific element into view on the current page.",
        args_model=schemas.ScrollIntoViewArgs,
        execution_context="client",
        output_schema=_result_schema(selector="string", elementFound="boolean"),
    ),
    ToolDefinition.from_model(
        name="highlightText",
        description="Highlight specific text or elements on the page for visual emphasis.",
        args_model=schemas.HighlightTextArgs,
        execution_context="client",
        output_schema=_result_schema(elementsHighlighted="number", highlightClass="string"),
    ),
    ToolDefinition.from_model(
        name="clearHighlights",
        description="Clear all highlights from the page to reset visual emphasis.",
        args_model=schemas.ClearHighlightsArgs,
        execution_context="client",
        output_schema=_result_schema(elementsCleared="number"),
    ),
    ToolDefinition.from_model(
        name="focusElement",
        description="Focus on a specific element and bring it into view for user attention.",
        args_model=schemas.FocusElementArgs,
        execution_context="client",
        output_schema=_result_schema(selector="string", elementFocused="boolean"),
    ),
    ToolDefinition.from_model(
        name="reportUIState",
        description="Report current UI state to the server for context awareness.",
        args_model=schemas.ReportUIStateArgs,
        execution_context="client",
        output_schema=_result_schema(stateReported="boolean"),
    ),
    ToolDefinition.from_model(
        name="fillFormField",
        description="Fill a specific form field with provided data.",
        args_model=schemas.FillFormFieldArgs,
        execution_context="client",
        output_schema=_result_schema(fieldFilled="boolean", value="string"),
    ),
    ToolDefinition.from_model(
        name="submitForm",
        description="Submit a form after validation and user confirmation.",
        args_model=schemas.SubmitFormArgs,
        execution_context="client",
        output_schema=_result_schema(formSubmitted="boolean", confirmationGiven="boolean"),
    ),
    ToolDefinition.from_model(
        name="animateElement",
        description="Apply animation effects to elements for visual demonstration.",
        args_model=schemas.AnimateElementArgs,
        execution_context="client",
        output_schema=_result_schema(elementsAnimated="number", animationType="string"),
    ),
)
