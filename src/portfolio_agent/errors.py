"""Error taxonomy for tool registration and execution."""

from __future__ import annotations


class ToolError(Exception):
    """Base class for every failure the dispatch core can report.

    Each subclass carries a machine-checkable ``code`` and the HTTP status
    the synchronous entrypoint maps it to.
    """

    code = "tool_error"
    status_code = 500

    def __init__(self, message: str, *, tool_name: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.tool_name = tool_name


class ToolValidationError(ToolError):
    """Malformed tool definition or malformed call arguments."""

    code = "validation_error"
    status_code = 400

    def __init__(
        self,
        message: str,
        *,
        tool_name: str | None = None,
        errors: list[str] | None = None,
    ) -> None:
        super().__init__(message, tool_name=tool_name)
        self.errors = list(errors or [])


class ToolNotFoundError(ToolError):
    code = "not_found"
    status_code = 404


class MisroutedToolError(ToolError):
    """A tool was invoked through the wrong execution-context path."""

    code = "misrouted"
    status_code = 400


class AuthorizationError(ToolError):
    """Access tier, reflink or budget check failed."""

    code = "authorization_error"
    status_code = 403


class HandlerError(ToolError):
    code = "handler_error"
    status_code = 500


class ToolTimeoutError(ToolError):
    code = "timeout"
    status_code = 500


_STATUS_BY_CODE = {
    cls.code: cls.status_code
    for cls in (
        ToolValidationError,
        ToolNotFoundError,
        MisroutedToolError,
        AuthorizationError,
        HandlerError,
        ToolTimeoutError,
    )
}


def status_for_code(code: str | None) -> int:
    """HTTP status for a failure code; unknown codes map to 500."""
    return _STATUS_BY_CODE.get(code or "", 500)
