"""Translation of dispatch outcomes into tool responses.

Every failure kind becomes a structured error with a category that maps to
a JSON-RPC error code, so callers can tell bad input apart from backend
trouble without parsing message text.
"""

from mcp.types import INTERNAL_ERROR, INVALID_PARAMS, METHOD_NOT_FOUND

from shared.models import (
    AuthorizationFailure,
    BackendFailure,
    ConfigFailure,
    DispatchOutcome,
    ErrorCategory,
    InternalFailure,
    ProcessingFailure,
    Success,
    ToolError,
    ToolResponse,
    TransportFailure,
    UnknownTool,
    ValidationFailure,
)

CATEGORY_CODES = {
    ErrorCategory.INVALID_PARAMS: INVALID_PARAMS,
    ErrorCategory.METHOD_NOT_FOUND: METHOD_NOT_FOUND,
    ErrorCategory.INTERNAL: INTERNAL_ERROR,
}


def _error(
    tool_name: str,
    outcome: DispatchOutcome,
    category: ErrorCategory,
    message: str,
    **data
) -> ToolResponse:
    return ToolResponse(
        tool_name=tool_name,
        error=ToolError(
            code=CATEGORY_CODES[category],
            category=category,
            kind=outcome.kind,
            message=message,
            data={"kind": outcome.kind.value, **data},
        ),
    )


def translate(tool_name: str, outcome: DispatchOutcome) -> ToolResponse:
    """
    Map a dispatch outcome to the response handed to the transport.

    Args:
        tool_name: Name of the called tool
        outcome: Result of the call

    Returns:
        A response carrying either the result or a structured error
    """
    if isinstance(outcome, Success):
        return ToolResponse(tool_name=tool_name, result=outcome.body)

    if isinstance(outcome, ValidationFailure):
        lines = [f"- {e.path}: {e.message} ({e.code})" for e in outcome.field_errors]
        return _error(
            tool_name, outcome, ErrorCategory.INVALID_PARAMS,
            f"Invalid arguments for tool '{tool_name}':\n" + "\n".join(lines),
            field_errors=[e.model_dump() for e in outcome.field_errors],
        )

    if isinstance(outcome, AuthorizationFailure):
        return _error(
            tool_name, outcome, ErrorCategory.INVALID_PARAMS,
            outcome.reason,
            field=outcome.field,
        )

    if isinstance(outcome, ConfigFailure):
        return _error(tool_name, outcome, ErrorCategory.INVALID_PARAMS, outcome.message)

    if isinstance(outcome, UnknownTool):
        return _error(
            tool_name, outcome, ErrorCategory.METHOD_NOT_FOUND,
            f"Unknown tool: {outcome.name}",
            tool=outcome.name,
        )

    if isinstance(outcome, BackendFailure):
        return _error(
            tool_name, outcome, ErrorCategory.INTERNAL,
            outcome.message,
            status=outcome.status,
        )

    if isinstance(outcome, (TransportFailure, ProcessingFailure, InternalFailure)):
        return _error(tool_name, outcome, ErrorCategory.INTERNAL, outcome.message)

    raise TypeError(f"Unsupported outcome type: {type(outcome).__name__}")
