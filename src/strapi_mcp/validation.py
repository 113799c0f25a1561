"""Argument validation for tool calls.

Turns raw, loosely-typed tool arguments into a validated request model, or
into a failure value carrying field-level diagnostics. Validation also runs
the authorization gate, so a mutating call without consent is rejected
before the server is even looked up.
"""

from typing import Any, Union

from pydantic import ValidationError

from shared.models import AuthorizationFailure, FieldError, ValidationFailure
from strapi_mcp.auth import check_authorization
from strapi_mcp.tools import ToolRequest, ToolSpec

# pydantic error types mapped to the codes reported to callers
ERROR_CODES = {
    "missing": "invalid_type",
    "extra_forbidden": "unrecognized_keys",
    "string_too_short": "too_small",
    "greater_than_equal": "too_small",
    "greater_than": "too_small",
    "less_than_equal": "too_big",
    "less_than": "too_big",
    "string_too_long": "too_big",
    "enum": "invalid_enum_value",
    "literal_error": "invalid_enum_value",
    "url_parsing": "invalid_string",
    "url_scheme": "invalid_string",
    "url_type": "invalid_string",
    "url_syntax_violation": "invalid_string",
    "url_too_long": "invalid_string",
    "value_error": "custom",
    "assertion_error": "custom",
}

ValidationResult = Union[ToolRequest, ValidationFailure, AuthorizationFailure]


def _field_path(loc: tuple[Any, ...]) -> str:
    return ".".join(str(part) for part in loc) or "(root)"


def _error_message(error: dict[str, Any]) -> str:
    if error["type"] == "missing":
        return "Required"
    if error["type"] == "extra_forbidden":
        return f"Unrecognized key '{error['loc'][-1]}'"
    if error["type"] == "value_error":
        # Drop pydantic's "Value error, " prefix on messages raised by coercers.
        return str(error.get("ctx", {}).get("error", error["msg"]))
    return error["msg"]


def to_field_errors(exc: ValidationError) -> list[FieldError]:
    """Convert a pydantic validation error into field errors."""
    return [
        FieldError(
            path=_field_path(error["loc"]),
            message=_error_message(error),
            code=ERROR_CODES.get(error["type"], "invalid_type"),
        )
        for error in exc.errors()
    ]


def validate_arguments(spec: ToolSpec, arguments: Any) -> ValidationResult:
    """
    Validate raw arguments for a tool.

    Args:
        spec: Catalog entry of the called tool
        arguments: Raw arguments as received from the transport

    Returns:
        The validated request, a validation failure, or an authorization
        failure when a mutating call lacks explicit consent
    """
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, dict):
        return ValidationFailure(field_errors=[FieldError(
            path="(root)",
            message=f"Expected an object, received {type(arguments).__name__}",
            code="invalid_type",
        )])

    try:
        request = spec.request_model.model_validate(arguments)
    except ValidationError as e:
        return ValidationFailure(field_errors=to_field_errors(e))

    denied = check_authorization(request)
    if denied is not None:
        return denied
    return request
