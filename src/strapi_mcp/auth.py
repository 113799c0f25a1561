"""Write protection for tool calls.

Any call that changes data on a backend must carry ``authorized: true``,
which the calling agent may only set after a human approved the change.
The check is a pure function of the validated request and always runs
before any network call.
"""

from typing import Optional

from shared.logging import get_logger
from shared.models import AuthorizationFailure
from strapi_mcp.tools import RestCallRequest, ToolRequest, UploadMediaRequest

logger = get_logger(__name__)

REMEDIATION_STEPS = (
    "Before retrying you MUST:\n"
    "1. Ask the user for permission to perform this operation\n"
    "2. Show the user exactly what will be changed (endpoint, method and data)\n"
    "3. Wait for the user's explicit confirmation\n"
    "4. Retry the same call with \"authorized\": true\n"
    "Never set \"authorized\": true without the user's explicit approval."
)


def authorization_message(operation: str, server: str) -> str:
    """Build the message returned when consent is missing."""
    return (
        f"AUTHORIZATION REQUIRED: {operation} on server '{server}' modifies data "
        f"and requires explicit user authorization.\n\n{REMEDIATION_STEPS}"
    )


def requires_authorization(request: ToolRequest) -> bool:
    """Whether the request is a mutating operation."""
    if isinstance(request, UploadMediaRequest):
        return True
    if isinstance(request, RestCallRequest):
        return request.is_mutating
    return False


def check_authorization(request: ToolRequest) -> Optional[AuthorizationFailure]:
    """
    Check that a mutating request carries explicit consent.

    Args:
        request: Validated tool request

    Returns:
        None when the request may proceed, otherwise an authorization failure
    """
    if not requires_authorization(request):
        return None
    if request.authorized:
        return None

    if isinstance(request, UploadMediaRequest):
        operation = f"Uploading media from {request.source_url}"
    else:
        operation = f"{request.method.value} request to '{request.endpoint}'"

    logger.info(
        "Write operation rejected without authorization",
        server=request.server,
        operation=operation
    )
    return AuthorizationFailure(reason=authorization_message(operation, request.server))
