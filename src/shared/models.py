"""Core data models for the Strapi MCP bridge.

This module defines the server profiles, the outcome of a dispatched tool
call, and the response handed back to the transport.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Optional, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ServerProfile(BaseModel):
    """
    Connection details for one configured backend server.

    Built from an entry of the configuration document, where the URL and
    token are stored as ``api_url`` and ``api_key``.
    """
    name: str = Field(..., min_length=1, description="Unique server name")
    base_url: str = Field(..., min_length=1, alias="api_url")
    credential: str = Field(..., min_length=1, alias="api_key")
    version_tag: str = Field(default="v4", alias="version")

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class FieldError(BaseModel):
    """A single field-level validation problem."""
    path: str
    message: str
    code: str


class OutcomeKind(str, Enum):
    """Discriminator for dispatch outcomes."""
    SUCCESS = "success"
    VALIDATION = "validation"
    AUTHORIZATION = "authorization"
    CONFIG = "config"
    BACKEND = "backend"
    TRANSPORT = "transport"
    PROCESSING = "processing"
    UNKNOWN_TOOL = "unknown_tool"
    INTERNAL = "internal"


class Success(BaseModel):
    kind: Literal[OutcomeKind.SUCCESS] = OutcomeKind.SUCCESS
    body: Any = None


class ValidationFailure(BaseModel):
    kind: Literal[OutcomeKind.VALIDATION] = OutcomeKind.VALIDATION
    field_errors: list[FieldError] = Field(default_factory=list)


class AuthorizationFailure(BaseModel):
    kind: Literal[OutcomeKind.AUTHORIZATION] = OutcomeKind.AUTHORIZATION
    reason: str
    field: str = "authorized"


class ConfigFailure(BaseModel):
    kind: Literal[OutcomeKind.CONFIG] = OutcomeKind.CONFIG
    message: str


class BackendFailure(BaseModel):
    kind: Literal[OutcomeKind.BACKEND] = OutcomeKind.BACKEND
    status: int
    message: str


class TransportFailure(BaseModel):
    kind: Literal[OutcomeKind.TRANSPORT] = OutcomeKind.TRANSPORT
    message: str


class ProcessingFailure(BaseModel):
    kind: Literal[OutcomeKind.PROCESSING] = OutcomeKind.PROCESSING
    message: str


class UnknownTool(BaseModel):
    kind: Literal[OutcomeKind.UNKNOWN_TOOL] = OutcomeKind.UNKNOWN_TOOL
    name: str


class InternalFailure(BaseModel):
    kind: Literal[OutcomeKind.INTERNAL] = OutcomeKind.INTERNAL
    message: str


Failure = Union[
    ValidationFailure,
    AuthorizationFailure,
    ConfigFailure,
    BackendFailure,
    TransportFailure,
    ProcessingFailure,
    UnknownTool,
    InternalFailure,
]

DispatchOutcome = Union[Success, Failure]


class RequestLifecycle(BaseModel):
    """
    Bookkeeping for one in-flight tool call.

    Only held by the request tracker while the call runs.
    """
    id: UUID = Field(default_factory=uuid4)
    tool_name: str
    server: Optional[str] = None
    started_at: datetime = Field(default_factory=utcnow)
    ended_at: Optional[datetime] = None
    outcome_kind: Optional[str] = None

    @property
    def duration_ms(self) -> Optional[float]:
        if self.ended_at is None:
            return None
        return (self.ended_at - self.started_at).total_seconds() * 1000


class ErrorCategory(str, Enum):
    """Protocol-level error category of a failed tool call."""
    INVALID_PARAMS = "invalid_params"
    METHOD_NOT_FOUND = "method_not_found"
    INTERNAL = "internal"


class ToolError(BaseModel):
    """Structured error reported for a failed tool call."""
    code: int = Field(..., description="JSON-RPC error code")
    category: ErrorCategory
    kind: OutcomeKind
    message: str
    data: dict[str, Any] = Field(default_factory=dict)


class ToolResponse(BaseModel):
    """
    Response to a tool call, as handed back to the transport.

    Exactly one of ``result`` and ``error`` is meaningful.
    """
    tool_name: str
    result: Any = None
    error: Optional[ToolError] = None

    @property
    def is_error(self) -> bool:
        return self.error is not None
