"""Shared utilities and base classes for the Strapi MCP bridge."""

from shared.models import (
    DispatchOutcome,
    FieldError,
    ServerProfile,
    ToolError,
    ToolResponse,
)
from shared.config import Settings, get_settings
from shared.logging import get_logger, setup_logging

__all__ = [
    "DispatchOutcome",
    "FieldError",
    "ServerProfile",
    "ToolError",
    "ToolResponse",
    "Settings",
    "get_settings",
    "get_logger",
    "setup_logging",
]
