"""Strapi MCP Server - Tool catalog, write protection, and backend routing.

Exposes Strapi content management as MCP tools. Every call is validated,
checked for explicit write authorization, routed to the named backend
server, and answered with a result or a structured error.
"""

__version__ = "0.1.0"

from strapi_mcp.registry import ConfigError, ServerRegistry
from strapi_mcp.auth import check_authorization
from strapi_mcp.tracking import RequestTracker

__all__ = [
    "__version__",
    "ConfigError",
    "ServerRegistry",
    "check_authorization",
    "RequestTracker",
]
