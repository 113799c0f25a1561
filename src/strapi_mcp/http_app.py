"""HTTP API for the Strapi bridge - FastAPI Application.

Exposes the same tool router as the MCP server over plain HTTP, for
clients that cannot speak MCP. No logic lives here beyond request and
response mapping.
"""

from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from shared.config import Settings, get_settings
from shared.logging import get_logger
from shared.models import ErrorCategory, OutcomeKind, ToolResponse
from strapi_mcp import __version__
from strapi_mcp.router import ToolRouter
from strapi_mcp.tools import TOOLS, get_tool, list_catalog

logger = get_logger(__name__)


class ToolCallRequest(BaseModel):
    """Request to execute a tool."""
    tool_name: str = Field(..., description="Tool name, e.g. rest-call")
    arguments: dict[str, Any] = Field(default_factory=dict)


class ToolListResponse(BaseModel):
    """List of available tools."""
    tools: list[dict[str, Any]]
    count: int


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    servers: list[str]
    tool_count: int


def status_for(response: ToolResponse) -> int:
    """HTTP status code for a tool response."""
    if response.error is None:
        return status.HTTP_200_OK
    if response.error.category == ErrorCategory.INVALID_PARAMS:
        return status.HTTP_400_BAD_REQUEST
    if response.error.category == ErrorCategory.METHOD_NOT_FOUND:
        return status.HTTP_404_NOT_FOUND
    if response.error.kind in (OutcomeKind.BACKEND, OutcomeKind.TRANSPORT, OutcomeKind.PROCESSING):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def create_app(
    router: Optional[ToolRouter] = None,
    settings: Optional[Settings] = None
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        router: Pre-built router; built from settings at startup when omitted
        settings: Application settings used to build the router

    Returns:
        The application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "router", None) is None:
            from strapi_mcp.server import build_router
            app.state.router = await build_router(settings or get_settings())
        logger.info("HTTP API started", servers=app.state.router.registry.names())

        yield

        logger.info("Shutting down HTTP API")
        await app.state.router.aclose()

    app = FastAPI(
        title="Strapi MCP Bridge",
        description="Strapi tools over HTTP",
        version=__version__,
        lifespan=lifespan
    )
    app.state.router = router

    def get_router(request: Request) -> ToolRouter:
        current = getattr(request.app.state, "router", None)
        if current is None:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Server not initialized"
            )
        return current

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    async def health_check(request: Request):
        """Health check endpoint."""
        current = get_router(request)
        return HealthResponse(
            status="healthy",
            version=__version__,
            servers=current.registry.names(),
            tool_count=len(TOOLS)
        )

    @app.get("/tools", response_model=ToolListResponse, tags=["Tools"])
    async def list_tools():
        """List all available tools with their input schemas."""
        tools = list_catalog()
        return ToolListResponse(tools=tools, count=len(tools))

    @app.get("/tools/{tool_name}", tags=["Tools"])
    async def get_tool_definition(tool_name: str):
        """Get details for a specific tool."""
        spec = get_tool(tool_name)
        if spec is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Tool '{tool_name}' not found"
            )
        return spec.to_catalog_entry()

    @app.post("/execute", tags=["Execution"])
    async def execute_tool(call: ToolCallRequest, request: Request):
        """
        Execute a tool.

        Successful calls return the tool result; failed calls return the
        structured error with a matching HTTP status.
        """
        response = await get_router(request).call(call.tool_name, call.arguments)
        return JSONResponse(
            status_code=status_for(response),
            content=response.model_dump(mode="json")
        )

    return app


def serve_http(settings: Settings) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run(
        create_app(settings=settings),
        host=settings.http_host,
        port=settings.http_port,
    )
