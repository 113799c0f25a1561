"""MCP stdio server for the Strapi bridge.

Binds the tool router to the Model Context Protocol: publishes the tool
catalog and prompts, and answers tool calls. Failed calls are raised as
protocol errors with a categorized code.
"""

import argparse
import asyncio
import json
import sys
from typing import Any, Optional

import mcp.types as types
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.shared.exceptions import McpError

from shared.config import Settings, get_settings
from shared.logging import get_logger, setup_logging
from backends.content_schema import ContentSchemaValidator
from backends.dispatcher import BackendDispatcher
from strapi_mcp import __version__
from strapi_mcp.media import MediaPipeline
from strapi_mcp.prompts import PROMPTS, get_prompt
from strapi_mcp.registry import ServerRegistry
from strapi_mcp.router import ToolRouter
from strapi_mcp.tools import TOOLS
from strapi_mcp.tracking import RequestTracker

logger = get_logger(__name__)

SERVER_NAME = "strapi-mcp"


async def build_router(
    settings: Settings,
    registry: Optional[ServerRegistry] = None
) -> ToolRouter:
    """
    Assemble the router and its collaborators from settings.

    Args:
        settings: Application settings
        registry: Pre-built registry; loaded from ``settings.config_path`` when omitted

    Returns:
        A ready-to-use tool router
    """
    if registry is None:
        registry = await ServerRegistry.load(settings.config_path)

    dispatcher = BackendDispatcher(timeout=settings.http_timeout_seconds)
    return ToolRouter(
        registry=registry,
        dispatcher=dispatcher,
        media=MediaPipeline(dispatcher),
        tracker=RequestTracker(
            enabled=settings.request_tracking,
            performance_monitoring=settings.performance_monitoring
        ),
        schema_validator=ContentSchemaValidator(dispatcher) if settings.validate_write_bodies else None,
    )


def tool_definitions() -> list[types.Tool]:
    """Tool catalog in MCP form."""
    return [
        types.Tool(name=spec.name, description=spec.description, inputSchema=spec.input_schema)
        for spec in TOOLS.values()
    ]


class StrapiMCPServer:
    """
    MCP server exposing the Strapi tools.

    Tool calls bypass the SDK's own argument checks: the router's
    validation coerces loosely-typed values that a plain JSON Schema check
    would reject.
    """

    def __init__(self, router: ToolRouter) -> None:
        self.router = router
        self.server = Server(SERVER_NAME, version=__version__)
        self._register_handlers()

    def _register_handlers(self) -> None:
        """Register MCP protocol handlers."""

        @self.server.list_tools()
        async def list_tools() -> list[types.Tool]:
            return tool_definitions()

        @self.server.list_prompts()
        async def list_prompts() -> list[types.Prompt]:
            return [
                types.Prompt(name=prompt.name, description=prompt.description, arguments=[])
                for prompt in PROMPTS.values()
            ]

        @self.server.get_prompt()
        async def get_prompt_handler(
            name: str, arguments: Optional[dict[str, str]]
        ) -> types.GetPromptResult:
            prompt = get_prompt(name)
            if prompt is None:
                raise McpError(types.ErrorData(
                    code=types.INVALID_PARAMS,
                    message=f"Prompt not found: {name}",
                ))
            return types.GetPromptResult(
                description=prompt.description,
                messages=[
                    types.PromptMessage(
                        role="assistant",
                        content=types.TextContent(type="text", text=prompt.text),
                    )
                ],
            )

        self.server.request_handlers[types.CallToolRequest] = self.handle_call_tool

    async def handle_call_tool(self, request: types.CallToolRequest) -> types.ServerResult:
        """
        Answer a ``tools/call`` request.

        Raises:
            McpError: For any failed call, carrying the categorized error code
        """
        response = await self.router.call(request.params.name, request.params.arguments)
        if response.error is not None:
            raise McpError(types.ErrorData(
                code=response.error.code,
                message=response.error.message,
                data=response.error.data,
            ))

        return types.ServerResult(types.CallToolResult(
            content=[types.TextContent(type="text", text=json.dumps(response.result, indent=2))],
        ))

    async def run(self) -> None:
        """Run the server with stdio transport."""
        logger.info("Starting Strapi MCP server (stdio transport)", version=__version__)
        try:
            async with stdio_server() as (read_stream, write_stream):
                await self.server.run(
                    read_stream,
                    write_stream,
                    self.server.create_initialization_options(),
                )
        finally:
            await self.router.aclose()


async def serve_stdio(settings: Settings) -> None:
    router = await build_router(settings)
    await StrapiMCPServer(router).run()


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog=SERVER_NAME, description="Strapi MCP server")
    parser.add_argument("--config", help="Path to the server configuration JSON file")
    parser.add_argument("--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)")
    parser.add_argument("--http", action="store_true", help="Serve the HTTP API instead of stdio")
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the Strapi MCP server."""
    args = parse_args(argv)

    overrides: dict[str, Any] = {}
    if args.config:
        overrides["config_path"] = args.config
    if args.log_level:
        overrides["log_level"] = args.log_level
    settings = get_settings().model_copy(update=overrides) if overrides else get_settings()

    setup_logging(
        settings.log_level,
        json_output=settings.log_json,
        sanitize=settings.sanitize_logs,
        max_length=settings.max_log_length,
    )

    if args.http:
        from strapi_mcp.http_app import serve_http
        serve_http(settings)
        return

    try:
        asyncio.run(serve_stdio(settings))
    except KeyboardInterrupt:
        pass
    except Exception as e:
        logger.critical("Fatal error in MCP server", error=str(e), exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
