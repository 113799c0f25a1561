"""Tool Router for the Strapi MCP bridge.

Routes tool calls to their handlers. This is the call-handling boundary:
every call ends in exactly one response, and no error escapes to the
transport as an exception.
"""

import math
from typing import Any, Awaitable, Callable, Optional

from shared.logging import call_context, get_logger
from shared.models import (
    ConfigFailure,
    DispatchOutcome,
    FieldError,
    InternalFailure,
    ServerProfile,
    Success,
    ToolResponse,
    UnknownTool,
    ValidationFailure,
)
from backends.content_schema import ContentSchemaValidator
from backends.dispatcher import BackendDispatcher
from strapi_mcp.media import MediaPipeline
from strapi_mcp.registry import ConfigError, ServerRegistry
from strapi_mcp.tools import (
    GET_COMPONENTS,
    GET_CONTENT_TYPES,
    LIST_SERVERS,
    REST_CALL,
    UPLOAD_MEDIA,
    GetComponentsRequest,
    GetContentTypesRequest,
    HttpMethod,
    ListServersRequest,
    RestCallRequest,
    ToolRequest,
    UploadMediaRequest,
    get_tool,
)
from strapi_mcp.tracking import RequestTracker
from strapi_mcp.translator import translate
from strapi_mcp.validation import validate_arguments

logger = get_logger(__name__)

CONTENT_TYPES_PATH = "api/content-type-builder/content-types"
COMPONENTS_PATH = "api/content-type-builder/components"

Handler = Callable[[Any], Awaitable[DispatchOutcome]]


def content_types_usage_guide(version_tag: str) -> dict[str, Any]:
    """Guidance attached to the content-type listing."""
    guide: dict[str, Any] = {
        "naming_conventions": {
            "rest_api": "Use pluralName for REST API endpoints (e.g., 'api/articles' for pluralName: 'articles')",
        },
        "examples": {
            "rest": {
                "collection": "GET /api/{pluralName}",
                "single": "GET /api/{pluralName}/{id}",
                "create": "POST /api/{pluralName}",
                "update": "PUT /api/{pluralName}/{id}",
                "delete": "DELETE /api/{pluralName}/{id}",
            },
        },
        "important_notes": [
            "Always check singularName and pluralName in the schema for correct endpoint names",
            "REST endpoints always start with 'api/'",
            "For updates, always fetch current data first and include ALL fields in the update",
            "POST, PUT and DELETE require authorized: true after explicit user approval",
        ],
    }
    if version_tag == "v5":
        guide["important_notes"].extend([
            "Strapi 5: entries are addressed by documentId instead of id",
            "Strapi 5: responses are flat, without the data.attributes wrapper",
        ])
    else:
        guide["important_notes"].append(
            "Strapi 4: entry fields are nested under data.attributes in responses"
        )
    return guide


def components_pagination(body: Any, page: int, page_size: int) -> dict[str, int]:
    """Pagination metadata for a component listing."""
    items = body.get("data") if isinstance(body, dict) else body
    total = len(items) if isinstance(items, list) else 0
    return {
        "page": page,
        "pageSize": page_size,
        "total": total,
        "pageCount": math.ceil(total / page_size),
    }


def upload_summary(body: Any, request: UploadMediaRequest) -> dict[str, Any]:
    """Result payload for a successful media upload."""
    uploaded = body[0] if isinstance(body, list) and body and isinstance(body[0], dict) else {}
    converted = request.format.value != "original"
    file_id = uploaded.get("id")
    return {
        "success": True,
        "data": body,
        "image_info": {
            "format": request.format.value if converted else "original (unchanged)",
            "quality": request.quality if converted else "original (unchanged)",
            "filename": uploaded.get("name"),
            "size": uploaded.get("size"),
            "mime": uploaded.get("mime"),
        },
        "usage_guide": {
            "file_id": file_id,
            "url": uploaded.get("url"),
            "how_to_use": {
                "rest_api": "Use the file ID in your content type's media field",
                "example": f"PUT /api/{{pluralName}}/{{id}} with body: {{ data: {{ image: {file_id} }} }}",
            },
        },
    }


class ToolRouter:
    """
    Routes tool calls to their handlers.

    Responsibilities:
    - Validate arguments (including the write-authorization gate)
    - Resolve the target server
    - Run the tool handler
    - Translate the outcome and track the request
    """

    def __init__(
        self,
        registry: ServerRegistry,
        dispatcher: Optional[BackendDispatcher] = None,
        media: Optional[MediaPipeline] = None,
        tracker: Optional[RequestTracker] = None,
        schema_validator: Optional[ContentSchemaValidator] = None
    ) -> None:
        self.registry = registry
        self.dispatcher = dispatcher or BackendDispatcher()
        self.media = media or MediaPipeline(self.dispatcher)
        self.tracker = tracker or RequestTracker()
        self.schema_validator = schema_validator
        self._handlers: dict[str, Handler] = {
            LIST_SERVERS: self._list_servers,
            GET_CONTENT_TYPES: self._get_content_types,
            GET_COMPONENTS: self._get_components,
            REST_CALL: self._rest_call,
            UPLOAD_MEDIA: self._upload_media,
        }

    async def call(self, tool_name: str, arguments: Any = None) -> ToolResponse:
        """
        Handle one tool call from the transport.

        Args:
            tool_name: Name of the called tool
            arguments: Raw arguments

        Returns:
            The translated response
        """
        outcome = await self.execute(tool_name, arguments)
        return translate(tool_name, outcome)

    async def execute(self, tool_name: str, arguments: Any = None) -> DispatchOutcome:
        """
        Run a tool call and return its outcome without translating it.

        Unknown tools are rejected before anything else happens.
        """
        spec = get_tool(tool_name)
        if spec is None:
            logger.warning("Unknown tool requested", tool=tool_name)
            return UnknownTool(name=tool_name)

        server = arguments.get("server") if isinstance(arguments, dict) else None
        lifecycle = self.tracker.start(
            tool_name,
            server=server if isinstance(server, str) else None,
            arguments=arguments if isinstance(arguments, dict) else None
        )
        outcome: DispatchOutcome = InternalFailure(message="Tool call did not complete")
        with call_context(request_id=str(lifecycle.id), tool=tool_name):
            try:
                validated = validate_arguments(spec, arguments)
                if not isinstance(validated, ToolRequest):
                    outcome = validated
                else:
                    outcome = await self._handlers[spec.name](validated)
            except ConfigError as e:
                outcome = ConfigFailure(message=str(e))
            except Exception as e:
                logger.error("Tool execution failed", error=str(e), exc_info=True)
                outcome = InternalFailure(message=f"Unexpected error while running {tool_name}: {e}")
            finally:
                self.tracker.finish(lifecycle, outcome.kind.value)
        return outcome

    async def _list_servers(self, request: ListServersRequest) -> DispatchOutcome:
        return Success(body=self.registry.describe())

    async def _get_content_types(self, request: GetContentTypesRequest) -> DispatchOutcome:
        profile = self.registry.resolve(request.server)
        outcome = await self.dispatcher.dispatch(
            profile, "GET", CONTENT_TYPES_PATH, context="Content type listing"
        )
        if not isinstance(outcome, Success):
            return outcome
        return Success(body={
            "data": outcome.body,
            "usage_guide": content_types_usage_guide(profile.version_tag),
        })

    async def _get_components(self, request: GetComponentsRequest) -> DispatchOutcome:
        profile = self.registry.resolve(request.server)
        outcome = await self.dispatcher.dispatch(
            profile,
            "GET",
            COMPONENTS_PATH,
            params={"pagination": {"page": request.page, "pageSize": request.page_size}},
            context="Component listing"
        )
        if not isinstance(outcome, Success):
            return outcome
        return Success(body={
            "data": outcome.body,
            "pagination": components_pagination(outcome.body, request.page, request.page_size),
        })

    async def _rest_call(self, request: RestCallRequest) -> DispatchOutcome:
        profile = self.registry.resolve(request.server)

        if (
            self.schema_validator is not None
            and request.body is not None
            and request.method in (HttpMethod.POST, HttpMethod.PUT)
        ):
            errors = await self._check_body(profile, request)
            if errors:
                return ValidationFailure(field_errors=errors)

        return await self.dispatcher.dispatch(
            profile,
            request.method.value,
            request.endpoint,
            params=request.params,
            body=request.body,
            context=f"REST request to {request.endpoint}"
        )

    async def _check_body(self, profile: ServerProfile, request: RestCallRequest) -> list[FieldError]:
        return await self.schema_validator.check(
            profile, request.endpoint, request.method.value, request.body
        )

    async def _upload_media(self, request: UploadMediaRequest) -> DispatchOutcome:
        profile = self.registry.resolve(request.server)
        outcome = await self.media.upload_from_url(profile, request)
        if not isinstance(outcome, Success):
            return outcome
        return Success(body=upload_summary(outcome.body, request))

    async def aclose(self) -> None:
        await self.dispatcher.aclose()
