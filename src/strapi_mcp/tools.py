"""Tool request models and the tool catalog.

Each tool has exactly one pydantic model. The model validates and
normalizes incoming arguments, and the catalog's JSON Schema is generated
from it, so the advertised schema and the call-time checks cannot drift.
"""

from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import AnyHttpUrl, BaseModel, BeforeValidator, ConfigDict, Field, StrictBool

from shared.schema import model_input_schema


def coerce_int(value: Any) -> Any:
    """Accept integers and numeric-looking strings for integer fields."""
    if isinstance(value, bool):
        raise ValueError(f"Expected an integer, received boolean {value!r}")
    if isinstance(value, str):
        text = value.strip()
        digits = text[1:] if text[:1] in ("+", "-") else text
        if digits.isdecimal():
            return int(text)
        raise ValueError(f"Expected an integer, received {value!r}")
    return value


def coerce_bool(value: Any) -> Any:
    """Accept ``"true"``/``"false"`` strings for boolean fields."""
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ("true", "false"):
            return text == "true"
        raise ValueError(f"Expected true or false, received {value!r}")
    return value


def coerce_upper(value: Any) -> Any:
    return value.strip().upper() if isinstance(value, str) else value


def coerce_lower(value: Any) -> Any:
    return value.strip().lower() if isinstance(value, str) else value


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


MUTATING_METHODS = {HttpMethod.POST, HttpMethod.PUT, HttpMethod.DELETE}


class ImageFormat(str, Enum):
    JPEG = "jpeg"
    PNG = "png"
    WEBP = "webp"
    ORIGINAL = "original"


CoercedInt = Annotated[int, BeforeValidator(coerce_int)]
CoercedBool = Annotated[StrictBool, BeforeValidator(coerce_bool)]
MethodField = Annotated[HttpMethod, BeforeValidator(coerce_upper)]
FormatField = Annotated[ImageFormat, BeforeValidator(coerce_lower)]


class ToolRequest(BaseModel):
    """Base class for validated tool arguments."""
    model_config = ConfigDict(extra="forbid", frozen=True)


class ServerScopedRequest(ToolRequest):
    server: str = Field(..., min_length=1, description="The name of the server to connect to")


class ListServersRequest(ToolRequest):
    pass


class GetContentTypesRequest(ServerScopedRequest):
    pass


class GetComponentsRequest(ServerScopedRequest):
    page: CoercedInt = Field(default=1, ge=1, description="Page number (starts at 1)")
    page_size: CoercedInt = Field(default=25, ge=1, alias="pageSize", description="Number of items per page")


class RestCallRequest(ServerScopedRequest):
    endpoint: str = Field(
        ...,
        min_length=1,
        description="The API endpoint (e.g., 'api/articles'). Check get-content-types first to see available endpoints."
    )
    method: MethodField = Field(
        default=HttpMethod.GET,
        description="HTTP method to use. POST, PUT and DELETE modify data and require authorized: true."
    )
    params: Optional[dict[str, Any]] = Field(
        default=None,
        description="Query parameters (filters, sort, populate, pagination). Nested objects are sent in bracket notation."
    )
    body: Optional[dict[str, Any]] = Field(
        default=None,
        description="Request body for POST/PUT requests. For updates, include ALL existing fields to prevent data loss."
    )
    authorized: CoercedBool = Field(
        default=False,
        description="Must be true for POST, PUT and DELETE, and only after the user explicitly approved the change."
    )

    @property
    def is_mutating(self) -> bool:
        return self.method in MUTATING_METHODS


class MediaMetadata(BaseModel):
    name: Optional[str] = Field(default=None, description="Name of the file")
    caption: Optional[str] = Field(default=None, description="Caption for the image")
    alt_text: Optional[str] = Field(default=None, alias="altText", description="Alternative text for accessibility")
    description: Optional[str] = Field(default=None, description="Detailed description of the image")

    model_config = ConfigDict(extra="forbid", frozen=True)


class UploadMediaRequest(ServerScopedRequest):
    source_url: AnyHttpUrl = Field(..., alias="sourceUrl", description="URL of the image to upload")
    format: FormatField = Field(
        default=ImageFormat.ORIGINAL,
        description="Target format for the image. Use 'original' to keep the source format."
    )
    quality: CoercedInt = Field(default=80, ge=1, le=100, description="Image quality (1-100). Only applies when converting formats.")
    metadata: Optional[MediaMetadata] = Field(default=None, description="Optional file information")
    authorized: CoercedBool = Field(
        default=False,
        description="Must be true, and only after the user explicitly approved the upload."
    )


class ToolSpec(BaseModel):
    """Catalog entry for one tool."""
    name: str
    description: str
    request_model: type[ToolRequest]
    mutating: bool = False

    model_config = ConfigDict(frozen=True)

    @property
    def input_schema(self) -> dict[str, Any]:
        return model_input_schema(self.request_model)

    def to_catalog_entry(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


LIST_SERVERS = "list-servers"
GET_CONTENT_TYPES = "get-content-types"
GET_COMPONENTS = "get-components"
REST_CALL = "rest-call"
UPLOAD_MEDIA = "upload-media"

TOOLS: dict[str, ToolSpec] = {
    spec.name: spec
    for spec in (
        ToolSpec(
            name=LIST_SERVERS,
            description="List all available Strapi servers from the configuration.",
            request_model=ListServersRequest,
        ),
        ToolSpec(
            name=GET_CONTENT_TYPES,
            description=(
                "Get all content types from Strapi. Returns the complete schema of all "
                "content types, with a usage guide for building REST endpoints."
            ),
            request_model=GetContentTypesRequest,
        ),
        ToolSpec(
            name=GET_COMPONENTS,
            description=(
                "Get all components from Strapi with pagination support. Returns both "
                "component data and pagination metadata (page, pageSize, total, pageCount)."
            ),
            request_model=GetComponentsRequest,
        ),
        ToolSpec(
            name=REST_CALL,
            description=(
                "Execute REST API requests against Strapi endpoints. WRITE PROTECTION: POST, PUT "
                "and DELETE require authorized: true, which may only be set after the user has "
                "seen the exact change and explicitly approved it. To prevent data loss on updates, "
                "first GET the complete current data, merge your changes, and send the complete "
                "object back. Use get-content-types and get-components first to understand the "
                "available fields. Example: { endpoint: 'api/articles', params: { filters: "
                "{ title: { $contains: 'test' } } } }."
            ),
            request_model=RestCallRequest,
            mutating=True,
        ),
        ToolSpec(
            name=UPLOAD_MEDIA,
            description=(
                "Upload media to Strapi's media library from a URL with format conversion, "
                "quality control, and metadata options. Always requires authorized: true after "
                "explicit user approval. Returns the uploaded file information including the ID "
                "for linking it to entries with rest-call."
            ),
            request_model=UploadMediaRequest,
            mutating=True,
        ),
    )
}


def get_tool(name: str) -> Optional[ToolSpec]:
    return TOOLS.get(name)


def list_catalog() -> list[dict[str, Any]]:
    """Catalog of all tools in the shape MCP clients expect."""
    return [spec.to_catalog_entry() for spec in TOOLS.values()]
