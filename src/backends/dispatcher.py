"""HTTP dispatch against configured Strapi servers.

The dispatcher issues exactly one request per call and turns whatever comes
back (a response or a transport error) into a dispatch outcome. It never
retries and never raises for network or HTTP failures.
"""

from typing import Any, Optional

import httpx

from shared.logging import get_logger
from shared.models import (
    BackendFailure,
    DispatchOutcome,
    ServerProfile,
    Success,
    TransportFailure,
)
from backends.query import encode_query

logger = get_logger(__name__)

BODY_METHODS = {"POST", "PUT"}

STATUS_HINTS = {
    400: (
        "\nHINT: This might be a schema mismatch. Try:\n"
        "1. Use 'get-content-types' to check the latest schema\n"
        "2. Use 'get-components' to verify component structures\n"
        "3. Ensure all required fields are included\n"
        "4. Check field types match the schema"
    ),
    403: (
        "\nHINT: This might be a permissions issue. Check:\n"
        "1. API token permissions\n"
        "2. Content type permissions in the Strapi admin panel"
    ),
    404: (
        "\nHINT: The requested resource might not exist. Try:\n"
        "1. Use 'get-content-types' to list available endpoints\n"
        "2. Check if the content type or component exists\n"
        "3. Verify the endpoint path and id are correct\n"
        "4. REST endpoints use the pluralName from content types "
        "(e.g., 'api/articles' for pluralName: 'articles')"
    ),
}

NAMING_CONVENTIONS = (
    "\n\nNAMING CONVENTIONS:\n"
    "- REST API endpoints use pluralName (e.g., 'api/articles' for pluralName: 'articles')\n"
    "- Use get-content-types to see the correct singularName and pluralName for each type"
)


def build_url(base_url: str, path: str, params: Optional[dict[str, Any]] = None) -> str:
    """Join a server base URL, an endpoint path and encoded query parameters."""
    url = f"{base_url.rstrip('/')}/{path.lstrip('/')}"
    query = encode_query(params)
    if not query:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{query}"


def _error_detail(response: httpx.Response) -> str:
    """Best-effort extraction of the backend's error message."""
    try:
        payload = response.json()
    except ValueError:
        return response.reason_phrase

    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if error:
        return str(error)
    return response.reason_phrase


def describe_http_error(response: httpx.Response, context: str) -> str:
    """
    Build the human-readable message for a failed backend response.

    Args:
        response: The non-2xx response
        context: What was being attempted, e.g. ``REST request to api/articles``

    Returns:
        Message with status, backend detail and static troubleshooting hints
    """
    message = f"{context} failed with status: {response.status_code}"
    detail = _error_detail(response)
    if detail:
        message += f" - {detail}"
    message += STATUS_HINTS.get(response.status_code, "")
    return message + NAMING_CONVENTIONS


class NotJSONError(ValueError):
    """A successful response carried a body that is not JSON."""
    pass


def _parse_body(response: httpx.Response) -> Any:
    """Decode a 2xx body. Empty bodies (e.g. 204 on DELETE) decode to None."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError as e:
        raise NotJSONError(str(e)) from e


class BackendDispatcher:
    """
    Issues HTTP requests against Strapi servers.

    The underlying ``httpx.AsyncClient`` handles connection pooling and
    timeouts; it can be injected for testing.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0
    ) -> None:
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)
            self._owns_client = True
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if this dispatcher created it."""
        if self._client and self._owns_client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def dispatch(
        self,
        profile: ServerProfile,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        body: Optional[dict[str, Any]] = None,
        files: Optional[dict[str, Any]] = None,
        data: Optional[dict[str, Any]] = None,
        context: Optional[str] = None
    ) -> DispatchOutcome:
        """
        Send one request to a backend server.

        Args:
            profile: Target server
            method: HTTP method
            path: Endpoint path relative to the server base URL
            params: Query parameters, encoded with bracket notation
            body: JSON body, only sent for POST and PUT
            files: Multipart file parts; switches the request to multipart
            data: Extra multipart form fields
            context: Description used in error messages

        Returns:
            Success with the parsed body, or a backend/transport failure
        """
        method = method.upper()
        url = build_url(profile.base_url, path, params)
        context = context or f"{method} request to {path}"

        headers = {"Authorization": f"Bearer {profile.credential}"}
        request_kwargs: dict[str, Any] = {}

        if files:
            request_kwargs["files"] = files
            if data:
                request_kwargs["data"] = data
        else:
            headers["Content-Type"] = "application/json"
            if body is not None:
                if method in BODY_METHODS:
                    request_kwargs["json"] = body
                else:
                    logger.warning("Ignoring body for method without payload", method=method, path=path)

        logger.debug("Dispatching backend request", server=profile.name, method=method, url=url)

        client = await self._get_client()
        try:
            response = await client.request(method, url, headers=headers, **request_kwargs)
        except (httpx.RequestError, httpx.InvalidURL) as e:
            logger.warning("Backend request failed", server=profile.name, url=url, error=str(e))
            return TransportFailure(message=f"{context} could not reach {profile.base_url}: {e}")

        if response.is_success:
            try:
                return Success(body=_parse_body(response))
            except NotJSONError:
                content_type = response.headers.get("content-type", "unknown")
                logger.warning(
                    "Backend returned non-JSON body",
                    server=profile.name,
                    url=url,
                    content_type=content_type
                )
                return BackendFailure(
                    status=response.status_code,
                    message=(
                        f"{context} returned a non-JSON response (status: {response.status_code}, "
                        f"content type: {content_type}). Check that api_url points at the Strapi API "
                        "and not at the admin panel or a proxy page."
                    )
                )

        logger.info(
            "Backend returned error status",
            server=profile.name,
            url=url,
            status=response.status_code
        )
        return BackendFailure(
            status=response.status_code,
            message=describe_http_error(response, context)
        )

    async def fetch_bytes(self, url: str) -> tuple[bytes, Optional[str]] | TransportFailure:
        """
        Download raw bytes with a plain GET, without backend credentials.

        Returns:
            Tuple of (content, content type header), or a transport failure
        """
        client = await self._get_client()
        try:
            response = await client.get(url)
        except (httpx.RequestError, httpx.InvalidURL) as e:
            logger.warning("Download failed", url=url, error=str(e))
            return TransportFailure(message=f"Failed to download {url}: {e}")

        if not response.is_success:
            return TransportFailure(
                message=f"Failed to download {url}: {response.status_code} {response.reason_phrase}"
            )
        return response.content, response.headers.get("content-type")
