"""Tests for tool routing, error translation and request tracking."""

import httpx
import pytest

from shared.models import (
    AuthorizationFailure,
    BackendFailure,
    ConfigFailure,
    ErrorCategory,
    InternalFailure,
    OutcomeKind,
    Success,
    UnknownTool,
    ValidationFailure,
)
from backends.content_schema import ContentSchemaValidator
from backends.dispatcher import BackendDispatcher
from strapi_mcp.registry import ServerRegistry
from strapi_mcp.router import ToolRouter, components_pagination
from strapi_mcp.tracking import RequestTracker
from strapi_mcp.translator import translate
from conftest import RecordingBackend

ARTICLE_SCHEMA = {
    "data": [
        {
            "uid": "api::article.article",
            "schema": {
                "singularName": "article",
                "pluralName": "articles",
                "attributes": {
                    "title": {"type": "string", "required": True},
                    "views": {"type": "integer"},
                },
            },
        }
    ]
}


def make_router(backend, config_document=None, **kwargs):
    registry = ServerRegistry.from_config(
        config_document or {"prod": {"api_url": "https://x.test", "api_key": "t1"}}
    )
    dispatcher = BackendDispatcher(client=backend.client())
    return ToolRouter(registry, dispatcher=dispatcher, **kwargs)


class TestToolRouter:
    """Tests for ToolRouter."""

    @pytest.mark.asyncio
    async def test_unknown_tool(self, backend):
        """Test that unknown tools are rejected without any I/O."""
        router = make_router(backend)

        outcome = await router.execute("drop-database", {"server": "prod"})

        assert isinstance(outcome, UnknownTool)
        assert outcome.name == "drop-database"
        assert backend.call_count == 0

    @pytest.mark.asyncio
    async def test_list_servers(self, backend):
        router = make_router(backend)

        outcome = await router.execute("list-servers", {})

        assert isinstance(outcome, Success)
        assert outcome.body["servers"][0]["name"] == "prod"
        assert backend.call_count == 0

    @pytest.mark.asyncio
    async def test_list_servers_empty_registry(self, backend):
        router = ToolRouter(ServerRegistry(), dispatcher=BackendDispatcher(client=backend.client()))

        outcome = await router.execute("list-servers")

        assert isinstance(outcome, Success)
        assert outcome.body["error"] == "No servers configured"

    @pytest.mark.asyncio
    async def test_get_content_types(self, backend):
        """Test the content-type listing request and its usage guide."""
        router = make_router(backend)

        outcome = await router.execute("get-content-types", {"server": "prod"})

        assert isinstance(outcome, Success)
        assert outcome.body["data"] == {"data": []}
        assert "usage_guide" in outcome.body
        request = backend.requests[0]
        assert request.method == "GET"
        assert str(request.url) == "https://x.test/api/content-type-builder/content-types"
        assert request.headers["Authorization"] == "Bearer t1"

    @pytest.mark.asyncio
    async def test_usage_guide_follows_version(self, backend):
        router = make_router(backend, {"cms": {"api_url": "https://x.test", "api_key": "k", "version": "v5"}})

        outcome = await router.execute("get-content-types", {"server": "cms"})

        assert any("documentId" in note for note in outcome.body["usage_guide"]["important_notes"])

    @pytest.mark.asyncio
    async def test_get_components_pagination(self):
        """Test that pagination metadata is derived from the returned items."""
        backend = RecordingBackend(lambda request: httpx.Response(
            200, json={"data": [{"uid": f"shared.c{i}"} for i in range(35)]}
        ))
        router = make_router(backend)

        outcome = await router.execute("get-components", {"server": "prod", "page": "2", "pageSize": 10})

        assert isinstance(outcome, Success)
        assert outcome.body["pagination"] == {"page": 2, "pageSize": 10, "total": 35, "pageCount": 4}
        params = backend.requests[0].url.params
        assert params["pagination[page]"] == "2"
        assert params["pagination[pageSize]"] == "10"

    @pytest.mark.asyncio
    async def test_rest_get(self, backend):
        router = make_router(backend)

        outcome = await router.execute("rest-call", {
            "server": "prod",
            "endpoint": "api/articles",
            "params": {"filters": {"title": {"$contains": "news"}}},
        })

        assert isinstance(outcome, Success)
        request = backend.requests[0]
        assert request.url.path == "/api/articles"
        assert request.url.params["filters[title][$contains]"] == "news"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", ["POST", "PUT", "DELETE"])
    async def test_unauthorized_writes_make_no_requests(self, backend, method):
        """Test that the authorization gate runs before any backend call."""
        router = make_router(backend)

        outcome = await router.execute("rest-call", {
            "server": "prod",
            "endpoint": "api/articles/1",
            "method": method,
            "body": {"data": {"title": "x"}},
        })

        assert isinstance(outcome, AuthorizationFailure)
        assert backend.call_count == 0

    @pytest.mark.asyncio
    async def test_unauthorized_write_to_unknown_server(self, backend):
        """Test that consent is checked before the server is resolved."""
        router = make_router(backend)

        outcome = await router.execute("rest-call", {
            "server": "nowhere", "endpoint": "api/articles", "method": "POST"
        })

        assert isinstance(outcome, AuthorizationFailure)

    @pytest.mark.asyncio
    async def test_get_ignores_authorized_flag(self, backend):
        router = make_router(backend)

        outcome = await router.execute("rest-call", {
            "server": "prod", "endpoint": "api/articles", "authorized": False
        })

        assert isinstance(outcome, Success)
        assert backend.call_count == 1

    @pytest.mark.asyncio
    async def test_authorized_delete_backend_error(self):
        """Test that a backend error status is reported with its code."""
        backend = RecordingBackend(lambda request: httpx.Response(
            404, json={"error": {"message": "Not Found"}}
        ))
        router = make_router(backend)

        outcome = await router.execute("rest-call", {
            "server": "prod", "endpoint": "api/articles/99", "method": "DELETE", "authorized": True
        })

        assert isinstance(outcome, BackendFailure)
        assert outcome.status == 404
        assert "REST request to api/articles/99 failed with status: 404" in outcome.message
        assert backend.call_count == 1

    @pytest.mark.asyncio
    async def test_unknown_server(self, backend):
        router = make_router(backend)

        outcome = await router.execute("get-content-types", {"server": "staging"})

        assert isinstance(outcome, ConfigFailure)
        assert "Available servers: prod" in outcome.message
        assert backend.call_count == 0

    @pytest.mark.asyncio
    async def test_validation_failure(self, backend):
        router = make_router(backend)

        outcome = await router.execute("get-components", {"server": "prod", "page": "abc"})

        assert isinstance(outcome, ValidationFailure)
        assert outcome.field_errors[0].path == "page"
        assert backend.call_count == 0

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_internal_failure(self, backend):
        class ExplodingDispatcher(BackendDispatcher):
            async def dispatch(self, *args, **kwargs):
                raise RuntimeError("boom")

        registry = ServerRegistry.from_config({"prod": {"api_url": "https://x.test", "api_key": "t1"}})
        router = ToolRouter(registry, dispatcher=ExplodingDispatcher(client=backend.client()))

        outcome = await router.execute("get-content-types", {"server": "prod"})

        assert isinstance(outcome, InternalFailure)
        assert "boom" in outcome.message

    @pytest.mark.asyncio
    async def test_upload_media_summary(self, profile):
        def handler(request):
            if request.url.host == "img.test":
                return httpx.Response(200, content=b"raw", headers={"Content-Type": "image/png"})
            return httpx.Response(200, json=[{"id": 12, "name": "cat.png", "url": "/uploads/cat.png"}])

        backend = RecordingBackend(handler)
        router = make_router(backend)

        outcome = await router.execute("upload-media", {
            "server": "prod", "sourceUrl": "https://img.test/cat.png", "authorized": "true"
        })

        assert isinstance(outcome, Success)
        assert outcome.body["success"] is True
        assert outcome.body["usage_guide"]["file_id"] == 12
        assert outcome.body["image_info"]["format"] == "original (unchanged)"
        assert backend.call_count == 2


class TestRequestTracking:
    """Tests for request lifecycle bookkeeping."""

    @pytest.mark.asyncio
    async def test_active_map_is_empty_after_calls(self, backend):
        tracker = RequestTracker()
        router = make_router(backend, tracker=tracker)

        await router.execute("get-content-types", {"server": "prod"})
        await router.execute("get-content-types", {"server": "staging"})
        await router.execute("rest-call", {"server": "prod", "endpoint": "api/a", "method": "PUT"})

        assert tracker.active_count == 0

    def test_tracker_records_duration(self):
        tracker = RequestTracker(performance_monitoring=True)

        lifecycle = tracker.start("rest-call", server="prod", arguments={"api_key": "secret"})
        assert tracker.active_ids() == [lifecycle.id]

        finished = tracker.finish(lifecycle, "success")

        assert tracker.active_count == 0
        assert finished.outcome_kind == "success"
        assert finished.duration_ms is not None

    def test_disabled_tracker_keeps_nothing(self):
        tracker = RequestTracker(enabled=False)

        lifecycle = tracker.start("list-servers")

        assert tracker.active_count == 0
        assert tracker.finish(lifecycle, "success").ended_at is not None


class TestBodyValidation:
    """Tests for the optional content-type body check."""

    @pytest.mark.asyncio
    async def test_invalid_body_is_rejected_before_write(self):
        backend = RecordingBackend(lambda request: httpx.Response(200, json=ARTICLE_SCHEMA))
        dispatcher = BackendDispatcher(client=backend.client())
        router = make_router(backend, schema_validator=ContentSchemaValidator(dispatcher))

        outcome = await router.execute("rest-call", {
            "server": "prod",
            "endpoint": "api/articles",
            "method": "POST",
            "body": {"data": {"views": "many"}},
            "authorized": True,
        })

        assert isinstance(outcome, ValidationFailure)
        paths = {e.path for e in outcome.field_errors}
        assert "body.data" in paths
        assert "body.data.views" in paths
        assert [r.method for r in backend.requests] == ["GET"]

    @pytest.mark.asyncio
    async def test_partial_update_skips_required(self):
        backend = RecordingBackend(lambda request: httpx.Response(200, json=ARTICLE_SCHEMA))
        dispatcher = BackendDispatcher(client=backend.client())
        router = make_router(backend, schema_validator=ContentSchemaValidator(dispatcher))

        outcome = await router.execute("rest-call", {
            "server": "prod",
            "endpoint": "api/articles/1",
            "method": "PUT",
            "body": {"data": {"views": 3}},
            "authorized": True,
        })

        assert isinstance(outcome, Success)
        assert [r.method for r in backend.requests] == ["GET", "PUT"]

    @pytest.mark.asyncio
    async def test_schema_lookup_failure_does_not_block(self):
        """Test that the check fails open when the schema is unavailable."""
        def handler(request):
            if request.method == "GET":
                return httpx.Response(403, json={"error": {"message": "Forbidden"}})
            return httpx.Response(200, json={"data": {"id": 1}})

        backend = RecordingBackend(handler)
        dispatcher = BackendDispatcher(client=backend.client())
        router = make_router(backend, schema_validator=ContentSchemaValidator(dispatcher))

        outcome = await router.execute("rest-call", {
            "server": "prod",
            "endpoint": "api/articles",
            "method": "POST",
            "body": {"data": {"views": "many"}},
            "authorized": True,
        })

        assert isinstance(outcome, Success)
        assert backend.call_count == 2


class TestTranslator:
    """Tests for outcome translation."""

    def test_success(self):
        response = translate("rest-call", Success(body={"data": []}))

        assert not response.is_error
        assert response.result == {"data": []}

    def test_validation_failure(self):
        from shared.models import FieldError

        response = translate("get-components", ValidationFailure(field_errors=[
            FieldError(path="page", message="Expected an integer, received 'abc'", code="custom")
        ]))

        assert response.error.code == -32602
        assert response.error.category == ErrorCategory.INVALID_PARAMS
        assert "page" in response.error.message
        assert response.error.data["field_errors"][0]["code"] == "custom"

    def test_authorization_failure(self):
        response = translate("rest-call", AuthorizationFailure(reason="AUTHORIZATION REQUIRED: no"))

        assert response.error.code == -32602
        assert response.error.data == {"kind": "authorization", "field": "authorized"}

    def test_unknown_tool(self):
        response = translate("nope", UnknownTool(name="nope"))

        assert response.error.code == -32601
        assert response.error.message == "Unknown tool: nope"

    def test_backend_failure(self):
        response = translate("rest-call", BackendFailure(status=500, message="failed"))

        assert response.error.code == -32603
        assert response.error.kind == OutcomeKind.BACKEND
        assert response.error.data["status"] == 500

    def test_config_failure(self):
        response = translate("rest-call", ConfigFailure(message="No server configuration found!"))

        assert response.error.category == ErrorCategory.INVALID_PARAMS


def test_components_pagination_with_list_body():
    assert components_pagination([1, 2, 3], 1, 2) == {"page": 1, "pageSize": 2, "total": 3, "pageCount": 2}
    assert components_pagination({"data": []}, 1, 25)["pageCount"] == 0
