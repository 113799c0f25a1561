"""Tests for shared utilities."""

import pytest
import structlog

from shared.config import Settings, load_server_config
from shared.logging import TruncateValues, call_context, redact_sensitive, sanitize_event
from shared.models import ServerProfile
from shared.schema import attributes_to_schema, validate_schema


class TestLoggingProcessors:
    """Tests for the log sanitizing processors."""

    def test_redacts_nested_credentials(self):
        event = {
            "event": "Tool call started",
            "arguments": {"server": "prod", "headers": {"Authorization": "Bearer t1"}},
            "api_key": "t1",
        }

        cleaned = sanitize_event(None, "info", event)

        assert cleaned["api_key"] == "[REDACTED]"
        assert cleaned["arguments"]["headers"]["Authorization"] == "[REDACTED]"
        assert cleaned["arguments"]["server"] == "prod"

    def test_redacts_inside_lists(self):
        assert redact_sensitive([{"token": "x"}]) == [{"token": "[REDACTED]"}]

    def test_truncates_long_values(self):
        processor = TruncateValues(5)

        event = processor(None, "info", {"event": "short", "body": "abcdefghij"})

        assert event["event"] == "short"
        assert event["body"].startswith("abcde...")
        assert "truncated 5 chars" in event["body"]

    def test_call_context_is_scoped(self):
        with call_context(request_id="abc", tool="rest-call"):
            assert structlog.contextvars.get_contextvars()["request_id"] == "abc"

        assert "request_id" not in structlog.contextvars.get_contextvars()


class TestSettings:
    """Tests for environment settings."""

    def test_env_prefix(self, monkeypatch, tmp_path):
        monkeypatch.setenv("STRAPI_MCP_CONFIG_PATH", str(tmp_path / "servers.json"))
        monkeypatch.setenv("STRAPI_MCP_VALIDATE_WRITE_BODIES", "true")

        settings = Settings()

        assert settings.config_path == tmp_path / "servers.json"
        assert settings.validate_write_bodies is True

    def test_defaults(self):
        settings = Settings()

        assert settings.config_path.name == "strapi-mcp-server.config.json"
        assert settings.http_timeout_seconds == 30.0

    @pytest.mark.asyncio
    async def test_load_empty_file(self, tmp_path):
        config_path = tmp_path / "strapi.json"
        config_path.write_text("   ")

        assert await load_server_config(config_path) == {}

    @pytest.mark.asyncio
    async def test_load_rejects_non_object(self, tmp_path):
        config_path = tmp_path / "strapi.json"
        config_path.write_text('"prod"')

        with pytest.raises(ValueError):
            await load_server_config(config_path)


class TestAttributeSchema:
    """Tests for content-type attribute schemas."""

    def test_required_and_types(self):
        schema = attributes_to_schema({
            "title": {"type": "string", "required": True, "maxLength": 10},
            "views": {"type": "integer"},
            "cover": {"type": "media"},
        })

        assert schema["required"] == ["title"]
        assert schema["properties"]["views"]["type"] == ["integer", "null"]
        assert schema["properties"]["cover"] == {}

    def test_validate_schema_paths(self):
        schema = attributes_to_schema({
            "title": {"type": "string", "required": True, "maxLength": 3},
            "status": {"type": "enumeration", "enum": ["draft", "live"]},
        })

        errors = validate_schema({"title": "too long", "status": "gone"}, schema, root="body.data")

        by_path = {e.path: e for e in errors}
        assert by_path["body.data.title"].code == "custom"
        assert "body.data.status" in by_path

    def test_missing_required_is_invalid_type(self):
        schema = attributes_to_schema({"title": {"type": "string", "required": True}})

        errors = validate_schema({}, schema)

        assert errors[0].path == "(root)"
        assert errors[0].code == "invalid_type"

    def test_partial_schema(self):
        schema = attributes_to_schema({"title": {"type": "string", "required": True}}, enforce_required=False)

        assert validate_schema({}, schema) == []


def test_server_profile_aliases():
    profile = ServerProfile(name="prod", api_url="https://x.test/", api_key="t1")

    assert profile.base_url == "https://x.test"
    assert profile.version_tag == "v4"
