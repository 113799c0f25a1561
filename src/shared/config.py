"""Configuration management for the Strapi MCP bridge.

Process settings come from environment variables (and an optional ``.env``
file). The backend server profiles live in a separate JSON document that is
read once at startup.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

import aiofiles
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_PATH = Path.home() / ".mcp" / "strapi-mcp-server.config.json"


class Settings(BaseSettings):
    """Main application settings."""
    config_path: Path = Field(
        default=DEFAULT_CONFIG_PATH,
        description="JSON document mapping server names to connection profiles"
    )

    # Logging
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False)
    request_tracking: bool = Field(default=True)
    performance_monitoring: bool = Field(default=False)
    sanitize_logs: bool = Field(default=True)
    max_log_length: int = Field(default=2000, gt=0)

    # Backend access
    http_timeout_seconds: float = Field(default=30.0, gt=0)
    validate_write_bodies: bool = Field(
        default=False,
        description="Check REST write bodies against the backend content-type schema"
    )

    # Optional HTTP surface
    http_host: str = Field(default="127.0.0.1")
    http_port: int = Field(default=8001)

    model_config = SettingsConfigDict(
        env_prefix="STRAPI_MCP_",
        env_file=".env",
        extra="ignore"
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()


async def load_server_config(path: str | Path) -> dict[str, Any]:
    """
    Load the server profile document.

    Args:
        path: Location of the JSON configuration file

    Returns:
        The parsed document, or an empty dict when the file does not exist

    Raises:
        OSError: If the file exists but cannot be read
        ValueError: If the content is not a JSON object
    """
    path = Path(path).expanduser()
    if not path.exists():
        return {}

    async with aiofiles.open(path, "r", encoding="utf-8") as f:
        content = await f.read()

    if not content.strip():
        return {}

    data = json.loads(content)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object in {path}, got {type(data).__name__}")
    return data
