"""Server registry for the Strapi MCP bridge.

Holds the named backend profiles loaded from the configuration document.
The registry is built once at startup and never changes afterwards; it is
passed to the router explicitly.
"""

import json
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from shared.config import DEFAULT_CONFIG_PATH, load_server_config
from shared.logging import get_logger
from shared.models import ServerProfile

logger = get_logger(__name__)

EXAMPLE_ENTRY = {
    "api_url": "http://localhost:1337",
    "api_key": "your-api-token-from-strapi-admin",
}


class ConfigError(Exception):
    """Server configuration is missing or does not contain the requested server."""
    pass


def setup_steps(config_path: Path) -> list[str]:
    return [
        f"Create the directory: mkdir -p {config_path.parent}",
        f"Create the config file: touch {config_path}",
        "Add your server configuration using the example above",
        "Get your API token from Strapi Admin Panel > Settings > API Tokens",
        f"Make sure the file permissions are secure: chmod 600 {config_path}",
    ]


class ServerRegistry:
    """
    Named backend server profiles.

    Responsibilities:
    - Parse configuration entries into profiles
    - Resolve a server name to its profile
    - Describe configured servers for discovery
    """

    def __init__(
        self,
        profiles: Optional[dict[str, ServerProfile]] = None,
        config_path: str | Path = DEFAULT_CONFIG_PATH
    ) -> None:
        self._profiles: dict[str, ServerProfile] = dict(profiles or {})
        self.config_path = Path(config_path).expanduser()

    @classmethod
    def from_config(
        cls,
        document: dict[str, Any],
        config_path: str | Path = DEFAULT_CONFIG_PATH
    ) -> "ServerRegistry":
        """
        Build a registry from a parsed configuration document.

        Malformed entries are skipped with a warning.
        """
        profiles = {}
        for name, entry in document.items():
            if not isinstance(entry, dict):
                logger.warning("Skipping server entry that is not an object", server=name)
                continue
            try:
                profiles[name] = ServerProfile.model_validate({**entry, "name": name})
            except ValidationError as e:
                logger.warning("Skipping invalid server entry", server=name, error=str(e))
        return cls(profiles, config_path)

    @classmethod
    async def load(cls, config_path: str | Path = DEFAULT_CONFIG_PATH) -> "ServerRegistry":
        """
        Load the registry from the configuration file.

        A missing, unreadable or malformed file yields an empty registry;
        every server-scoped call then reports how to set it up.
        """
        path = Path(config_path).expanduser()
        try:
            document = await load_server_config(path)
        except (OSError, ValueError) as e:
            logger.error("Failed to read server configuration", path=str(path), error=str(e))
            document = {}

        registry = cls.from_config(document, path)
        if not registry:
            logger.warning("No servers configured", path=str(path))
        else:
            logger.info("Server configuration loaded", path=str(path), servers=registry.names())
        return registry

    def __len__(self) -> int:
        return len(self._profiles)

    def __contains__(self, name: object) -> bool:
        return name in self._profiles

    def names(self) -> list[str]:
        """List configured server names in configuration order."""
        return list(self._profiles)

    def example_config(self, name: str = "myserver") -> dict[str, Any]:
        return {name: dict(EXAMPLE_ENTRY)}

    def resolve(self, name: str) -> ServerProfile:
        """
        Resolve a server name to its profile.

        Args:
            name: Configured server name

        Returns:
            The server profile

        Raises:
            ConfigError: If no servers are configured or the name is unknown
        """
        if not self._profiles:
            steps = "\n".join(f"{i}. {step}" for i, step in enumerate(setup_steps(self.config_path), 1))
            raise ConfigError(
                "No server configuration found!\n\n"
                f"Please create a configuration file at:\n{self.config_path}\n\n"
                f"Example configuration:\n{json.dumps(self.example_config(), indent=2)}\n\n"
                f"Steps to set up:\n{steps}"
            )

        profile = self._profiles.get(name)
        if profile is None:
            raise ConfigError(
                f"Server \"{name}\" not found in config.\n\n"
                f"Available servers: {', '.join(self._profiles)}\n\n"
                f"To add a new server, edit:\n{self.config_path}\n\n"
                f"Example configuration:\n{json.dumps(self.example_config(name), indent=2)}"
            )
        return profile

    def describe(self) -> dict[str, Any]:
        """Discovery payload listing configured servers, or setup help when empty."""
        if not self._profiles:
            return {
                "error": "No servers configured",
                "help": {
                    "message": "No server configuration found. Please create a configuration file.",
                    "config_path": str(self.config_path),
                    "example_config": self.example_config(),
                    "setup_steps": setup_steps(self.config_path),
                },
            }

        return {
            "servers": [
                {
                    "name": profile.name,
                    "api_url": profile.base_url,
                    "version": profile.version_tag,
                }
                for profile in self._profiles.values()
            ],
            "config_path": str(self.config_path),
            "help": "To add more servers, edit the configuration file at the path shown above.",
        }
