"""Best-effort validation of REST write bodies.

Before a POST or PUT to a collection endpoint, the body can be checked
against the attribute schema the backend reports for that content type.
The check never blocks a call because of its own problems: if the schema
cannot be fetched or understood, the body is passed through unchecked.
"""

from typing import Any, Optional

from jsonschema import SchemaError

from shared.logging import get_logger
from shared.models import FieldError, ServerProfile, Success
from shared.schema import attributes_to_schema, validate_schema
from backends.dispatcher import BackendDispatcher

logger = get_logger(__name__)

CONTENT_TYPES_PATH = "api/content-type-builder/content-types"


def plural_name_for(endpoint: str) -> Optional[str]:
    """Extract the collection name from ``api/<pluralName>[/<id>]``."""
    parts = [p for p in endpoint.strip("/").split("/") if p]
    if len(parts) >= 2 and parts[0] == "api":
        return parts[1]
    return None


def find_attributes(content_types: Any, plural_name: str) -> Optional[dict[str, Any]]:
    """Find the attribute map of the content type with the given pluralName."""
    items = content_types.get("data", []) if isinstance(content_types, dict) else content_types
    for item in items or []:
        schema = item.get("schema") or item.get("info") or {}
        if schema.get("pluralName") == plural_name:
            return schema.get("attributes") or item.get("attributes") or {}
    return None


class ContentSchemaValidator:
    """Checks write bodies against the backend's content-type schema."""

    def __init__(self, dispatcher: BackendDispatcher) -> None:
        self.dispatcher = dispatcher

    async def check(
        self,
        profile: ServerProfile,
        endpoint: str,
        method: str,
        body: dict[str, Any]
    ) -> list[FieldError]:
        """
        Validate a write body.

        Args:
            profile: Target server
            endpoint: REST endpoint being written to
            method: POST (create, required fields enforced) or PUT (partial update)
            body: Request body; the ``data`` wrapper is validated when present

        Returns:
            Field errors found, empty when valid or when the check was skipped
        """
        plural_name = plural_name_for(endpoint)
        if plural_name is None:
            return []

        outcome = await self.dispatcher.dispatch(
            profile, "GET", CONTENT_TYPES_PATH, context="Content-type schema lookup"
        )
        if not isinstance(outcome, Success):
            logger.warning(
                "Schema lookup failed, skipping body validation",
                server=profile.name,
                endpoint=endpoint,
                outcome=outcome.kind.value
            )
            return []

        try:
            attributes = find_attributes(outcome.body, plural_name)
            if attributes is None:
                logger.debug("No content type for endpoint", endpoint=endpoint)
                return []

            schema = attributes_to_schema(attributes, enforce_required=method == "POST")
            if "data" in body:
                return validate_schema(body["data"], schema, root="body.data")
            return validate_schema(body, schema, root="body")
        except (AttributeError, KeyError, TypeError, SchemaError) as e:
            logger.warning("Unusable content-type schema, skipping body validation", error=str(e))
            return []
