"""Request tracking for tool calls.

Logs the start and end of every tool call and keeps a map of the calls
currently in flight. Entries are added on start and removed on finish;
nothing is kept after a call completes.
"""

from typing import Any, Optional
from uuid import UUID

from shared.logging import get_logger, redact_sensitive
from shared.models import RequestLifecycle, utcnow

logger = get_logger(__name__)


class RequestTracker:
    """
    Lifecycle bookkeeping for in-flight tool calls.

    Each call owns its own key in the active map, so interleaved calls on
    the event loop never touch each other's entries.
    """

    def __init__(
        self,
        enabled: bool = True,
        performance_monitoring: bool = False
    ) -> None:
        self.enabled = enabled
        self.performance_monitoring = performance_monitoring
        self._active: dict[UUID, RequestLifecycle] = {}

    @property
    def active_count(self) -> int:
        return len(self._active)

    def active_ids(self) -> list[UUID]:
        return list(self._active)

    def start(
        self,
        tool_name: str,
        server: Optional[str] = None,
        arguments: Optional[dict[str, Any]] = None
    ) -> RequestLifecycle:
        """
        Record the start of a tool call.

        Args:
            tool_name: Called tool
            server: Target server, when the arguments name one
            arguments: Raw arguments, redacted before logging

        Returns:
            The lifecycle record for this call
        """
        lifecycle = RequestLifecycle(tool_name=tool_name, server=server)
        if not self.enabled:
            return lifecycle

        self._active[lifecycle.id] = lifecycle
        logger.info(
            "Tool call started",
            request_id=str(lifecycle.id),
            tool=tool_name,
            server=server,
            arguments=redact_sensitive(arguments or {}),
            active=len(self._active)
        )
        return lifecycle

    def finish(self, lifecycle: RequestLifecycle, outcome_kind: str) -> RequestLifecycle:
        """
        Record the end of a tool call and drop it from the active map.

        Returns:
            The completed lifecycle record
        """
        lifecycle.ended_at = utcnow()
        lifecycle.outcome_kind = outcome_kind
        if not self.enabled:
            return lifecycle

        self._active.pop(lifecycle.id, None)
        event: dict[str, Any] = {
            "request_id": str(lifecycle.id),
            "tool": lifecycle.tool_name,
            "server": lifecycle.server,
            "outcome": outcome_kind,
        }
        if self.performance_monitoring:
            event["duration_ms"] = round(lifecycle.duration_ms or 0.0, 2)

        if outcome_kind == "success":
            logger.info("Tool call finished", **event)
        else:
            logger.warning("Tool call failed", **event)
        return lifecycle
