"""
Audit Trail

Allowed, state-changing operations emit an AuditEvent to an AuditSink.
Delivery is fire-and-forget: a failing sink is logged and ignored, it
never fails the request that produced the event.

The default sink writes to the application log. A real transport
(Retraced, a SIEM, a queue) only has to implement send().
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Protocol

from teamkit.core.access import AccessDecision
from teamkit.core.permissions import Action, Resource
from teamkit.utils.logging import get_logger

logger = get_logger(__name__)

CRUD_CODES = {
    Action.CREATE: "c",
    Action.READ: "r",
    Action.UPDATE: "u",
    Action.DELETE: "d",
    Action.LEAVE: "d",
}


@dataclass(frozen=True)
class AuditEvent:
    action: str
    resource: Resource
    crud: str
    actor_id: str
    team_id: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class AuditSink(Protocol):
    def send(self, event: AuditEvent) -> None:
        ...


class LoggingAuditSink:
    """Writes audit events to the application log."""

    def __init__(self, audit_logger=None):
        self.logger = audit_logger or get_logger("teamkit.audit")

    def send(self, event: AuditEvent) -> None:
        self.logger.info(
            f"AUDIT: {event.action}",
            extra={
                "event_type": "audit",
                "action": event.action,
                "resource": event.resource.value,
                "actor_id": event.actor_id,
                "team_id": event.team_id,
            }
        )


class MemoryAuditSink:
    """Keeps events in a list. Handy for tests and local debugging."""

    def __init__(self):
        self.events: List[AuditEvent] = []

    def send(self, event: AuditEvent) -> None:
        self.events.append(event)


class AuditTrail:
    """Builds audit events from allowed decisions and hands them to a sink."""

    def __init__(self, sink: AuditSink, enabled: bool = True):
        self.sink = sink
        self.enabled = enabled

    def record(self, decision: AccessDecision, action: str, crud: Optional[str] = None) -> Optional[AuditEvent]:
        """
        Emit an event for an allowed operation.

        crud defaults to the code for the decision's action; pass it
        explicitly when the audited change differs from the check (for
        example joining a team, checked as a read).

        Returns the event, or None when auditing is disabled or the sink
        failed.
        """
        if not self.enabled:
            return None
        if not decision.allowed:
            raise ValueError("Only allowed operations are audited")

        event = AuditEvent(
            action=action,
            resource=decision.resource,
            crud=crud or CRUD_CODES[decision.action],
            actor_id=decision.actor_id,
            team_id=decision.team_id,
        )

        try:
            self.sink.send(event)
        except Exception:
            logger.warning(
                f"Audit sink failed for {action}",
                exc_info=True,
                extra={"team_id": decision.team_id, "actor_id": decision.actor_id}
            )
            return None

        return event
