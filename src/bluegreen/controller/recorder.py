"""Event recording helper."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
import logging

from bluegreen.contracts.operations import Operation, ReconcileIssue
from bluegreen.contracts.types import EventType

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RolloutEvent:
    """Audit record attached to a rollout."""

    type: EventType
    reason: str
    message: str
    namespace: str
    rollout: str


@dataclass(slots=True)
class EventRecorder:
    """Records rollout events and forwards them to an optional sink."""

    sink: Callable[[RolloutEvent], None] | None = None
    events: list[RolloutEvent] = field(default_factory=list)

    def record(
        self, namespace: str, rollout: str, event_type: EventType, reason: str, message: str
    ) -> RolloutEvent:
        event = RolloutEvent(
            type=event_type, reason=reason, message=message, namespace=namespace, rollout=rollout
        )
        self.events.append(event)
        log = logger.warning if event_type is EventType.WARNING else logger.info
        log(
            "rollout.event",
            extra={
                "extra": {
                    "rollout": f"{namespace}/{rollout}",
                    "type": event_type.value,
                    "reason": reason,
                    "message": message,
                }
            },
        )
        if self.sink is not None:
            self.sink(event)
        return event

    def operation_applied(self, namespace: str, rollout: str, operation: Operation) -> None:
        self.record(namespace, rollout, EventType.NORMAL, operation.kind.value, operation.message)

    def issue_found(self, namespace: str, rollout: str, issue: ReconcileIssue) -> None:
        self.record(namespace, rollout, EventType.WARNING, issue.reason.value, issue.message)

    def reasons(self) -> list[str]:
        return [event.reason for event in self.events]
