"""Applies reconciliation results to an object store."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
import logging

from bluegreen.config import ControllerConfig
from bluegreen.contracts.errors import ConflictError, NotFoundError
from bluegreen.contracts.operations import Operation, ReconcileResult
from bluegreen.contracts.types import ObjectKind, OperationKind
from bluegreen.controller.recorder import EventRecorder
from bluegreen.controller.snapshot import load_snapshot
from bluegreen.controller.store import ObjectStore
from bluegreen.observability.metrics import (
    RECONCILE_ISSUES,
    RECONCILE_OPERATIONS,
    SYNC_DURATION,
    SYNC_RETRIES,
)
from bluegreen.observability.telemetry import rollout_span
from bluegreen.reconciler.core import reconcile

logger = logging.getLogger(__name__)


def apply_operation(
    store: ObjectStore, operation: Operation, expected_version: str | None = None
) -> str | None:
    """Write one operation, guarded by the resource version it was planned against.

    Returns the resource version the write left behind, or ``None`` for deletes.
    """
    expected = expected_version or operation.resource_version
    if operation.kind is OperationKind.REMOVE_REPLICA_SET:
        store.delete(operation.object_kind, operation.namespace, operation.name, expected)
        return None
    written = store.patch(
        operation.object_kind,
        operation.namespace,
        operation.name,
        operation.patch or {},
        expected,
    )
    return written.get("metadata", {}).get("resourceVersion")


@dataclass(slots=True)
class RolloutSyncer:
    """Snapshot, reconcile and apply one rollout, retrying on write conflicts."""

    store: ObjectStore
    config: ControllerConfig = field(default_factory=ControllerConfig)
    recorder: EventRecorder = field(default_factory=EventRecorder)
    clock: Callable[[], datetime] | None = None

    def sync(self, namespace: str, name: str) -> ReconcileResult | None:
        """Converge one rollout; ``None`` when the rollout no longer exists.

        Operations are applied in order and the first failed write abandons the
        rest. Conflicts and objects vanishing mid-write restart from a fresh
        snapshot; anything else propagates to the caller.
        """
        with rollout_span("bluegreen.syncer", "rollout.sync", namespace, name) as span:
            attempt = 0
            while True:
                try:
                    with SYNC_DURATION.labels(stage="snapshot").time():
                        snapshot = load_snapshot(self.store, namespace, name)
                except NotFoundError as exc:
                    if exc.kind is not ObjectKind.ROLLOUT:
                        raise
                    logger.info(
                        "rollout.gone", extra={"extra": {"rollout": f"{namespace}/{name}"}}
                    )
                    return None
                with SYNC_DURATION.labels(stage="reconcile").time():
                    result = reconcile(
                        snapshot, self.config, now=self.clock() if self.clock else None
                    )
                try:
                    with SYNC_DURATION.labels(stage="apply").time():
                        self._apply(namespace, name, result.operations)
                except (ConflictError, NotFoundError) as exc:
                    if attempt >= self.config.max_conflict_retries:
                        raise
                    attempt += 1
                    SYNC_RETRIES.labels(error=type(exc).__name__).inc()
                    logger.warning(
                        "rollout.sync.retry",
                        extra={
                            "extra": {
                                "rollout": f"{namespace}/{name}",
                                "attempt": attempt,
                                "error": str(exc),
                            }
                        },
                    )
                    continue
                for issue in result.issues:
                    RECONCILE_ISSUES.labels(reason=issue.reason.value).inc()
                    self.recorder.issue_found(namespace, name, issue)
                span.set_attribute("operations", len(result.operations))
                span.set_attribute("attempts", attempt + 1)
                return result

    def _apply(self, namespace: str, name: str, operations: list[Operation]) -> None:
        # Later writes to an object we already patched must see our own version.
        versions: dict[tuple[ObjectKind, str], str | None] = {}
        for operation in operations:
            key = (operation.object_kind, operation.name)
            versions[key] = apply_operation(self.store, operation, versions.get(key))
            RECONCILE_OPERATIONS.labels(kind=operation.kind.value).inc()
            self.recorder.operation_applied(namespace, name, operation)
