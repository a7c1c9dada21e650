"""Blue-green reconciliation: one snapshot in, ordered operations out."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
import logging

from bluegreen.config import ControllerConfig
from bluegreen.contracts.models import BlueGreenStrategy, RolloutSnapshot, RolloutStatus
from bluegreen.contracts.operations import (
    Operation,
    ReconcileIssue,
    ReconcileResult,
    ReplicaSetRemoval,
    RolloutStatusPatch,
)
from bluegreen.contracts.types import (
    ConditionReason,
    IssueReason,
    ObjectKind,
    ServiceRole,
)
from bluegreen.reconciler.gate import must_withhold_promotion
from bluegreen.reconciler.hashing import (
    TemplateHasher,
    classify,
    compute_pod_template_hash,
    compute_step_hash,
    resolve_pod_hash,
)
from bluegreen.reconciler.promotion import decide_promotion
from bluegreen.reconciler.scaledown import plan_scale_down, resolve_history_limit
from bluegreen.reconciler.selectors import reconcile_selector
from bluegreen.reconciler.status import invalid_spec_status, synthesize_status

logger = logging.getLogger(__name__)


def validate_snapshot(snapshot: RolloutSnapshot) -> list[ReconcileIssue]:
    """Configuration problems and services missing from the snapshot."""
    rollout = snapshot.rollout
    strategy = rollout.blue_green
    issues: list[ReconcileIssue] = []
    if not strategy.active_service:
        issues.append(
            ReconcileIssue(
                reason=IssueReason.INVALID_CONFIGURATION,
                message="spec.strategy.blueGreen.activeService must be set",
                object_kind=ObjectKind.ROLLOUT,
                name=rollout.metadata.name,
            )
        )
    elif strategy.active_service == strategy.preview_service:
        issues.append(
            ReconcileIssue(
                reason=IssueReason.INVALID_CONFIGURATION,
                message=(
                    f'Active and preview service cannot both be "{strategy.active_service}"'
                ),
                object_kind=ObjectKind.ROLLOUT,
                name=rollout.metadata.name,
            )
        )
    if issues:
        return issues
    for name, service in (
        (strategy.active_service, snapshot.active_service),
        (strategy.preview_service, snapshot.preview_service),
    ):
        if name and service is None:
            issues.append(
                ReconcileIssue(
                    reason=IssueReason.NOT_FOUND,
                    message=f'Service "{name}" not found',
                    object_kind=ObjectKind.SERVICE,
                    name=name,
                )
            )
    return issues


def reconcile(
    snapshot: RolloutSnapshot,
    config: ControllerConfig | None = None,
    *,
    now: datetime | None = None,
    hasher: TemplateHasher = compute_pod_template_hash,
    step_hasher: Callable[[BlueGreenStrategy], str] = compute_step_hash,
) -> ReconcileResult:
    """Compute the writes converging ``snapshot`` toward its blue-green target.

    Operations come back in apply order: preview selector, active selector,
    scale-down intent, removals, status. A pass that repoints the preview
    service never repoints the active one. The snapshot is never modified.
    """
    config = config or ControllerConfig()
    now = (now or datetime.now(timezone.utc)).replace(microsecond=0)
    rollout = snapshot.rollout
    label_key = config.unique_label_key
    issues = validate_snapshot(snapshot)

    invalid = [issue for issue in issues if issue.reason is IssueReason.INVALID_CONFIGURATION]
    if invalid:
        status = invalid_spec_status(rollout, "; ".join(i.message for i in invalid), now)
        return _finish(snapshot, status, [], issues)

    pod_hash, collision_count = resolve_pod_hash(
        rollout,
        snapshot.replica_sets,
        label_key=label_key,
        annotation_key=config.desired_replicas_annotation,
        hasher=hasher,
    )
    new_rs, old_rss = classify(snapshot.replica_sets, pod_hash, label_key)
    operations: list[Operation] = []

    preview = snapshot.preview_service
    preview_fingerprint = preview.fingerprint(label_key) if preview else ""
    preview_switched = False
    if new_rs is not None:
        preview_patch = reconcile_selector(
            preview, new_rs.fingerprint(label_key), ServiceRole.PREVIEW, label_key=label_key
        )
        if preview_patch is not None:
            operations.append(preview_patch)
            preview_fingerprint = preview_patch.fingerprint
            preview_switched = True

    active = snapshot.active_service
    withheld = must_withhold_promotion(rollout, active, label_key=label_key)
    decision = decide_promotion(
        new_rs,
        active,
        withheld,
        rollout.spec.replicas,
        label_key=label_key,
        preview_switched=preview_switched,
    )
    if decision.promote:
        active_patch = reconcile_selector(
            active, decision.target_fingerprint, ServiceRole.ACTIVE, label_key=label_key
        )
        if active_patch is not None:
            operations.append(active_patch)

    reason = decision.reason
    if active is None:
        # Without the active service the serving replica set is unknown.
        reason = ConditionReason.SERVICE_NOT_FOUND
    else:
        operations.extend(
            plan_scale_down(
                old_rss,
                decision.target_fingerprint,
                resolve_history_limit(
                    rollout.spec.revision_history_limit, config.default_revision_history_limit
                ),
                label_key=label_key,
                annotation_key=config.desired_replicas_annotation,
            )
        )

    removed = {op.name for op in operations if isinstance(op, ReplicaSetRemoval)}
    status = synthesize_status(
        rollout,
        [rs for rs in snapshot.replica_sets if rs.metadata.name not in removed],
        new_rs,
        pod_hash=pod_hash,
        collision_count=collision_count,
        step_hash=step_hasher(rollout.blue_green),
        active_fingerprint=decision.target_fingerprint,
        preview_fingerprint=preview_fingerprint,
        reason=reason,
        clear_verification=decision.clear_verification,
        label_key=label_key,
        now=now,
    )
    return _finish(snapshot, status, operations, issues)


def _finish(
    snapshot: RolloutSnapshot,
    status: RolloutStatus,
    operations: list[Operation],
    issues: list[ReconcileIssue],
) -> ReconcileResult:
    rollout = snapshot.rollout
    if status != rollout.status:
        operations.append(RolloutStatusPatch.build(rollout, rollout.status, status))
    result = ReconcileResult(status=status, operations=operations, issues=issues)
    logger.info(
        "rollout.reconciled",
        extra={
            "extra": {
                "rollout": f"{rollout.metadata.namespace}/{rollout.metadata.name}",
                "operations": [op.kind.value for op in operations],
                "issues": [issue.reason.value for issue in issues],
            }
        },
    )
    return result
