"""Rollout status synthesis."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from bluegreen.contracts.models import (
    BlueGreenStatus,
    ReplicaSet,
    Rollout,
    RolloutCondition,
    RolloutStatus,
)
from bluegreen.contracts.types import (
    ConditionReason,
    ConditionStatus,
    ConditionType,
    VerifyingPreview,
)

AVAILABLE_MESSAGE = "Rollout is serving traffic from the active service."
UNAVAILABLE_MESSAGE = "Rollout is not serving traffic from the active service."

_PROGRESSING_FAILURES = {ConditionReason.INVALID_SPEC, ConditionReason.SERVICE_NOT_FOUND}


def set_condition(
    conditions: Sequence[RolloutCondition],
    condition_type: ConditionType,
    status: ConditionStatus,
    reason: ConditionReason,
    message: str,
    now: datetime,
) -> list[RolloutCondition]:
    """Return ``conditions`` with one condition replaced or appended.

    An identical condition is kept as is. ``lastTransitionTime`` only moves
    when the status flips.
    """
    existing = next((c for c in conditions if c.type == condition_type), None)
    if (
        existing is not None
        and existing.status == status
        and existing.reason == reason.value
        and existing.message == message
    ):
        return list(conditions)
    transition = (
        existing.last_transition_time if existing is not None and existing.status == status else now
    )
    updated = RolloutCondition(
        type=condition_type,
        status=status,
        reason=reason.value,
        message=message,
        last_transition_time=transition,
        last_update_time=now,
    )
    if existing is None:
        return [*conditions, updated]
    return [updated if c.type == condition_type else c for c in conditions]


def progressing_message(
    reason: ConditionReason,
    rollout: Rollout,
    new_rs: ReplicaSet | None,
    pod_hash: str,
) -> str:
    if reason is ConditionReason.SERVICE_NOT_FOUND:
        return f'Active service "{rollout.blue_green.active_service}" not found'
    if new_rs is None:
        return f'Waiting for replica set with pod hash "{pod_hash}"'
    name = new_rs.metadata.name
    if reason is ConditionReason.VERIFYING_PREVIEW:
        return f'Replica set "{name}" is waiting for preview verification'
    if reason is ConditionReason.PREVIEW_SWITCHED:
        return (
            f'Preview service "{rollout.blue_green.preview_service}" switched to '
            f'replica set "{name}"'
        )
    if reason is ConditionReason.NEW_RS_AVAILABLE:
        return f'Replica set "{name}" is serving traffic from the active service'
    return (
        f'Replica set "{name}" has {new_rs.status.available_replicas} of '
        f"{rollout.spec.replicas} replicas available"
    )


def is_serving(replica_sets: Sequence[ReplicaSet], active_fingerprint: str, label_key: str) -> bool:
    """True when the active fingerprint selects a replica set with an available replica."""
    if not active_fingerprint:
        return False
    return any(
        rs.fingerprint(label_key) == active_fingerprint and rs.status.available_replicas > 0
        for rs in replica_sets
    )


def synthesize_status(
    rollout: Rollout,
    replica_sets: Sequence[ReplicaSet],
    new_rs: ReplicaSet | None,
    *,
    pod_hash: str,
    collision_count: int | None,
    step_hash: str,
    active_fingerprint: str,
    preview_fingerprint: str,
    reason: ConditionReason,
    clear_verification: bool,
    label_key: str,
    now: datetime,
) -> RolloutStatus:
    """Fold one reconciliation's decisions into the status it should leave behind.

    ``replica_sets``, ``active_fingerprint`` and ``preview_fingerprint``
    describe the state after the planned operations are applied.
    """
    current = rollout.status
    serving = is_serving(replica_sets, active_fingerprint, label_key)
    conditions = set_condition(
        current.conditions,
        ConditionType.AVAILABLE,
        ConditionStatus.TRUE if serving else ConditionStatus.FALSE,
        ConditionReason.AVAILABLE,
        AVAILABLE_MESSAGE if serving else UNAVAILABLE_MESSAGE,
        now,
    )
    conditions = set_condition(
        conditions,
        ConditionType.PROGRESSING,
        ConditionStatus.FALSE if reason in _PROGRESSING_FAILURES else ConditionStatus.TRUE,
        reason,
        progressing_message(reason, rollout, new_rs, pod_hash),
        now,
    )
    step_index = current.current_step_index if current.current_step_hash == step_hash else None
    verifying = VerifyingPreview.UNSET if clear_verification else current.verifying_preview
    return RolloutStatus(
        current_pod_hash=pod_hash,
        verifying_preview=verifying,
        current_step_index=step_index,
        current_step_hash=step_hash,
        collision_count=collision_count,
        replicas=sum(rs.status.replicas for rs in replica_sets),
        updated_replicas=new_rs.status.replicas if new_rs else 0,
        ready_replicas=new_rs.status.ready_replicas if new_rs else 0,
        available_replicas=new_rs.status.available_replicas if new_rs else 0,
        blue_green=BlueGreenStatus(
            active_selector=active_fingerprint, preview_selector=preview_fingerprint
        ),
        conditions=conditions,
    )


def invalid_spec_status(rollout: Rollout, message: str, now: datetime) -> RolloutStatus:
    """Persisted status with only ``Progressing`` flipped to ``InvalidSpec``."""
    conditions = set_condition(
        rollout.status.conditions,
        ConditionType.PROGRESSING,
        ConditionStatus.FALSE,
        ConditionReason.INVALID_SPEC,
        message,
        now,
    )
    return rollout.status.model_copy(update={"conditions": conditions})
