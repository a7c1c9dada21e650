"""Promotion decision for the active service."""

from __future__ import annotations

from dataclasses import dataclass

from bluegreen.contracts.models import ReplicaSet, Service
from bluegreen.contracts.types import ConditionReason


@dataclass(frozen=True, slots=True)
class PromotionDecision:
    """Whether to repoint the active service, and at what."""

    promote: bool
    target_fingerprint: str
    reason: ConditionReason
    clear_verification: bool = False


def is_saturated(replica_set: ReplicaSet, desired_replicas: int) -> bool:
    """True when the replica set runs the full desired count, all available."""
    return (
        replica_set.spec.replicas == desired_replicas
        and replica_set.status.available_replicas >= desired_replicas
    )


def decide_promotion(
    new_rs: ReplicaSet | None,
    active_service: Service | None,
    gate_withheld: bool,
    desired_replicas: int,
    *,
    label_key: str,
    preview_switched: bool = False,
) -> PromotionDecision:
    """Decide whether the active service moves to ``new_rs`` in this pass.

    A preview service repointed in the same pass holds promotion back one pass
    so the new replica set can be verified before it takes active traffic.
    """
    current = active_service.fingerprint(label_key) if active_service else ""
    if new_rs is None:
        return PromotionDecision(False, current, ConditionReason.NEW_RS_PENDING)
    new_hash = new_rs.fingerprint(label_key)
    if current == new_hash:
        return PromotionDecision(
            False, current, ConditionReason.NEW_RS_AVAILABLE, clear_verification=True
        )
    if gate_withheld:
        return PromotionDecision(False, current, ConditionReason.VERIFYING_PREVIEW)
    if active_service is None:
        return PromotionDecision(False, current, ConditionReason.SERVICE_NOT_FOUND)
    if not is_saturated(new_rs, desired_replicas):
        return PromotionDecision(False, current, ConditionReason.RS_UPDATED)
    if preview_switched:
        return PromotionDecision(False, current, ConditionReason.PREVIEW_SWITCHED)
    return PromotionDecision(
        True, new_hash, ConditionReason.NEW_RS_AVAILABLE, clear_verification=True
    )
