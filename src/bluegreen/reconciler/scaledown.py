"""Scale-down planning for superseded replica sets."""

from __future__ import annotations

from collections.abc import Sequence
import logging

from bluegreen.contracts.models import ReplicaSet
from bluegreen.contracts.operations import Operation, ReplicaSetRemoval, ReplicaSetScaleDown

logger = logging.getLogger(__name__)


def resolve_history_limit(history_limit: int | None, default: int) -> int:
    """Explicit limits are used as given; unset keeps at least one old replica set."""
    if history_limit is None:
        return max(default, 1)
    return history_limit


def plan_scale_down(
    old_rss: Sequence[ReplicaSet],
    active_fingerprint: str,
    history_limit: int,
    *,
    label_key: str,
    annotation_key: str,
) -> list[Operation]:
    """Plan scale-down intent and removals for old replica sets.

    ``old_rss`` must be ordered newest first. The replica set behind the
    active service is never touched. Every other one gets the desired-replicas
    annotation set to ``"0"``; the physical shrink belongs to whoever honors
    the annotation. Eligible replica sets past ``history_limit`` are removed.
    """
    eligible = [
        rs
        for rs in old_rss
        if not active_fingerprint or rs.fingerprint(label_key) != active_fingerprint
    ]
    operations: list[Operation] = [
        ReplicaSetScaleDown.build(rs, annotation_key)
        for rs in eligible
        if rs.metadata.annotations.get(annotation_key) != "0"
    ]
    excess = eligible[history_limit:]
    operations.extend(ReplicaSetRemoval.build(rs) for rs in excess)
    if operations:
        logger.debug(
            "scaledown.planned",
            extra={
                "extra": {
                    "eligible": [rs.metadata.name for rs in eligible],
                    "removed": [rs.metadata.name for rs in excess],
                    "history_limit": history_limit,
                }
            },
        )
    return operations
