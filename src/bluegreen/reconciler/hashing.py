"""Pod-template fingerprints and new/old replica set classification."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
import hashlib
import json
from typing import Any

from bluegreen.contracts.models import BlueGreenStrategy, ReplicaSet, Rollout

TemplateHasher = Callable[[Mapping[str, Any], int | None], str]

# Alphabet without vowels and easily confused characters, as used by Kubernetes.
_SAFE_ALPHABET = "bcdfghjklmnpqrstvwxz2456789"


def _safe_encode(value: str) -> str:
    return "".join(_SAFE_ALPHABET[ord(char) % len(_SAFE_ALPHABET)] for char in value)


def _digest(payload: Any, salt: str = "") -> str:
    hasher = hashlib.sha256(
        json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str).encode("utf-8")
    )
    if salt:
        hasher.update(salt.encode("utf-8"))
    return _safe_encode(str(int.from_bytes(hasher.digest()[:4], "big")))


def compute_pod_template_hash(
    template: Mapping[str, Any], collision_count: int | None = None
) -> str:
    """Stable fingerprint of a pod template, perturbed by the collision count."""
    salt = "" if collision_count is None else str(collision_count)
    return _digest(dict(template), salt)


def compute_step_hash(strategy: BlueGreenStrategy) -> str:
    return _digest(strategy.model_dump(mode="json", by_alias=True))


def _creation_key(replica_set: ReplicaSet) -> tuple[float, str]:
    created = replica_set.metadata.creation_timestamp
    return (created.timestamp() if created else float("-inf"), replica_set.metadata.name)


def classify(
    replica_sets: Iterable[ReplicaSet], current_hash: str, label_key: str
) -> tuple[ReplicaSet | None, list[ReplicaSet]]:
    """Split replica sets into the new one and the old ones, newest first."""
    ordered = sorted(replica_sets, key=_creation_key, reverse=True)
    new_rs: ReplicaSet | None = None
    old_rss: list[ReplicaSet] = []
    for replica_set in ordered:
        if new_rs is None and current_hash and replica_set.fingerprint(label_key) == current_hash:
            new_rs = replica_set
        else:
            old_rss.append(replica_set)
    return new_rs, old_rss


def is_retired(replica_set: ReplicaSet, annotation_key: str) -> bool:
    """True once a replica set was marked for scale down and reached zero."""
    return (
        replica_set.metadata.annotations.get(annotation_key) == "0"
        and replica_set.spec.replicas == 0
        and replica_set.status.replicas == 0
    )


def resolve_pod_hash(
    rollout: Rollout,
    replica_sets: Iterable[ReplicaSet],
    *,
    label_key: str,
    annotation_key: str,
    hasher: TemplateHasher = compute_pod_template_hash,
) -> tuple[str, int | None]:
    """Return the desired pod hash and the collision count that produced it.

    A hash equal to a retired replica set's fingerprint bumps the collision
    count, so a superseded replica set is never picked up again as new.
    """
    retired = {
        rs.fingerprint(label_key) for rs in replica_sets if is_retired(rs, annotation_key)
    }
    collision_count = rollout.status.collision_count
    pod_hash = hasher(rollout.spec.template, collision_count)
    for _ in range(len(retired)):
        if pod_hash not in retired:
            break
        collision_count = (collision_count or 0) + 1
        pod_hash = hasher(rollout.spec.template, collision_count)
    if pod_hash in retired:
        raise ValueError(f"Template hasher keeps producing retired hash {pod_hash!r}")
    return pod_hash, collision_count
