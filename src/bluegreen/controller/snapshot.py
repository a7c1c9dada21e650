"""Snapshot loading from an object store."""

from __future__ import annotations

import logging

from bluegreen.contracts.errors import NotFoundError
from bluegreen.contracts.models import ReplicaSet, Rollout, RolloutSnapshot, Service
from bluegreen.contracts.types import ObjectKind
from bluegreen.controller.store import ObjectStore

logger = logging.getLogger(__name__)


def _get_service(store: ObjectStore, namespace: str, name: str) -> Service | None:
    if not name:
        return None
    try:
        return Service.model_validate(store.get(ObjectKind.SERVICE, namespace, name))
    except NotFoundError:
        logger.warning(
            "service.not_found", extra={"extra": {"namespace": namespace, "service": name}}
        )
        return None


def load_snapshot(store: ObjectStore, namespace: str, name: str) -> RolloutSnapshot:
    """Read the rollout, its replica sets and its services.

    Raises ``NotFoundError`` only when the rollout itself is gone; missing
    services come back as ``None``. Replica sets are matched by the rollout
    selector, an empty selector matches nothing.
    """
    rollout = Rollout.model_validate(store.get(ObjectKind.ROLLOUT, namespace, name))
    selector = rollout.spec.selector.match_labels
    replica_sets: tuple[ReplicaSet, ...] = ()
    if selector:
        replica_sets = tuple(
            ReplicaSet.model_validate(obj)
            for obj in store.list(ObjectKind.REPLICA_SET, namespace, selector)
        )
    strategy = rollout.blue_green
    return RolloutSnapshot(
        rollout=rollout,
        replica_sets=replica_sets,
        active_service=_get_service(store, namespace, strategy.active_service),
        preview_service=_get_service(store, namespace, strategy.preview_service),
    )
