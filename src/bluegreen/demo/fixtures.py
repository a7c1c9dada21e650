"""Fixture data for demo scenarios."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from bluegreen.config import ControllerConfig
from bluegreen.contracts.models import (
    BlueGreenStrategy,
    LabelSelector,
    ObjectMeta,
    ReplicaSet,
    ReplicaSetSpec,
    ReplicaSetStatus,
    Rollout,
    RolloutSpec,
    RolloutStatus,
    RolloutStrategy,
    Service,
    ServiceSpec,
)
from bluegreen.contracts.types import VerifyingPreview
from bluegreen.reconciler.hashing import compute_pod_template_hash

NAMESPACE = "demo"
APP_LABELS = {"app": "web"}
ACTIVE_SERVICE = "web-active"
PREVIEW_SERVICE = "web-preview"
REPLICAS = 3

_LABEL_KEY = ControllerConfig().unique_label_key
_ANNOTATION_KEY = ControllerConfig().desired_replicas_annotation


class ScenarioFixtures:
    """Container for fixture data for a scenario."""

    def __init__(
        self,
        rollout: Rollout,
        replica_sets: list[ReplicaSet],
        services: list[Service],
        approve_preview: bool = False,
    ) -> None:
        self.rollout = rollout
        self.replica_sets = replica_sets
        self.services = services
        self.approve_preview = approve_preview


def template(image: str) -> dict[str, Any]:
    return {
        "metadata": {"labels": dict(APP_LABELS)},
        "spec": {"containers": [{"name": "web", "image": image}]},
    }


def pod_hash(image: str) -> str:
    return compute_pod_template_hash(template(image))


def _rollout(
    image: str,
    *,
    preview: bool = False,
    history_limit: int | None = None,
    verifying: VerifyingPreview = VerifyingPreview.UNSET,
) -> Rollout:
    return Rollout(
        metadata=ObjectMeta(name="web", namespace=NAMESPACE),
        spec=RolloutSpec(
            replicas=REPLICAS,
            selector=LabelSelector(match_labels=dict(APP_LABELS)),
            template=template(image),
            strategy=RolloutStrategy(
                blue_green=BlueGreenStrategy(
                    active_service=ACTIVE_SERVICE,
                    preview_service=PREVIEW_SERVICE if preview else "",
                )
            ),
            revision_history_limit=history_limit,
        ),
        status=RolloutStatus(verifying_preview=verifying),
    )


def _replica_set(
    image: str, *, age: timedelta, replicas: int, available: int, retired: bool = False
) -> ReplicaSet:
    fingerprint = pod_hash(image)
    return ReplicaSet(
        metadata=ObjectMeta(
            name=f"web-{fingerprint}",
            namespace=NAMESPACE,
            labels={**APP_LABELS, _LABEL_KEY: fingerprint},
            annotations={_ANNOTATION_KEY: "0"} if retired else {},
            creation_timestamp=datetime.now(timezone.utc).replace(microsecond=0) - age,
        ),
        spec=ReplicaSetSpec(replicas=replicas, template=template(image)),
        status=ReplicaSetStatus(
            replicas=replicas, ready_replicas=available, available_replicas=available
        ),
    )


def _service(name: str, image: str | None = None) -> Service:
    selector = dict(APP_LABELS)
    if image is not None:
        selector[_LABEL_KEY] = pod_hash(image)
    return Service(
        metadata=ObjectMeta(name=name, namespace=NAMESPACE),
        spec=ServiceSpec(selector=selector),
    )


def first_rollout() -> ScenarioFixtures:
    """A brand new rollout whose only replica set is still starting."""
    return ScenarioFixtures(
        rollout=_rollout("web:1.0"),
        replica_sets=[
            _replica_set("web:1.0", age=timedelta(minutes=1), replicas=REPLICAS, available=0)
        ],
        services=[_service(ACTIVE_SERVICE)],
    )


def preview_verification() -> ScenarioFixtures:
    """Version 2 waits behind the preview service until it is approved."""
    return ScenarioFixtures(
        rollout=_rollout("web:2.0", preview=True, verifying=VerifyingPreview.TRUE),
        replica_sets=[
            _replica_set("web:1.0", age=timedelta(hours=2), replicas=REPLICAS, available=REPLICAS),
            _replica_set("web:2.0", age=timedelta(minutes=5), replicas=REPLICAS, available=0),
        ],
        services=[_service(ACTIVE_SERVICE, "web:1.0"), _service(PREVIEW_SERVICE, "web:1.0")],
        approve_preview=True,
    )


def revision_history() -> ScenarioFixtures:
    """Version 4 is ready while three older versions linger past the history limit."""
    return ScenarioFixtures(
        rollout=_rollout("web:4.0", history_limit=1),
        replica_sets=[
            _replica_set("web:1.0", age=timedelta(days=3), replicas=0, available=0, retired=True),
            _replica_set("web:2.0", age=timedelta(days=2), replicas=0, available=0, retired=True),
            _replica_set("web:3.0", age=timedelta(days=1), replicas=REPLICAS, available=REPLICAS),
            _replica_set(
                "web:4.0", age=timedelta(minutes=10), replicas=REPLICAS, available=REPLICAS
            ),
        ],
        services=[_service(ACTIVE_SERVICE, "web:3.0")],
    )
