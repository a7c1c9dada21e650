"""Scenario runner for blue-green demos."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path

from bluegreen.config import ControllerConfig
from bluegreen.contracts.models import ReplicaSet, Rollout, RolloutStatus, Service
from bluegreen.contracts.types import ObjectKind, VerifyingPreview
from bluegreen.controller.recorder import EventRecorder, RolloutEvent
from bluegreen.controller.store import InMemoryObjectStore
from bluegreen.controller.syncer import RolloutSyncer
from bluegreen.demo.fixtures import ScenarioFixtures
from bluegreen.observability.logging import configure_logging
from bluegreen.observability.metrics import start_metrics_server
from bluegreen.observability.telemetry import setup_tracing, shutdown_tracing

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ScenarioResult:
    """Result from running a scenario."""

    rollout: str
    rounds: int
    status: RolloutStatus
    selectors: dict[str, str]
    replica_sets: list[str]
    events: list[RolloutEvent]


def simulate_replica_sets(
    store: InMemoryObjectStore, namespace: str, rollout: Rollout, config: ControllerConfig
) -> bool:
    """Act as the external scaler: start pods and honor scale-down intent.

    Returns whether anything changed.
    """
    changed = False
    for obj in store.list(ObjectKind.REPLICA_SET, namespace, rollout.spec.selector.match_labels):
        replica_set = ReplicaSet.model_validate(obj)
        target = replica_set.spec.replicas
        if replica_set.metadata.annotations.get(config.desired_replicas_annotation) == "0":
            target = 0
        status = replica_set.status
        if (
            replica_set.spec.replicas == target
            and status.replicas == target
            and status.available_replicas == target
        ):
            continue
        store.patch(
            ObjectKind.REPLICA_SET,
            namespace,
            replica_set.metadata.name,
            {
                "spec": {"replicas": target},
                "status": {"replicas": target, "readyReplicas": target, "availableReplicas": target},
            },
        )
        changed = True
    return changed


def seed_store(fixtures: ScenarioFixtures) -> InMemoryObjectStore:
    """In-memory store holding the scenario's rollout, replica sets and services."""
    store = InMemoryObjectStore()
    store.add(ObjectKind.ROLLOUT, fixtures.rollout)
    for replica_set in fixtures.replica_sets:
        store.add(ObjectKind.REPLICA_SET, replica_set)
    for service in fixtures.services:
        store.add(ObjectKind.SERVICE, service)
    return store


def _approve_preview(store: InMemoryObjectStore, namespace: str, name: str) -> bool:
    rollout = Rollout.model_validate(store.get(ObjectKind.ROLLOUT, namespace, name))
    if rollout.status.verifying_preview is not VerifyingPreview.TRUE:
        return False
    logger.info("preview.approved", extra={"extra": {"rollout": f"{namespace}/{name}"}})
    store.patch(ObjectKind.ROLLOUT, namespace, name, {"status": {"verifyingPreview": False}})
    return True


def run_scenario(
    fixtures: ScenarioFixtures,
    config_path: Path | None = None,
    *,
    start_metrics: bool = True,
    enable_tracing: bool = True,
    max_rounds: int = 12,
) -> ScenarioResult:
    """Run a scenario against the in-memory store until nothing changes."""
    configure_logging()
    config = ControllerConfig.load(config_path)
    if enable_tracing:
        setup_tracing(f"{config.service_name}-demo")
    if start_metrics:
        start_metrics_server(config.metrics_port)

    store = seed_store(fixtures)
    namespace = fixtures.rollout.metadata.namespace
    name = fixtures.rollout.metadata.name
    recorder = EventRecorder()
    syncer = RolloutSyncer(store=store, config=config, recorder=recorder)
    approved = False
    rounds = 0
    try:
        while rounds < max_rounds:
            rounds += 1
            result = syncer.sync(namespace, name)
            if result is None:
                break
            scaled = simulate_replica_sets(store, namespace, fixtures.rollout, config)
            if result.converged and not scaled:
                if fixtures.approve_preview and not approved:
                    approved = _approve_preview(store, namespace, name)
                    if approved:
                        continue
                break
    finally:
        if enable_tracing:
            shutdown_tracing()

    final = Rollout.model_validate(store.get(ObjectKind.ROLLOUT, namespace, name))
    selectors = {
        service.metadata.name: service.fingerprint(config.unique_label_key)
        for service in (
            Service.model_validate(obj) for obj in store.list(ObjectKind.SERVICE, namespace)
        )
    }
    remaining = sorted(
        obj["metadata"]["name"] for obj in store.list(ObjectKind.REPLICA_SET, namespace)
    )
    return ScenarioResult(
        rollout=name,
        rounds=rounds,
        status=final.status,
        selectors=selectors,
        replica_sets=remaining,
        events=recorder.events,
    )
