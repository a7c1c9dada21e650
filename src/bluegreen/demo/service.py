"""Long-running blue-green controller service."""

from __future__ import annotations

import logging
from threading import Event as ThreadEvent

from bluegreen.config import ControllerConfig, get_config_value
from bluegreen.controller.kube_store import KubernetesObjectStore
from bluegreen.controller.store import ObjectStore
from bluegreen.controller.syncer import RolloutSyncer
from bluegreen.controller.worker import RolloutWorker
from bluegreen.demo.fixtures import NAMESPACE, preview_verification
from bluegreen.demo.runner import seed_store
from bluegreen.observability.logging import configure_logging
from bluegreen.observability.metrics import start_metrics_server
from bluegreen.observability.telemetry import setup_tracing

logger = logging.getLogger(__name__)


def build_store() -> tuple[ObjectStore, str]:
    """Pick the object store from ``BLUEGREEN_STORE`` (``kubernetes`` or ``memory``).

    Returns the store and the namespace to watch. The memory store is seeded
    with the preview scenario so the service has something to converge.
    """
    store_type = get_config_value("store", "kubernetes")
    if store_type == "memory":
        return seed_store(preview_verification()), NAMESPACE
    if store_type != "kubernetes":
        raise ValueError(f"Unknown object store: {store_type}")
    store = KubernetesObjectStore(
        in_cluster=get_config_value("in_cluster", "true") == "true",
        context=get_config_value("kube_context"),
    )
    return store, get_config_value("namespace", "default") or "default"


def main() -> None:
    configure_logging()
    config = ControllerConfig.load()
    setup_tracing(config.service_name)
    start_metrics_server(config.metrics_port)

    store, namespace = build_store()
    worker = RolloutWorker(
        syncer=RolloutSyncer(store=store, config=config),
        namespace=namespace,
        interval=float(get_config_value("sync_interval", "5") or "5"),
    )
    logger.info("controller.started", extra={"extra": {"namespace": namespace}})
    worker.run(ThreadEvent())


if __name__ == "__main__":
    main()
