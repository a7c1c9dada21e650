"""Worker that keeps every rollout in a namespace converged."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from threading import Event as ThreadEvent

from bluegreen.contracts.errors import BlueGreenError
from bluegreen.contracts.types import ObjectKind
from bluegreen.controller.syncer import RolloutSyncer

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RolloutWorker:
    """Periodically syncs the rollouts of one namespace."""

    syncer: RolloutSyncer
    namespace: str
    interval: float = 5.0

    def run_once(self) -> int:
        """Sync each rollout once; returns how many synced cleanly.

        A failing rollout is logged and left for the next pass so one broken
        object cannot starve the others.
        """
        names = [
            obj["metadata"]["name"]
            for obj in self.syncer.store.list(ObjectKind.ROLLOUT, self.namespace)
        ]
        synced = 0
        for name in names:
            try:
                self.syncer.sync(self.namespace, name)
            except BlueGreenError:
                logger.exception(
                    "rollout.sync.failed",
                    extra={"extra": {"rollout": f"{self.namespace}/{name}"}},
                )
                continue
            synced += 1
        return synced

    def run(self, stop_event: ThreadEvent) -> None:
        """Main loop; returns once ``stop_event`` is set."""
        while not stop_event.is_set():
            self.run_once()
            stop_event.wait(self.interval)
