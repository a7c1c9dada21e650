"""Preview verification gate."""

from __future__ import annotations

from bluegreen.contracts.models import Rollout, Service
from bluegreen.contracts.types import VerifyingPreview


def must_withhold_promotion(
    rollout: Rollout, active_service: Service | None, *, label_key: str
) -> bool:
    """Decide whether promotion waits for preview verification.

    The gate only protects an established active target: without a preview
    service, or before the active service is bound to any replica set, the
    rollout proceeds as a first-time release. Otherwise the externally owned
    ``verifyingPreview`` flag decides, unset counting as false.
    """
    if not rollout.blue_green.preview_service:
        return False
    if active_service is None or not active_service.fingerprint(label_key):
        return False
    return rollout.status.verifying_preview is VerifyingPreview.TRUE
