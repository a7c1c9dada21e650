"""Service selector reconciliation."""

from __future__ import annotations

from bluegreen.contracts.models import Service
from bluegreen.contracts.operations import ServiceSelectorPatch
from bluegreen.contracts.types import ServiceRole


def reconcile_selector(
    service: Service | None,
    target_fingerprint: str,
    role: ServiceRole,
    *,
    label_key: str,
) -> ServiceSelectorPatch | None:
    """Return the patch pointing ``service`` at ``target_fingerprint``, if one is needed.

    Only the fingerprint label is written; other selector keys are left to
    whoever owns them.
    """
    if service is None or not service.metadata.name or not target_fingerprint:
        return None
    if service.fingerprint(label_key) == target_fingerprint:
        return None
    return ServiceSelectorPatch.build(service, role, label_key, target_fingerprint)
