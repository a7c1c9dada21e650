"""Operation contracts emitted by the reconciler."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict

from bluegreen.contracts.models import ReplicaSet, Rollout, RolloutStatus, Service
from bluegreen.contracts.types import IssueReason, ObjectKind, OperationKind, ServiceRole


class Operation(BaseModel):
    """A single write for the caller to apply against the object store."""

    model_config = ConfigDict(frozen=True)

    kind: OperationKind
    object_kind: ObjectKind
    namespace: str
    name: str
    resource_version: str | None = None
    patch: dict[str, Any] | None = None
    message: str = ""


class ServiceSelectorPatch(Operation):
    kind: OperationKind = OperationKind.PATCH_SERVICE_SELECTOR
    object_kind: ObjectKind = ObjectKind.SERVICE
    role: ServiceRole
    fingerprint: str

    @classmethod
    def build(
        cls, service: Service, role: ServiceRole, label_key: str, fingerprint: str
    ) -> ServiceSelectorPatch:
        return cls(
            namespace=service.metadata.namespace,
            name=service.metadata.name,
            resource_version=service.metadata.resource_version,
            patch={"spec": {"selector": {label_key: fingerprint}}},
            role=role,
            fingerprint=fingerprint,
            message=f"Switched {role.value} service {service.metadata.name} to {fingerprint}",
        )


class ReplicaSetScaleDown(Operation):
    kind: OperationKind = OperationKind.SCALE_DOWN_REPLICA_SET
    object_kind: ObjectKind = ObjectKind.REPLICA_SET

    @classmethod
    def build(cls, replica_set: ReplicaSet, annotation_key: str) -> ReplicaSetScaleDown:
        return cls(
            namespace=replica_set.metadata.namespace,
            name=replica_set.metadata.name,
            resource_version=replica_set.metadata.resource_version,
            patch={"metadata": {"annotations": {annotation_key: "0"}}},
            message=f"Marked replica set {replica_set.metadata.name} for scale down to 0",
        )


class ReplicaSetRemoval(Operation):
    kind: OperationKind = OperationKind.REMOVE_REPLICA_SET
    object_kind: ObjectKind = ObjectKind.REPLICA_SET

    @classmethod
    def build(cls, replica_set: ReplicaSet) -> ReplicaSetRemoval:
        return cls(
            namespace=replica_set.metadata.namespace,
            name=replica_set.metadata.name,
            resource_version=replica_set.metadata.resource_version,
            message=f"Removed replica set {replica_set.metadata.name} beyond revision history",
        )


class RolloutStatusPatch(Operation):
    kind: OperationKind = OperationKind.PATCH_ROLLOUT_STATUS
    object_kind: ObjectKind = ObjectKind.ROLLOUT

    @classmethod
    def build(
        cls, rollout: Rollout, old: RolloutStatus, new: RolloutStatus
    ) -> RolloutStatusPatch:
        return cls(
            namespace=rollout.metadata.namespace,
            name=rollout.metadata.name,
            resource_version=rollout.metadata.resource_version,
            patch={"status": status_merge_patch(old, new)},
            message=f"Updated status of rollout {rollout.metadata.name}",
        )


def status_merge_patch(old: RolloutStatus, new: RolloutStatus) -> dict[str, Any]:
    """Top-level fields of ``new`` that differ from ``old``, as a JSON merge patch.

    Lists and nested objects are replaced whole; ``None`` deletes the field.
    """
    before = old.model_dump(mode="json", by_alias=True)
    after = new.model_dump(mode="json", by_alias=True)
    return {key: value for key, value in after.items() if before.get(key) != value}


class ReconcileIssue(BaseModel):
    """Non-fatal problem surfaced to the caller for diagnosis."""

    model_config = ConfigDict(frozen=True)

    reason: IssueReason
    message: str
    object_kind: ObjectKind
    name: str = ""


@dataclass(slots=True)
class ReconcileResult:
    """Ordered writes plus diagnostics from one reconciliation."""

    status: RolloutStatus
    operations: list[Operation] = field(default_factory=list)
    issues: list[ReconcileIssue] = field(default_factory=list)

    @property
    def converged(self) -> bool:
        return not self.operations

    @property
    def status_required(self) -> bool:
        """Selector writes must be mirrored by a status patch in the same result."""
        return bool(self.of_kind(OperationKind.PATCH_SERVICE_SELECTOR))

    def of_kind(self, kind: OperationKind) -> list[Operation]:
        return [operation for operation in self.operations if operation.kind == kind]
