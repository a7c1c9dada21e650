"""Shared enums for blue-green contracts."""

from __future__ import annotations

from enum import Enum


class ObjectKind(str, Enum):
    """Kinds of objects the reconciler reads and writes."""

    ROLLOUT = "Rollout"
    REPLICA_SET = "ReplicaSet"
    SERVICE = "Service"


class VerifyingPreview(str, Enum):
    """Tri-state preview verification flag."""

    UNSET = "UNSET"
    TRUE = "TRUE"
    FALSE = "FALSE"

    @classmethod
    def from_optional(cls, value: bool | None) -> VerifyingPreview:
        if value is None:
            return cls.UNSET
        return cls.TRUE if value else cls.FALSE

    def to_optional(self) -> bool | None:
        if self is VerifyingPreview.UNSET:
            return None
        return self is VerifyingPreview.TRUE


class ConditionType(str, Enum):
    """Rollout condition types."""

    AVAILABLE = "Available"
    PROGRESSING = "Progressing"


class ConditionStatus(str, Enum):
    """Condition status values."""

    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


class ConditionReason(str, Enum):
    """Reasons recorded on rollout conditions."""

    AVAILABLE = "Available"
    INVALID_SPEC = "InvalidSpec"
    SERVICE_NOT_FOUND = "ServiceNotFound"
    NEW_RS_PENDING = "NewReplicaSetPending"
    RS_UPDATED = "ReplicaSetUpdated"
    PREVIEW_SWITCHED = "PreviewServiceSwitched"
    VERIFYING_PREVIEW = "VerifyingPreview"
    NEW_RS_AVAILABLE = "NewReplicaSetAvailable"


class ServiceRole(str, Enum):
    """Traffic role of a service."""

    ACTIVE = "active"
    PREVIEW = "preview"


class OperationKind(str, Enum):
    """Mutations the reconciler can emit."""

    PATCH_SERVICE_SELECTOR = "PatchServiceSelector"
    SCALE_DOWN_REPLICA_SET = "ScaleDownReplicaSet"
    REMOVE_REPLICA_SET = "RemoveReplicaSet"
    PATCH_ROLLOUT_STATUS = "PatchRolloutStatus"


class IssueReason(str, Enum):
    """Non-fatal problems found while reconciling."""

    NOT_FOUND = "NotFound"
    INVALID_CONFIGURATION = "InvalidConfiguration"


class EventType(str, Enum):
    """Kubernetes event types."""

    NORMAL = "Normal"
    WARNING = "Warning"
