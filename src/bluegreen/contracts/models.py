"""Domain models for blue-green rollouts, replica sets and services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from bluegreen.contracts.types import ConditionStatus, ConditionType, VerifyingPreview


class KubeModel(BaseModel):
    """Immutable model serialized with Kubernetes camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class ObjectMeta(KubeModel):
    """Subset of Kubernetes object metadata used by the reconciler."""

    name: str
    namespace: str = "default"
    uid: str | None = None
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)
    creation_timestamp: datetime | None = None
    resource_version: str | None = None

    @field_validator("labels", "annotations", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return {} if value is None else value


class LabelSelector(KubeModel):
    match_labels: dict[str, str] = Field(default_factory=dict)


class BlueGreenStrategy(KubeModel):
    """Names of the services managed by the blue-green strategy."""

    active_service: str = ""
    preview_service: str = ""


class RolloutStrategy(KubeModel):
    blue_green: BlueGreenStrategy | None = None


class RolloutSpec(KubeModel):
    """Desired state of a rollout."""

    replicas: int = 1
    selector: LabelSelector = Field(default_factory=LabelSelector)
    template: dict[str, Any] = Field(default_factory=dict)
    strategy: RolloutStrategy = Field(default_factory=RolloutStrategy)
    revision_history_limit: int | None = Field(default=None, ge=0)


class RolloutCondition(KubeModel):
    """Typed status fact on a rollout."""

    type: ConditionType
    status: ConditionStatus
    reason: str
    message: str
    last_transition_time: datetime
    last_update_time: datetime


class BlueGreenStatus(KubeModel):
    """Fingerprints the active and preview services were last pointed at."""

    active_selector: str = ""
    preview_selector: str = ""


class RolloutStatus(KubeModel):
    """Persisted progressive-delivery status of a rollout."""

    current_pod_hash: str = ""
    verifying_preview: VerifyingPreview = VerifyingPreview.UNSET
    current_step_index: int | None = None
    current_step_hash: str = ""
    collision_count: int | None = None
    replicas: int = 0
    updated_replicas: int = 0
    ready_replicas: int = 0
    available_replicas: int = 0
    blue_green: BlueGreenStatus = Field(default_factory=BlueGreenStatus)
    conditions: list[RolloutCondition] = Field(default_factory=list)

    @field_validator("verifying_preview", mode="before")
    @classmethod
    def _parse_verifying_preview(cls, value: Any) -> Any:
        if value is None or isinstance(value, bool):
            return VerifyingPreview.from_optional(value)
        return value

    @field_serializer("verifying_preview")
    def _dump_verifying_preview(self, value: VerifyingPreview) -> bool | None:
        return value.to_optional()

    def condition(self, condition_type: ConditionType) -> RolloutCondition | None:
        for condition in self.conditions:
            if condition.type == condition_type:
                return condition
        return None


class Rollout(KubeModel):
    """Desired state plus persisted status for one workload."""

    metadata: ObjectMeta
    spec: RolloutSpec = Field(default_factory=RolloutSpec)
    status: RolloutStatus = Field(default_factory=RolloutStatus)

    @property
    def blue_green(self) -> BlueGreenStrategy:
        return self.spec.strategy.blue_green or BlueGreenStrategy()


class ReplicaSetSpec(KubeModel):
    replicas: int = 0
    template: dict[str, Any] = Field(default_factory=dict)


class ReplicaSetStatus(KubeModel):
    replicas: int = 0
    ready_replicas: int = 0
    available_replicas: int = 0


class ReplicaSet(KubeModel):
    """Set of instances sharing one pod-template fingerprint."""

    metadata: ObjectMeta
    spec: ReplicaSetSpec = Field(default_factory=ReplicaSetSpec)
    status: ReplicaSetStatus = Field(default_factory=ReplicaSetStatus)

    def fingerprint(self, label_key: str) -> str:
        return self.metadata.labels.get(label_key, "")


class ServiceSpec(KubeModel):
    selector: dict[str, str] = Field(default_factory=dict)

    @field_validator("selector", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return {} if value is None else value


class Service(KubeModel):
    """Stable traffic identity whose selector designates a replica set."""

    metadata: ObjectMeta
    spec: ServiceSpec = Field(default_factory=ServiceSpec)

    def fingerprint(self, label_key: str) -> str:
        return self.spec.selector.get(label_key, "")


@dataclass(frozen=True, slots=True)
class RolloutSnapshot:
    """Everything one reconciliation is allowed to look at."""

    rollout: Rollout
    replica_sets: tuple[ReplicaSet, ...] = ()
    active_service: Service | None = None
    preview_service: Service | None = None
