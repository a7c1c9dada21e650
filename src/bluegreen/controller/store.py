"""Object store interface and the in-memory implementation."""

from __future__ import annotations

from collections.abc import Mapping
import copy
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Protocol

from bluegreen.contracts.errors import ConflictError, NotFoundError
from bluegreen.contracts.models import KubeModel
from bluegreen.contracts.types import ObjectKind


class ObjectStore(Protocol):
    """Versioned key-value store of Kubernetes-shaped objects."""

    def get(self, kind: ObjectKind, namespace: str, name: str) -> dict[str, Any]:
        """Return the object or raise ``NotFoundError``."""

    def list(
        self, kind: ObjectKind, namespace: str, label_selector: Mapping[str, str] | None = None
    ) -> list[dict[str, Any]]:
        """Return objects whose labels match every selector entry."""

    def patch(
        self,
        kind: ObjectKind,
        namespace: str,
        name: str,
        merge_patch: Mapping[str, Any],
        expected_version: str | None = None,
    ) -> dict[str, Any]:
        """Apply a JSON merge patch, raising ``ConflictError`` on a stale version."""

    def delete(
        self, kind: ObjectKind, namespace: str, name: str, expected_version: str | None = None
    ) -> None:
        """Delete the object, raising ``ConflictError`` on a stale version."""


def json_merge_patch(target: Any, patch: Any) -> Any:
    """Apply an RFC 7386 merge patch to ``target`` without modifying it."""
    if not isinstance(patch, Mapping):
        return copy.deepcopy(patch)
    result = dict(target) if isinstance(target, Mapping) else {}
    for key, value in patch.items():
        if value is None:
            result.pop(key, None)
        else:
            result[key] = json_merge_patch(result.get(key), value)
    return result


def labels_match(labels: Mapping[str, str], selector: Mapping[str, str] | None) -> bool:
    return all(labels.get(key) == value for key, value in (selector or {}).items())


class InMemoryObjectStore:
    """In-process object store with per-write resource versions."""

    def __init__(self) -> None:
        self._objects: dict[tuple[ObjectKind, str, str], dict[str, Any]] = {}
        self._version = 0
        self._lock = Lock()

    def _next_version(self) -> str:
        self._version += 1
        return str(self._version)

    def _current(self, kind: ObjectKind, namespace: str, name: str) -> dict[str, Any]:
        try:
            return self._objects[(kind, namespace, name)]
        except KeyError:
            raise NotFoundError(kind, namespace, name) from None

    @staticmethod
    def _check_version(
        kind: ObjectKind, namespace: str, name: str, obj: dict[str, Any], expected: str | None
    ) -> None:
        actual = obj["metadata"].get("resourceVersion")
        if expected is not None and expected != actual:
            raise ConflictError(kind, namespace, name, expected, actual)

    def add(self, kind: ObjectKind, model: KubeModel) -> dict[str, Any]:
        """Store a model, stamping a resource version and creation time."""
        obj = model.model_dump(mode="json", by_alias=True, exclude_none=True)
        metadata = obj.setdefault("metadata", {})
        namespace = metadata.setdefault("namespace", "default")
        metadata.setdefault(
            "creationTimestamp",
            datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z"),
        )
        with self._lock:
            metadata["resourceVersion"] = self._next_version()
            self._objects[(kind, namespace, metadata["name"])] = obj
            return copy.deepcopy(obj)

    def get(self, kind: ObjectKind, namespace: str, name: str) -> dict[str, Any]:
        with self._lock:
            return copy.deepcopy(self._current(kind, namespace, name))

    def list(
        self, kind: ObjectKind, namespace: str, label_selector: Mapping[str, str] | None = None
    ) -> list[dict[str, Any]]:
        with self._lock:
            return [
                copy.deepcopy(obj)
                for (obj_kind, obj_namespace, _), obj in self._objects.items()
                if obj_kind == kind
                and obj_namespace == namespace
                and labels_match(obj["metadata"].get("labels", {}), label_selector)
            ]

    def patch(
        self,
        kind: ObjectKind,
        namespace: str,
        name: str,
        merge_patch: Mapping[str, Any],
        expected_version: str | None = None,
    ) -> dict[str, Any]:
        with self._lock:
            obj = self._current(kind, namespace, name)
            self._check_version(kind, namespace, name, obj, expected_version)
            patched = json_merge_patch(obj, merge_patch)
            patched["metadata"]["resourceVersion"] = self._next_version()
            self._objects[(kind, namespace, name)] = patched
            return copy.deepcopy(patched)

    def delete(
        self, kind: ObjectKind, namespace: str, name: str, expected_version: str | None = None
    ) -> None:
        with self._lock:
            obj = self._current(kind, namespace, name)
            self._check_version(kind, namespace, name, obj, expected_version)
            del self._objects[(kind, namespace, name)]
