"""Unit tests for the in-memory object store and snapshot loading."""

from __future__ import annotations

import pytest

from bluegreen.contracts.errors import ConflictError, NotFoundError
from bluegreen.contracts.models import ObjectMeta, ReplicaSet
from bluegreen.contracts.types import ObjectKind
from bluegreen.controller.snapshot import load_snapshot
from bluegreen.controller.store import InMemoryObjectStore, json_merge_patch

from builders import NAMESPACE, replica_set, rollout, service


def test_merge_patch_replaces_nested_and_deletes_null() -> None:
    target = {"spec": {"selector": {"app": "guestbook", "hash": "old"}}, "status": {"x": 1}}
    patched = json_merge_patch(target, {"spec": {"selector": {"hash": "new"}}, "status": None})
    assert patched == {"spec": {"selector": {"app": "guestbook", "hash": "new"}}}
    assert target["spec"]["selector"]["hash"] == "old"


def test_merge_patch_replaces_lists_whole() -> None:
    assert json_merge_patch({"items": [1, 2]}, {"items": [3]}) == {"items": [3]}


def test_patch_with_stale_version_conflicts() -> None:
    store = InMemoryObjectStore()
    stored = store.add(ObjectKind.SERVICE, service("active", "v1"))
    version = stored["metadata"]["resourceVersion"]
    store.patch(ObjectKind.SERVICE, NAMESPACE, "active", {"metadata": {"labels": {"a": "b"}}})
    with pytest.raises(ConflictError) as excinfo:
        store.patch(ObjectKind.SERVICE, NAMESPACE, "active", {"spec": {}}, version)
    assert excinfo.value.expected_version == version


def test_patch_advances_resource_version() -> None:
    store = InMemoryObjectStore()
    stored = store.add(ObjectKind.SERVICE, service("active"))
    version = stored["metadata"]["resourceVersion"]
    patched = store.patch(ObjectKind.SERVICE, NAMESPACE, "active", {"spec": {}}, version)
    assert patched["metadata"]["resourceVersion"] != version


def test_delete_and_missing_objects() -> None:
    store = InMemoryObjectStore()
    rs = replica_set("v1", age_minutes=5)
    stored = store.add(ObjectKind.REPLICA_SET, rs)
    store.delete(
        ObjectKind.REPLICA_SET, NAMESPACE, rs.metadata.name, stored["metadata"]["resourceVersion"]
    )
    with pytest.raises(NotFoundError):
        store.get(ObjectKind.REPLICA_SET, NAMESPACE, rs.metadata.name)
    with pytest.raises(NotFoundError):
        store.delete(ObjectKind.REPLICA_SET, NAMESPACE, rs.metadata.name)


def test_list_filters_by_labels_and_namespace() -> None:
    store = InMemoryObjectStore()
    store.add(ObjectKind.REPLICA_SET, replica_set("v1", age_minutes=5))
    store.add(
        ObjectKind.REPLICA_SET,
        ReplicaSet(metadata=ObjectMeta(name="other", namespace=NAMESPACE, labels={"app": "other"})),
    )
    assert len(store.list(ObjectKind.REPLICA_SET, NAMESPACE)) == 2
    assert len(store.list(ObjectKind.REPLICA_SET, NAMESPACE, {"app": "guestbook"})) == 1
    assert store.list(ObjectKind.REPLICA_SET, "elsewhere") == []


def test_load_snapshot_tolerates_missing_services() -> None:
    store = InMemoryObjectStore()
    store.add(ObjectKind.ROLLOUT, rollout("v1", preview="preview"))
    store.add(ObjectKind.REPLICA_SET, replica_set("v1", age_minutes=5))
    store.add(ObjectKind.SERVICE, service("active", "v1"))
    snap = load_snapshot(store, NAMESPACE, "guestbook")
    assert snap.active_service is not None
    assert snap.preview_service is None
    assert [rs.metadata.name for rs in snap.replica_sets] == [
        replica_set("v1", age_minutes=5).metadata.name
    ]


def test_load_snapshot_requires_rollout() -> None:
    with pytest.raises(NotFoundError) as excinfo:
        load_snapshot(InMemoryObjectStore(), NAMESPACE, "guestbook")
    assert excinfo.value.kind is ObjectKind.ROLLOUT
