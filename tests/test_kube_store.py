"""Unit tests for the Kubernetes-backed object store."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

from kubernetes.client.rest import ApiException
import pytest

from bluegreen.contracts.errors import ConflictError, NotFoundError, TransientStoreError
from bluegreen.contracts.types import ObjectKind
from bluegreen.controller.kube_store import (
    ROLLOUT_GROUP,
    ROLLOUT_PLURAL,
    ROLLOUT_VERSION,
    KubernetesObjectStore,
)


def _store() -> tuple[KubernetesObjectStore, MagicMock, MagicMock, MagicMock]:
    core, apps, custom = MagicMock(), MagicMock(), MagicMock()
    store = KubernetesObjectStore(core_api=core, apps_api=apps, custom_api=custom)
    return store, core, apps, custom


def test_get_service_returns_plain_dict() -> None:
    store, core, _, _ = _store()
    core.read_namespaced_service.return_value = {
        "metadata": {"name": "active", "resourceVersion": "7"},
        "spec": {"selector": {"app": "guestbook"}},
    }
    obj = store.get(ObjectKind.SERVICE, "default", "active")
    core.read_namespaced_service.assert_called_once_with(name="active", namespace="default")
    assert obj["metadata"]["resourceVersion"] == "7"


def test_list_replica_sets_uses_label_selector() -> None:
    store, _, apps, _ = _store()
    apps.list_namespaced_replica_set.return_value = SimpleNamespace(
        items=[{"metadata": {"name": "guestbook-abc"}}]
    )
    items = store.list(ObjectKind.REPLICA_SET, "default", {"tier": "web", "app": "guestbook"})
    apps.list_namespaced_replica_set.assert_called_once_with(
        namespace="default", label_selector="app=guestbook,tier=web"
    )
    assert items == [{"metadata": {"name": "guestbook-abc"}}]


def test_patch_pins_expected_version() -> None:
    store, core, _, _ = _store()
    core.patch_namespaced_service.return_value = {"metadata": {"resourceVersion": "8"}}
    written = store.patch(
        ObjectKind.SERVICE, "default", "active", {"spec": {"selector": {"h": "abc"}}}, "7"
    )
    core.patch_namespaced_service.assert_called_once_with(
        name="active",
        namespace="default",
        body={"spec": {"selector": {"h": "abc"}}, "metadata": {"resourceVersion": "7"}},
    )
    assert written["metadata"]["resourceVersion"] == "8"


def test_rollout_status_goes_to_status_subresource() -> None:
    store, _, _, custom = _store()
    custom.patch_namespaced_custom_object_status.return_value = {"status": {}}
    store.patch(ObjectKind.ROLLOUT, "default", "guestbook", {"status": {"currentPodHash": "x"}})
    custom.patch_namespaced_custom_object_status.assert_called_once_with(
        ROLLOUT_GROUP,
        ROLLOUT_VERSION,
        "default",
        ROLLOUT_PLURAL,
        "guestbook",
        {"status": {"currentPodHash": "x"}},
    )
    custom.patch_namespaced_custom_object.assert_not_called()


def test_delete_replica_set_sets_preconditions() -> None:
    store, _, apps, _ = _store()
    store.delete(ObjectKind.REPLICA_SET, "default", "guestbook-abc", "9")
    options = apps.delete_namespaced_replica_set.call_args.kwargs["body"]
    assert options.preconditions.resource_version == "9"
    assert options.propagation_policy == "Background"


def test_delete_other_kinds_is_rejected() -> None:
    store, _, _, _ = _store()
    with pytest.raises(ValueError):
        store.delete(ObjectKind.SERVICE, "default", "active")


@pytest.mark.parametrize(
    ("status", "expected"),
    [(404, NotFoundError), (409, ConflictError), (429, TransientStoreError), (503, TransientStoreError)],
)
def test_api_errors_are_translated(status: int, expected: type[Exception]) -> None:
    store, _, apps, _ = _store()
    apps.read_namespaced_replica_set.side_effect = ApiException(status=status, reason="boom")
    with pytest.raises(expected):
        store.get(ObjectKind.REPLICA_SET, "default", "guestbook-abc")


def test_client_errors_propagate_unchanged() -> None:
    store, _, _, custom = _store()
    custom.get_namespaced_custom_object.side_effect = ApiException(status=403, reason="Forbidden")
    with pytest.raises(ApiException):
        store.get(ObjectKind.ROLLOUT, "default", "guestbook")
