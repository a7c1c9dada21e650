"""Kubernetes-backed object store."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
import logging
from typing import Any

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from bluegreen.contracts.errors import ConflictError, NotFoundError, TransientStoreError
from bluegreen.contracts.types import ObjectKind
from bluegreen.controller.store import json_merge_patch

logger = logging.getLogger(__name__)

ROLLOUT_GROUP = "argoproj.io"
ROLLOUT_VERSION = "v1alpha1"
ROLLOUT_PLURAL = "rollouts"


def _selector_string(label_selector: Mapping[str, str] | None) -> str | None:
    if not label_selector:
        return None
    return ",".join(f"{key}={value}" for key, value in sorted(label_selector.items()))


class KubernetesObjectStore:
    """Object store on the Kubernetes API: services, replica sets and rollouts."""

    def __init__(
        self,
        in_cluster: bool = True,
        context: str | None = None,
        *,
        core_api: Any | None = None,
        apps_api: Any | None = None,
        custom_api: Any | None = None,
    ) -> None:
        """
        Initialize Kubernetes API clients.

        Args:
            in_cluster: Whether running inside cluster (default: True)
            context: Kubernetes context name (optional)
            core_api: Preconfigured CoreV1Api (skips config loading)
            apps_api: Preconfigured AppsV1Api
            custom_api: Preconfigured CustomObjectsApi
        """
        if core_api is None or apps_api is None or custom_api is None:
            if in_cluster:
                config.load_incluster_config()
            elif context:
                config.load_kube_config(context=context)
            else:
                config.load_kube_config()
            logger.info("Kubernetes client configured", extra={"extra": {"context": context}})
        self.core_api = core_api or client.CoreV1Api()
        self.apps_api = apps_api or client.AppsV1Api()
        self.custom_api = custom_api or client.CustomObjectsApi()
        self._serializer = client.ApiClient()

    def _to_dict(self, obj: Any) -> dict[str, Any]:
        return self._serializer.sanitize_for_serialization(obj)

    @staticmethod
    @contextmanager
    def _api_errors(
        kind: ObjectKind,
        namespace: str,
        name: str,
        expected_version: str | None = None,
    ) -> Iterator[None]:
        try:
            yield
        except ApiException as e:
            if e.status == 404:
                raise NotFoundError(kind, namespace, name) from e
            if e.status == 409:
                raise ConflictError(kind, namespace, name, expected_version) from e
            if e.status == 429 or (e.status or 0) >= 500:
                raise TransientStoreError(f"{kind.value} {namespace}/{name}: {e.reason}") from e
            raise

    def get(self, kind: ObjectKind, namespace: str, name: str) -> dict[str, Any]:
        with self._api_errors(kind, namespace, name):
            if kind is ObjectKind.SERVICE:
                obj = self.core_api.read_namespaced_service(name=name, namespace=namespace)
            elif kind is ObjectKind.REPLICA_SET:
                obj = self.apps_api.read_namespaced_replica_set(name=name, namespace=namespace)
            else:
                obj = self.custom_api.get_namespaced_custom_object(
                    ROLLOUT_GROUP, ROLLOUT_VERSION, namespace, ROLLOUT_PLURAL, name
                )
        return self._to_dict(obj)

    def list(
        self, kind: ObjectKind, namespace: str, label_selector: Mapping[str, str] | None = None
    ) -> list[dict[str, Any]]:
        selector = _selector_string(label_selector)
        with self._api_errors(kind, namespace, ""):
            if kind is ObjectKind.SERVICE:
                items = self.core_api.list_namespaced_service(
                    namespace=namespace, label_selector=selector
                ).items
            elif kind is ObjectKind.REPLICA_SET:
                items = self.apps_api.list_namespaced_replica_set(
                    namespace=namespace, label_selector=selector
                ).items
            else:
                items = self.custom_api.list_namespaced_custom_object(
                    ROLLOUT_GROUP,
                    ROLLOUT_VERSION,
                    namespace,
                    ROLLOUT_PLURAL,
                    label_selector=selector,
                )["items"]
        logger.debug(
            "store.listed",
            extra={"extra": {"kind": kind.value, "namespace": namespace, "count": len(items)}},
        )
        return [self._to_dict(item) for item in items]

    def patch(
        self,
        kind: ObjectKind,
        namespace: str,
        name: str,
        merge_patch: Mapping[str, Any],
        expected_version: str | None = None,
    ) -> dict[str, Any]:
        body = dict(merge_patch)
        if expected_version is not None:
            # The API server rejects the write with 409 when the version moved.
            body = json_merge_patch(body, {"metadata": {"resourceVersion": expected_version}})
        with self._api_errors(kind, namespace, name, expected_version):
            if kind is ObjectKind.SERVICE:
                obj = self.core_api.patch_namespaced_service(
                    name=name, namespace=namespace, body=body
                )
            elif kind is ObjectKind.REPLICA_SET:
                obj = self.apps_api.patch_namespaced_replica_set(
                    name=name, namespace=namespace, body=body
                )
            elif "status" in body:
                obj = self.custom_api.patch_namespaced_custom_object_status(
                    ROLLOUT_GROUP, ROLLOUT_VERSION, namespace, ROLLOUT_PLURAL, name, body
                )
            else:
                obj = self.custom_api.patch_namespaced_custom_object(
                    ROLLOUT_GROUP, ROLLOUT_VERSION, namespace, ROLLOUT_PLURAL, name, body
                )
        return self._to_dict(obj)

    def delete(
        self, kind: ObjectKind, namespace: str, name: str, expected_version: str | None = None
    ) -> None:
        if kind is not ObjectKind.REPLICA_SET:
            raise ValueError(f"Deleting {kind.value} objects is not supported")
        options = client.V1DeleteOptions(
            propagation_policy="Background",
            preconditions=client.V1Preconditions(resource_version=expected_version)
            if expected_version
            else None,
        )
        with self._api_errors(kind, namespace, name, expected_version):
            self.apps_api.delete_namespaced_replica_set(
                name=name, namespace=namespace, body=options
            )
