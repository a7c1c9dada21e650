"""Errors raised by object stores and the sync loop."""

from __future__ import annotations

from bluegreen.contracts.types import ObjectKind


class BlueGreenError(RuntimeError):
    """Base class for blue-green controller errors."""


class NotFoundError(BlueGreenError):
    """Referenced object does not exist."""

    def __init__(self, kind: ObjectKind, namespace: str, name: str) -> None:
        super().__init__(f"{kind.value} {namespace}/{name} not found")
        self.kind = kind
        self.namespace = namespace
        self.name = name


class ConflictError(BlueGreenError):
    """Optimistic concurrency check failed on a write."""

    def __init__(
        self,
        kind: ObjectKind,
        namespace: str,
        name: str,
        expected_version: str | None = None,
        actual_version: str | None = None,
    ) -> None:
        super().__init__(
            f"{kind.value} {namespace}/{name} changed: expected version "
            f"{expected_version}, found {actual_version}"
        )
        self.kind = kind
        self.namespace = namespace
        self.name = name
        self.expected_version = expected_version
        self.actual_version = actual_version


class TransientStoreError(BlueGreenError):
    """Store temporarily unavailable; the caller should back off and retry."""
