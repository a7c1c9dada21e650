"""Controller configuration."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
import os
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

DEFAULT_CONFIG_PATH = Path(__file__).with_name("controller.yaml")

ENV_PREFIX = "BLUEGREEN_"


def get_config_value(key: str, default: str | None = None) -> str | None:
    """Return ``BLUEGREEN_<KEY>`` from the environment, or ``default``."""
    return os.getenv(f"{ENV_PREFIX}{key.upper()}", default)


@dataclass(frozen=True, slots=True)
class ControllerConfig:
    """Well-known names and limits shared by the reconciler and the sync loop."""

    unique_label_key: str = "rollouts-pod-template-hash"
    desired_replicas_annotation: str = "rollout.argoproj.io/desired-replicas"
    default_revision_history_limit: int = 10
    max_conflict_retries: int = 5
    metrics_port: int = 8005
    service_name: str = "bluegreen-controller"

    @classmethod
    def load(cls, path: Path | None = None) -> ControllerConfig:
        data = yaml.safe_load((path or DEFAULT_CONFIG_PATH).read_text(encoding="utf-8")) or {}
        unknown = set(data) - {f.name for f in fields(cls)}
        if unknown:
            raise ValueError(f"Unknown controller config keys: {sorted(unknown)}")
        return cls(**data).with_env_overrides()

    def with_env_overrides(self) -> ControllerConfig:
        overrides: dict[str, Any] = {}
        for f in fields(self):
            raw = get_config_value(f.name)
            if raw is None:
                continue
            overrides[f.name] = int(raw) if isinstance(getattr(self, f.name), int) else raw
        config = replace(self, **overrides)
        if config.default_revision_history_limit < 1:
            raise ValueError("default_revision_history_limit must be at least 1")
        return config
