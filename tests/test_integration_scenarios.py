"""Integration tests for the demo scenarios."""

from __future__ import annotations

import os

import pytest

from bluegreen.contracts.types import ConditionStatus, ConditionType, OperationKind, VerifyingPreview
from bluegreen.demo import fixtures
from bluegreen.demo.runner import ScenarioResult, run_scenario
from bluegreen.observability.telemetry import DISABLE_ENV, tracing_disabled


def _run(scenario: fixtures.ScenarioFixtures) -> ScenarioResult:
    return run_scenario(scenario, start_metrics=False, enable_tracing=False)


def _available(result: ScenarioResult) -> ConditionStatus | None:
    condition = result.status.condition(ConditionType.AVAILABLE)
    return condition.status if condition else None


def test_first_rollout_promotes_once_ready() -> None:
    result = _run(fixtures.first_rollout())
    assert result.selectors[fixtures.ACTIVE_SERVICE] == fixtures.pod_hash("web:1.0")
    assert _available(result) is ConditionStatus.TRUE
    assert result.status.available_replicas == fixtures.REPLICAS


def test_preview_waits_for_approval_then_cuts_over() -> None:
    result = _run(fixtures.preview_verification())
    new_hash = fixtures.pod_hash("web:2.0")
    assert result.selectors == {
        fixtures.ACTIVE_SERVICE: new_hash,
        fixtures.PREVIEW_SERVICE: new_hash,
    }
    assert result.status.verifying_preview is VerifyingPreview.UNSET
    assert result.status.replicas == fixtures.REPLICAS
    kinds = [event.reason for event in result.events]
    # Preview is repointed long before the active service moves.
    assert kinds.count(OperationKind.PATCH_SERVICE_SELECTOR.value) == 2
    assert kinds.index(OperationKind.SCALE_DOWN_REPLICA_SET.value) > kinds.index(
        OperationKind.PATCH_SERVICE_SELECTOR.value
    )


def test_revision_history_is_trimmed() -> None:
    result = _run(fixtures.revision_history())
    assert result.selectors[fixtures.ACTIVE_SERVICE] == fixtures.pod_hash("web:4.0")
    assert result.replica_sets == sorted(
        [f"web-{fixtures.pod_hash('web:3.0')}", f"web-{fixtures.pod_hash('web:4.0')}"]
    )
    removals = [
        event for event in result.events if event.reason == OperationKind.REMOVE_REPLICA_SET.value
    ]
    assert len(removals) == 2
    assert _available(result) is ConditionStatus.TRUE


def test_disabling_tracing_for_a_run_leaves_environment_alone(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.delenv(DISABLE_ENV, raising=False)
    _run(fixtures.first_rollout())
    assert DISABLE_ENV not in os.environ
    assert not tracing_disabled()
