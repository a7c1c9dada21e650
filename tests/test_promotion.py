"""Unit tests for the promotion decision."""

from __future__ import annotations

import pytest

from bluegreen.contracts.types import ConditionReason
from bluegreen.reconciler.promotion import decide_promotion

from builders import LABEL_KEY, fingerprint, replica_set, service


def test_no_new_replica_set_keeps_active_target() -> None:
    decision = decide_promotion(None, service("active", "v1"), False, 1, label_key=LABEL_KEY)
    assert not decision.promote
    assert decision.target_fingerprint == fingerprint("v1")
    assert decision.reason is ConditionReason.NEW_RS_PENDING


def test_withheld_gate_blocks_saturated_replica_set() -> None:
    new_rs = replica_set("v2", age_minutes=1, replicas=1, available=1)
    decision = decide_promotion(new_rs, service("active", "v1"), True, 1, label_key=LABEL_KEY)
    assert not decision.promote
    assert decision.reason is ConditionReason.VERIFYING_PREVIEW


@pytest.mark.parametrize("available", [0, 1, 2])
def test_partially_available_replica_set_is_never_promoted(available: int) -> None:
    new_rs = replica_set("v2", age_minutes=1, replicas=3, available=available)
    decision = decide_promotion(new_rs, service("active", "v1"), False, 3, label_key=LABEL_KEY)
    assert not decision.promote
    assert decision.target_fingerprint == fingerprint("v1")
    assert decision.reason is ConditionReason.RS_UPDATED


def test_replica_set_still_scaling_up_is_not_promoted() -> None:
    new_rs = replica_set("v2", age_minutes=1, replicas=2, available=2)
    decision = decide_promotion(new_rs, service("active", "v1"), False, 3, label_key=LABEL_KEY)
    assert not decision.promote


def test_saturated_replica_set_is_promoted() -> None:
    new_rs = replica_set("v2", age_minutes=1, replicas=3, available=3)
    decision = decide_promotion(new_rs, service("active", "v1"), False, 3, label_key=LABEL_KEY)
    assert decision.promote
    assert decision.target_fingerprint == fingerprint("v2")
    assert decision.reason is ConditionReason.NEW_RS_AVAILABLE
    assert decision.clear_verification


def test_realized_promotion_clears_stale_verification_even_if_gated() -> None:
    new_rs = replica_set("v2", age_minutes=1, replicas=1, available=1)
    decision = decide_promotion(new_rs, service("active", "v2"), True, 1, label_key=LABEL_KEY)
    assert not decision.promote
    assert decision.clear_verification
    assert decision.reason is ConditionReason.NEW_RS_AVAILABLE


def test_missing_active_service_is_reported() -> None:
    new_rs = replica_set("v2", age_minutes=1, replicas=1, available=1)
    decision = decide_promotion(new_rs, None, False, 1, label_key=LABEL_KEY)
    assert not decision.promote
    assert decision.target_fingerprint == ""
    assert decision.reason is ConditionReason.SERVICE_NOT_FOUND


def test_preview_switched_this_pass_defers_promotion() -> None:
    new_rs = replica_set("v2", age_minutes=1, replicas=1, available=1)
    decision = decide_promotion(
        new_rs, service("active", "v1"), False, 1, label_key=LABEL_KEY, preview_switched=True
    )
    assert not decision.promote
    assert decision.target_fingerprint == fingerprint("v1")
    assert decision.reason is ConditionReason.PREVIEW_SWITCHED
    assert not decision.clear_verification


def test_unsaturated_replica_set_reports_progress_even_after_preview_switch() -> None:
    new_rs = replica_set("v2", age_minutes=1, replicas=1, available=0)
    decision = decide_promotion(
        new_rs, service("active", "v1"), False, 1, label_key=LABEL_KEY, preview_switched=True
    )
    assert decision.reason is ConditionReason.RS_UPDATED
