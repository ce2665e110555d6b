"""Tests for the extend-versus-variant decision table."""

from __future__ import annotations

import pytest
from serde_struct_reconciler.configuration import (
    HybridMode,
    HybridSettings,
    MergeStrategy,
    ReconcileSettings,
)
from serde_struct_reconciler.merge_engine import MergeOutcome, decide_merge, decide_variant_merge

_SETTINGS = ReconcileSettings()


@pytest.mark.parametrize("strategy", tuple(MergeStrategy))
def test_missing_target_always_creates_a_new_definition(strategy: MergeStrategy) -> None:
    assert decide_merge(None, 0.0, strategy, _SETTINGS) is MergeOutcome.NEW_DEFINITION


def test_optional_strategy_widens_regardless_of_score_and_conflicts() -> None:
    outcome = decide_merge(0.1, 1.0, MergeStrategy.OPTIONAL, _SETTINGS)

    assert outcome is MergeOutcome.OPTIONAL_WIDEN


@pytest.mark.parametrize(
    ("score", "density", "expected"),
    (
        (0.9, 0.0, MergeOutcome.OPTIONAL_WIDEN),
        (0.5, 0.0, MergeOutcome.OPTIONAL_WIDEN),
        (0.49, 0.0, MergeOutcome.ENUM_VARIANT),
        (0.9, 0.1, MergeOutcome.ENUM_VARIANT),
    ),
)
def test_enum_strategy_adds_variant_on_low_overlap_or_any_conflict(
    score: float, density: float, expected: MergeOutcome
) -> None:
    assert decide_merge(score, density, MergeStrategy.ENUM, _SETTINGS) is expected


@pytest.mark.parametrize(
    ("score", "density", "expected"),
    (
        (0.7, 0.0, MergeOutcome.OPTIONAL_WIDEN),
        (0.69, 0.0, MergeOutcome.ENUM_VARIANT),
        (0.9, 0.49, MergeOutcome.OPTIONAL_WIDEN),
        (0.9, 0.5, MergeOutcome.ENUM_VARIANT),
    ),
)
def test_hybrid_overlap_mode_uses_extend_threshold_by_default(
    score: float, density: float, expected: MergeOutcome
) -> None:
    assert decide_merge(score, density, MergeStrategy.HYBRID, _SETTINGS) is expected


def test_hybrid_overlap_mode_honours_dedicated_threshold() -> None:
    settings = ReconcileSettings(hybrid=HybridSettings(threshold=0.4))

    assert decide_merge(0.5, 0.0, MergeStrategy.HYBRID, settings) is MergeOutcome.OPTIONAL_WIDEN
    assert settings.hybrid_threshold == 0.4


def test_hybrid_conflict_count_mode_counts_differing_fields() -> None:
    settings = ReconcileSettings(
        hybrid=HybridSettings(mode=HybridMode.CONFLICT_COUNT, max_optional_fields=2)
    )

    within = decide_merge(0.1, 0.0, MergeStrategy.HYBRID, settings, differing_fields=2)
    beyond = decide_merge(0.9, 0.0, MergeStrategy.HYBRID, settings, differing_fields=3)

    assert within is MergeOutcome.OPTIONAL_WIDEN
    assert beyond is MergeOutcome.ENUM_VARIANT


def test_variant_merge_widens_close_conflict_free_variant() -> None:
    assert decide_variant_merge(0.8, False, _SETTINGS) is MergeOutcome.OPTIONAL_WIDEN
    assert decide_variant_merge(0.8, True, _SETTINGS) is MergeOutcome.ENUM_VARIANT
    assert decide_variant_merge(0.5, False, _SETTINGS) is MergeOutcome.ENUM_VARIANT
    assert decide_variant_merge(None, False, _SETTINGS) is MergeOutcome.ENUM_VARIANT
