"""Pure extend-versus-variant decision table."""

from __future__ import annotations

from serde_struct_reconciler.configuration.runtime_settings import (
    HybridMode,
    MergeStrategy,
    ReconcileSettings,
)

from .merge_models import MergeOutcome


def decide_merge(
    score: float | None,
    conflict_density: float,
    strategy: MergeStrategy,
    settings: ReconcileSettings,
    *,
    differing_fields: int = 0,
) -> MergeOutcome:
    """Choose how an object shape is merged into its target definition.

    Args:
      score: Field-name overlap with the target, or None when there is no target.
      conflict_density: Share of same-named fields whose types cannot be widened.
      strategy: Caller-selected strategy.
      settings: Thresholds for the enum and hybrid strategies.
      differing_fields: One-sided plus conflicting fields, used by the
        ``conflict_count`` hybrid mode.

    Returns:
      ``NEW_DEFINITION`` without a target, otherwise ``OPTIONAL_WIDEN`` or
      ``ENUM_VARIANT``. Coverage (``UNCHANGED``) is decided by the caller first.
    """
    if score is None:
        return MergeOutcome.NEW_DEFINITION
    if strategy is MergeStrategy.OPTIONAL:
        return MergeOutcome.OPTIONAL_WIDEN
    if strategy is MergeStrategy.ENUM:
        if score < settings.enum_overlap_threshold or conflict_density > 0:
            return MergeOutcome.ENUM_VARIANT
        return MergeOutcome.OPTIONAL_WIDEN
    if settings.hybrid.mode is HybridMode.CONFLICT_COUNT:
        if differing_fields > settings.hybrid.max_optional_fields:
            return MergeOutcome.ENUM_VARIANT
        return MergeOutcome.OPTIONAL_WIDEN
    if score < settings.hybrid_threshold or conflict_density >= settings.hybrid.conflict_density:
        return MergeOutcome.ENUM_VARIANT
    return MergeOutcome.OPTIONAL_WIDEN


def decide_variant_merge(
    best_variant_score: float | None, has_conflicts: bool, settings: ReconcileSettings
) -> MergeOutcome:
    """Choose between widening a sum type's closest variant and appending a new one."""
    if best_variant_score is None or has_conflicts:
        return MergeOutcome.ENUM_VARIANT
    if best_variant_score >= settings.extend_threshold:
        return MergeOutcome.OPTIONAL_WIDEN
    return MergeOutcome.ENUM_VARIANT
