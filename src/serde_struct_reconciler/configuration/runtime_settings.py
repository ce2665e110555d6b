"""Configuration domain entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

DEFAULT_ROOT_NAME = "RootStruct"
DEFAULT_EXTEND_THRESHOLD = 0.70
DEFAULT_ENUM_OVERLAP_THRESHOLD = 0.5
DEFAULT_HYBRID_CONFLICT_DENSITY = 0.5
DEFAULT_HYBRID_MAX_OPTIONAL_FIELDS = 3
DEFAULT_MAX_NAME_ATTEMPTS = 100


class MergeStrategy(str, Enum):
    """Caller-selected reconciliation strategy."""

    OPTIONAL = "optional"
    ENUM = "enum"
    HYBRID = "hybrid"

    @classmethod
    def parse(cls, value: str) -> MergeStrategy:
        """Return the strategy named by ``value``; anything else is rejected."""
        normalized = value.strip().lower() if isinstance(value, str) else value
        for strategy in cls:
            if strategy.value == normalized:
                return strategy
        allowed = ", ".join(strategy.value for strategy in cls)
        raise ValueError(f"Unknown merge strategy '{value}'. Expected one of: {allowed}.")


class HybridMode(str, Enum):
    """Rule the hybrid strategy applies to pick between widening and variants."""

    OVERLAP = "overlap"
    CONFLICT_COUNT = "conflict_count"


@dataclass(frozen=True)
class HybridSettings:
    """Boundary values for the hybrid strategy."""

    mode: HybridMode = HybridMode.OVERLAP
    threshold: float | None = None
    conflict_density: float = DEFAULT_HYBRID_CONFLICT_DENSITY
    max_optional_fields: int = DEFAULT_HYBRID_MAX_OPTIONAL_FIELDS


@dataclass(frozen=True)
class ReconcileSettings:  # pylint: disable=too-many-instance-attributes
    """Top-level reconciliation settings aggregate."""

    root_name: str = DEFAULT_ROOT_NAME
    strategy: MergeStrategy = MergeStrategy.OPTIONAL
    extend_threshold: float = DEFAULT_EXTEND_THRESHOLD
    enum_overlap_threshold: float = DEFAULT_ENUM_OVERLAP_THRESHOLD
    hybrid: HybridSettings = field(default_factory=HybridSettings)
    max_name_attempts: int = DEFAULT_MAX_NAME_ATTEMPTS

    @property
    def resolved_root_name(self) -> str:
        return self.root_name.strip() or DEFAULT_ROOT_NAME

    @property
    def hybrid_threshold(self) -> float:
        if self.hybrid.threshold is None:
            return self.extend_threshold
        return self.hybrid.threshold
