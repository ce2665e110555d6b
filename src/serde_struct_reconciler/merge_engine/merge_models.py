"""Merge decision entities produced by the reconciliation engine."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

from serde_struct_reconciler.configuration.runtime_settings import MergeStrategy
from serde_struct_reconciler.definition_extraction import (
    Definition,
    DefinitionField,
    DefinitionVariant,
)


class MergeOutcome(str, Enum):
    """Result actually applied to one definition."""

    NEW_DEFINITION = "new_definition"
    UNCHANGED = "unchanged"
    OPTIONAL_WIDEN = "optional_widen"
    ENUM_VARIANT = "enum_variant"


@dataclass(frozen=True)
class TypeFallback:
    """Type conflict resolved to the textual fallback type."""

    path: str
    existing: str | None
    inferred: str


@dataclass(frozen=True)
class MergeDecision:  # pylint: disable=too-many-instance-attributes
    """Outcome of reconciling one object shape with at most one existing definition."""

    name: str
    target: Definition | None
    strategy: MergeStrategy
    outcome: MergeOutcome
    definition: Definition
    fallbacks: tuple[TypeFallback, ...] = ()
    score: float | None = None

    @property
    def result_fields(self) -> tuple[DefinitionField, ...]:
        return self.definition.fields

    @property
    def result_variants(self) -> tuple[DefinitionVariant, ...]:
        return self.definition.variants

    @property
    def changed(self) -> bool:
        return self.outcome is not MergeOutcome.UNCHANGED


@dataclass(frozen=True)
class ReconciliationResult:
    """Every decision of one run plus the final definitions it touched.

    ``definitions`` keeps allocation order with the root first; only names in
    ``changed_names`` need to be emitted again.
    """

    root_name: str
    decisions: tuple[MergeDecision, ...]
    definitions: Mapping[str, Definition] = field(default_factory=dict)
    changed_names: frozenset[str] = frozenset()

    @property
    def fallbacks(self) -> tuple[TypeFallback, ...]:
        return tuple(fallback for decision in self.decisions for fallback in decision.fallbacks)

    @property
    def changed_definitions(self) -> tuple[Definition, ...]:
        return tuple(
            definition
            for name, definition in self.definitions.items()
            if name in self.changed_names
        )
