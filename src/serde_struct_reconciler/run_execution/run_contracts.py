"""Run execution entities."""

from __future__ import annotations

from dataclasses import dataclass, field

from serde_struct_reconciler.configuration.runtime_settings import ReconcileSettings
from serde_struct_reconciler.failures import FailureKind
from serde_struct_reconciler.merge_engine import MergeDecision, TypeFallback


@dataclass(frozen=True)
class RunRequest:
    """Input contract for executing one run."""

    json_text: str
    existing_source: str | None = None
    settings: ReconcileSettings = field(default_factory=ReconcileSettings)


@dataclass(frozen=True)
class RunFailure:
    """Caller-visible reason a run produced no source."""

    kind: FailureKind
    message: str
    location: str | None = None


@dataclass(frozen=True)
class RunOutcome:
    """Output contract for one completed run."""

    source_text: str | None
    decisions: tuple[MergeDecision, ...] = ()
    failure: RunFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def fallbacks(self) -> tuple[TypeFallback, ...]:
        return tuple(fallback for decision in self.decisions for fallback in decision.fallbacks)
