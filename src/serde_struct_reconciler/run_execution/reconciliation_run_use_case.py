"""Run execution use-case service."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor

from serde_struct_reconciler.configuration.runtime_settings import ReconcileSettings
from serde_struct_reconciler.definition_extraction import ExtractedSource, extract_definitions
from serde_struct_reconciler.emission import assemble_source
from serde_struct_reconciler.failures import ReconciliationError
from serde_struct_reconciler.merge_engine import MergeDecision, reconcile_schema
from serde_struct_reconciler.schema_inference import ObjectSchema, infer_root, parse_json_text

from .run_contracts import RunFailure, RunOutcome, RunRequest

_LOGGER = logging.getLogger(__name__)

DEFAULT_PARALLELISM = 4


def execute_reconciliation_run(request: RunRequest) -> RunOutcome:
    """Reconcile one JSON document with the existing source and return the updated source.

    Fatal conditions are returned on ``RunOutcome.failure`` instead of raised.
    """
    try:
        root_schema = infer_root(parse_json_text(request.json_text))
        extracted = (
            extract_definitions(request.existing_source)
            if request.existing_source is not None
            else None
        )
        return _reconcile(root_schema, extracted, request.settings)
    except ReconciliationError as exc:
        return _failed(exc)


def execute_evolution_runs(
    json_texts: Sequence[str],
    existing_source: str | None = None,
    settings: ReconcileSettings | None = None,
) -> RunOutcome:
    """Fold several JSON documents in order, feeding each output into the next run.

    The first failure stops the fold; decisions of every completed run are kept.
    """
    resolved_settings = settings or ReconcileSettings()
    source = existing_source
    decisions: list[MergeDecision] = []
    for position, json_text in enumerate(json_texts, start=1):
        outcome = execute_reconciliation_run(
            RunRequest(json_text=json_text, existing_source=source, settings=resolved_settings)
        )
        decisions.extend(outcome.decisions)
        if outcome.failure is not None:
            _LOGGER.debug("Evolution stopped at input %d: %s", position, outcome.failure.message)
            return RunOutcome(source_text=None, decisions=tuple(decisions), failure=outcome.failure)
        source = outcome.source_text
    return RunOutcome(source_text=source or "", decisions=tuple(decisions))


def execute_batch_runs(
    json_texts: Sequence[str],
    existing_source: str | None = None,
    settings: ReconcileSettings | None = None,
    *,
    parallelism: int = DEFAULT_PARALLELISM,
) -> tuple[RunOutcome, ...]:
    """Reconcile independent JSON documents against one shared existing source.

    Outcomes keep the order of ``json_texts``.
    """
    resolved_settings = settings or ReconcileSettings()
    try:
        extracted = extract_definitions(existing_source) if existing_source is not None else None
    except ReconciliationError as exc:
        failed = _failed(exc)
        return tuple(failed for _ in json_texts)

    def _run_one(json_text: str) -> RunOutcome:
        try:
            return _reconcile(infer_root(parse_json_text(json_text)), extracted, resolved_settings)
        except ReconciliationError as exc:
            return _failed(exc)

    with ThreadPoolExecutor(max_workers=max(1, parallelism)) as executor:
        return tuple(executor.map(_run_one, json_texts))


def _reconcile(
    root_schema: ObjectSchema, extracted: ExtractedSource | None, settings: ReconcileSettings
) -> RunOutcome:
    result = reconcile_schema(root_schema, extracted if extracted is not None else (), settings)
    source_text = assemble_source(extracted, result)
    _LOGGER.info(
        "Reconciled %s: %d decisions, %d definitions emitted, %d fallbacks",
        result.root_name,
        len(result.decisions),
        len(result.changed_names),
        len(result.fallbacks),
    )
    return RunOutcome(source_text=source_text, decisions=result.decisions)


def _failed(exc: ReconciliationError) -> RunOutcome:
    _LOGGER.debug("Run failed with %s: %s", exc.kind.value, exc.message)
    return RunOutcome(
        source_text=None,
        failure=RunFailure(kind=exc.kind, message=exc.message, location=exc.location),
    )
