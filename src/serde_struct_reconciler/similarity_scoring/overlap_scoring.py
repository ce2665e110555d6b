"""Field-name overlap scoring between inferred shapes and existing definitions."""

from __future__ import annotations

from collections.abc import Collection, Sequence
from dataclasses import dataclass

from serde_struct_reconciler.definition_extraction import (
    Definition,
    DefinitionLookup,
    DefinitionVariant,
    flattened_keys,
)
from serde_struct_reconciler.schema_inference import ObjectSchema


@dataclass(frozen=True)
class DefinitionMatch:
    """Best-scoring definition together with its score and declaration position."""

    definition: Definition
    score: float
    position: int


def score(
    schema: ObjectSchema, definition: Definition, lookup: DefinitionLookup | None = None
) -> float:
    """Return the Jaccard overlap of JSON field names, in ``[0, 1]``.

    Field types are ignored. A sum type scores as its best struct-like variant.
    With ``lookup``, keys of ``#[serde(flatten)]`` structs count as the owner's keys.
    """
    if definition.is_sum_type:
        return max(
            (
                variant_score(schema, variant, lookup)
                for variant in definition.variants
                if variant.is_struct_like
            ),
            default=0.0,
        )
    keys = schema.field_names
    return _jaccard(
        set(keys), flattened_keys(definition.fields, definition.attributes, keys, lookup)
    )


def variant_score(
    schema: ObjectSchema, variant: DefinitionVariant, lookup: DefinitionLookup | None = None
) -> float:
    """Return the overlap between a shape and one struct-like variant."""
    keys = schema.field_names
    return _jaccard(set(keys), flattened_keys(variant.fields, variant.attributes, keys, lookup))


def find_best_match(
    schema: ObjectSchema,
    definitions: Sequence[Definition],
    *,
    threshold: float,
    exclude: Collection[str] = (),
    lookup: DefinitionLookup | None = None,
) -> DefinitionMatch | None:
    """Return the highest-scoring definition at or above ``threshold``.

    Ties go to the definition declared first.
    """
    best: DefinitionMatch | None = None
    for position, definition in enumerate(definitions):
        if definition.name in exclude:
            continue
        current = score(schema, definition, lookup)
        if best is None or current > best.score:
            best = DefinitionMatch(definition=definition, score=current, position=position)
    if best is None or best.score < threshold:
        return None
    return best


def _jaccard(left: Collection[str], right: Collection[str]) -> float:
    union = set(left) | set(right)
    if not union:
        return 1.0
    return len(set(left) & set(right)) / len(union)
