"""Contract every emitted definition must satisfy."""

from __future__ import annotations

from dataclasses import replace
from typing import Protocol

from serde_struct_reconciler.definition_extraction import Definition, DefinitionField
from serde_struct_reconciler.definition_extraction.serde_attributes import (
    has_serde_flag,
    is_flattened,
)

REQUIRED_DERIVES = ("Debug", "Clone", "Serialize", "Deserialize")
SKIP_NONE_ATTRIBUTE = '#[serde(skip_serializing_if = "Option::is_none")]'
UNTAGGED_ATTRIBUTE = "#[serde(untagged)]"
_TAGGING_FLAGS = ("untagged", "tag", "content")


class DefinitionRenderer(Protocol):
    """Turns one prepared definition into source text without a trailing newline."""

    def render(self, definition: Definition) -> str:
        """Render ``definition``."""


def prepare_for_emission(definition: Definition) -> Definition:
    """Add the derives and serde attributes a re-emitted definition must carry.

    Existing derives keep their order; derives are compared by their last
    path segment so ``serde::Serialize`` satisfies ``Serialize``.
    """
    present = {derive.rsplit("::", 1)[-1].strip() for derive in definition.derives}
    derives = definition.derives + tuple(
        derive for derive in REQUIRED_DERIVES if derive not in present
    )
    attributes = definition.attributes
    if definition.is_sum_type and not any(
        has_serde_flag(attributes, flag) for flag in _TAGGING_FLAGS
    ):
        attributes = (*attributes, UNTAGGED_ATTRIBUTE)
    return replace(
        definition,
        derives=derives,
        attributes=attributes,
        fields=_with_skip_attributes(definition.fields),
        variants=tuple(
            replace(variant, fields=_with_skip_attributes(variant.fields))
            for variant in definition.variants
        ),
    )


def _with_skip_attributes(fields: tuple[DefinitionField, ...]) -> tuple[DefinitionField, ...]:
    return tuple(
        replace(field, attributes=(*field.attributes, SKIP_NONE_ATTRIBUTE))
        if field.optional
        and not is_flattened(field)
        and not has_serde_flag(field.attributes, "skip_serializing_if")
        else field
        for field in fields
    )
