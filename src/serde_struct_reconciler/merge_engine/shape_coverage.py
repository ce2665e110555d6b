"""Pure coverage and compatibility checks between shapes and definitions."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace

from serde_struct_reconciler.definition_extraction import (
    ArrayRef,
    Definition,
    DefinitionField,
    DefinitionLookup,
    DefinitionVariant,
    NamedRef,
    OpaqueRef,
    OptionRef,
    ScalarKind,
    ScalarRef,
    TypeRef,
    flattened_keys,
    index_fields_by_key,
    split_flattened,
)
from serde_struct_reconciler.definition_extraction.serde_attributes import has_serde_flag
from serde_struct_reconciler.schema_inference import (
    ArraySchema,
    BoolSchema,
    ConflictingSchema,
    EmptySchema,
    FloatSchema,
    IntegerSchema,
    NullableSchema,
    NullSchema,
    ObjectSchema,
    Schema,
    TextSchema,
)

# Pairs of (definition name, shape) already being checked higher up the recursion.
Visiting = frozenset[tuple[str, Schema]]


@dataclass(frozen=True)
class FieldComparison:
    """Classification of the fields of a shape against a field set."""

    shared: tuple[str, ...]
    conflicting: tuple[str, ...]
    one_sided: tuple[str, ...]

    @property
    def conflict_density(self) -> float:
        if not self.shared:
            return 0.0
        return len(self.conflicting) / len(self.shared)

    @property
    def differing_fields(self) -> int:
        return len(self.one_sided) + len(self.conflicting)


def tolerates_absence(field: DefinitionField) -> bool:
    """Return True when a field deserializes from JSON that omits it."""
    return field.optional or has_serde_flag(field.attributes, "default")


def partition_shape(schema: ObjectSchema, keys: Iterable[str]) -> tuple[ObjectSchema, ObjectSchema]:
    """Split a shape into the fields named by ``keys`` and the rest."""
    wanted = set(keys)
    inside = ObjectSchema(tuple(field for field in schema.fields if field.name in wanted))
    outside = replace(
        schema, fields=tuple(field for field in schema.fields if field.name not in wanted)
    )
    return inside, outside


def member_partition(
    definition: Definition, schema: ObjectSchema, lookup: DefinitionLookup
) -> tuple[ObjectSchema, ObjectSchema]:
    """Split a shape into the keys a flattened struct owns and the rest."""
    keys = flattened_keys(definition.fields, definition.attributes, schema.field_names, lookup)
    return partition_shape(schema, keys)


def compare_fields(
    fields: Sequence[DefinitionField],
    container_attributes: Sequence[str],
    schema: ObjectSchema,
    lookup: DefinitionLookup,
) -> FieldComparison:
    """Split keys into shared, type-conflicting and one-sided sets.

    Keys owned by ``#[serde(flatten)]`` structs are classified against those structs.
    """
    own, flattened = split_flattened(fields, lookup)
    shared: list[str] = []
    conflicting: list[str] = []
    one_sided: list[str] = []
    remaining = schema
    for member, definition in flattened:
        inside, remaining = member_partition(definition, remaining, lookup)
        if member.optional and not inside.fields:
            continue
        nested = compare_fields(definition.fields, definition.attributes, inside, lookup)
        shared.extend(nested.shared)
        conflicting.extend(nested.conflicting)
        one_sided.extend(nested.one_sided)
    by_key = index_fields_by_key(own, container_attributes, remaining.field_names)
    one_sided.extend(key for key in by_key if remaining.get(key) is None)
    for schema_field in remaining.fields:
        existing = by_key.get(schema_field.name)
        if existing is None:
            one_sided.append(schema_field.name)
            continue
        shared.append(schema_field.name)
        if not is_compatible(existing.type_ref, schema_field.schema, lookup):
            conflicting.append(schema_field.name)
    return FieldComparison(tuple(shared), tuple(conflicting), tuple(one_sided))


def covers_fields(
    fields: Sequence[DefinitionField],
    container_attributes: Sequence[str],
    schema: ObjectSchema,
    lookup: DefinitionLookup,
    visiting: Visiting = frozenset(),
) -> bool:
    """Return True when the field set already deserializes every value of ``schema``."""
    own, flattened = split_flattened(fields, lookup)
    remaining = schema
    for member, definition in flattened:
        inside, remaining = member_partition(definition, remaining, lookup)
        if member.optional and not inside.fields:
            continue
        if not covers_fields(definition.fields, definition.attributes, inside, lookup, visiting):
            return False
    by_key = index_fields_by_key(own, container_attributes, remaining.field_names)
    for schema_field in remaining.fields:
        existing = by_key.get(schema_field.name)
        if existing is None:
            return False
        if schema_field.optional and not existing.optional:
            return False
        if isinstance(schema_field.schema, NullSchema):
            continue
        if not accepts(existing.type_ref, schema_field.schema, lookup, visiting):
            return False
    return all(
        tolerates_absence(existing)
        for key, existing in by_key.items()
        if remaining.get(key) is None
    )


def covers_definition(
    definition: Definition,
    schema: ObjectSchema,
    lookup: DefinitionLookup,
    visiting: Visiting = frozenset(),
) -> bool:
    """Return True when a struct, or any struct-like variant of a sum type, covers ``schema``."""
    if (definition.name, schema) in visiting:
        return True
    inner_visiting = visiting | {(definition.name, schema)}
    if definition.is_sum_type:
        return any(
            covers_fields(variant.fields, variant.attributes, schema, lookup, inner_visiting)
            for variant in definition.variants
            if variant.is_struct_like
        )
    return covers_fields(definition.fields, definition.attributes, schema, lookup, inner_visiting)


def accepts(
    type_ref: TypeRef,
    schema: Schema,
    lookup: DefinitionLookup,
    visiting: Visiting = frozenset(),
) -> bool:
    """Return True when a declared type already deserializes every value of ``schema``.

    Elements of arrays only ever seen empty are accepted everywhere; null needs an
    ``Option`` or an untyped value.
    """
    if _accepts_anything(type_ref) or isinstance(schema, EmptySchema):
        return True
    if isinstance(schema, NullSchema):
        return isinstance(type_ref, OptionRef)
    if isinstance(schema, NullableSchema):
        if not isinstance(type_ref, OptionRef):
            return False
        return accepts(type_ref.inner, schema.inner, lookup, visiting)
    if isinstance(type_ref, OptionRef):
        return accepts(type_ref.inner, schema, lookup, visiting)
    if isinstance(type_ref, NamedRef):
        definition = lookup(type_ref.name)
        if definition is None:
            return True
        if definition.is_sum_type:
            return sum_type_accepts(definition, schema, lookup, visiting)
        if not isinstance(schema, ObjectSchema):
            return False
        return covers_definition(definition, schema, lookup, visiting)
    if isinstance(type_ref, ArrayRef):
        if not isinstance(schema, ArraySchema):
            return False
        return accepts(type_ref.element, schema.element, lookup, visiting)
    if isinstance(type_ref, ScalarRef):
        return scalar_accepts(type_ref.kind, schema, exact=True)
    return False


def sum_type_accepts(
    definition: Definition,
    schema: Schema,
    lookup: DefinitionLookup,
    visiting: Visiting = frozenset(),
) -> bool:
    """Return True when some variant of a sum type accepts every alternative of ``schema``."""
    if (definition.name, schema) in visiting:
        return True
    inner_visiting = visiting | {(definition.name, schema)}
    alternatives = schema.alternatives if isinstance(schema, ConflictingSchema) else (schema,)
    for alternative in alternatives:
        if not any(
            _variant_accepts(variant, alternative, lookup, inner_visiting)
            for variant in definition.variants
        ):
            return False
    return True


def is_compatible(type_ref: TypeRef, schema: Schema, lookup: DefinitionLookup) -> bool:
    """Return True when ``type_ref`` can be widened to ``schema`` without the textual fallback."""
    if _accepts_anything(type_ref) or isinstance(schema, NullSchema | EmptySchema):
        return True
    if isinstance(schema, NullableSchema):
        inner = type_ref.inner if isinstance(type_ref, OptionRef) else type_ref
        return is_compatible(inner, schema.inner, lookup)
    if isinstance(type_ref, OptionRef):
        return is_compatible(type_ref.inner, schema, lookup)
    if isinstance(type_ref, NamedRef):
        definition = lookup(type_ref.name)
        if definition is None:
            return True
        if definition.is_sum_type and has_payload_variants(definition):
            return True
        return isinstance(schema, ObjectSchema)
    if isinstance(type_ref, ArrayRef):
        if not isinstance(schema, ArraySchema):
            return False
        return is_compatible(type_ref.element, schema.element, lookup)
    if isinstance(type_ref, ScalarRef):
        return scalar_accepts(type_ref.kind, schema, exact=False)
    return False


def scalar_accepts(kind: ScalarKind, schema: Schema, *, exact: bool) -> bool:
    """Return True when a scalar kind takes ``schema``.

    Integer kinds also take floats unless ``exact`` is set.
    """
    if kind is ScalarKind.ANY:
        return True
    if kind is ScalarKind.BOOL:
        return isinstance(schema, BoolSchema)
    if kind is ScalarKind.INTEGER:
        return isinstance(schema, IntegerSchema) or (not exact and isinstance(schema, FloatSchema))
    if kind is ScalarKind.FLOAT:
        return isinstance(schema, IntegerSchema | FloatSchema)
    return isinstance(schema, TextSchema)


def has_payload_variants(definition: Definition) -> bool:
    return any(variant.payload is not None for variant in definition.variants)


def _accepts_anything(type_ref: TypeRef) -> bool:
    if isinstance(type_ref, OpaqueRef):
        return True
    return isinstance(type_ref, ScalarRef) and type_ref.kind is ScalarKind.ANY


def _variant_accepts(
    variant: DefinitionVariant,
    schema: Schema,
    lookup: DefinitionLookup,
    visiting: Visiting,
) -> bool:
    if variant.payload is not None:
        return accepts(variant.payload, schema, lookup, visiting)
    if variant.is_struct_like and isinstance(schema, ObjectSchema):
        return covers_fields(variant.fields, variant.attributes, schema, lookup, visiting)
    return False
