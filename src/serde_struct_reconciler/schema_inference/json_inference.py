"""JSON parsing and schema inference service."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import replace
from functools import reduce
from typing import Any

from serde_struct_reconciler.failures import FailureKind, ReconciliationError

from .schema_models import (
    ArraySchema,
    BoolSchema,
    ConflictingSchema,
    EmptySchema,
    FieldSchema,
    FloatSchema,
    IntegerSchema,
    NullableSchema,
    NullSchema,
    ObjectSchema,
    Schema,
    TextSchema,
    schema_family,
)

ROOT_ARRAY_FIELD = "items"
ROOT_VALUE_FIELD = "value"


class InvalidJsonError(ReconciliationError):
    """Raised when the JSON input cannot be parsed."""

    kind = FailureKind.INVALID_JSON


def parse_json_text(text: str) -> Any:
    """Parse JSON text, rejecting the non-standard NaN/Infinity constants."""
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except json.JSONDecodeError as exc:
        raise InvalidJsonError(
            f"Invalid JSON input: {exc.msg}",
            location=f"line {exc.lineno}, column {exc.colno}",
        ) from exc
    except ValueError as exc:
        raise InvalidJsonError(f"Invalid JSON input: {exc}") from exc


def _reject_constant(constant: str) -> Any:
    raise ValueError(f"unsupported constant {constant}")


def infer(value: Any) -> Schema:
    """Infer the schema of one parsed JSON value."""
    if value is None:
        return NullSchema()
    if isinstance(value, bool):
        return BoolSchema()
    if isinstance(value, int):
        return IntegerSchema()
    if isinstance(value, float):
        return FloatSchema()
    if isinstance(value, str):
        return TextSchema()
    if isinstance(value, Mapping):
        return ObjectSchema(tuple(_infer_field(str(key), item) for key, item in value.items()))
    if isinstance(value, Sequence):
        if not value:
            return ArraySchema(EmptySchema())
        return ArraySchema(reduce(merge_schemas, (infer(item) for item in value)))
    raise TypeError(f"Unsupported JSON value type: {type(value).__name__}")


def infer_root(value: Any) -> ObjectSchema:
    """Infer the root object shape, wrapping arrays and scalars in a synthetic object."""
    schema = infer(value)
    if isinstance(schema, ObjectSchema):
        return schema
    if isinstance(schema, ArraySchema):
        return ObjectSchema((FieldSchema(ROOT_ARRAY_FIELD, schema),), wrapped=True)
    return ObjectSchema(
        (FieldSchema(ROOT_VALUE_FIELD, schema, optional=isinstance(schema, NullSchema)),),
        wrapped=True,
    )


def merge_schemas(left: Schema, right: Schema) -> Schema:
    """Combine two schemas into one that accepts both.

    The merge is total: cross-family pairs produce a ``ConflictingSchema``
    rather than an error.

    The element of an empty array adds nothing, so it yields the other side.
    """
    if isinstance(left, EmptySchema):
        return right
    if isinstance(right, EmptySchema):
        return left
    if isinstance(left, NullSchema):
        return _as_nullable(right)
    if isinstance(right, NullSchema):
        return _as_nullable(left)
    if isinstance(left, NullableSchema) or isinstance(right, NullableSchema):
        return _as_nullable(merge_schemas(_strip_nullable(left), _strip_nullable(right)))
    if isinstance(left, ConflictingSchema) or isinstance(right, ConflictingSchema):
        return _merge_alternatives(_alternatives(left) + _alternatives(right))
    if left == right:
        return left
    if isinstance(left, IntegerSchema | FloatSchema) and isinstance(
        right, IntegerSchema | FloatSchema
    ):
        return FloatSchema()
    if isinstance(left, ArraySchema) and isinstance(right, ArraySchema):
        return ArraySchema(merge_schemas(left.element, right.element))
    if isinstance(left, ObjectSchema) and isinstance(right, ObjectSchema):
        return _merge_objects(left, right)
    return ConflictingSchema((left, right))


def _infer_field(name: str, value: Any) -> FieldSchema:
    schema = infer(value)
    return FieldSchema(name=name, schema=schema, optional=isinstance(schema, NullSchema))


def _merge_objects(left: ObjectSchema, right: ObjectSchema) -> ObjectSchema:
    right_by_name = {field.name: field for field in right.fields}
    left_names = set(left.field_names)
    merged: list[FieldSchema] = []
    for field in left.fields:
        other = right_by_name.get(field.name)
        if other is None:
            merged.append(replace(field, optional=True))
        else:
            merged.append(_merge_fields(field, other))
    for field in right.fields:
        if field.name not in left_names:
            merged.append(replace(field, optional=True))
    return ObjectSchema(tuple(merged))


def _merge_fields(left: FieldSchema, right: FieldSchema) -> FieldSchema:
    schema = merge_schemas(left.schema, right.schema)
    optional = left.optional or right.optional
    if isinstance(schema, NullableSchema):
        schema = schema.inner
        optional = True
    elif isinstance(schema, NullSchema):
        optional = True
    return FieldSchema(name=left.name, schema=schema, optional=optional)


def _as_nullable(schema: Schema) -> Schema:
    if isinstance(schema, NullSchema | NullableSchema):
        return schema
    return NullableSchema(schema)


def _strip_nullable(schema: Schema) -> Schema:
    return schema.inner if isinstance(schema, NullableSchema) else schema


def _alternatives(schema: Schema) -> tuple[Schema, ...]:
    if isinstance(schema, ConflictingSchema):
        return schema.alternatives
    return (schema,)


def _merge_alternatives(alternatives: tuple[Schema, ...]) -> Schema:
    merged: list[Schema] = []
    for alternative in alternatives:
        family = schema_family(alternative)
        for index, existing in enumerate(merged):
            if schema_family(existing) == family:
                merged[index] = merge_schemas(existing, alternative)
                break
        else:
            merged.append(alternative)
    if len(merged) == 1:
        return merged[0]
    return ConflictingSchema(tuple(merged))
