"""Inferred JSON schema entities."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class NullSchema:
    """Shape of a JSON null."""


@dataclass(frozen=True)
class EmptySchema:
    """Element shape of an array that was only ever seen empty."""


@dataclass(frozen=True)
class BoolSchema:
    """Shape of a JSON boolean."""


@dataclass(frozen=True)
class IntegerSchema:
    """Shape of an integral JSON number."""


@dataclass(frozen=True)
class FloatSchema:
    """Shape of a fractional JSON number."""


@dataclass(frozen=True)
class TextSchema:
    """Shape of a JSON string."""


@dataclass(frozen=True)
class ArraySchema:
    """Homogeneous JSON array."""

    element: Schema


@dataclass(frozen=True)
class FieldSchema:
    """One named member of an object shape."""

    name: str
    schema: Schema
    optional: bool = False


@dataclass(frozen=True)
class ObjectSchema:
    """JSON object with fields in first-seen order.

    ``wrapped`` marks the synthetic object built around a non-object root value.
    """

    fields: tuple[FieldSchema, ...] = ()
    wrapped: bool = field(default=False, compare=False)

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(member.name for member in self.fields)

    def get(self, name: str) -> FieldSchema | None:
        for member in self.fields:
            if member.name == name:
                return member
        return None


@dataclass(frozen=True)
class NullableSchema:
    """Schema that was also observed as null outside an object field."""

    inner: Schema


@dataclass(frozen=True)
class ConflictingSchema:
    """Shapes of different kind families seen at the same position.

    Alternatives keep first-seen order and never share a family; the merge
    engine resolves them later through its strategy choice.
    """

    alternatives: tuple[Schema, ...]


Schema = (
    NullSchema
    | EmptySchema
    | BoolSchema
    | IntegerSchema
    | FloatSchema
    | TextSchema
    | ArraySchema
    | ObjectSchema
    | NullableSchema
    | ConflictingSchema
)


def schema_family(schema: Schema) -> str:
    """Return the kind family used to group conflicting alternatives."""
    if isinstance(schema, NullSchema):
        return "null"
    if isinstance(schema, EmptySchema):
        return "empty"
    if isinstance(schema, BoolSchema):
        return "bool"
    if isinstance(schema, IntegerSchema | FloatSchema):
        return "number"
    if isinstance(schema, TextSchema):
        return "text"
    if isinstance(schema, ArraySchema):
        return "array"
    if isinstance(schema, ObjectSchema):
        return "object"
    if isinstance(schema, NullableSchema):
        return schema_family(schema.inner)
    return "conflict"


def describe_schema(schema: Schema) -> str:
    """Return a short human-readable rendering of a schema."""
    if isinstance(schema, NullSchema):
        return "null"
    if isinstance(schema, EmptySchema):
        return "unknown"
    if isinstance(schema, BoolSchema):
        return "bool"
    if isinstance(schema, IntegerSchema):
        return "integer"
    if isinstance(schema, FloatSchema):
        return "float"
    if isinstance(schema, TextSchema):
        return "text"
    if isinstance(schema, ArraySchema):
        return f"array<{describe_schema(schema.element)}>"
    if isinstance(schema, ObjectSchema):
        return "object{" + ", ".join(schema.field_names) + "}"
    if isinstance(schema, NullableSchema):
        return f"nullable<{describe_schema(schema.inner)}>"
    return " | ".join(describe_schema(alternative) for alternative in schema.alternatives)
