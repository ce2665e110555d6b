"""Structural type definition entities parsed from existing Rust source."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ScalarKind(str, Enum):
    """Scalar vocabulary shared with inferred schemas."""

    BOOL = "bool"
    INTEGER = "integer"
    FLOAT = "float"
    TEXT = "text"
    ANY = "any"


@dataclass(frozen=True)
class ScalarRef:
    """Scalar field type; ``spelling`` keeps the Rust type as written."""

    kind: ScalarKind
    spelling: str


@dataclass(frozen=True)
class ArrayRef:
    """``Vec<T>`` field type."""

    element: TypeRef


@dataclass(frozen=True)
class OptionRef:
    """``Option<T>`` nested below the top level of a field type."""

    inner: TypeRef


@dataclass(frozen=True)
class NamedRef:
    """Reference to another named definition."""

    name: str
    spelling: str = ""

    @property
    def rendered(self) -> str:
        return self.spelling or self.name


@dataclass(frozen=True)
class OpaqueRef:
    """Rust type outside the modeled vocabulary, kept verbatim."""

    text: str


TypeRef = ScalarRef | ArrayRef | OptionRef | NamedRef | OpaqueRef


@dataclass(frozen=True)
class SourceSpan:
    """Half-open character range into the original source text."""

    start: int
    end: int


@dataclass(frozen=True)
class DefinitionField:
    """One named field of a struct or struct-like enum variant.

    ``optional`` is true when the declared type is ``Option<T>``; ``type_ref``
    then describes ``T``.
    """

    name: str
    type_ref: TypeRef
    optional: bool = False
    attributes: tuple[str, ...] = ()
    visibility: str = ""
    docs: tuple[str, ...] = ()


@dataclass(frozen=True)
class DefinitionVariant:
    """One variant of a sum type: struct-like, single-payload tuple, or unit."""

    name: str
    fields: tuple[DefinitionField, ...] = ()
    payload: TypeRef | None = None
    attributes: tuple[str, ...] = ()
    docs: tuple[str, ...] = ()

    @property
    def is_struct_like(self) -> bool:
        return self.payload is None and bool(self.fields)


@dataclass(frozen=True)
class Definition:
    """Named structural type: a struct, or a sum type when ``is_sum_type`` is set."""

    name: str
    fields: tuple[DefinitionField, ...] = ()
    variants: tuple[DefinitionVariant, ...] = ()
    is_sum_type: bool = False
    derives: tuple[str, ...] = ()
    attributes: tuple[str, ...] = ()
    visibility: str = "pub"
    docs: tuple[str, ...] = ()
    span: SourceSpan | None = field(default=None, compare=False)


@dataclass(frozen=True)
class PreservedRegion:
    """Opaque source text carried through unchanged."""

    span: SourceSpan
    text: str


class RegionKind(str, Enum):
    """Arena a layout entry points into."""

    PRESERVED = "preserved"
    DEFINITION = "definition"


@dataclass(frozen=True)
class RegionRef:
    """Position of one region in the original source order."""

    kind: RegionKind
    index: int


@dataclass(frozen=True)
class ExtractedSource:
    """Existing source split into definitions and preserved regions.

    Concatenating the regions referenced by ``layout`` reproduces ``text``.
    """

    text: str
    definitions: tuple[Definition, ...] = ()
    preserved: tuple[PreservedRegion, ...] = ()
    layout: tuple[RegionRef, ...] = ()
    declared_names: frozenset[str] = frozenset()

    def definition_text(self, index: int) -> str:
        span = self.definitions[index].span
        if span is None:
            raise ValueError(f"Definition {self.definitions[index].name} has no source span.")
        return self.text[span.start : span.end]

    def find_definition(self, name: str) -> Definition | None:
        for definition in self.definitions:
            if definition.name == name:
                return definition
        return None
