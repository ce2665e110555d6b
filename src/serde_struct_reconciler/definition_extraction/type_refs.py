"""Rust field type parsing and formatting."""

from __future__ import annotations

import re

from .definition_models import (
    ArrayRef,
    NamedRef,
    OpaqueRef,
    OptionRef,
    ScalarKind,
    ScalarRef,
    TypeRef,
)

INTEGER_SPELLINGS = frozenset(
    {"i8", "i16", "i32", "i64", "i128", "isize", "u8", "u16", "u32", "u64", "u128", "usize"}
)
FLOAT_SPELLINGS = frozenset({"f32", "f64"})
TEXT_SPELLINGS = frozenset({"String", "str", "char", "&str"})
ANY_SPELLINGS = frozenset({"serde_json::Value", "Value", "::serde_json::Value"})

_WHITESPACE = re.compile(r"\s+")
_PUNCT_SPACING = re.compile(r"\s*(<|(?<!-)>|::|,)\s*")
_BORROWED_STR = re.compile(r"^&\s*(?:'[A-Za-z_]\w*\s+)?str$")
_PATH = re.compile(r"^(?:::)?(?:[A-Za-z_]\w*::)*(?P<last>[A-Za-z_]\w*)$")
_GENERIC = re.compile(
    r"^(?P<head>(?:::)?(?:[A-Za-z_]\w*::)*(?P<last>[A-Za-z_]\w*))\s*<(?P<args>.*)>$", re.DOTALL
)


def parse_field_type(text: str) -> tuple[TypeRef, bool]:
    """Parse a declared field type, unwrapping one top-level ``Option``."""
    parsed = parse_type_ref(text)
    if isinstance(parsed, OptionRef):
        return parsed.inner, True
    return parsed, False


def parse_type_ref(text: str) -> TypeRef:
    """Map a Rust type expression onto the shared type vocabulary."""
    compact = _normalize(text)
    if compact in INTEGER_SPELLINGS:
        return ScalarRef(ScalarKind.INTEGER, compact)
    if compact in FLOAT_SPELLINGS:
        return ScalarRef(ScalarKind.FLOAT, compact)
    if compact == "bool":
        return ScalarRef(ScalarKind.BOOL, compact)
    if compact in TEXT_SPELLINGS or _BORROWED_STR.match(compact):
        return ScalarRef(ScalarKind.TEXT, compact)
    if compact in ANY_SPELLINGS:
        return ScalarRef(ScalarKind.ANY, compact)
    generic = _GENERIC.match(compact)
    if generic:
        argument = generic.group("args").strip()
        if _is_single_argument(argument):
            if generic.group("last") == "Vec":
                return ArrayRef(parse_type_ref(argument))
            if generic.group("last") == "Option":
                return OptionRef(parse_type_ref(argument))
        return OpaqueRef(compact)
    path = _PATH.match(compact)
    if path and path.group("last")[:1].isupper():
        last = path.group("last")
        return NamedRef(last, compact if compact != last else "")
    return OpaqueRef(compact)


def format_type_ref(type_ref: TypeRef, *, optional: bool = False) -> str:
    """Render a type reference as Rust source, wrapping in ``Option`` when optional."""
    rendered = _format(type_ref)
    return f"Option<{rendered}>" if optional else rendered


def _format(type_ref: TypeRef) -> str:
    if isinstance(type_ref, ScalarRef):
        return type_ref.spelling
    if isinstance(type_ref, ArrayRef):
        return f"Vec<{_format(type_ref.element)}>"
    if isinstance(type_ref, OptionRef):
        return f"Option<{_format(type_ref.inner)}>"
    if isinstance(type_ref, NamedRef):
        return type_ref.rendered
    return type_ref.text


def _normalize(text: str) -> str:
    compact = _WHITESPACE.sub(" ", text.strip())
    compact = _PUNCT_SPACING.sub(lambda match: match.group(1), compact)
    return compact.replace(",", ", ")


def _is_single_argument(argument: str) -> bool:
    depth = 0
    for char in argument:
        if char in "<([":
            depth += 1
        elif char in ">)]":
            depth -= 1
        elif char == "," and depth == 0:
            return False
    return bool(argument)
