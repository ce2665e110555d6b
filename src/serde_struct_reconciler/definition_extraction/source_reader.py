"""Definition extraction from existing Rust source text."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from .definition_models import (
    Definition,
    DefinitionField,
    DefinitionVariant,
    ExtractedSource,
    PreservedRegion,
    RegionKind,
    RegionRef,
    SourceSpan,
)
from .source_lexer import Token, TokenKind, tokenize_rust_source, unparseable
from .type_refs import parse_field_type, parse_type_ref

_LOGGER = logging.getLogger(__name__)

_DERIVE_PATTERN = re.compile(r"^#\[\s*derive\s*\((?P<body>.*)\)\s*\]$", re.DOTALL)
_DECLARING_KEYWORDS = frozenset({"struct", "enum", "union", "type", "trait"})
_WORD_KINDS = frozenset({TokenKind.IDENT, TokenKind.LIFETIME, TokenKind.LITERAL})


@dataclass(frozen=True)
class _SourceContext:
    """Read-only token stream with delimiter pairing."""

    text: str
    tokens: Sequence[Token]
    closing: Mapping[int, int]


@dataclass
class _ExtractionState:
    """Mutable collector for items found at the top level."""

    definitions: list[Definition]
    declared_names: set[str]


@dataclass(frozen=True)
class _MemberPrefix:
    docs: tuple[str, ...]
    attributes: tuple[str, ...]
    visibility: str
    next_index: int


def extract_definitions(source_text: str) -> ExtractedSource:
    """Split existing source into modeled definitions and preserved regions.

    Only top-level, non-generic ``struct Name { ... }`` and ``enum Name { ... }``
    items are modeled; all other text is carried through verbatim.

    Raises:
      SourceUnparseableError: When the text is not syntactically valid or a
        modeled item has a malformed member list.
    """
    tokens = tokenize_rust_source(source_text)
    context = _SourceContext(text=source_text, tokens=tokens, closing=_pair_delimiters(tokens))
    state = _ExtractionState(definitions=[], declared_names=set())
    _scan_items(context, state)
    definitions = tuple(state.definitions)
    preserved, layout = _build_layout(source_text, definitions)
    _LOGGER.debug(
        "Extracted %d definitions and %d preserved regions", len(definitions), len(preserved)
    )
    return ExtractedSource(
        text=source_text,
        definitions=definitions,
        preserved=preserved,
        layout=layout,
        declared_names=frozenset(state.declared_names),
    )


def _pair_delimiters(tokens: Sequence[Token]) -> dict[int, int]:
    closing: dict[int, int] = {}
    stack: list[int] = []
    for index, token in enumerate(tokens):
        if token.kind is not TokenKind.PUNCT:
            continue
        if token.text in ("(", "[", "{"):
            stack.append(index)
        elif token.text in (")", "]", "}"):
            closing[stack.pop()] = index
    return closing


def _scan_items(context: _SourceContext, state: _ExtractionState) -> None:
    tokens = context.tokens
    item_start: int | None = None
    index = 0
    while index < len(tokens):
        token = tokens[index]
        if token.kind is TokenKind.DOC_COMMENT:
            item_start = index if item_start is None else item_start
            index += 1
        elif token.is_punct("#") and _is_punct_at(context, index + 1, "["):
            item_start = index if item_start is None else item_start
            index = context.closing[index + 1] + 1
        elif token.is_ident("pub"):
            item_start = index if item_start is None else item_start
            index = _skip_visibility(context, index)
        elif token.kind is TokenKind.IDENT and token.text in _DECLARING_KEYWORDS:
            start = index if item_start is None else item_start
            index = _consume_item(context, state, start, index)
            item_start = None
        elif index in context.closing:
            item_start = None
            index = context.closing[index] + 1
        else:
            item_start = None
            index += 1


def _consume_item(
    context: _SourceContext, state: _ExtractionState, start: int, keyword_index: int
) -> int:
    tokens = context.tokens
    keyword = tokens[keyword_index].text
    name_index = keyword_index + 1
    if name_index >= len(tokens) or tokens[name_index].kind is not TokenKind.IDENT:
        return keyword_index + 1
    name = tokens[name_index].text.removeprefix("r#")
    state.declared_names.add(name)
    body_index = name_index + 1
    if keyword not in {"struct", "enum"} or not _is_punct_at(context, body_index, "{"):
        return _skip_item(context, body_index)

    close_index = context.closing[body_index]
    docs, derives, attributes, visibility = _item_prefix(context, start, keyword_index)
    span = SourceSpan(start=tokens[start].start, end=tokens[close_index].end)
    if keyword == "struct":
        definition: Definition | None = Definition(
            name=name,
            fields=_parse_fields(context, body_index + 1, close_index),
            derives=derives,
            attributes=attributes,
            visibility=visibility,
            docs=docs,
            span=span,
        )
    else:
        variants = _parse_variants(context, body_index + 1, close_index)
        definition = (
            None
            if variants is None
            else Definition(
                name=name,
                variants=variants,
                is_sum_type=True,
                derives=derives,
                attributes=attributes,
                visibility=visibility,
                docs=docs,
                span=span,
            )
        )
    if definition is not None:
        state.definitions.append(definition)
    else:
        _LOGGER.debug("Preserving enum %s verbatim; its variants are not modeled", name)
    return close_index + 1


def _skip_item(context: _SourceContext, index: int) -> int:
    tokens = context.tokens
    while index < len(tokens):
        token = tokens[index]
        if token.is_punct("{"):
            return context.closing[index] + 1
        if index in context.closing:
            index = context.closing[index] + 1
            continue
        if token.is_punct(";"):
            return index + 1
        index += 1
    return index


def _skip_visibility(context: _SourceContext, index: int) -> int:
    if _is_punct_at(context, index + 1, "("):
        return context.closing[index + 1] + 1
    return index + 1


def _is_punct_at(context: _SourceContext, index: int, text: str) -> bool:
    return index < len(context.tokens) and context.tokens[index].is_punct(text)


def _item_prefix(
    context: _SourceContext, start: int, end: int
) -> tuple[tuple[str, ...], tuple[str, ...], tuple[str, ...], str]:
    prefix = _member_prefix(context, start, end)
    derives: list[str] = []
    attributes: list[str] = []
    for attribute in prefix.attributes:
        match = _DERIVE_PATTERN.match(attribute)
        if match:
            derives.extend(part.strip() for part in match.group("body").split(",") if part.strip())
        else:
            attributes.append(attribute)
    return prefix.docs, tuple(derives), tuple(attributes), prefix.visibility


def _member_prefix(context: _SourceContext, index: int, end: int) -> _MemberPrefix:
    tokens = context.tokens
    docs: list[str] = []
    attributes: list[str] = []
    visibility = ""
    while index < end:
        token = tokens[index]
        if token.kind is TokenKind.DOC_COMMENT:
            docs.append(token.text)
            index += 1
        elif token.is_punct("#") and index + 1 < end and tokens[index + 1].is_punct("["):
            close = context.closing[index + 1]
            attributes.append(context.text[token.start : tokens[close].end])
            index = close + 1
        elif token.is_ident("pub"):
            next_index = _skip_visibility(context, index)
            visibility = context.text[token.start : tokens[next_index - 1].end]
            index = next_index
        else:
            break
    return _MemberPrefix(tuple(docs), tuple(attributes), visibility, index)


def _parse_fields(context: _SourceContext, start: int, end: int) -> tuple[DefinitionField, ...]:
    tokens = context.tokens
    fields: list[DefinitionField] = []
    index = start
    while index < end:
        prefix = _member_prefix(context, index, end)
        index = prefix.next_index
        if index >= end:
            if prefix.docs or prefix.attributes:
                raise unparseable(
                    context.text, tokens[end].start, "Expected field after attributes"
                )
            break
        name_token = tokens[index]
        if name_token.kind is not TokenKind.IDENT:
            raise unparseable(context.text, name_token.start, "Expected field name")
        if index + 1 >= end or not tokens[index + 1].is_punct(":"):
            raise unparseable(context.text, name_token.end, "Expected ':' after field name")
        type_start = index + 2
        type_end = _type_end(context, type_start, end)
        if type_end == type_start:
            raise unparseable(context.text, tokens[type_start].start, "Expected field type")
        type_ref, optional = parse_field_type(_join_tokens(tokens, type_start, type_end))
        fields.append(
            DefinitionField(
                name=name_token.text,
                type_ref=type_ref,
                optional=optional,
                attributes=prefix.attributes,
                visibility=prefix.visibility,
                docs=prefix.docs,
            )
        )
        index = type_end + 1
    return tuple(fields)


def _parse_variants(
    context: _SourceContext, start: int, end: int
) -> tuple[DefinitionVariant, ...] | None:
    tokens = context.tokens
    variants: list[DefinitionVariant] = []
    modeled = True
    index = start
    while index < end:
        prefix = _member_prefix(context, index, end)
        index = prefix.next_index
        if index >= end:
            if prefix.docs or prefix.attributes:
                raise unparseable(
                    context.text, tokens[end].start, "Expected variant after attributes"
                )
            break
        name_token = tokens[index]
        if name_token.kind is not TokenKind.IDENT:
            raise unparseable(context.text, name_token.start, "Expected variant name")
        index += 1
        fields: tuple[DefinitionField, ...] = ()
        payload = None
        if index < end and tokens[index].is_punct("{"):
            close = context.closing[index]
            fields = _parse_fields(context, index + 1, close)
            index = close + 1
        elif index < end and tokens[index].is_punct("("):
            close = context.closing[index]
            payload_end = _type_end(context, index + 1, close)
            if payload_end == index + 1 or payload_end + 1 < close:
                modeled = False
            else:
                payload = parse_type_ref(_join_tokens(tokens, index + 1, payload_end))
            index = close + 1
        if index < end and tokens[index].is_punct("="):
            index = _type_end(context, index + 1, end)
        if index < end:
            if not tokens[index].is_punct(","):
                raise unparseable(
                    context.text, tokens[index].start, "Expected ',' between variants"
                )
            index += 1
        variants.append(
            DefinitionVariant(
                name=name_token.text,
                fields=fields,
                payload=payload,
                attributes=prefix.attributes,
                docs=prefix.docs,
            )
        )
    if not modeled or not any(v.is_struct_like or v.payload is not None for v in variants):
        return None
    return tuple(variants)


def _type_end(context: _SourceContext, index: int, end: int) -> int:
    tokens = context.tokens
    angle_depth = 0
    while index < end:
        token = tokens[index]
        if index in context.closing:
            index = context.closing[index] + 1
            continue
        if token.is_punct("<"):
            angle_depth += 1
        elif token.is_punct(">"):
            angle_depth -= 1
        elif token.is_punct(",") and angle_depth <= 0:
            return index
        index += 1
    return end


def _join_tokens(tokens: Sequence[Token], start: int, end: int) -> str:
    parts: list[str] = []
    previous: Token | None = None
    for token in tokens[start:end]:
        if previous is not None and (
            (previous.kind in _WORD_KINDS and token.kind in _WORD_KINDS)
            or previous.is_punct(",")
            or previous.is_punct("->")
            or token.is_punct("->")
        ):
            parts.append(" ")
        parts.append(token.text)
        previous = token
    return "".join(parts)


def _build_layout(
    text: str, definitions: Sequence[Definition]
) -> tuple[tuple[PreservedRegion, ...], tuple[RegionRef, ...]]:
    preserved: list[PreservedRegion] = []
    layout: list[RegionRef] = []
    cursor = 0
    for index, definition in enumerate(definitions):
        assert definition.span is not None
        if definition.span.start > cursor:
            layout.append(RegionRef(RegionKind.PRESERVED, len(preserved)))
            preserved.append(
                PreservedRegion(
                    SourceSpan(cursor, definition.span.start), text[cursor : definition.span.start]
                )
            )
        layout.append(RegionRef(RegionKind.DEFINITION, index))
        cursor = definition.span.end
    if cursor < len(text):
        layout.append(RegionRef(RegionKind.PRESERVED, len(preserved)))
        preserved.append(PreservedRegion(SourceSpan(cursor, len(text)), text[cursor:]))
    return tuple(preserved), tuple(layout)
