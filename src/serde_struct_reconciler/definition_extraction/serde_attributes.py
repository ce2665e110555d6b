"""Identifier casing and serde attribute interpretation helpers."""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Sequence

from .definition_models import Definition, DefinitionField, NamedRef

DefinitionLookup = Callable[[str], Definition | None]

_WORD = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z]+|[A-Z]+|\d+")
_SERDE_ATTRIBUTE = re.compile(r"^#\[\s*serde\s*\((?P<body>.*)\)\s*\]$", re.DOTALL)
_RENAME = re.compile(r'\brename\s*=\s*"(?P<value>(?:[^"\\]|\\.)*)"')
_ALIAS = re.compile(r'\balias\s*=\s*"(?P<value>(?:[^"\\]|\\.)*)"')
_RENAME_ALL = re.compile(r'\brename_all\s*=\s*"(?P<value>[^"]*)"')
FLATTEN_ATTRIBUTE = "#[serde(flatten)]"


def split_words(text: str) -> list[str]:
    """Split an identifier or JSON key into words across case and separator boundaries."""
    return _WORD.findall(text)


def to_pascal_case(text: str) -> str:
    return "".join(word.capitalize() for word in split_words(text))


def to_snake_case(text: str) -> str:
    return "_".join(word.lower() for word in split_words(text))


def to_camel_case(text: str) -> str:
    pascal = to_pascal_case(text)
    return pascal[:1].lower() + pascal[1:]


_RENAME_ALL_RULES = {
    "lowercase": lambda name: name.replace("_", "").lower(),
    "UPPERCASE": lambda name: name.replace("_", "").upper(),
    "PascalCase": to_pascal_case,
    "camelCase": to_camel_case,
    "snake_case": lambda name: name,
    "SCREAMING_SNAKE_CASE": lambda name: name.upper(),
    "kebab-case": lambda name: name.replace("_", "-"),
    "SCREAMING-KEBAB-CASE": lambda name: name.replace("_", "-").upper(),
}


def serde_attribute_bodies(attributes: Iterable[str]) -> list[str]:
    """Return the inner text of every ``#[serde(...)]`` attribute."""
    bodies = []
    for attribute in attributes:
        match = _SERDE_ATTRIBUTE.match(attribute.strip())
        if match:
            bodies.append(match.group("body"))
    return bodies


def rename_all_rule(attributes: Iterable[str]) -> str | None:
    """Return the container-level ``rename_all`` rule, if any."""
    for body in serde_attribute_bodies(attributes):
        match = _RENAME_ALL.search(body)
        if match:
            return match.group("value")
    return None


def serialized_names(
    field: DefinitionField, container_attributes: Sequence[str] = ()
) -> tuple[str, ...]:
    """Return the JSON keys a field accepts, primary name first."""
    bodies = serde_attribute_bodies(field.attributes)
    primary: str | None = None
    aliases: list[str] = []
    for body in bodies:
        rename = _RENAME.search(body)
        if rename and primary is None:
            primary = _unescape(rename.group("value"))
        aliases.extend(_unescape(match.group("value")) for match in _ALIAS.finditer(body))
    if primary is None:
        bare_name = field.name.removeprefix("r#")
        rule = rename_all_rule(container_attributes)
        convert = _RENAME_ALL_RULES.get(rule) if rule else None
        primary = convert(bare_name) if convert else bare_name
    names = [primary]
    names.extend(alias for alias in aliases if alias not in names)
    return tuple(names)


def index_fields_by_key(
    fields: Sequence[DefinitionField],
    container_attributes: Sequence[str],
    keys: Iterable[str],
) -> dict[str, DefinitionField]:
    """Map JSON keys to the definition fields that deserialize them.

    A key present in ``keys`` wins over a field's primary name so that
    aliases pair with the key actually observed.
    """
    wanted = set(keys)
    indexed: dict[str, DefinitionField] = {}
    for field in fields:
        names = serialized_names(field, container_attributes)
        chosen = next((name for name in names if name in wanted), names[0])
        indexed.setdefault(chosen, field)
    return indexed


def field_keys(
    fields: Sequence[DefinitionField],
    container_attributes: Sequence[str],
    keys: Iterable[str] = (),
) -> frozenset[str]:
    """Return the JSON keys of a field set as they would pair with ``keys``."""
    return frozenset(index_fields_by_key(fields, container_attributes, keys))


def without_rename_all(attributes: Sequence[str]) -> tuple[tuple[str, ...], tuple[str, ...]]:
    """Split attributes into (``rename_all`` carriers, the rest)."""
    carriers = tuple(attr for attr in attributes if _carries_rename_all(attr))
    rest = tuple(attr for attr in attributes if not _carries_rename_all(attr))
    return carriers, rest


def _carries_rename_all(attribute: str) -> bool:
    return any(_RENAME_ALL.search(body) for body in serde_attribute_bodies((attribute,)))


def has_serde_flag(attributes: Iterable[str], flag: str) -> bool:
    """Return True when any serde attribute mentions ``flag``."""
    return any(flag in body for body in serde_attribute_bodies(attributes))


def rename_attribute(key: str) -> str:
    """Build the ``#[serde(rename = "...")]`` attribute for a JSON key."""
    return f'#[serde(rename = "{_escape(key)}")]'


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _unescape(value: str) -> str:
    return re.sub(r"\\(.)", lambda match: match.group(1), value)


def is_flattened(field: DefinitionField) -> bool:
    return any(
        part.strip() == "flatten"
        for body in serde_attribute_bodies(field.attributes)
        for part in body.split(",")
    )


def split_flattened(
    fields: Sequence[DefinitionField], lookup: DefinitionLookup | None
) -> tuple[tuple[DefinitionField, ...], tuple[tuple[DefinitionField, Definition], ...]]:
    """Split fields into their own fields and the structs spliced in with ``flatten``.

    Flattened fields whose type is not a known struct stay in the first group.
    """
    own: list[DefinitionField] = []
    flattened: list[tuple[DefinitionField, Definition]] = []
    for field in fields:
        definition = None
        if lookup is not None and is_flattened(field) and isinstance(field.type_ref, NamedRef):
            definition = lookup(field.type_ref.name)
        if definition is None or definition.is_sum_type:
            own.append(field)
        else:
            flattened.append((field, definition))
    return tuple(own), tuple(flattened)


def flattened_keys(
    fields: Sequence[DefinitionField],
    container_attributes: Sequence[str],
    keys: Iterable[str],
    lookup: DefinitionLookup | None,
) -> frozenset[str]:
    """Like ``field_keys``, with the keys of flattened structs folded in."""
    wanted = tuple(keys)
    own, flattened = split_flattened(fields, lookup)
    collected = set(field_keys(own, container_attributes, wanted))
    for _, definition in flattened:
        collected |= flattened_keys(definition.fields, definition.attributes, wanted, lookup)
    return frozenset(collected)
