"""Tests for serde attribute interpretation and identifier casing."""

from __future__ import annotations

import pytest
from serde_struct_reconciler.definition_extraction import (
    DefinitionField,
    ScalarKind,
    ScalarRef,
    field_keys,
    index_fields_by_key,
    rename_all_rule,
    rename_attribute,
    serialized_names,
    to_pascal_case,
    to_snake_case,
)
from serde_struct_reconciler.definition_extraction.serde_attributes import (
    has_serde_flag,
    without_rename_all,
)

_TEXT = ScalarRef(ScalarKind.TEXT, "String")


def _field(name: str, *attributes: str) -> DefinitionField:
    return DefinitionField(name=name, type_ref=_TEXT, attributes=attributes)


@pytest.mark.parametrize(
    ("key", "pascal", "snake"),
    (
        ("user_name", "UserName", "user_name"),
        ("userName", "UserName", "user_name"),
        ("HTTPServer", "HttpServer", "http_server"),
        ("e-mail", "EMail", "e_mail"),
        ("item2", "Item2", "item_2"),
        ("", "", ""),
    ),
)
def test_case_conversion_splits_words_across_boundaries(key: str, pascal: str, snake: str) -> None:
    assert to_pascal_case(key) == pascal
    assert to_snake_case(key) == snake


def test_serialized_names_prefer_explicit_rename_then_aliases() -> None:
    field = _field("email", '#[serde(rename = "e-mail", alias = "mail")]', '#[serde(alias = "em")]')

    assert serialized_names(field) == ("e-mail", "mail", "em")


def test_serialized_names_apply_container_rename_all_rule() -> None:
    container = ('#[serde(rename_all = "camelCase")]',)

    assert serialized_names(_field("first_name"), container) == ("firstName",)
    assert serialized_names(_field("r#type"), container) == ("type",)
    assert rename_all_rule(container) == "camelCase"


def test_serialized_names_unescape_quoted_keys() -> None:
    field = _field("quoted", r'#[serde(rename = "say \"hi\"")]')

    assert serialized_names(field) == ('say "hi"',)


def test_index_fields_by_key_pairs_observed_alias() -> None:
    fields = (_field("email", '#[serde(alias = "mail")]'), _field("name"))

    indexed = index_fields_by_key(fields, (), ("mail", "age"))

    assert list(indexed) == ["mail", "name"]
    assert field_keys(fields, ()) == frozenset({"email", "name"})


def test_without_rename_all_splits_attribute_carriers() -> None:
    attributes = ('#[serde(rename_all = "kebab-case")]', "#[allow(dead_code)]")

    carriers, rest = without_rename_all(attributes)

    assert carriers == ('#[serde(rename_all = "kebab-case")]',)
    assert rest == ("#[allow(dead_code)]",)


def test_has_serde_flag_only_reads_serde_attributes() -> None:
    assert has_serde_flag(("#[serde(default)]",), "default")
    assert not has_serde_flag(("#[default]",), "default")


def test_rename_attribute_escapes_quotes_and_backslashes() -> None:
    assert rename_attribute('a"b\\c') == r'#[serde(rename = "a\"b\\c")]'
