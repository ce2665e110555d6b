"""Tests for the schema reconciler."""

from __future__ import annotations

import logging
from typing import Any

import pytest
from serde_struct_reconciler.configuration import MergeStrategy, ReconcileSettings
from serde_struct_reconciler.definition_extraction import (
    ArrayRef,
    Definition,
    DefinitionField,
    DefinitionVariant,
    ExtractedSource,
    NamedRef,
    ScalarKind,
    ScalarRef,
    extract_definitions,
)
from serde_struct_reconciler.merge_engine import (
    MergeOutcome,
    NameCollisionUnresolvableError,
    TypeFallback,
    covers_definition,
    merge,
    reconcile_schema,
)
from serde_struct_reconciler.schema_inference import (
    ObjectSchema,
    infer,
    infer_root,
    merge_schemas,
)

_INT = ScalarRef(ScalarKind.INTEGER, "i64")
_TEXT = ScalarRef(ScalarKind.TEXT, "String")
_FLOAT = ScalarRef(ScalarKind.FLOAT, "f64")


def _object(value: Any) -> ObjectSchema:
    schema = infer(value)
    assert isinstance(schema, ObjectSchema)
    return schema


def _fields(definition: Definition) -> dict[str, DefinitionField]:
    return {field.name: field for field in definition.fields}


def test_new_root_struct_gets_nested_definitions_and_default_types() -> None:
    result = reconcile_schema(
        infer_root({"id": 1, "owner": {"name": "a"}, "tags": ["x"], "score": 1.5, "flag": None})
    )

    assert result.root_name == "RootStruct"
    assert list(result.definitions) == ["RootStruct", "Owner"]
    assert result.changed_names == frozenset({"RootStruct", "Owner"})
    root = _fields(result.definitions["RootStruct"])
    assert root["id"].type_ref == _INT
    assert root["owner"].type_ref == NamedRef("Owner")
    assert root["tags"].type_ref == ArrayRef(_TEXT)
    assert root["score"].type_ref == ScalarRef(ScalarKind.FLOAT, "f64")
    assert root["flag"].type_ref == ScalarRef(ScalarKind.ANY, "serde_json::Value")
    assert root["flag"].optional is True
    assert [decision.outcome for decision in result.decisions] == [
        MergeOutcome.NEW_DEFINITION,
        MergeOutcome.NEW_DEFINITION,
    ]


def test_covered_shape_leaves_existing_definition_unchanged() -> None:
    existing = Definition(
        name="User",
        fields=(DefinitionField("id", _INT), DefinitionField("nick", _TEXT, optional=True)),
    )

    result = reconcile_schema(
        _object({"id": 7}), [existing], ReconcileSettings(root_name="User")
    )

    assert result.changed_names == frozenset()
    assert result.decisions[0].outcome is MergeOutcome.UNCHANGED
    assert result.decisions[0].definition == existing
    assert result.decisions[0].changed is False


def test_optional_widen_keeps_existing_types_and_relaxes_missing_fields() -> None:
    existing = Definition(
        name="User",
        fields=(
            DefinitionField("id", ScalarRef(ScalarKind.INTEGER, "u32"), visibility="pub"),
            DefinitionField("name", _TEXT, visibility="pub"),
        ),
    )

    result = reconcile_schema(
        _object({"id": 5, "email": "x"}), [existing], ReconcileSettings(root_name="User")
    )

    decision = result.decisions[0]
    assert decision.outcome is MergeOutcome.OPTIONAL_WIDEN
    assert decision.target == existing
    fields = _fields(decision.definition)
    assert list(fields) == ["id", "name", "email"]
    assert fields["id"].type_ref == ScalarRef(ScalarKind.INTEGER, "u32")
    assert fields["id"].optional is False
    assert fields["name"].optional is True
    assert fields["email"].optional is True
    assert fields["email"].visibility == "pub"


def test_integer_field_widens_to_float() -> None:
    existing = Definition(name="Price", fields=(DefinitionField("amount", _INT),))

    result = reconcile_schema(
        _object({"amount": 1.5}), [existing], ReconcileSettings(root_name="Price")
    )

    assert _fields(result.definitions["Price"])["amount"].type_ref == ScalarRef(
        ScalarKind.FLOAT, "f64"
    )
    assert result.fallbacks == ()


def test_incompatible_field_falls_back_to_string_and_is_reported(
    caplog: pytest.LogCaptureFixture,
) -> None:
    existing = Definition(name="User", fields=(DefinitionField("count", _INT),))

    with caplog.at_level(logging.WARNING, logger="serde_struct_reconciler"):
        result = reconcile_schema(
            _object({"count": "many"}), [existing], ReconcileSettings(root_name="User")
        )

    assert _fields(result.definitions["User"])["count"].type_ref == _TEXT
    assert result.fallbacks == (TypeFallback(path="User.count", existing="i64", inferred="text"),)
    assert "Type conflict at User.count" in caplog.text


_CAMEL_CASE = '#[serde(rename_all = "camelCase")]'
_FLATTEN = "#[serde(flatten)]"


def _shape(*fields: DefinitionField) -> Definition:
    return Definition(
        name="Shape",
        fields=fields,
        derives=("Debug",),
        attributes=(_CAMEL_CASE, "#[allow(dead_code)]"),
    )


def test_enum_strategy_moves_shared_fields_into_flattened_base() -> None:
    existing = _shape(
        DefinitionField("kind", _TEXT, visibility="pub"),
        DefinitionField("x", _INT, visibility="pub"),
    )
    settings = ReconcileSettings(root_name="Shape", strategy=MergeStrategy.ENUM)

    result = reconcile_schema(_object({"kind": "b", "y": "s"}), [existing], settings)

    assert [(decision.name, decision.outcome) for decision in result.decisions] == [
        ("Shape", MergeOutcome.ENUM_VARIANT),
        ("ShapeBase", MergeOutcome.NEW_DEFINITION),
    ]
    base = result.definitions["ShapeBase"]
    assert [(field.name, field.type_ref, field.visibility) for field in base.fields] == [
        ("kind", _TEXT, "pub")
    ]
    assert base.attributes == (_CAMEL_CASE,)
    shape = result.definitions["Shape"]
    assert shape.is_sum_type is True
    assert shape.fields == ()
    assert shape.derives == ("Debug",)
    assert shape.attributes == ("#[allow(dead_code)]",)
    legacy, added = shape.variants
    base_field = DefinitionField("base", NamedRef("ShapeBase"), attributes=(_FLATTEN,))
    assert legacy.name == "X"
    assert legacy.attributes == (_CAMEL_CASE,)
    assert legacy.fields == (base_field, DefinitionField("x", _INT))
    assert added.name == "Y"
    assert added.fields == (base_field, DefinitionField("y", _TEXT))


def test_enum_strategy_without_shared_fields_keeps_whole_shapes_per_variant() -> None:
    existing = _shape(DefinitionField("x", _INT, visibility="pub"))
    settings = ReconcileSettings(root_name="Shape", strategy=MergeStrategy.ENUM)

    result = reconcile_schema(_object({"y": "s"}), [existing], settings)

    assert list(result.definitions) == ["Shape"]
    legacy, added = result.definitions["Shape"].variants
    assert (legacy.name, [field.name for field in legacy.fields]) == ("X", ["x"])
    assert (added.name, [field.name for field in added.fields]) == ("Y", ["y"])


def test_shape_with_only_shared_fields_gets_optional_flattened_extra() -> None:
    existing = _shape(
        DefinitionField("kind", _TEXT, visibility="pub"),
        DefinitionField("x", _INT, visibility="pub"),
        DefinitionField("z", _INT, visibility="pub"),
    )
    settings = ReconcileSettings(root_name="Shape", strategy=MergeStrategy.ENUM)

    result = reconcile_schema(_object({"kind": "b"}), [existing], settings)

    assert result.decisions[0].outcome is MergeOutcome.ENUM_VARIANT
    shape = result.definitions["Shape"]
    assert shape.is_sum_type is False
    assert shape.attributes == existing.attributes
    assert shape.fields == (
        DefinitionField("kind", _TEXT, visibility="pub"),
        DefinitionField(
            "extra", NamedRef("ShapeExtra"), optional=True, attributes=(_FLATTEN,), visibility="pub"
        ),
    )
    extra = result.definitions["ShapeExtra"]
    assert [field.name for field in extra.fields] == ["x", "z"]
    assert extra.attributes == (_CAMEL_CASE,)


def test_reconciling_split_shapes_again_changes_nothing() -> None:
    existing = _shape(
        DefinitionField("kind", _TEXT, visibility="pub"),
        DefinitionField("x", _INT, visibility="pub"),
    )
    settings = ReconcileSettings(root_name="Shape", strategy=MergeStrategy.ENUM)
    first = reconcile_schema(_object({"kind": "b", "y": "s"}), [existing], settings)
    definitions = list(first.definitions.values())

    for payload in ({"kind": "a", "x": 1}, {"kind": "b", "y": "s"}):
        again = reconcile_schema(_object(payload), definitions, settings)

        assert again.changed_names == frozenset()


def test_new_variant_reuses_the_shared_base() -> None:
    existing = _shape(
        DefinitionField("kind", _TEXT, visibility="pub"),
        DefinitionField("x", _INT, visibility="pub"),
    )
    settings = ReconcileSettings(root_name="Shape", strategy=MergeStrategy.ENUM)
    first = reconcile_schema(_object({"kind": "b", "y": "s"}), [existing], settings)

    result = reconcile_schema(
        _object({"kind": "c", "flag": True}), list(first.definitions.values()), settings
    )

    shape = result.definitions["Shape"]
    assert [variant.name for variant in shape.variants] == ["X", "Y", "Flag"]
    assert shape.variants[-1].fields == (
        DefinitionField("base", NamedRef("ShapeBase"), attributes=(_FLATTEN,)),
        DefinitionField("flag", ScalarRef(ScalarKind.BOOL, "bool")),
    )
    assert "ShapeBase" not in result.changed_names

def _sum_type() -> Definition:
    return Definition(
        name="Shape",
        is_sum_type=True,
        variants=(
            DefinitionVariant(
                name="Grid",
                fields=tuple(DefinitionField(key, _INT) for key in ("a", "b", "c", "d")),
            ),
            DefinitionVariant(
                name="Flag", fields=(DefinitionField("z", ScalarRef(ScalarKind.BOOL, "bool")),)
            ),
        ),
    )


def test_sum_type_widens_its_closest_variant_on_high_overlap() -> None:
    result = reconcile_schema(
        _object({"a": 1, "b": 2, "c": 3, "d": 4, "e": "t"}),
        [_sum_type()],
        ReconcileSettings(root_name="Shape"),
    )

    decision = result.decisions[0]
    assert decision.outcome is MergeOutcome.OPTIONAL_WIDEN
    assert decision.score == pytest.approx(0.8)
    grid = decision.definition.variants[0]
    assert [field.name for field in grid.fields] == ["a", "b", "c", "d", "e"]
    assert grid.fields[-1].optional is True
    assert grid.fields[-1].visibility == ""


def test_sum_type_gains_variant_for_unrelated_shape() -> None:
    result = reconcile_schema(
        _object({"q": True}), [_sum_type()], ReconcileSettings(root_name="Shape")
    )

    decision = result.decisions[0]
    assert decision.outcome is MergeOutcome.ENUM_VARIANT
    assert [variant.name for variant in decision.definition.variants] == ["Grid", "Flag", "Q"]


def test_conflicting_values_become_payload_enum_under_enum_strategy() -> None:
    schema = merge_schemas(infer({"v": 1}), infer({"v": "x"}))
    assert isinstance(schema, ObjectSchema)

    result = reconcile_schema(schema, (), ReconcileSettings(strategy=MergeStrategy.ENUM))

    assert list(result.definitions) == ["RootStruct", "V"]
    assert _fields(result.definitions["RootStruct"])["v"].type_ref == NamedRef("V")
    conflict = result.definitions["V"]
    assert conflict.is_sum_type is True
    assert [(variant.name, variant.payload) for variant in conflict.variants] == [
        ("Integer", _INT),
        ("Text", _TEXT),
    ]


def test_conflicting_values_fall_back_to_string_under_optional_strategy() -> None:
    schema = merge_schemas(infer({"v": 1}), infer({"v": "x"}))
    assert isinstance(schema, ObjectSchema)

    result = reconcile_schema(schema)

    assert _fields(result.definitions["RootStruct"])["v"].type_ref == _TEXT
    assert result.fallbacks == (
        TypeFallback(path="RootStruct.v", existing=None, inferred="integer | text"),
    )


def test_identical_nested_shapes_reuse_one_definition() -> None:
    result = reconcile_schema(
        infer_root(
            {"billing": {"street": "a", "city": "b"}, "shipping": {"street": "c", "city": "d"}}
        )
    )

    root = _fields(result.definitions["RootStruct"])
    assert root["billing"].type_ref == NamedRef("Billing")
    assert root["shipping"].type_ref == NamedRef("Billing")
    assert [(decision.name, decision.outcome) for decision in result.decisions] == [
        ("RootStruct", MergeOutcome.NEW_DEFINITION),
        ("Billing", MergeOutcome.NEW_DEFINITION),
        ("Billing", MergeOutcome.UNCHANGED),
    ]


def test_root_without_name_match_extends_best_matching_definition() -> None:
    product = Definition(
        name="Product",
        fields=tuple(DefinitionField(key, _TEXT) for key in ("sku", "price", "name")),
    )

    result = reconcile_schema(
        _object({"sku": "a", "price": "1", "name": "n", "stock": 3}), [product]
    )

    assert result.root_name == "Product"
    assert list(_fields(result.definitions["Product"])) == ["sku", "price", "name", "stock"]


def test_generated_names_avoid_types_declared_in_existing_source() -> None:
    extracted = extract_definitions("pub type Owner = String;\n")

    result = reconcile_schema(infer_root({"owner": {"name": "a"}}), extracted)

    assert list(result.definitions) == ["RootStruct", "Owner2"]


def test_unresolvable_name_collision_is_fatal() -> None:
    extracted = ExtractedSource(text="", declared_names=frozenset({"Owner", "Owner2"}))

    with pytest.raises(NameCollisionUnresolvableError) as error:
        reconcile_schema(
            infer_root({"owner": {"name": "a"}}),
            extracted,
            ReconcileSettings(max_name_attempts=1),
        )

    assert error.value.path == "RootStruct.owner"


def test_merge_reports_decision_for_single_target() -> None:
    target = Definition(name="User", fields=(DefinitionField("id", _INT),))

    created = merge(_object({"id": 1}), None, MergeStrategy.OPTIONAL, name="Account")
    widened = merge(_object({"id": 1, "name": "n"}), target, MergeStrategy.OPTIONAL)

    assert created.outcome is MergeOutcome.NEW_DEFINITION
    assert created.name == "Account"
    assert created.target is None
    assert widened.outcome is MergeOutcome.OPTIONAL_WIDEN
    assert widened.target == target
    assert [field.name for field in widened.result_fields] == ["id", "name"]


def test_reconcile_does_not_mutate_existing_definitions() -> None:
    existing = Definition(name="User", fields=(DefinitionField("id", _INT),))
    snapshot = Definition(name="User", fields=(DefinitionField("id", _INT),))

    reconcile_schema(
        _object({"id": "x", "extra": 1}), [existing], ReconcileSettings(root_name="User")
    )

    assert existing == snapshot


def _node() -> Definition:
    return Definition(
        name="Node",
        fields=(
            DefinitionField("value", _INT, visibility="pub"),
            DefinitionField("children", ArrayRef(NamedRef("Node")), visibility="pub"),
        ),
    )


def test_self_referential_struct_is_widened_by_its_nested_occurrences() -> None:
    child = {"value": 2.5, "children": [], "label": "x"}
    payload = {"value": 1, "children": [child]}

    result = reconcile_schema(infer_root(payload), [_node()], ReconcileSettings(root_name="Node"))

    node = result.definitions["Node"]
    assert node.fields == (
        DefinitionField("value", _FLOAT, visibility="pub"),
        DefinitionField("children", ArrayRef(NamedRef("Node")), visibility="pub"),
        DefinitionField("label", _TEXT, optional=True, visibility="pub"),
    )
    assert result.changed_names == frozenset({"Node"})
    lookup = result.definitions.get
    assert covers_definition(node, infer_root(payload), lookup)
    assert covers_definition(node, infer_root(child), lookup)


def test_self_referential_struct_covering_nested_shapes_stays_unchanged() -> None:
    payload = {"value": 1, "children": [{"value": 2, "children": [{"value": 3, "children": []}]}]}

    result = reconcile_schema(infer_root(payload), [_node()], ReconcileSettings(root_name="Node"))

    assert result.changed_names == frozenset()
    assert result.definitions["Node"] == _node()


def test_deeply_nested_self_reference_reaches_the_innermost_shape() -> None:
    innermost = {"value": 3, "children": [], "depth": 3}
    payload = {"value": 1, "children": [{"value": 2, "children": [innermost]}]}

    result = reconcile_schema(infer_root(payload), [_node()], ReconcileSettings(root_name="Node"))

    fields = _fields(result.definitions["Node"])
    assert list(fields) == ["value", "children", "depth"]
    assert fields["depth"].optional is True
    assert fields["value"].type_ref == _INT


def test_root_array_element_is_named_after_the_root() -> None:
    result = reconcile_schema(
        infer_root([{"id": 1}, {"id": 2, "tags": []}, {"tags": ["a"]}]),
        (),
        ReconcileSettings(root_name="Order"),
    )

    assert list(result.definitions) == ["Order", "OrderItem"]
    assert _fields(result.definitions["Order"])["items"].type_ref == ArrayRef(NamedRef("OrderItem"))
    item = _fields(result.definitions["OrderItem"])
    assert item["tags"].type_ref == ArrayRef(_TEXT)
    assert item["tags"].optional is True
