"""Tests for generated type, field and variant names."""

from __future__ import annotations

import pytest
from serde_struct_reconciler.failures import FailureKind
from serde_struct_reconciler.merge_engine import (
    NameAllocator,
    NameCollisionUnresolvableError,
    field_identifier_for,
    type_name_for,
    variant_name_for,
)


def test_allocator_suffixes_taken_names_from_two() -> None:
    allocator = NameAllocator({"Address"})

    assert allocator.allocate("Address", path="Root.address") == "Address2"
    assert allocator.allocate("Address", path="Root.home") == "Address3"
    assert allocator.allocate("Contact", path="Root.contact") == "Contact"
    assert allocator.is_taken("Address3")


def test_allocator_fails_after_max_attempts() -> None:
    allocator = NameAllocator({"Item", "Item2", "Item3"}, max_attempts=2)

    with pytest.raises(NameCollisionUnresolvableError) as error:
        allocator.allocate("Item", path="Root.items[]")

    assert error.value.kind is FailureKind.NAME_COLLISION_UNRESOLVABLE
    assert error.value.location == "Root.items[]"
    assert "'Item'" in error.value.message


@pytest.mark.parametrize(
    ("key", "expected"),
    (
        ("shipping_address", "ShippingAddress"),
        ("lineItems", "LineItems"),
        ("3d", "Type3D"),
        ("self", "SelfType"),
        ("---", "Nested"),
    ),
)
def test_type_name_for_builds_pascal_case_names(key: str, expected: str) -> None:
    assert type_name_for(key) == expected


@pytest.mark.parametrize(
    ("key", "taken", "expected"),
    (
        ("userName", (), ("user_name", True)),
        ("user_name", (), ("user_name", False)),
        ("type", (), ("r#type", False)),
        ("self", (), ("self_", True)),
        ("2fa", (), ("field_2_fa", True)),
        ("user_name", ("user_name",), ("user_name_2", True)),
        ("", (), ("field", True)),
    ),
)
def test_field_identifier_for_derives_snake_case_identifiers(
    key: str, taken: tuple[str, ...], expected: tuple[str, bool]
) -> None:
    assert field_identifier_for(key, taken) == expected


def test_field_identifier_for_respects_container_rename_all() -> None:
    container = ('#[serde(rename_all = "camelCase")]',)

    assert field_identifier_for("userName", (), container) == ("user_name", False)


def test_variant_name_for_uses_first_distinguishing_key() -> None:
    assert variant_name_for(("kind", "x"), ("kind", "y"), (), 1) == "X"
    assert variant_name_for(("kind",), ("kind",), (), 3) == "Variant3"
    assert variant_name_for(("kind", "x"), ("kind",), ("X",), 2) == "X2"
