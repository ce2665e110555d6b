"""Type and field name allocation for generated definitions."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from serde_struct_reconciler.definition_extraction import (
    DefinitionField,
    ScalarKind,
    ScalarRef,
    serialized_names,
    to_pascal_case,
    to_snake_case,
)
from serde_struct_reconciler.failures import FailureKind, ReconciliationError

RUST_KEYWORDS = frozenset(
    {
        "abstract", "as", "async", "await", "become", "box", "break", "const", "continue",
        "crate", "do", "dyn", "else", "enum", "extern", "false", "final", "fn", "for", "gen",
        "if", "impl", "in", "let", "loop", "macro", "match", "mod", "move", "mut", "override",
        "priv", "pub", "ref", "return", "self", "Self", "static", "struct", "super", "trait",
        "true", "try", "type", "typeof", "unsafe", "unsized", "use", "virtual", "where",
        "while", "yield",
    }
)  # fmt: skip
# Keywords that cannot be written as raw identifiers.
_NON_RAW_KEYWORDS = frozenset({"self", "Self", "super", "crate"})
# Prelude and serde_json names a generated type must not shadow.
RESERVED_TYPE_NAMES = frozenset({"Box", "Option", "Result", "String", "Value", "Vec"})


class NameCollisionUnresolvableError(ReconciliationError):
    """Raised when suffixing cannot produce a free type name."""

    kind = FailureKind.NAME_COLLISION_UNRESOLVABLE

    def __init__(self, name: str, path: str) -> None:
        super().__init__(
            f"Could not allocate a unique type name for '{name}' at {path}", location=path
        )
        self.name = name
        self.path = path


class NameAllocator:
    """Hands out type names that collide neither with existing nor earlier allocations."""

    def __init__(self, taken: Iterable[str] = (), *, max_attempts: int = 100) -> None:
        self._taken = set(taken)
        self._max_attempts = max_attempts

    def is_taken(self, name: str) -> bool:
        return name in self._taken

    def allocate(self, base: str, *, path: str) -> str:
        """Return ``base`` or the first free ``base2``, ``base3``, ... variant.

        Raises:
          NameCollisionUnresolvableError: When ``max_attempts`` suffixes are all taken.
        """
        if base not in self._taken:
            self._taken.add(base)
            return base
        for suffix in range(2, self._max_attempts + 2):
            candidate = f"{base}{suffix}"
            if candidate not in self._taken:
                self._taken.add(candidate)
                return candidate
        raise NameCollisionUnresolvableError(base, path)


def type_name_for(key: str) -> str:
    """Derive a PascalCase type name from a JSON key."""
    name = to_pascal_case(key) or "Nested"
    if name[0].isdigit():
        name = f"Type{name}"
    if name == "Self":
        name = "SelfType"
    return name


def field_identifier_for(
    key: str, taken: Iterable[str], container_attributes: Sequence[str] = ()
) -> tuple[str, bool]:
    """Derive a snake_case field identifier for a JSON key.

    Returns:
      The identifier and whether the field needs a ``rename`` attribute to
      keep deserializing ``key``.
    """
    stem = to_snake_case(key) or "field"
    if stem[0].isdigit():
        stem = f"field_{stem}"
    if stem in _NON_RAW_KEYWORDS:
        stem = f"{stem}_"
    used = {name.removeprefix("r#") for name in taken}
    candidate = stem
    suffix = 2
    while candidate in used:
        candidate = f"{stem}_{suffix}"
        suffix += 1
    identifier = f"r#{candidate}" if candidate in RUST_KEYWORDS else candidate
    sample_field = DefinitionField(name=identifier, type_ref=ScalarRef(ScalarKind.ANY, ""))
    return identifier, serialized_names(sample_field, container_attributes)[0] != key


def variant_name_for(
    own_keys: Sequence[str], other_keys: Iterable[str], taken: Iterable[str], position: int
) -> str:
    """Name a sum-type variant after its first field absent from the other shapes."""
    others = set(other_keys)
    distinguishing = next((key for key in own_keys if key not in others), None)
    base = type_name_for(distinguishing) if distinguishing is not None else f"Variant{position}"
    used = set(taken)
    candidate = base
    suffix = 2
    while candidate in used:
        candidate = f"{base}{suffix}"
        suffix += 1
    return candidate
