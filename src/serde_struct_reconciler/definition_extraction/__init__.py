"""Definition extraction exports."""

from .definition_models import (
    ArrayRef,
    Definition,
    DefinitionField,
    DefinitionVariant,
    ExtractedSource,
    NamedRef,
    OpaqueRef,
    OptionRef,
    PreservedRegion,
    RegionKind,
    RegionRef,
    ScalarKind,
    ScalarRef,
    SourceSpan,
    TypeRef,
)
from .serde_attributes import (
    DefinitionLookup,
    field_keys,
    FLATTEN_ATTRIBUTE,
    flattened_keys,
    index_fields_by_key,
    is_flattened,
    rename_attribute,
    rename_all_rule,
    serialized_names,
    split_flattened,
    to_pascal_case,
    to_snake_case,
)
from .source_lexer import SourceUnparseableError, Token, TokenKind, tokenize_rust_source
from .source_reader import extract_definitions
from .type_refs import format_type_ref, parse_field_type, parse_type_ref

__all__ = [
    "ArrayRef",
    "Definition",
    "DefinitionField",
    "DefinitionVariant",
    "ExtractedSource",
    "NamedRef",
    "OpaqueRef",
    "OptionRef",
    "PreservedRegion",
    "RegionKind",
    "RegionRef",
    "ScalarKind",
    "ScalarRef",
    "SourceSpan",
    "TypeRef",
    "DefinitionLookup",
    "field_keys",
    "FLATTEN_ATTRIBUTE",
    "flattened_keys",
    "index_fields_by_key",
    "is_flattened",
    "rename_attribute",
    "rename_all_rule",
    "serialized_names",
    "split_flattened",
    "to_pascal_case",
    "to_snake_case",
    "SourceUnparseableError",
    "Token",
    "TokenKind",
    "tokenize_rust_source",
    "extract_definitions",
    "format_type_ref",
    "parse_field_type",
    "parse_type_ref",
]
