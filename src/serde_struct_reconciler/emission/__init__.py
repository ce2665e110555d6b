"""Emission exports."""

from .emitter_contract import (
    REQUIRED_DERIVES,
    SKIP_NONE_ATTRIBUTE,
    UNTAGGED_ATTRIBUTE,
    DefinitionRenderer,
    prepare_for_emission,
)
from .rust_renderer import RustDefinitionRenderer
from .source_assembly import SERDE_IMPORT, assemble_source, missing_serde_traits

__all__ = [
    "REQUIRED_DERIVES",
    "SKIP_NONE_ATTRIBUTE",
    "UNTAGGED_ATTRIBUTE",
    "DefinitionRenderer",
    "prepare_for_emission",
    "RustDefinitionRenderer",
    "SERDE_IMPORT",
    "assemble_source",
    "missing_serde_traits",
]
