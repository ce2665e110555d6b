"""Reassembly of preserved regions and reconciled definitions into source text."""

from __future__ import annotations

import logging
import re

from serde_struct_reconciler.definition_extraction import ExtractedSource, RegionKind
from serde_struct_reconciler.merge_engine import ReconciliationResult

from .emitter_contract import DefinitionRenderer, prepare_for_emission
from .rust_renderer import RustDefinitionRenderer

_LOGGER = logging.getLogger(__name__)

SERDE_IMPORT = "use serde::{Deserialize, Serialize};"
SERDE_TRAITS = ("Deserialize", "Serialize")
_SERDE_USE_PATTERN = re.compile(r"\buse\s+(?:::)?serde::([^;]*);")
_IMPORTED_NAME_PATTERN = re.compile(r"\*|\b[A-Za-z_]\w*\b")
_FILE_HEADER_PREFIXES = ("#![", "//!")


def assemble_source(
    extracted: ExtractedSource | None,
    result: ReconciliationResult,
    renderer: DefinitionRenderer | None = None,
) -> str:
    """Rebuild the source text with every changed definition re-rendered.

    Preserved regions and untouched definitions are copied verbatim; changed
    definitions are rendered in place of their first occurrence and new ones
    are appended after a blank line.
    """
    renderer = renderer or RustDefinitionRenderer()
    extracted = extracted or ExtractedSource(text="")
    pieces: list[str] = []
    rendered_names: set[str] = set()
    for region in extracted.layout:
        if region.kind is RegionKind.PRESERVED:
            pieces.append(extracted.preserved[region.index].text)
            continue
        name = extracted.definitions[region.index].name
        if name in result.changed_names and name not in rendered_names:
            pieces.append(renderer.render(prepare_for_emission(result.definitions[name])))
            rendered_names.add(name)
        else:
            pieces.append(extracted.definition_text(region.index))
    text = "".join(pieces)

    existing_names = {definition.name for definition in extracted.definitions}
    appended = [
        renderer.render(prepare_for_emission(definition))
        for name, definition in result.definitions.items()
        if name in result.changed_names and name not in existing_names
    ]
    if appended:
        block = "\n\n".join(appended)
        text = f"{text}{_blank_line_after(text)}{block}\n" if text.strip() else f"{block}\n"
    _LOGGER.debug(
        "Re-rendered %d definitions in place and appended %d", len(rendered_names), len(appended)
    )
    if rendered_names or appended:
        missing = missing_serde_traits(text)
        if len(missing) == len(SERDE_TRAITS):
            text = _insert_use(text, SERDE_IMPORT)
        elif missing:
            text = _insert_use(text, f"use serde::{missing[0]};")
    return text


def missing_serde_traits(text: str) -> tuple[str, ...]:
    """Return the serde derive traits no `use serde::...` statement brings into scope."""
    imported: set[str] = set()
    for match in _SERDE_USE_PATTERN.finditer(text):
        names = _IMPORTED_NAME_PATTERN.findall(match.group(1))
        if "*" in names:
            return ()
        imported.update(names)
    return tuple(trait for trait in SERDE_TRAITS if trait not in imported)


def _insert_use(text: str, statement: str) -> str:
    lines = text.splitlines(keepends=True)
    index = 0
    while index < len(lines) and lines[index].lstrip().startswith(_FILE_HEADER_PREFIXES):
        index += 1
    header = "".join(lines[:index])
    rest = "".join(lines[index:])
    if header and not header.endswith("\n"):
        header += "\n"
    separator = "\n" if rest.startswith(("\n", "use ")) else "\n\n"
    if header:
        header += "\n"
    return f"{header}{statement}{separator}{rest}"


def _blank_line_after(text: str) -> str:
    if text.endswith("\n\n"):
        return ""
    if text.endswith("\n"):
        return "\n"
    return "\n\n"
