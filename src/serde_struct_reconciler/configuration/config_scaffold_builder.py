"""Configuration scaffold generation helpers."""

from __future__ import annotations

from pathlib import Path

DEFAULT_CONFIG_FILENAME = "reconcile.yaml"

_CONFIG_SCAFFOLD_TEMPLATE = """# Reconciliation settings for serde-struct-reconciler.
# Every key is optional; removed keys fall back to the values shown here.
# Command line options take precedence over this file.

reconciliation:
  # Name of the root definition; blank falls back to RootStruct.
  root_name: RootStruct
  # One of: optional, enum, hybrid.
  strategy: optional
  # Minimum field-name overlap (0..1) required to extend an existing definition.
  extend_threshold: 0.7
  # The enum strategy widens in place only at or above this overlap.
  enum_overlap_threshold: 0.5

hybrid:
  # overlap: one overlap threshold for the whole definition.
  # conflict_count: count one-sided or conflicting fields instead.
  mode: overlap
  # Defaults to reconciliation.extend_threshold when omitted.
  threshold: 0.7
  # Share of shared fields with incompatible types that forces a sum type.
  conflict_density: 0.5
  # conflict_count mode: more differing fields than this forces a sum type.
  max_optional_fields: 3

naming:
  # Numeric suffixes tried before a name collision becomes fatal.
  max_name_attempts: 100
"""


def build_placeholder_configuration() -> str:
    """Build a YAML reconciliation configuration with the default values and guidance comments."""
    return _CONFIG_SCAFFOLD_TEMPLATE


def write_placeholder_configuration(output_path: Path | str) -> Path:
    """Write the configuration scaffold to the requested output path.

    Args:
      output_path: Destination file path for the scaffold.

    Returns:
      The resolved destination path.

    Raises:
      FileExistsError: If the destination file already exists.
      OSError: If writing the scaffold fails.
    """
    destination = Path(output_path)
    if destination.exists():
        raise FileExistsError(f"Configuration file already exists: {destination.resolve()}")
    destination.write_text(build_placeholder_configuration(), encoding="utf-8")
    return destination.resolve()
