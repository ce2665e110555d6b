"""Configuration loader service."""

from __future__ import annotations

import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from .runtime_settings import (
    DEFAULT_ENUM_OVERLAP_THRESHOLD,
    DEFAULT_EXTEND_THRESHOLD,
    DEFAULT_HYBRID_CONFLICT_DENSITY,
    DEFAULT_HYBRID_MAX_OPTIONAL_FIELDS,
    DEFAULT_MAX_NAME_ATTEMPTS,
    DEFAULT_ROOT_NAME,
    HybridMode,
    HybridSettings,
    MergeStrategy,
    ReconcileSettings,
)

_KNOWN_SECTIONS = frozenset({"reconciliation", "hybrid", "naming"})
_TYPE_NAME_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


class ConfigurationError(Exception):
    """Raised when the configuration file is invalid."""


def load_configuration(config_path: Path | str) -> ReconcileSettings:
    """Load and validate a reconciliation configuration file."""
    path = Path(config_path)
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    text = path.read_text(encoding="utf-8")
    try:
        parsed = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Failed to parse configuration file: {exc}") from exc
    return parse_configuration(parsed)


def parse_configuration(parsed: Any) -> ReconcileSettings:
    """Validate an already-decoded configuration document."""
    if parsed is None:
        parsed = {}
    if not isinstance(parsed, Mapping):
        raise ConfigurationError("Configuration root must be a mapping.")
    unknown = sorted(str(key) for key in parsed if key not in _KNOWN_SECTIONS)
    if unknown:
        raise ConfigurationError(f"Unknown configuration sections: {', '.join(unknown)}")

    reconciliation = _optional_mapping(parsed.get("reconciliation"), "reconciliation")
    naming = _optional_mapping(parsed.get("naming"), "naming")
    extend_threshold = _require_ratio(
        reconciliation.get("extend_threshold", DEFAULT_EXTEND_THRESHOLD),
        "reconciliation.extend_threshold",
    )
    return ReconcileSettings(
        root_name=validate_root_name(
            _optional_string(reconciliation.get("root_name"), "reconciliation.root_name")
            or DEFAULT_ROOT_NAME,
            "reconciliation.root_name",
        ),
        strategy=_parse_strategy(reconciliation.get("strategy", MergeStrategy.OPTIONAL.value)),
        extend_threshold=extend_threshold,
        enum_overlap_threshold=_require_ratio(
            reconciliation.get("enum_overlap_threshold", DEFAULT_ENUM_OVERLAP_THRESHOLD),
            "reconciliation.enum_overlap_threshold",
        ),
        hybrid=_parse_hybrid_section(parsed.get("hybrid")),
        max_name_attempts=_require_positive_int(
            naming.get("max_name_attempts", DEFAULT_MAX_NAME_ATTEMPTS), "naming.max_name_attempts"
        ),
    )


def validate_root_name(value: str, field_name: str = "root name") -> str:
    """Return ``value`` stripped, or raise when it cannot name a Rust type."""
    stripped = value.strip()
    if stripped == "_" or not _TYPE_NAME_PATTERN.fullmatch(stripped):
        raise ConfigurationError(
            f"{field_name} must be a Rust identifier (letters, digits and underscores), "
            f"got '{value}'."
        )
    return stripped


def _parse_strategy(value: Any) -> MergeStrategy:
    if not isinstance(value, str):
        raise ConfigurationError("reconciliation.strategy must be a string.")
    try:
        return MergeStrategy.parse(value)
    except ValueError as exc:
        raise ConfigurationError(f"reconciliation.strategy: {exc}") from exc


def _parse_hybrid_section(value: Any) -> HybridSettings:
    section = _optional_mapping(value, "hybrid")
    mode_raw = section.get("mode", HybridMode.OVERLAP.value)
    try:
        mode = HybridMode(mode_raw)
    except ValueError as exc:
        allowed = ", ".join(item.value for item in HybridMode)
        raise ConfigurationError(f"hybrid.mode must be one of: {allowed}.") from exc
    threshold_raw = section.get("threshold")
    return HybridSettings(
        mode=mode,
        threshold=(
            None if threshold_raw is None else _require_ratio(threshold_raw, "hybrid.threshold")
        ),
        conflict_density=_require_ratio(
            section.get("conflict_density", DEFAULT_HYBRID_CONFLICT_DENSITY),
            "hybrid.conflict_density",
        ),
        max_optional_fields=_require_non_negative_int(
            section.get("max_optional_fields", DEFAULT_HYBRID_MAX_OPTIONAL_FIELDS),
            "hybrid.max_optional_fields",
        ),
    )


def _optional_mapping(value: Any, section_name: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"Configuration section '{section_name}' must be a mapping.")
    return value


def _optional_string(value: Any, field_name: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigurationError(f"{field_name} must be a string.")
    stripped = value.strip()
    return stripped or None


def _require_ratio(value: Any, field_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ConfigurationError(f"{field_name} must be a number.")
    if not 0.0 <= value <= 1.0:
        raise ConfigurationError(f"{field_name} must be between 0 and 1.")
    return float(value)


def _require_positive_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{field_name} must be an integer.")
    if value <= 0:
        raise ConfigurationError(f"{field_name} must be greater than zero.")
    return value


def _require_non_negative_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{field_name} must be an integer.")
    if value < 0:
        raise ConfigurationError(f"{field_name} must not be negative.")
    return value
