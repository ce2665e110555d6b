"""Configuration loader tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from serde_struct_reconciler.configuration.loader import (
    ConfigurationError,
    load_configuration,
    parse_configuration,
    validate_root_name,
)
from serde_struct_reconciler.configuration.runtime_settings import (
    HybridMode,
    MergeStrategy,
    ReconcileSettings,
)


def _write_file(path: Path, contents: str) -> Path:
    path.write_text(contents, encoding="utf-8")
    return path


def test_loads_yaml_configuration_with_overrides(tmp_path: Path) -> None:
    config_path = _write_file(
        tmp_path / "reconcile.yaml",
        """
reconciliation:
  root_name: Order
  strategy: Hybrid
  extend_threshold: 0.8
hybrid:
  mode: conflict_count
  max_optional_fields: 5
naming:
  max_name_attempts: 10
""",
    )

    settings = load_configuration(config_path)

    assert settings.root_name == "Order"
    assert settings.strategy is MergeStrategy.HYBRID
    assert settings.extend_threshold == 0.8
    assert settings.enum_overlap_threshold == 0.5
    assert settings.hybrid.mode is HybridMode.CONFLICT_COUNT
    assert settings.hybrid.max_optional_fields == 5
    assert settings.hybrid_threshold == 0.8
    assert settings.max_name_attempts == 10


def test_empty_configuration_yields_defaults(tmp_path: Path) -> None:
    config_path = _write_file(tmp_path / "reconcile.yaml", "")

    assert load_configuration(config_path) == ReconcileSettings()


def test_blank_root_name_falls_back_to_default() -> None:
    settings = parse_configuration({"reconciliation": {"root_name": "  "}})

    assert settings.resolved_root_name == "RootStruct"


def test_missing_configuration_file_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="Configuration file not found"):
        load_configuration(tmp_path / "absent.yaml")


def test_malformed_yaml_is_rejected(tmp_path: Path) -> None:
    config_path = _write_file(tmp_path / "reconcile.yaml", "reconciliation: [unclosed\n")

    with pytest.raises(ConfigurationError, match="Failed to parse configuration file"):
        load_configuration(config_path)


def test_unknown_strategy_is_rejected() -> None:
    with pytest.raises(ConfigurationError, match="reconciliation.strategy: Unknown merge strategy"):
        parse_configuration({"reconciliation": {"strategy": "merge-all"}})


def test_unknown_sections_are_rejected() -> None:
    with pytest.raises(ConfigurationError, match="Unknown configuration sections: kafka"):
        parse_configuration({"kafka": {}})


@pytest.mark.parametrize(
    ("document", "message"),
    (
        ({"reconciliation": {"extend_threshold": 1.5}}, "must be between 0 and 1"),
        ({"reconciliation": {"extend_threshold": True}}, "must be a number"),
        ({"hybrid": {"mode": "sometimes"}}, "hybrid.mode must be one of"),
        ({"hybrid": {"max_optional_fields": -1}}, "must not be negative"),
        ({"naming": {"max_name_attempts": 0}}, "must be greater than zero"),
        ({"naming": "often"}, "Configuration section 'naming' must be a mapping."),
        (["reconciliation"], "Configuration root must be a mapping."),
    ),
)
def test_invalid_values_are_rejected(document: object, message: str) -> None:
    with pytest.raises(ConfigurationError, match=message):
        parse_configuration(document)


@pytest.mark.parametrize("root_name", ("my type", "1Order", "Order-Line", "_"))
def test_root_names_that_are_not_rust_identifiers_are_rejected(root_name: str) -> None:
    with pytest.raises(ConfigurationError, match="root_name must be a Rust identifier"):
        parse_configuration({"reconciliation": {"root_name": root_name}})


def test_valid_root_name_is_returned_stripped() -> None:
    assert validate_root_name("  Order_Line2 ") == "Order_Line2"
