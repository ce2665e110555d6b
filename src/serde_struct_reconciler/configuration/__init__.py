"""Configuration domain exports."""

from .config_scaffold_builder import (
    DEFAULT_CONFIG_FILENAME,
    build_placeholder_configuration,
    write_placeholder_configuration,
)
from .loader import (
    ConfigurationError,
    load_configuration,
    parse_configuration,
    validate_root_name,
)
from .runtime_settings import (
    DEFAULT_ROOT_NAME,
    HybridMode,
    HybridSettings,
    MergeStrategy,
    ReconcileSettings,
)

__all__ = [
    "DEFAULT_ROOT_NAME",
    "HybridMode",
    "HybridSettings",
    "MergeStrategy",
    "ReconcileSettings",
    "ConfigurationError",
    "load_configuration",
    "parse_configuration",
    "validate_root_name",
    "DEFAULT_CONFIG_FILENAME",
    "build_placeholder_configuration",
    "write_placeholder_configuration",
]
