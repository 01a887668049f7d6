"""Configuration domain exports."""

from .config_scaffold_builder import (
    DEFAULT_CONFIG_FILENAME,
    build_placeholder_configuration,
    write_placeholder_configuration,
)
from .loader import ConfigurationError, load_configuration, resolve_run_configuration
from .runtime_settings import (
    AndroidSettings,
    BridgeSettings,
    Configuration,
    Platform,
    RunConfiguration,
    SimulatorSettings,
)

__all__ = [
    "AndroidSettings",
    "BridgeSettings",
    "Configuration",
    "Platform",
    "RunConfiguration",
    "SimulatorSettings",
    "ConfigurationError",
    "load_configuration",
    "resolve_run_configuration",
    "DEFAULT_CONFIG_FILENAME",
    "build_placeholder_configuration",
    "write_placeholder_configuration",
]
