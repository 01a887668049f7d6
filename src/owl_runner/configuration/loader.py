"""Configuration loader service."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from .runtime_settings import (
    DEFAULT_BRIDGE_HOST,
    DEFAULT_BRIDGE_PORT,
    DEFAULT_ENTRY_FILE,
    AndroidSettings,
    BridgeSettings,
    Configuration,
    Platform,
    RunConfiguration,
    SimulatorSettings,
)

_KEY_ALIASES = {
    "buildCommand": "build_command",
    "binaryPath": "binary_path",
    "packageName": "package_name",
    "buildType": "build_type",
    "entryFile": "entry_file",
    "timeoutSeconds": "timeout_seconds",
    "connectTimeoutSeconds": "connect_timeout_seconds",
}
_ANDROID_BUILD_TYPES = ("Debug", "Release")


class ConfigurationError(Exception):
    """Raised when the configuration file is invalid."""


def load_configuration(config_path: Path | str) -> Configuration:
    """Load and validate the owl configuration file (YAML or JSON)."""
    path = Path(config_path)
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    text = path.read_text(encoding="utf-8")
    try:
        parsed = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Failed to parse configuration file: {exc}") from exc

    if parsed is None:
        parsed = {}

    if not isinstance(parsed, Mapping):
        raise ConfigurationError("Configuration root must be a mapping.")
    root = _normalize_keys(parsed)

    ios = _parse_simulator_section(root.get("ios"), "ios")
    tvos = _parse_simulator_section(root.get("tvos"), "tvos")
    android = _parse_android_section(root.get("android"))
    if ios is None and tvos is None and android is None:
        raise ConfigurationError("At least one of ios, tvos or android must be configured.")

    return Configuration(
        path=path,
        ios=ios,
        tvos=tvos,
        android=android,
        bridge=_parse_bridge_section(root.get("bridge")),
        debug=_optional_bool(root.get("debug"), "debug"),
        report=_optional_bool(root.get("report"), "report"),
        entry_file=_optional_string(root.get("entry_file"), "entry_file") or DEFAULT_ENTRY_FILE,
    )


def resolve_run_configuration(
    configuration: Configuration,
    platform: Platform | str,
    *,
    update_baseline: bool = False,
) -> RunConfiguration:
    """Bind a loaded configuration to the platform selected for this invocation."""
    try:
        resolved_platform = Platform(platform)
    except ValueError as exc:
        raise ConfigurationError(f"Unsupported platform: {platform}") from exc

    section = {
        Platform.IOS: configuration.ios,
        Platform.TVOS: configuration.tvos,
        Platform.ANDROID: configuration.android,
    }[resolved_platform]
    if section is None:
        raise ConfigurationError(
            f"Configuration section '{resolved_platform.value}' is required "
            f"to run on the {resolved_platform.value} platform."
        )
    return RunConfiguration(
        configuration=configuration,
        platform=resolved_platform,
        update_baseline=update_baseline,
    )


def _parse_simulator_section(value: Any, section_name: str) -> SimulatorSettings | None:
    if value is None:
        return None
    section = _require_mapping(value, section_name)
    device = _require_non_empty_string(section.get("device"), f"{section_name}.device")
    workspace = _optional_string(section.get("workspace"), f"{section_name}.workspace")
    scheme = _optional_string(section.get("scheme"), f"{section_name}.scheme")
    build_command = _optional_string(section.get("build_command"), f"{section_name}.build_command")
    binary_path = _optional_string(section.get("binary_path"), f"{section_name}.binary_path")

    if build_command is None and (workspace is None or scheme is None):
        raise ConfigurationError(
            f"{section_name}.workspace and {section_name}.scheme are required "
            f"when {section_name}.build_command is not set."
        )
    if build_command is not None and binary_path is None and scheme is None:
        raise ConfigurationError(
            f"{section_name}.binary_path or {section_name}.scheme is required "
            f"when {section_name}.build_command is set."
        )

    return SimulatorSettings(
        device=device,
        workspace=workspace,
        scheme=scheme,
        configuration=_optional_string(
            section.get("configuration"), f"{section_name}.configuration"
        )
        or "Debug",
        build_command=build_command,
        binary_path=binary_path,
        quiet=_optional_bool(section.get("quiet"), f"{section_name}.quiet"),
    )


def _parse_android_section(value: Any) -> AndroidSettings | None:
    if value is None:
        return None
    section = _require_mapping(value, "android")
    package_name = _require_non_empty_string(section.get("package_name"), "android.package_name")
    build_type = _optional_string(section.get("build_type"), "android.build_type") or "Release"
    if build_type not in _ANDROID_BUILD_TYPES:
        raise ConfigurationError(
            f"android.build_type must be one of {', '.join(_ANDROID_BUILD_TYPES)}."
        )
    return AndroidSettings(
        package_name=package_name,
        build_type=build_type,
        build_command=_optional_string(section.get("build_command"), "android.build_command"),
        binary_path=_optional_string(section.get("binary_path"), "android.binary_path"),
        quiet=_optional_bool(section.get("quiet"), "android.quiet"),
    )


def _parse_bridge_section(value: Any) -> BridgeSettings:
    if value is None:
        return BridgeSettings()
    section = _require_mapping(value, "bridge")
    host = _optional_string(section.get("host"), "bridge.host") or DEFAULT_BRIDGE_HOST
    port = section.get("port", DEFAULT_BRIDGE_PORT)
    if isinstance(port, bool) or not isinstance(port, int) or not 0 <= port <= 65535:
        raise ConfigurationError("bridge.port must be an integer between 0 and 65535.")
    return BridgeSettings(
        host=host,
        port=port,
        timeout_seconds=_require_positive_number(
            section.get("timeout_seconds", 30), "bridge.timeout_seconds"
        ),
        connect_timeout_seconds=_require_positive_number(
            section.get("connect_timeout_seconds", 30), "bridge.connect_timeout_seconds"
        ),
    )


def _normalize_keys(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {
            _KEY_ALIASES.get(str(key), str(key)): _normalize_keys(item)
            for key, item in value.items()
        }
    return value


def _require_mapping(value: Any, section_name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"Configuration section '{section_name}' must be a mapping.")
    return value


def _require_non_empty_string(value: Any, field_name: str) -> str:
    if not isinstance(value, str):
        raise ConfigurationError(f"{field_name} must be a string.")
    stripped = value.strip()
    if not stripped:
        raise ConfigurationError(f"{field_name} must not be empty.")
    return stripped


def _optional_string(value: Any, field_name: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigurationError(f"{field_name} must be a string.")
    stripped = value.strip()
    return stripped or None


def _optional_bool(value: Any, field_name: str) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ConfigurationError(f"{field_name} must be a boolean.")
    return value


def _require_positive_number(value: Any, field_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ConfigurationError(f"{field_name} must be a number.")
    if value <= 0:
        raise ConfigurationError(f"{field_name} must be greater than zero.")
    return float(value)
