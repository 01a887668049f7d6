"""Configuration loader tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from owl_runner.configuration.loader import (
    ConfigurationError,
    load_configuration,
    resolve_run_configuration,
)
from owl_runner.configuration.runtime_settings import (
    DEFAULT_ENTRY_FILE,
    Platform,
)


def _write_file(path: Path, contents: str) -> Path:
    path.write_text(contents, encoding="utf-8")
    return path


def test_loads_yaml_configuration_with_defaults(tmp_path: Path) -> None:
    config_path = _write_file(
        tmp_path / "owl.config.yaml",
        """
ios:
  workspace: ios/RNDemo.xcworkspace
  scheme: RNDemo
  device: iPhone Simulator
android:
  package_name: com.rndemo
""",
    )

    configuration = load_configuration(config_path)

    assert configuration.path == config_path
    assert configuration.ios is not None
    assert configuration.ios.device == "iPhone Simulator"
    assert configuration.ios.configuration == "Debug"
    assert configuration.ios.quiet is False
    assert configuration.tvos is None
    assert configuration.android is not None
    assert configuration.android.build_type == "Release"
    assert configuration.bridge.host == "0.0.0.0"
    assert configuration.bridge.port == 8123
    assert configuration.bridge.timeout_seconds == 30.0
    assert configuration.debug is False
    assert configuration.report is False
    assert configuration.entry_file == DEFAULT_ENTRY_FILE


def test_loads_json_configuration_with_camel_case_aliases(tmp_path: Path) -> None:
    config_path = _write_file(
        tmp_path / "owl.config.json",
        json.dumps(
            {
                "ios": {
                    "buildCommand": "echo 'Hello World'",
                    "binaryPath": "custom/path/RNDemo.app",
                    "device": "iPhone Simulator",
                },
                "android": {
                    "packageName": "com.rndemo",
                    "buildType": "Debug",
                    "buildCommand": "./gradlew example",
                },
                "report": True,
                "debug": True,
            }
        ),
    )

    configuration = load_configuration(config_path)

    assert configuration.ios is not None
    assert configuration.ios.build_command == "echo 'Hello World'"
    assert configuration.ios.binary_path == "custom/path/RNDemo.app"
    assert configuration.android is not None
    assert configuration.android.package_name == "com.rndemo"
    assert configuration.android.build_type == "Debug"
    assert configuration.android.build_command == "./gradlew example"
    assert configuration.report is True
    assert configuration.debug is True


def test_loads_bridge_section(tmp_path: Path) -> None:
    config_path = _write_file(
        tmp_path / "owl.config.yaml",
        """
android:
  package_name: com.rndemo
bridge:
  host: 127.0.0.1
  port: 0
  timeout_seconds: 5
  connect_timeout_seconds: 2.5
""",
    )

    bridge = load_configuration(config_path).bridge

    assert bridge.host == "127.0.0.1"
    assert bridge.port == 0
    assert bridge.timeout_seconds == 5.0
    assert bridge.connect_timeout_seconds == 2.5


def test_missing_file_raises_configuration_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="not found"):
        load_configuration(tmp_path / "missing.yaml")


def test_invalid_yaml_raises_configuration_error(tmp_path: Path) -> None:
    config_path = _write_file(tmp_path / "owl.config.yaml", "ios: [unclosed\n")

    with pytest.raises(ConfigurationError, match="Failed to parse"):
        load_configuration(config_path)


def test_configuration_without_platform_sections_is_rejected(tmp_path: Path) -> None:
    config_path = _write_file(tmp_path / "owl.config.yaml", "debug: true\n")

    with pytest.raises(ConfigurationError, match="At least one"):
        load_configuration(config_path)


def test_simulator_without_build_command_requires_workspace_and_scheme(tmp_path: Path) -> None:
    config_path = _write_file(
        tmp_path / "owl.config.yaml",
        """
ios:
  device: iPhone Simulator
  scheme: RNDemo
""",
    )

    with pytest.raises(ConfigurationError, match="ios.workspace and ios.scheme"):
        load_configuration(config_path)


def test_simulator_with_build_command_requires_binary_path_or_scheme(tmp_path: Path) -> None:
    config_path = _write_file(
        tmp_path / "owl.config.yaml",
        """
tvos:
  device: Apple TV
  build_command: make app
""",
    )

    with pytest.raises(ConfigurationError, match="tvos.binary_path or tvos.scheme"):
        load_configuration(config_path)


def test_simulator_requires_device(tmp_path: Path) -> None:
    config_path = _write_file(
        tmp_path / "owl.config.yaml",
        """
ios:
  workspace: ios/RNDemo.xcworkspace
  scheme: RNDemo
""",
    )

    with pytest.raises(ConfigurationError, match="ios.device"):
        load_configuration(config_path)


def test_android_build_type_is_validated(tmp_path: Path) -> None:
    config_path = _write_file(
        tmp_path / "owl.config.yaml",
        """
android:
  package_name: com.rndemo
  build_type: Staging
""",
    )

    with pytest.raises(ConfigurationError, match="android.build_type"):
        load_configuration(config_path)


@pytest.mark.parametrize("port", [-1, 70000, "8123", True])
def test_bridge_port_is_validated(tmp_path: Path, port: object) -> None:
    config_path = _write_file(
        tmp_path / "owl.config.json",
        json.dumps({"android": {"package_name": "com.rndemo"}, "bridge": {"port": port}}),
    )

    with pytest.raises(ConfigurationError, match="bridge.port"):
        load_configuration(config_path)


def test_boolean_flags_are_validated(tmp_path: Path) -> None:
    config_path = _write_file(
        tmp_path / "owl.config.yaml",
        """
android:
  package_name: com.rndemo
report: "yes"
""",
    )

    with pytest.raises(ConfigurationError, match="report must be a boolean"):
        load_configuration(config_path)


def test_resolve_run_configuration_binds_selected_platform(tmp_path: Path) -> None:
    config_path = _write_file(
        tmp_path / "owl.config.yaml",
        """
ios:
  workspace: ios/RNDemo.xcworkspace
  scheme: RNDemo
  device: iPhone Simulator
android:
  package_name: com.rndemo
report: true
""",
    )
    configuration = load_configuration(config_path)

    run_configuration = resolve_run_configuration(configuration, "android", update_baseline=True)

    assert run_configuration.platform is Platform.ANDROID
    assert run_configuration.update_baseline is True
    assert run_configuration.report_enabled is True
    assert run_configuration.simulator_settings is None
    assert run_configuration.simulator_name == "iPhone Simulator"


def test_resolve_run_configuration_rejects_missing_platform_section(tmp_path: Path) -> None:
    config_path = _write_file(
        tmp_path / "owl.config.yaml",
        """
android:
  package_name: com.rndemo
""",
    )
    configuration = load_configuration(config_path)

    with pytest.raises(ConfigurationError, match="'ios' is required"):
        resolve_run_configuration(configuration, Platform.IOS)


def test_resolve_run_configuration_rejects_unknown_platform(tmp_path: Path) -> None:
    config_path = _write_file(tmp_path / "owl.config.yaml", "android:\n  package_name: a.b\n")

    with pytest.raises(ConfigurationError, match="Unsupported platform"):
        resolve_run_configuration(load_configuration(config_path), "windows")
