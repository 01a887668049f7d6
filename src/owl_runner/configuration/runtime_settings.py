"""Configuration domain entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

DEFAULT_ENTRY_FILE = "./node_modules/react-native-owl/dist/client/index.app.js"
DEFAULT_BRIDGE_HOST = "0.0.0.0"
DEFAULT_BRIDGE_PORT = 8123


class Platform(str, Enum):
    """Target platform of one run."""

    IOS = "ios"
    TVOS = "tvos"
    ANDROID = "android"

    @property
    def is_simulator(self) -> bool:
        return self in (Platform.IOS, Platform.TVOS)


@dataclass(frozen=True)
class SimulatorSettings:  # pylint: disable=too-many-instance-attributes
    """Build and simulator settings for iOS and tvOS."""

    device: str
    workspace: str | None = None
    scheme: str | None = None
    configuration: str = "Debug"
    build_command: str | None = None
    binary_path: str | None = None
    quiet: bool = False


@dataclass(frozen=True)
class AndroidSettings:
    """Build and device settings for Android."""

    package_name: str
    build_type: str = "Release"
    build_command: str | None = None
    binary_path: str | None = None
    quiet: bool = False


@dataclass(frozen=True)
class BridgeSettings:
    """Network settings of the screenshot bridge."""

    host: str = DEFAULT_BRIDGE_HOST
    port: int = DEFAULT_BRIDGE_PORT
    timeout_seconds: float = 30.0
    connect_timeout_seconds: float = 30.0


@dataclass(frozen=True)
class Configuration:  # pylint: disable=too-many-instance-attributes
    """Top-level configuration aggregate."""

    path: Path
    ios: SimulatorSettings | None = None
    tvos: SimulatorSettings | None = None
    android: AndroidSettings | None = None
    bridge: BridgeSettings = field(default_factory=BridgeSettings)
    debug: bool = False
    report: bool = False
    entry_file: str = DEFAULT_ENTRY_FILE


@dataclass(frozen=True)
class RunConfiguration:
    """Configuration resolved for one invocation on one platform."""

    configuration: Configuration
    platform: Platform
    update_baseline: bool = False

    @property
    def debug(self) -> bool:
        return self.configuration.debug

    @property
    def report_enabled(self) -> bool:
        return self.configuration.report

    @property
    def simulator_settings(self) -> SimulatorSettings | None:
        if self.platform is Platform.IOS:
            return self.configuration.ios
        if self.platform is Platform.TVOS:
            return self.configuration.tvos
        return None

    @property
    def simulator_name(self) -> str | None:
        """Simulator exposed to the test runner; Android runs fall back to the iOS device."""
        settings = self.simulator_settings or self.configuration.ios
        return settings.device if settings else None
