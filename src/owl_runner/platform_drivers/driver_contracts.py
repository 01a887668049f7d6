"""Platform driver contract and shared entities."""

from __future__ import annotations

import shlex
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol


class BuildFailure(Exception):
    """Raised when the native build command fails."""


class InstallLaunchFailure(Exception):
    """Raised when installing, launching or restoring the app on a device fails."""


@dataclass(frozen=True)
class BuildDescriptor:
    """One build invocation: arguments, working directory and environment."""

    arguments: tuple[str, ...]
    cwd: Path | None = None
    env: Mapping[str, str] = field(default_factory=dict)
    verbatim: bool = False

    @property
    def command_line(self) -> str:
        """Shell text of the invocation; override commands are passed through untouched."""
        if self.verbatim:
            return " ".join(self.arguments)
        return shlex.join(self.arguments)


@dataclass(frozen=True)
class DeviceHandle:
    """The app as installed on one simulator or device."""

    device_id: str
    binary_path: Path
    app_identifier: str
    working_directory: Path | None = None


class PlatformDriver(Protocol):
    """Build, install/launch and restore sequence of one platform family."""

    def build_descriptor(self) -> BuildDescriptor: ...

    def build(self) -> None: ...

    def run(self) -> DeviceHandle: ...

    def restore(self) -> None: ...
