"""Simulator driver for iOS and tvOS apps built with xcodebuild."""

from __future__ import annotations

import shlex
from pathlib import Path

from owl_runner import command_execution
from owl_runner.command_execution import CommandExecutionError, CommandRunner, StdioMode
from owl_runner.configuration.runtime_settings import Platform, SimulatorSettings
from owl_runner.console_output import RunLogger

from .driver_contracts import BuildDescriptor, BuildFailure, DeviceHandle, InstallLaunchFailure

SIMULATOR_TIME = "9:41"
PLIST_BUDDY_DIR = Path("/usr/libexec")
DERIVED_DATA_PATH = "ios/build"

_SDK_BY_PLATFORM = {
    Platform.IOS: "iphonesimulator",
    Platform.TVOS: "appletvsimulator",
}


class SimulatorDriver:
    """Builds, installs, launches and restores an app on an Apple simulator."""

    def __init__(  # pylint: disable=too-many-arguments
        self,
        platform: Platform,
        settings: SimulatorSettings,
        *,
        logger: RunLogger,
        entry_file: str,
        project_root: Path,
        debug: bool = False,
        run_command: CommandRunner | None = None,
    ) -> None:
        if platform not in _SDK_BY_PLATFORM:
            raise ValueError(f"Simulator driver does not support platform {platform.value}.")
        self.platform = platform
        self._settings = settings
        self._logger = logger
        self._entry_file = entry_file
        self._project_root = project_root
        self._stdio = StdioMode.INHERIT if debug else StdioMode.IGNORE
        self._run_command = run_command or command_execution.run_command

    @property
    def sdk(self) -> str:
        return _SDK_BY_PLATFORM[self.platform]

    @property
    def device(self) -> str:
        return self._settings.device

    def build_descriptor(self) -> BuildDescriptor:
        """Describe the xcodebuild call, or the configured override command."""
        env = {"ENTRY_FILE": self._entry_file}
        if self._settings.build_command:
            return BuildDescriptor(
                arguments=(self._settings.build_command,),
                env=env,
                verbatim=True,
            )
        arguments = [
            "xcodebuild",
            "-workspace",
            str(self._settings.workspace),
            "-scheme",
            str(self._settings.scheme),
            "-configuration",
            self._settings.configuration,
            "-sdk",
            self.sdk,
            "-derivedDataPath",
            DERIVED_DATA_PATH,
        ]
        if self._settings.quiet:
            arguments.append("-quiet")
        return BuildDescriptor(arguments=tuple(arguments), env=env)

    def build(self) -> None:
        """Build the app; a non-zero exit raises `BuildFailure`."""
        descriptor = self.build_descriptor()
        self._logger.info(f"Building the app with: {descriptor.command_line}.")
        try:
            self._run_command(
                descriptor.command_line,
                cwd=descriptor.cwd,
                env=descriptor.env,
                stdio=StdioMode.INHERIT,
            )
        except CommandExecutionError as exc:
            raise BuildFailure(str(exc)) from exc

    def working_directory(self) -> Path:
        """Directory holding the built app, used as cwd for simctl calls."""
        if self._uses_custom_binary():
            return self._custom_binary().parent
        return (
            self._project_root
            / DERIVED_DATA_PATH
            / "Build"
            / "Products"
            / f"{self._settings.configuration}-{self.sdk}"
        )

    def app_filename(self) -> str:
        """Name of the .app bundle to install."""
        if self._uses_custom_binary():
            return self._custom_binary().name
        return f"{self._settings.scheme}.app"

    def run(self) -> DeviceHandle:
        """Pin the status bar clock, then install and launch the app."""
        cwd = self.working_directory()
        app_filename = self.app_filename()
        simulator = shlex.quote(self.device)

        bundle_id = self.read_bundle_identifier(cwd / app_filename)
        self._logger.info(f"Installing {app_filename} ({bundle_id}) on {self.device}.")
        self._simctl(f"xcrun simctl status_bar {simulator} override --time {SIMULATOR_TIME}", cwd)
        self._simctl(f"xcrun simctl install {simulator} {shlex.quote(app_filename)}", cwd)
        self._simctl(f"xcrun simctl launch {simulator} {shlex.quote(bundle_id)}", None)

        return DeviceHandle(
            device_id=self.device,
            binary_path=cwd / app_filename,
            app_identifier=bundle_id,
            working_directory=cwd,
        )

    def restore(self) -> None:
        """Clear the status bar override set by `run`."""
        self._logger.info(f"Restoring the status bar of {self.device}.")
        self._simctl(
            f"xcrun simctl status_bar {shlex.quote(self.device)} clear",
            self.working_directory(),
        )

    def read_bundle_identifier(self, app_path: Path) -> str:
        """Read CFBundleIdentifier from the built app's Info.plist."""
        plist_path = shlex.quote(str(app_path / "Info.plist"))
        try:
            result = self._run_command(
                f"./PlistBuddy -c 'Print CFBundleIdentifier' {plist_path}",
                cwd=PLIST_BUDDY_DIR,
                stdio=StdioMode.CAPTURE,
            )
        except CommandExecutionError as exc:
            raise InstallLaunchFailure(
                f"Could not read the bundle identifier of {app_path}: {exc}"
            ) from exc
        bundle_id = result.stdout.strip()
        if not bundle_id:
            raise InstallLaunchFailure(f"Info.plist of {app_path} has no CFBundleIdentifier.")
        return bundle_id

    def _simctl(self, command: str, cwd: Path | None) -> None:
        try:
            self._run_command(command, cwd=cwd, stdio=self._stdio)
        except CommandExecutionError as exc:
            raise InstallLaunchFailure(str(exc)) from exc

    def _uses_custom_binary(self) -> bool:
        return bool(self._settings.build_command and self._settings.binary_path)

    def _custom_binary(self) -> Path:
        # Relative paths resolve against the project root.
        return self._project_root / str(self._settings.binary_path)
