"""Device driver for Android apps built with Gradle."""

from __future__ import annotations

import shlex
from pathlib import Path

from owl_runner import command_execution
from owl_runner.command_execution import CommandExecutionError, CommandRunner, StdioMode
from owl_runner.configuration.runtime_settings import AndroidSettings
from owl_runner.console_output import RunLogger

from .driver_contracts import BuildDescriptor, BuildFailure, DeviceHandle, InstallLaunchFailure

ANDROID_PROJECT_DIR = "android"
# Tells build.gradle to use the manifest that allows cleartext traffic to the bridge.
OWL_BUILD_FLAG = "-PisOwlBuild=true"
LAUNCHER_CATEGORY = "android.intent.category.LAUNCHER"


class DeviceDriver:
    """Builds, installs and launches an app on an Android device or emulator."""

    def __init__(  # pylint: disable=too-many-arguments
        self,
        settings: AndroidSettings,
        *,
        logger: RunLogger,
        entry_file: str,
        project_root: Path,
        debug: bool = False,
        run_command: CommandRunner | None = None,
    ) -> None:
        self._settings = settings
        self._logger = logger
        self._entry_file = entry_file
        self._project_root = project_root
        self._stdio = StdioMode.INHERIT if debug else StdioMode.IGNORE
        self._run_command = run_command or command_execution.run_command

    @property
    def package_name(self) -> str:
        return self._settings.package_name

    def build_descriptor(self) -> BuildDescriptor:
        """Describe the Gradle assemble call, or the configured override command."""
        env = {"ENTRY_FILE": self._entry_file}
        if self._settings.build_command:
            return BuildDescriptor(
                arguments=(self._settings.build_command, OWL_BUILD_FLAG),
                env=env,
                verbatim=True,
            )
        task = "assembleDebug" if self._settings.build_type == "Debug" else "assembleRelease"
        arguments = ["./gradlew", task, "--console", "plain"]
        if self._settings.quiet:
            arguments.append("--quiet")
        arguments.append(OWL_BUILD_FLAG)
        return BuildDescriptor(
            arguments=tuple(arguments),
            cwd=self._project_root / ANDROID_PROJECT_DIR,
            env=env,
        )

    def build(self) -> None:
        """Build the APK; a non-zero exit raises `BuildFailure`."""
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

    def binary_path(self) -> Path:
        """APK to install: the configured path or the Gradle output for the build type."""
        if self._settings.binary_path:
            return Path(self._settings.binary_path)
        build_type = self._settings.build_type.lower()
        return (
            self._project_root
            / ANDROID_PROJECT_DIR
            / "app"
            / "build"
            / "outputs"
            / "apk"
            / build_type
            / f"app-{build_type}.apk"
        )

    def run(self) -> DeviceHandle:
        """Install the APK with adb and start its launcher activity."""
        app_path = self.binary_path()
        self._logger.info(f"Installing {app_path} ({self.package_name}).")
        self._adb(f"adb install -r {shlex.quote(str(app_path))}")
        self._adb(f'adb shell monkey -p "{self.package_name}" -c {LAUNCHER_CATEGORY} 1')
        return DeviceHandle(
            device_id="default",
            binary_path=app_path,
            app_identifier=self.package_name,
        )

    def restore(self) -> None:
        """Android runs leave no device chrome state behind."""

    def _adb(self, command: str) -> None:
        try:
            self._run_command(command, stdio=self._stdio)
        except CommandExecutionError as exc:
            raise InstallLaunchFailure(str(exc)) from exc
