"""Run coordinator: sequences build, launch, bridge, tests, restore and report."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from owl_runner import command_execution
from owl_runner.bridge_server import BridgeServer
from owl_runner.command_execution import CommandExecutionError, CommandRunner, StdioMode
from owl_runner.configuration import (
    BridgeSettings,
    ConfigurationError,
    RunConfiguration,
    load_configuration,
    resolve_run_configuration,
)
from owl_runner.console_output import RunLogger, configure_logging
from owl_runner.platform_drivers import (
    BuildFailure,
    InstallLaunchFailure,
    PlatformDriver,
    select_driver,
)
from owl_runner.results_writing import ReportGenerationFailure, generate_report
from owl_runner.screenshot_capture import ScreenshotDirectories

from .run_contracts import BuildRequest, RunOutcome, RunRequest, RunState
from .runner_invocation import build_test_command, build_test_environment

DriverFactory = Callable[..., PlatformDriver]
BridgeFactory = Callable[[BridgeSettings], BridgeServer]
ReportGenerator = Callable[..., Path]


class RunExecutionError(Exception):
    """Raised when a run or build cannot be completed."""


class TestExecutionFailure(RunExecutionError):
    """Raised after cleanup when the test runner reported failing tests."""

    __test__ = False


class RunCoordinator:
    """Drives one `owl run` or `owl build` through its phases.

    Every collaborator with side effects is injectable: the driver factory,
    the bridge factory, the command runner used for the test runner and the
    report generator. The visited phases are kept in `states`.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        *,
        project_root: Path | None = None,
        driver_factory: DriverFactory | None = None,
        bridge_factory: BridgeFactory | None = None,
        run_command: CommandRunner | None = None,
        report_generator: ReportGenerator | None = None,
    ) -> None:
        self._project_root = project_root or Path.cwd()
        self._driver_factory = driver_factory or select_driver
        self._bridge_factory = bridge_factory or BridgeServer.from_settings
        self._run_command = run_command or command_execution.run_command
        self._report_generator = report_generator or generate_report
        self._states: list[RunState] = [RunState.IDLE]

    @property
    def state(self) -> RunState:
        return self._states[-1]

    @property
    def states(self) -> tuple[RunState, ...]:
        return tuple(self._states)

    def run(self, request: RunRequest) -> RunOutcome:
        """Execute one visual regression run and return its outcome.

        Raises:
          TestExecutionFailure: If the test runner failed; raised after the
            device was restored and the report, if enabled, was written.
          RunExecutionError: If configuration, build, install or launch failed.
        """
        self._states = [RunState.IDLE]
        report_path: Path | None = None
        try:
            self._enter(RunState.PREPARING)
            run_configuration, logger = self._prepare(
                request.config_path, request.platform, update_baseline=request.update
            )
            driver = self._create_driver(run_configuration, logger)
            if request.build:
                logger.print(f"Building the app on {run_configuration.platform.value} platform.")
                driver.build()
            driver.run()
            self._enter(RunState.DEVICE_READY)

            tests_passed = self._run_tests(run_configuration, driver, logger)
            if not tests_passed:
                if run_configuration.report_enabled:
                    report_path = self._report(run_configuration, logger)
                raise TestExecutionFailure(
                    f"Tests failed on {run_configuration.platform.value}."
                    + (f" Report: {report_path}" if report_path else "")
                )
        except RunExecutionError:
            self._enter(RunState.FAILED)
            raise
        except (ConfigurationError, BuildFailure, InstallLaunchFailure, OSError) as exc:
            self._enter(RunState.FAILED)
            raise RunExecutionError(str(exc)) from exc

        self._enter(RunState.DONE)
        platform = run_configuration.platform.value
        logger.print(f"Tests completed on {platform}.")
        if run_configuration.update_baseline:
            logger.print(f"All baseline images for {platform} have been updated successfully.")
        return RunOutcome(
            platform=platform,
            state=self.state,
            states=self.states,
            report_path=report_path,
        )

    def build(self, request: BuildRequest) -> RunOutcome:
        """Build the app for one platform without running tests."""
        self._states = [RunState.IDLE]
        try:
            self._enter(RunState.PREPARING)
            run_configuration, logger = self._prepare(request.config_path, request.platform)
            driver = self._create_driver(run_configuration, logger)
            platform = run_configuration.platform.value
            logger.print(f"Building the app on {platform} platform.")
            logger.info(f"Using the config file {request.config_path}.")
            driver.build()
        except (ConfigurationError, BuildFailure) as exc:
            self._enter(RunState.FAILED)
            raise RunExecutionError(str(exc)) from exc

        self._enter(RunState.DONE)
        logger.info(f"Successfully built for the {platform} platform.")
        return RunOutcome(platform=platform, state=self.state, states=self.states)

    def _enter(self, state: RunState) -> None:
        self._states.append(state)

    def _prepare(
        self, config_path: str, platform: str, *, update_baseline: bool = False
    ) -> tuple[RunConfiguration, RunLogger]:
        configuration = load_configuration(config_path)
        run_configuration = resolve_run_configuration(
            configuration, platform, update_baseline=update_baseline
        )
        configure_logging(run_configuration.debug)
        return run_configuration, RunLogger(run_configuration.debug)

    def _create_driver(
        self, run_configuration: RunConfiguration, logger: RunLogger
    ) -> PlatformDriver:
        return self._driver_factory(
            run_configuration,
            logger=logger,
            project_root=self._project_root,
        )

    def _run_tests(
        self,
        run_configuration: RunConfiguration,
        driver: PlatformDriver,
        logger: RunLogger,
    ) -> bool:
        self._enter(RunState.TESTING)
        bridge: BridgeServer | None = None
        tests_passed = False
        try:
            self._create_output_directories(run_configuration)
            bridge = self._bridge_factory(run_configuration.configuration.bridge)
            bridge.start()
            tests_passed = self._invoke_test_runner(run_configuration, bridge, logger)
        finally:
            self._enter(RunState.RESTORING)
            self._restore(driver, bridge, logger, raise_errors=tests_passed)
        return tests_passed

    def _create_output_directories(self, run_configuration: RunConfiguration) -> None:
        directories = ScreenshotDirectories(
            project_root=self._project_root, platform=run_configuration.platform.value
        )
        if run_configuration.update_baseline:
            directories.baseline.mkdir(parents=True, exist_ok=True)
        if run_configuration.report_enabled:
            directories.report.mkdir(parents=True, exist_ok=True)

    def _invoke_test_runner(
        self,
        run_configuration: RunConfiguration,
        bridge: BridgeServer,
        logger: RunLogger,
    ) -> bool:
        command = build_test_command(run_configuration, project_root=self._project_root)
        env = build_test_environment(run_configuration, bridge_port=bridge.address[1])
        logger.info(f"Running tests with: {command}")
        try:
            self._run_command(command, cwd=self._project_root, env=env, stdio=StdioMode.INHERIT)
        except CommandExecutionError as exc:
            logger.error(str(exc))
            return False
        return True

    def _restore(
        self,
        driver: PlatformDriver,
        bridge: BridgeServer | None,
        logger: RunLogger,
        *,
        raise_errors: bool,
    ) -> None:
        if bridge is not None:
            bridge.stop()
        try:
            driver.restore()
        except InstallLaunchFailure as exc:
            if raise_errors:
                raise
            logger.error(f"Restoring the device failed: {exc}")

    def _report(self, run_configuration: RunConfiguration, logger: RunLogger) -> Path | None:
        self._enter(RunState.REPORTING)
        try:
            return self._report_generator(
                run_configuration.platform.value,
                project_root=self._project_root,
                logger=logger,
            )
        except ReportGenerationFailure as exc:
            logger.error(f"Report could not be generated: {exc}")
            return None


def execute_run(request: RunRequest, **collaborators) -> RunOutcome:
    """Run tests for one platform with default or injected collaborators."""
    return RunCoordinator(**collaborators).run(request)


def execute_build(request: BuildRequest, **collaborators) -> RunOutcome:
    """Build the app for one platform with default or injected collaborators."""
    return RunCoordinator(**collaborators).build(request)
