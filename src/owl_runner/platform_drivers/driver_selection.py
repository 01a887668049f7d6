"""Driver selection by configured platform."""

from __future__ import annotations

from pathlib import Path

from owl_runner.command_execution import CommandRunner
from owl_runner.configuration.runtime_settings import RunConfiguration
from owl_runner.console_output import RunLogger

from .device_driver import DeviceDriver
from .driver_contracts import PlatformDriver
from .simulator_driver import SimulatorDriver


def select_driver(
    run_configuration: RunConfiguration,
    *,
    logger: RunLogger,
    project_root: Path,
    run_command: CommandRunner | None = None,
) -> PlatformDriver:
    """Return the driver variant serving the run's platform."""
    configuration = run_configuration.configuration
    simulator_settings = run_configuration.simulator_settings
    if run_configuration.platform.is_simulator and simulator_settings is not None:
        return SimulatorDriver(
            run_configuration.platform,
            simulator_settings,
            logger=logger,
            entry_file=configuration.entry_file,
            project_root=project_root,
            debug=run_configuration.debug,
            run_command=run_command,
        )
    if configuration.android is None:
        raise ValueError(f"No settings for platform {run_configuration.platform.value}.")
    return DeviceDriver(
        configuration.android,
        logger=logger,
        entry_file=configuration.entry_file,
        project_root=project_root,
        debug=run_configuration.debug,
        run_command=run_command,
    )
