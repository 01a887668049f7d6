"""Command line interface entry point."""

from __future__ import annotations

import sys

import click

from owl_runner.configuration import DEFAULT_CONFIG_FILENAME, write_placeholder_configuration
from owl_runner.configuration.runtime_settings import Platform
from owl_runner.console_output import LOG_PREFIX
from owl_runner.run_execution import (
    BuildRequest,
    RunExecutionError,
    RunRequest,
    execute_build,
    execute_run,
)

_PLATFORM_CHOICE = click.Choice([platform.value for platform in Platform])


class CliError(Exception):
    """Custom CLI error."""


def _platform_option(function):
    return click.option(
        "--platform",
        "platform",
        required=True,
        type=_PLATFORM_CHOICE,
        help="Platform to build or run on",
    )(function)


def _config_option(function):
    return click.option(
        "--config",
        "config_path",
        required=False,
        default=DEFAULT_CONFIG_FILENAME,
        show_default=True,
        type=click.Path(path_type=str),
        help="Path to the YAML/JSON owl configuration file",
    )(function)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="owl-runner")
def cli() -> None:
    """Visual regression testing for native mobile apps."""


@cli.command(name="generate-config")
@click.option(
    "--output",
    "output_path",
    required=False,
    default=DEFAULT_CONFIG_FILENAME,
    show_default=True,
    type=click.Path(path_type=str),
    help="Path to the YAML owl configuration template to write",
)
def generate_config(output_path: str) -> None:
    """Generate a placeholder owl configuration with guidance comments."""
    try:
        resolved_output = write_placeholder_configuration(output_path)
    except (FileExistsError, OSError) as exc:
        raise CliError(str(exc)) from exc
    click.echo(str(resolved_output))


@cli.command(name="build")
@_platform_option
@_config_option
def build_app(platform: str, config_path: str) -> None:
    """Build the app for the selected platform."""
    try:
        execute_build(BuildRequest(config_path=config_path, platform=platform))
    except RunExecutionError as exc:
        raise CliError(str(exc)) from exc


@cli.command(name="run")
@_platform_option
@_config_option
@click.option(
    "--update",
    "-u",
    is_flag=True,
    default=False,
    help="Replace the baseline screenshots with the ones captured in this run.",
)
@click.option(
    "--build",
    "build",
    is_flag=True,
    default=False,
    help="Build the app before installing it.",
)
def run_tests(platform: str, config_path: str, update: bool, build: bool) -> None:
    """Install and launch the app, then run the owl test modules against it."""
    try:
        execute_run(
            RunRequest(config_path=config_path, platform=platform, update=update, build=build)
        )
    except RunExecutionError as exc:
        raise CliError(str(exc)) from exc


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for console_scripts wiring."""
    argv = argv if argv is not None else sys.argv[1:]
    try:
        cli.main(args=list(argv), standalone_mode=False)
    except CliError as exc:
        click.echo(f"{LOG_PREFIX} {exc}", err=True)
        return 1
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except click.Abort:
        click.echo("Aborted.", err=True)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
