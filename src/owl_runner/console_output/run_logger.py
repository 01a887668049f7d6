"""User-facing console output and library logging setup."""

from __future__ import annotations

import logging

import click

LOG_PREFIX = "[OWL - CLI]"
_PACKAGE_LOGGER_NAME = "owl_runner"


class RunLogger:
    """Console writer for orchestration progress.

    `print` lines are always shown, `info` lines only in debug mode.
    """

    def __init__(self, debug: bool = False) -> None:
        self.debug = debug

    def print(self, message: str) -> None:
        click.echo(f"{LOG_PREFIX} {message}")

    def info(self, message: str) -> None:
        if self.debug:
            click.echo(f"{LOG_PREFIX} {message}")

    def error(self, message: str) -> None:
        click.echo(f"{LOG_PREFIX} {message}", err=True)


class ClickEchoHandler(logging.Handler):
    """Logging handler writing records to the current stderr through click."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            click.echo(self.format(record), err=True)
        except Exception:  # pylint: disable=broad-exception-caught
            self.handleError(record)


def configure_logging(debug: bool = False) -> logging.Logger:
    """Attach a single stderr handler to the package logger."""
    logger = logging.getLogger(_PACKAGE_LOGGER_NAME)
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)
    if not any(isinstance(handler, ClickEchoHandler) for handler in logger.handlers):
        handler = ClickEchoHandler()
        handler.setFormatter(logging.Formatter(f"{LOG_PREFIX} %(name)s: %(message)s"))
        logger.addHandler(handler)
    return logger
