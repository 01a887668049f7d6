"""Command execution exports."""

from .command_runner import (
    BackgroundCommand,
    CommandExecutionError,
    CommandResult,
    CommandRunner,
    StdioMode,
    run_command,
    start_command,
)

__all__ = [
    "BackgroundCommand",
    "CommandExecutionError",
    "CommandResult",
    "CommandRunner",
    "StdioMode",
    "run_command",
    "start_command",
]
