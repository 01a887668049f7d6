"""Run execution entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class RunState(str, Enum):
    """Phases of one orchestrated run."""

    IDLE = "idle"
    PREPARING = "preparing"
    DEVICE_READY = "device-ready"
    TESTING = "testing"
    RESTORING = "restoring"
    REPORTING = "reporting"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class RunRequest:
    """Input contract for one `owl run` invocation."""

    config_path: str
    platform: str
    update: bool = False
    build: bool = False


@dataclass(frozen=True)
class BuildRequest:
    """Input contract for one `owl build` invocation."""

    config_path: str
    platform: str


@dataclass(frozen=True)
class RunOutcome:
    """Output contract for one completed run."""

    platform: str
    state: RunState
    states: tuple[RunState, ...] = field(default_factory=tuple)
    report_path: Path | None = None
