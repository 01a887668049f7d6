"""Platform driver exports."""

from .device_driver import DeviceDriver
from .driver_contracts import (
    BuildDescriptor,
    BuildFailure,
    DeviceHandle,
    InstallLaunchFailure,
    PlatformDriver,
)
from .driver_selection import select_driver
from .simulator_driver import SimulatorDriver

__all__ = [
    "BuildDescriptor",
    "BuildFailure",
    "DeviceDriver",
    "DeviceHandle",
    "InstallLaunchFailure",
    "PlatformDriver",
    "SimulatorDriver",
    "select_driver",
]
