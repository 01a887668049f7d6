"""Console output exports."""

from .run_logger import LOG_PREFIX, ClickEchoHandler, RunLogger, configure_logging

__all__ = ["LOG_PREFIX", "ClickEchoHandler", "RunLogger", "configure_logging"]
