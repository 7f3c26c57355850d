"""Utility modules."""

from .logger import TaskLogger, console, setup_logging

__all__ = ["TaskLogger", "console", "setup_logging"]
