"""Rich-formatted logging setup."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

# Custom theme for logging
CUSTOM_THEME = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "task": "bold magenta",
    }
)

# Global console instance
console = Console(theme=CUSTOM_THEME)


class TaskFormatter(logging.Formatter):
    """Prefixes records emitted through a TaskLogger with the task id."""

    def format(self, record: logging.LogRecord) -> str:
        if hasattr(record, "task_id"):
            record.msg = f"[task]{record.task_id}[/task] {record.msg}"
        return super().format(record)


def setup_logging(
    log_dir: str | Path = "logs",
    level: int = logging.INFO,
    log_to_file: bool = False,
) -> None:
    """
    Setup logging with Rich console handler and optional file handler.

    Args:
        log_dir: Directory to store log files
        level: Logging level
        log_to_file: Whether to also log to file
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Clear existing handlers
    root_logger.handlers.clear()

    rich_handler = RichHandler(
        console=console,
        show_time=True,
        show_path=False,
        rich_tracebacks=True,
        markup=True,
    )
    rich_handler.setFormatter(TaskFormatter("%(message)s"))
    root_logger.addHandler(rich_handler)

    if log_to_file:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_path / f"buildboot_{timestamp}.log"

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root_logger.addHandler(file_handler)


class TaskLogger:
    """Logger wrapper for task-specific logging."""

    def __init__(self, task_id: str):
        self.task_id = task_id
        self._logger = logging.getLogger(f"buildboot.task.{task_id}")

    def _log(self, level: int, msg: str, *args, **kwargs) -> None:
        extra = kwargs.pop("extra", {})
        extra["task_id"] = self.task_id
        self._logger.log(level, msg, *args, extra=extra, **kwargs)

    def info(self, msg: str, *args, **kwargs) -> None:
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs) -> None:
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs) -> None:
        self._log(logging.ERROR, msg, *args, **kwargs)

    def debug(self, msg: str, *args, **kwargs) -> None:
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def success(self, msg: str) -> None:
        """Log success message."""
        self.info(f"[success]{msg}[/success]")
