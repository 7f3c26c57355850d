"""Launch external processes and stream their output live."""

from __future__ import annotations

import logging
import subprocess
import sys
import threading
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Iterator, Mapping

from buildboot.core.errors import SubprocessFailure

logger = logging.getLogger(__name__)

_shell_dir: ContextVar[Path | None] = ContextVar("shell_dir", default=None)

# Seconds to wait for remaining output once the process has exited
DRAIN_TIMEOUT = 1.0


@contextmanager
def shell_dir(path: str | Path) -> Iterator[Path]:
    """Run launches inside the block in path unless they pass their own cwd."""
    directory = Path(path)
    token = _shell_dir.set(directory)
    try:
        yield directory
    finally:
        _shell_dir.reset(token)


def current_shell_dir() -> Path | None:
    return _shell_dir.get()


@dataclass(frozen=True)
class ShellOptions:
    """Per-launch options."""

    cwd: str | Path | None = None
    merge_stderr: bool = True
    # Receives the output; sys.stdout at launch time when None
    stream: IO[str] | None = None
    env: Mapping[str, str] | None = None


class SyncHandle:
    """Waits for a launched process; calling it returns the exit status."""

    def __init__(self, process: subprocess.Popen, pump: threading.Thread, command: list[str]):
        self._process = process
        self._pump = pump
        self._lock = threading.Lock()
        self._status: int | None = None
        self.command = command

    @property
    def pid(self) -> int:
        return self._process.pid

    def __call__(self) -> int:
        with self._lock:
            if self._status is None:
                self._status = self._process.wait()
                # Background children may keep the pipe open; the daemon pump
                # keeps forwarding their output after this returns
                self._pump.join(timeout=DRAIN_TIMEOUT)
                logger.debug(f"{self.command[0]} (pid {self.pid}) exited with {self._status}")
            return self._status

    def check(self, task_id: str | None = None) -> int:
        """Wait and raise SubprocessFailure on a non-zero exit status."""
        status = self()
        if status != 0:
            raise SubprocessFailure(task_id, self.command, status)
        return status


def _pump_output(pipe: IO[str], stream: IO[str]) -> None:
    with pipe:
        for line in iter(pipe.readline, ""):
            stream.write(line)
            stream.flush()


def launch(command: str, *args: object, options: ShellOptions | None = None) -> SyncHandle:
    """
    Start a process without waiting for it.

    Output (with stderr merged in by default) is forwarded line by line to the
    console from a background thread while the process runs. stdin is not
    connected.

    Args:
        command: Executable to run
        *args: Arguments, converted with str()
        options: Working directory, stream merging and output stream

    Returns:
        SyncHandle to wait on the process

    Raises:
        SubprocessFailure: If the process cannot be started
    """
    options = options or ShellOptions()
    cmd = [str(command), *(str(arg) for arg in args)]
    cwd = options.cwd if options.cwd is not None else _shell_dir.get()
    stream = options.stream if options.stream is not None else sys.stdout

    logger.info(f"Running: {' '.join(cmd)}" + (f" (in {cwd})" if cwd else ""))
    try:
        process = subprocess.Popen(
            cmd,
            cwd=cwd,
            env=dict(options.env) if options.env is not None else None,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT if options.merge_stderr else None,
            text=True,
            encoding="utf-8",
            errors="replace",
            bufsize=1,
        )
    except OSError as e:
        raise SubprocessFailure(None, cmd, None, f"cannot start '{cmd[0]}': {e}") from e

    pump = threading.Thread(
        target=_pump_output,
        args=(process.stdout, stream),
        name=f"shell-{process.pid}",
        daemon=True,
    )
    pump.start()
    return SyncHandle(process, pump, cmd)
