"""Errors raised while building and running a task pipeline."""

from __future__ import annotations

from typing import Sequence


class BuildError(Exception):
    """Base class for build failures that should be reported to the user."""

    def __init__(self, task_id: str | None, reason: str):
        super().__init__(task_id, reason)
        self.task_id = task_id
        self.reason = reason

    def __str__(self) -> str:
        if self.task_id:
            return f"{self.task_id}: {self.reason}"
        return self.reason


class UnknownTaskError(BuildError):
    """Invocation references a task id that is not registered."""

    def __init__(self, task_id: str):
        super().__init__(task_id, f"unknown task '{task_id}'")


class InvocationError(BuildError):
    """Malformed invocation, e.g. wrong number of arguments."""


class PreconditionError(BuildError):
    """A precondition a task relies on does not hold."""


class IOFailure(BuildError):
    """File read, write or copy failed inside a task."""


class TaskLoadError(BuildError):
    """A task module or entry point could not be loaded."""


class ContextSchemaError(BuildError):
    """Write of an undeclared key, or of a value with the wrong type."""


class SubprocessFailure(BuildError):
    """External process could not be started or exited with non-zero status."""

    def __init__(
        self,
        task_id: str | None,
        command: Sequence[str],
        exit_status: int | None,
        reason: str | None = None,
    ):
        self.command = list(command)
        self.exit_status = exit_status
        if reason is None:
            reason = f"'{' '.join(self.command)}' exited with status {exit_status}"
        super().__init__(task_id, reason)
