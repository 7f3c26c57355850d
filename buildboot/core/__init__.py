"""Core module - task registry, build context and pipeline composition."""

from .errors import (
    BuildError,
    ContextSchemaError,
    InvocationError,
    IOFailure,
    PreconditionError,
    SubprocessFailure,
    TaskLoadError,
    UnknownTaskError,
)
from .registry import TaskRegistry, TaskSpec, deftask
from .context import BuildContext
from .pipeline import TaskInvocation, build_pipeline, compose, identity, run_pipeline

__all__ = [
    # Errors
    "BuildError",
    "ContextSchemaError",
    "InvocationError",
    "IOFailure",
    "PreconditionError",
    "SubprocessFailure",
    "TaskLoadError",
    "UnknownTaskError",
    # Registry
    "TaskRegistry",
    "TaskSpec",
    "deftask",
    # Pipeline
    "BuildContext",
    "TaskInvocation",
    "build_pipeline",
    "compose",
    "identity",
    "run_pipeline",
]
