"""delegate: run a task of another build tool with a generated descriptor."""

from __future__ import annotations

import atexit
import logging
from pathlib import Path
from typing import Mapping

from buildboot.core.context import BuildContext
from buildboot.core.errors import PreconditionError
from buildboot.core.pipeline import Handler
from buildboot.core.registry import deftask
from buildboot.integrations.descriptor import (
    DEPENDENCIES_KEY,
    SOURCE_PATHS_KEY,
    ProjectDescriptor,
    write_descriptor,
)
from buildboot.integrations.shell import launch

logger = logging.getLogger(__name__)

TASK_ID = "delegate"
DEFAULT_PROJECT = "boot-project"
DEFAULT_VERSION = "0.1.0-SNAPSHOT"


def descriptor_from_context(ctx: Mapping) -> ProjectDescriptor:
    """Descriptor built from the context, with the delegate options map last."""
    entries = {
        DEPENDENCIES_KEY: list(ctx.get("dependencies") or []),
        SOURCE_PATHS_KEY: list(ctx.get("src_paths") or []),
    }
    entries.update(ctx.get("delegate") or {})
    return ProjectDescriptor(
        name=ctx.get("project") or DEFAULT_PROJECT,
        version=ctx.get("version") or DEFAULT_VERSION,
        entries=entries,
    )


def _remove_descriptor(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass


def _ensure_absent(path: Path) -> None:
    if path.exists():
        raise PreconditionError(TASK_ID, f"A {path} file already exists.")


@deftask(TASK_ID)
def delegate(ctx: BuildContext, *args: str):
    """Run a task of another build tool.

    This task creates a temporary project descriptor (delegate.descriptor)
    from the build configuration, including project name and version
    (generated if not present) and dependencies. Additional keys may be added
    to the descriptor with the delegate.options map in the config file. The
    descriptor is removed when buildboot exits.

    Note that the tool (delegate.command) is run in another process. This task
    cannot be used to run interactive tasks because stdin is not piped to the
    child process.
    """
    config = ctx.settings.delegate
    path = Path(config.descriptor)
    # Fail while the pipeline is built, before any other task runs
    _ensure_absent(path)

    def middleware(next_handler: Handler) -> Handler:
        def handler(ctx: BuildContext) -> BuildContext:
            _ensure_absent(path)

            # Registered first so a partially written file is removed too
            atexit.register(_remove_descriptor, path.resolve())
            write_descriptor(path, descriptor_from_context(ctx))
            logger.debug(f"Wrote temporary descriptor {path}")

            launch(config.command, *args).check(TASK_ID)
            return next_handler(ctx)

        return handler

    return middleware
