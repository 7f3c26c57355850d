"""rebuild-boot: build a new buildboot executable with precompiled tasks."""

from __future__ import annotations

import shlex
import shutil
from pathlib import Path
from typing import Iterable

from buildboot.core.context import BuildContext
from buildboot.core.errors import IOFailure, PreconditionError
from buildboot.core.pipeline import Handler
from buildboot.core.registry import deftask
from buildboot.integrations.descriptor import merge_descriptor, read_descriptor, write_descriptor
from buildboot.integrations.shell import launch, shell_dir
from buildboot.utils.logger import TaskLogger

TASK_ID = "rebuild-boot"


def render_precompile_module(modules: Iterable[str]) -> str:
    """Source of the module importing every task module to precompile."""
    modules = list(dict.fromkeys(modules))
    lines = ['"""Task modules compiled into this executable."""', ""]
    lines.extend(f"import {module}  # noqa: F401" for module in modules)
    lines.append("")
    lines.append(f"PRECOMPILED_TASKS = {modules!r}")
    return "\n".join(lines) + "\n"


def rebuild(ctx: BuildContext, outfile: str | None = None) -> Path:
    """
    Clone, reconfigure, build and copy out a new executable.

    Args:
        ctx: Build context
        outfile: Destination of the executable

    Returns:
        Path of the copied executable
    """
    config = ctx.settings.rebuild
    log = TaskLogger(TASK_ID)
    if not config.repository:
        raise PreconditionError(TASK_ID, "rebuild.repository is not configured")
    build_command = shlex.split(config.build_command)
    if not build_command:
        raise PreconditionError(TASK_ID, "rebuild.build_command is empty")

    project_dir = ctx.mkdir("rebuild")
    launch("git", "clone", config.repository, project_dir).check(TASK_ID)

    descriptor_path = project_dir / config.descriptor
    descriptor = merge_descriptor(
        read_descriptor(descriptor_path),
        dependencies=ctx.get("dependencies", []),
        exclusions=ctx.get("uberjar_exclusions", []),
    )
    write_descriptor(descriptor_path, descriptor)

    precompile_path = project_dir / config.precompile_file
    try:
        precompile_path.parent.mkdir(parents=True, exist_ok=True)
        precompile_path.write_text(
            render_precompile_module(ctx.get("require_tasks", [])), encoding="utf-8"
        )
    except OSError as e:
        raise IOFailure(TASK_ID, f"cannot write {precompile_path}: {e}") from e

    with shell_dir(project_dir):
        launch(*build_command).check(TASK_ID)

    target = Path(outfile or config.artifact)
    try:
        shutil.copy2(project_dir / config.artifact, target)
    except OSError as e:
        raise IOFailure(TASK_ID, f"cannot copy {config.artifact} to {target}: {e}") from e

    log.success(f"Built {target}")
    return target


@deftask(TASK_ID)
def rebuild_boot(ctx: BuildContext, outfile: str | None = None):
    """Rebuild buildboot with precompiled tasks.

    This task builds a new buildboot executable by cloning the configured
    repository (rebuild.repository) and running the build command
    (rebuild.build_command, `make boot` by default) in that directory. Any task
    modules listed under require_tasks in the config file are compiled into
    the executable, which greatly reduces startup time. Dependencies from the
    config file are added to the cloned project descriptor.

    Some dependencies cannot be precompiled. Exclude them from the executable
    by adding an uberjar_exclusions key to the config file with a list of
    regexes matching the paths to exclude.

    The new executable is written to the path given by the outfile argument,
    or to ./boot if outfile isn't provided.
    """

    def middleware(next_handler: Handler) -> Handler:
        def handler(ctx: BuildContext) -> BuildContext:
            rebuild(ctx, outfile)
            return next_handler(ctx)

        return handler

    return middleware
