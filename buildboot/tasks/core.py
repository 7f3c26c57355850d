"""Built-in tasks that every build has."""

from __future__ import annotations

from buildboot.core.context import BuildContext
from buildboot.core.help import describe_one, usage_text
from buildboot.core.pipeline import Handler
from buildboot.core.registry import deftask
from buildboot.utils.logger import console


@deftask()
def nop(ctx: BuildContext):
    """Does nothing."""

    def middleware(next_handler: Handler) -> Handler:
        def handler(ctx: BuildContext) -> BuildContext:
            return next_handler(ctx)

        return handler

    return middleware


@deftask("help")
def help_task(ctx: BuildContext, task: str | None = None):
    """Print this help info.

    Without arguments, print usage and the list of registered tasks. With a
    task id, print that task's signature and full documentation.
    """
    registry = ctx.tasks
    # Unknown ids fail while the pipeline is being built
    if task is not None:
        registry.resolve(task)

    def middleware(next_handler: Handler) -> Handler:
        def handler(ctx: BuildContext) -> BuildContext:
            text = usage_text(registry) if task is None else describe_one(registry, task)
            console.print(text, markup=False, highlight=False, soft_wrap=True)
            return next_handler(ctx)

        return handler

    return middleware
