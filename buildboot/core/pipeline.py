"""Compose task invocations into a single pipeline handler."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Sequence

from buildboot.core.context import BuildContext
from buildboot.core.errors import BuildError, InvocationError
from buildboot.core.registry import TaskRegistry
from buildboot.utils.logger import TaskLogger

logger = logging.getLogger(__name__)

Handler = Callable[[BuildContext], BuildContext]
Middleware = Callable[[Handler], Handler]


@dataclass(frozen=True)
class TaskInvocation:
    """A task id and the string arguments it was requested with."""

    task_id: str
    args: tuple[str, ...] = ()

    @classmethod
    def parse(cls, tokens: Iterable[str]) -> list["TaskInvocation"]:
        """
        Parse command line tokens into invocations.

        ``build`` is a task without arguments, ``[help rebuild-boot]`` a task
        with arguments. A bracketed group may span several tokens or be a
        single token containing spaces.

        Args:
            tokens: Command line tokens

        Returns:
            Invocations in the order given
        """
        invocations: list[TaskInvocation] = []
        group: list[str] | None = None

        for token in tokens:
            if group is None and token.startswith("["):
                group = []
                token = token[1:]
            closing = group is not None and token.endswith("]")
            if closing:
                token = token[:-1]

            if group is None:
                if token.endswith("]"):
                    raise InvocationError(token, "unbalanced ']'")
                invocations.append(cls(token))
                continue

            group.extend(token.split())
            if closing:
                if not group:
                    raise InvocationError(None, "empty task group '[]'")
                invocations.append(cls(group[0], tuple(group[1:])))
                group = None

        if group is not None:
            raise InvocationError(group[0] if group else None, "missing closing ']'")
        return invocations


def identity(ctx: BuildContext) -> BuildContext:
    return ctx


def compose(middlewares: Sequence[Middleware], terminal: Handler = identity) -> Handler:
    """Fold middlewares right to left around the terminal handler."""
    handler = terminal
    for middleware in reversed(middlewares):
        handler = middleware(handler)
    return handler


def _traced(task_id: str, middleware: Middleware) -> Middleware:
    """Log entry and exit of a task around its handler."""
    task_logger = TaskLogger(task_id)

    def wrap(next_handler: Handler) -> Handler:
        handler = middleware(next_handler)

        def run(ctx: BuildContext) -> BuildContext:
            task_logger.debug("enter")
            try:
                result = handler(ctx)
            except BuildError as e:
                # Attribute errors raised by helpers to the innermost task
                if e.task_id is None:
                    e.task_id = task_id
                raise
            task_logger.debug("leave")
            return result

        return run

    return wrap


def build_pipeline(
    registry: TaskRegistry,
    invocations: Sequence[TaskInvocation],
    ctx: BuildContext,
) -> Handler:
    """
    Resolve, check and instantiate invocations, then compose them.

    Every invocation is resolved and arity-checked before any task factory is
    called, so a bad invocation leaves no side effects behind.

    Args:
        registry: Sealed task registry
        invocations: Requested tasks in execution order
        ctx: Build context handed to each task factory

    Returns:
        Single handler running the whole pipeline

    Raises:
        UnknownTaskError: If an invocation names an unregistered task
        InvocationError: If an invocation has the wrong arguments
    """
    specs = [registry.resolve(invocation.task_id) for invocation in invocations]
    bound = [spec.bind(invocation.args) for spec, invocation in zip(specs, invocations)]

    middlewares: list[Middleware] = []
    for spec, args in zip(specs, bound):
        middleware = spec.main(ctx, *args)
        if not callable(middleware):
            raise InvocationError(spec.id, "task factory did not return a middleware")
        middlewares.append(_traced(spec.id, middleware))

    logger.debug(f"Pipeline: {' -> '.join(spec.id for spec in specs) or '(empty)'}")
    return compose(middlewares)


def run_pipeline(handler: Handler, ctx: BuildContext) -> BuildContext:
    """Drive a pipeline handler with the initial context."""
    result = handler(ctx)
    return ctx if result is None else result
