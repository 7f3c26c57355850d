"""Task specifications and the registry they are resolved from."""

from __future__ import annotations

import importlib
import inspect
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Iterator, Sequence

from buildboot.core.errors import InvocationError, TaskLoadError, UnknownTaskError

if TYPE_CHECKING:
    from buildboot.config import Settings

logger = logging.getLogger(__name__)

# Modules providing the tasks every build can use
BUILTIN_TASK_MODULES = (
    "buildboot.tasks.core",
    "buildboot.tasks.rebuild",
    "buildboot.tasks.delegate",
)

TASK_SPEC_ATTR = "__task_spec__"


def first_line(text: str | None) -> str:
    """First line of text, stripped; empty for None."""
    if not text:
        return ""
    return text.strip().split("\n", 1)[0].strip()


@dataclass(frozen=True)
class TaskSpec:
    """A registered task: its id, entry point and documentation."""

    id: str
    main: Callable[..., Any] | None
    doc: str | None = None
    args: tuple[str, ...] = ()

    @property
    def short_doc(self) -> str:
        """One-line description, explicit doc first then the entry point docstring."""
        return first_line(self.doc) or first_line(self.main_doc)

    @property
    def long_doc(self) -> str:
        return self.doc or self.main_doc or ""

    @property
    def main_doc(self) -> str | None:
        if self.main is None:
            return None
        return inspect.getdoc(self.main)

    def bind(self, args: Sequence[str]) -> tuple[str, ...]:
        """
        Check that the entry point accepts the given invocation arguments.

        Args:
            args: Arguments from the invocation

        Returns:
            Full argument tuple (default args followed by invocation args)

        Raises:
            InvocationError: If the entry point is missing or the arity is wrong
        """
        full_args = (*self.args, *args)
        if not callable(self.main):
            raise InvocationError(self.id, "task has no entry point")
        try:
            inspect.signature(self.main).bind(None, *full_args)
        except TypeError as e:
            raise InvocationError(self.id, f"bad arguments {list(args)!r}: {e}") from e
        return full_args


def deftask(name: str | None = None, doc: str | None = None):
    """Decorator to declare a task factory.

    The factory is called as ``factory(ctx, *args)`` and must return a
    middleware, a function from the next handler to a handler.
    """

    def deco(fn: Callable[..., Any]):
        task_id = name or fn.__name__.replace("_", "-")
        setattr(fn, TASK_SPEC_ATTR, TaskSpec(id=task_id, main=fn, doc=doc))
        return fn

    return deco


def resolve_entry_point(reference: str) -> Callable[..., Any]:
    """Import a "package.module:attribute" reference."""
    module_name, _, attr = reference.partition(":")
    if not attr:
        raise TaskLoadError(None, f"entry point '{reference}' must be 'module:function'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise TaskLoadError(None, f"cannot import '{module_name}': {e}") from e
    try:
        main = getattr(module, attr)
    except AttributeError as e:
        raise TaskLoadError(None, f"'{module_name}' has no attribute '{attr}'") from e
    if not callable(main):
        raise TaskLoadError(None, f"entry point '{reference}' is not callable")
    return main


class TaskRegistry:
    """Mapping of task id to TaskSpec, sealed once startup is over."""

    def __init__(self):
        self._tasks: dict[str, TaskSpec] = {}
        self._sealed = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "TaskRegistry":
        """
        Build the registry in a single initialization phase.

        Built-in task modules and the modules listed in ``require_tasks`` are
        imported, then tasks declared in the config file are registered, and
        the registry is sealed.
        """
        registry = cls()
        for module_name in (*BUILTIN_TASK_MODULES, *settings.require_tasks):
            registry.load_module(module_name)

        for task_id, task in settings.tasks.items():
            try:
                main = resolve_entry_point(task.main)
            except TaskLoadError as e:
                raise TaskLoadError(task_id, e.reason) from e
            registry.register(task_id, main, doc=task.doc, args=task.args)

        registry.seal()
        logger.debug(f"Registered {len(registry)} tasks")
        return registry

    @property
    def sealed(self) -> bool:
        return self._sealed

    def seal(self) -> None:
        self._sealed = True

    def register(
        self,
        task_id: str,
        main: Callable[..., Any] | None,
        doc: str | None = None,
        args: Sequence[str] = (),
    ) -> TaskSpec:
        """Add or overwrite the spec for task_id."""
        if self._sealed:
            raise RuntimeError(f"Task registry is sealed, cannot register '{task_id}'")
        if task_id in self._tasks:
            logger.debug(f"Overwriting task {task_id}")
        spec = TaskSpec(id=task_id, main=main, doc=doc, args=tuple(args))
        self._tasks[task_id] = spec
        return spec

    def load_module(self, module_name: str) -> list[TaskSpec]:
        """
        Import a module and register every @deftask factory it defines.

        Args:
            module_name: Dotted module name

        Returns:
            Specs registered from the module
        """
        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            raise TaskLoadError(None, f"cannot import task module '{module_name}': {e}") from e

        loaded = []
        for obj in vars(module).values():
            spec = getattr(obj, TASK_SPEC_ATTR, None)
            if isinstance(spec, TaskSpec) and getattr(obj, "__module__", None) == module.__name__:
                loaded.append(self.register(spec.id, spec.main, doc=spec.doc))
        logger.debug(f"Loaded {len(loaded)} tasks from {module_name}")
        return loaded

    def resolve(self, task_id: str) -> TaskSpec:
        try:
            return self._tasks[task_id]
        except KeyError:
            raise UnknownTaskError(task_id) from None

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    def __iter__(self) -> Iterator[TaskSpec]:
        return iter(list(self._tasks.values()))

    def __len__(self) -> int:
        return len(self._tasks)
