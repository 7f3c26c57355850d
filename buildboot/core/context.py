"""Build context shared by every task of a pipeline."""

from __future__ import annotations

import logging
import shutil
from collections.abc import MutableMapping
from pathlib import Path
from typing import Any, Iterator

from buildboot.config import Settings
from buildboot.core.errors import ContextSchemaError, IOFailure
from buildboot.core.registry import TaskRegistry

logger = logging.getLogger(__name__)

# Keys every build knows about and the type their values must have
CONTEXT_SCHEMA: dict[str, type | tuple[type, ...]] = {
    "project": (str, type(None)),
    "version": (str, type(None)),
    "dependencies": list,
    "src_paths": list,
    "require_tasks": list,
    "uberjar_exclusions": list,
    "delegate": dict,
    "tasks": TaskRegistry,
}


class BuildContext(MutableMapping):
    """
    Mutable mapping of build facts threaded through the pipeline.

    Only declared keys can be written, and only with values of the declared
    type. Tasks that need keys of their own declare them first with
    :meth:`declare`.
    """

    def __init__(self, settings: Settings | None = None, **facts: Any):
        self.settings = settings if settings is not None else Settings()
        self._schema: dict[str, type | tuple[type, ...]] = dict(CONTEXT_SCHEMA)
        self._facts: dict[str, Any] = {}
        for key, value in facts.items():
            self[key] = value

    @classmethod
    def from_settings(cls, settings: Settings, registry: TaskRegistry) -> "BuildContext":
        """Initial context for a run, seeded from the config file."""
        return cls(
            settings,
            project=settings.project.name,
            version=settings.project.version,
            dependencies=list(settings.project.dependencies),
            src_paths=list(settings.project.src_paths),
            require_tasks=list(settings.require_tasks),
            uberjar_exclusions=list(settings.uberjar_exclusions),
            delegate=dict(settings.delegate.options),
            tasks=registry,
        )

    def declare(self, key: str, kind: type | tuple[type, ...]) -> None:
        """Declare a new key; redeclaring with another type is an error."""
        existing = self._schema.get(key)
        if existing is not None and existing != kind:
            raise ContextSchemaError(None, f"context key '{key}' is already declared as {existing}")
        self._schema[key] = kind

    def is_declared(self, key: str) -> bool:
        return key in self._schema

    @property
    def tasks(self) -> TaskRegistry:
        return self._facts["tasks"]

    def mkdir(self, name: str) -> Path:
        """
        Create a fresh, empty staging directory under the work dir.

        Args:
            name: Directory name, usually the task id

        Returns:
            Absolute path of the directory
        """
        path = (Path(self.settings.work_dir) / name).resolve()
        try:
            if path.exists():
                shutil.rmtree(path)
            path.mkdir(parents=True)
        except OSError as e:
            raise IOFailure(None, f"cannot create staging directory {path}: {e}") from e
        logger.debug(f"Staging directory {path}")
        return path

    def __getitem__(self, key: str) -> Any:
        return self._facts[key]

    def __setitem__(self, key: str, value: Any) -> None:
        kind = self._schema.get(key)
        if kind is None:
            raise ContextSchemaError(None, f"undeclared context key '{key}'")
        if not isinstance(value, kind):
            raise ContextSchemaError(
                None, f"context key '{key}' expects {kind}, got {type(value).__name__}"
            )
        self._facts[key] = value

    def __delitem__(self, key: str) -> None:
        del self._facts[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._facts)

    def __len__(self) -> int:
        return len(self._facts)

    def __repr__(self) -> str:
        return f"BuildContext({sorted(self._facts)})"
