"""Help and introspection over the task registry."""

from __future__ import annotations

import inspect
import io
from importlib import metadata
from typing import Any, Callable, Sequence

from rich.console import Console
from rich.table import Table
from rich.text import Text

from buildboot.core.registry import TaskRegistry

DISTRIBUTION = "buildboot"

USAGE = [
    "buildboot task ...",
    "buildboot [task arg arg] ...",
    "buildboot [help task]",
]


def get_doc(fn: Callable[..., Any] | None) -> str:
    """Docstring of fn with the indentation of every line stripped."""
    if fn is None:
        return ""
    doc = inspect.getdoc(fn) or ""
    return "\n".join(line.strip() for line in doc.split("\n"))


def pad_left(prefix: str, lines: Sequence[str]) -> str:
    """Prefix the first line, indent the rest to the same column."""
    pad = " " * len(prefix)
    return "\n".join(
        f"{prefix if i == 0 else pad}{line}" for i, line in enumerate(lines)
    )


def version_info() -> dict[str, str | None]:
    """Metadata of the installed distribution; empty values when not installed."""
    try:
        meta = metadata.metadata(DISTRIBUTION)
    except metadata.PackageNotFoundError:
        return {"proj": DISTRIBUTION, "vers": None, "desc": None, "url": None, "lic": None}

    url = meta.get("Home-page")
    if not url:
        for entry in meta.get_all("Project-URL") or []:
            url = entry.split(",", 1)[-1].strip()
            break
    return {
        "proj": meta.get("Name") or DISTRIBUTION,
        "vers": meta.get("Version"),
        "desc": meta.get("Summary"),
        "url": url,
        "lic": meta.get("License"),
    }


def version_str() -> str:
    info = version_info()
    return f"{info['proj']} {info['vers'] or ''}: {info['url'] or ''}"


def describe_all(registry: TaskRegistry) -> str:
    """Borderless two-column table of task ids and one-line descriptions."""
    table = Table(box=None, show_header=False, pad_edge=False)
    table.add_column("task", no_wrap=True)
    table.add_column("description")
    for spec in registry:
        table.add_row(Text(spec.id), Text(spec.short_doc))

    buffer = io.StringIO()
    Console(file=buffer, width=120, color_system=None, force_terminal=False).print(table)
    return "\n".join(line.rstrip() for line in buffer.getvalue().rstrip("\n").split("\n"))


def describe_one(registry: TaskRegistry, task_id: str) -> str:
    """
    Signature and full documentation of one task.

    Raises:
        UnknownTaskError: If task_id is not registered
        AssertionError: If the task was registered without an entry point
    """
    spec = registry.resolve(task_id)
    main = spec.main
    assert main is not None and callable(main), f"task '{task_id}' has no entry point"

    name = f"{getattr(main, '__module__', '?')}/{getattr(main, '__qualname__', task_id)}"
    try:
        params = list(inspect.signature(main).parameters.values())[1:]
        signature = f"({', '.join(str(p) for p in params)})"
    except (TypeError, ValueError):
        signature = "(...)"

    doc = spec.doc or get_doc(main)
    return f"{version_str()}\n{name}\n{signature}\n  {doc}\n"


def usage_text(registry: TaskRegistry) -> str:
    """Full help screen: version, usage and the task table."""
    parts = [
        version_str(),
        pad_left("Usage: ", USAGE),
        "",
        pad_left("Tasks: ", describe_all(registry).split("\n")),
        "",
    ]
    return "\n".join(parts)
