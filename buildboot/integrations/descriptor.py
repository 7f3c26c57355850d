"""Project descriptor files read and written by composite tasks.

A descriptor is an ordered mapping. Its first three keys form the head
(``declare``, ``project``, ``version``), every other key is an entry kept in
file order::

    declare: defproject
    project: my-app
    version: 0.1.0
    dependencies:
      - [org.clojure/clojure, 1.5.1]
    uberjar-exclusions: []
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Iterable

import yaml

from buildboot.core.errors import IOFailure

HEAD_KEYS = ("declare", "project", "version")
DEFAULT_MARKER = "defproject"

DEPENDENCIES_KEY = "dependencies"
EXCLUSIONS_KEY = "uberjar-exclusions"
SOURCE_PATHS_KEY = "source-paths"


@dataclass
class ProjectDescriptor:
    """Parsed project descriptor."""

    name: str
    version: str
    marker: str = DEFAULT_MARKER
    entries: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "declare": self.marker,
            "project": self.name,
            "version": self.version,
        }
        data.update(self.entries)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProjectDescriptor":
        missing = [key for key in HEAD_KEYS[1:] if key not in data]
        if missing:
            raise ValueError(f"descriptor is missing {', '.join(missing)}")
        # Unquoted YAML values like 1.10 would not be written back as read
        for key in HEAD_KEYS:
            if data.get(key) is not None and not isinstance(data[key], str):
                raise ValueError(f"'{key}' must be a quoted string, got {data[key]!r}")
        entries = {k: v for k, v in data.items() if k not in HEAD_KEYS}
        return cls(
            name=str(data["project"]),
            version=str(data["version"]),
            marker=str(data.get("declare") or DEFAULT_MARKER),
            entries=entries,
        )


def _is_json(path: Path) -> bool:
    return path.suffix.lower() == ".json"


def read_descriptor(path: str | Path) -> ProjectDescriptor:
    """
    Read a YAML (or JSON, by suffix) descriptor.

    Raises:
        IOFailure: If the file cannot be read or is not a valid descriptor
    """
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f) if _is_json(path) else yaml.safe_load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise IOFailure(None, f"cannot read descriptor {path}: {e}") from e

    if not isinstance(data, dict):
        raise IOFailure(None, f"descriptor {path} must be a mapping")
    try:
        return ProjectDescriptor.from_dict(data)
    except ValueError as e:
        raise IOFailure(None, f"invalid descriptor {path}: {e}") from e


def dump_descriptor(descriptor: ProjectDescriptor, json_format: bool = False) -> str:
    data = descriptor.to_dict()
    if json_format:
        return json.dumps(data, indent=2) + "\n"
    return yaml.safe_dump(data, sort_keys=False, default_flow_style=None)


def write_descriptor(path: str | Path, descriptor: ProjectDescriptor) -> Path:
    """Write a descriptor, keeping head keys first and entries in order."""
    path = Path(path)
    try:
        path.write_text(dump_descriptor(descriptor, _is_json(path)), encoding="utf-8")
    except OSError as e:
        raise IOFailure(None, f"cannot write descriptor {path}: {e}") from e
    return path


def _union(existing: Iterable[Any], extra: Iterable[Any]) -> list[Any]:
    result = list(existing)
    for item in extra:
        if item not in result:
            result.append(item)
    return result


def merge_descriptor(
    descriptor: ProjectDescriptor,
    dependencies: Iterable[Any] = (),
    exclusions: Iterable[str] = (),
) -> ProjectDescriptor:
    """
    Return a copy with dependencies appended and exclusions unioned.

    Entries already present are not added again, so merging the same inputs
    twice yields the same descriptor.
    """
    entries = dict(descriptor.entries)
    entries[DEPENDENCIES_KEY] = _union(entries.get(DEPENDENCIES_KEY) or [], dependencies)
    entries[EXCLUSIONS_KEY] = _union(entries.get(EXCLUSIONS_KEY) or [], exclusions)
    return replace(descriptor, entries=entries)
