"""Configuration settings loader with YAML and environment variables support."""

from __future__ import annotations

import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class ProjectConfig(BaseModel):
    """Project facts seeded into the build context."""

    name: str | None = None
    version: str | None = None
    # Entries are kept as written, e.g. ["org.clojure/clojure", "1.5.1"]
    dependencies: list[Any] = Field(default_factory=list)
    src_paths: list[str] = Field(default_factory=list)


class TaskConfig(BaseModel):
    """Task declared in the config file instead of with @deftask."""

    main: str  # "package.module:function"
    args: list[str] = Field(default_factory=list)
    doc: str | None = None


class RebuildConfig(BaseModel):
    """rebuild-boot configuration."""

    repository: str = ""
    build_command: str = "make boot"
    artifact: str = "boot"
    descriptor: str = "project.yaml"
    precompile_file: str = "buildboot/_precompiled.py"


class DelegateConfig(BaseModel):
    """Configuration of the build tool run by the delegate task."""

    command: str = "lein"
    descriptor: str = "project.yaml"
    # Extra descriptor entries written after the generated ones
    options: dict[str, Any] = Field(default_factory=dict)


class Settings(BaseSettings):
    """Application settings."""

    project: ProjectConfig = Field(default_factory=ProjectConfig)
    require_tasks: list[str] = Field(default_factory=list)
    uberjar_exclusions: list[str] = Field(default_factory=list)
    tasks: dict[str, TaskConfig] = Field(default_factory=dict)

    rebuild: RebuildConfig = Field(default_factory=RebuildConfig)
    delegate: DelegateConfig = Field(default_factory=DelegateConfig)

    # App settings
    work_dir: str = ".boot"
    log_dir: str = "logs"
    log_to_file: bool = False

    class Config:
        env_prefix = "BUILDBOOT_"
        env_nested_delimiter = "__"


def _resolve_env_vars(value: Any) -> Any:
    """Resolve environment variables in string values like ${VAR_NAME}."""
    if isinstance(value, str):
        pattern = r"\$\{([^}]+)\}"
        matches = re.findall(pattern, value)
        for match in matches:
            env_value = os.getenv(match, "")
            value = value.replace(f"${{{match}}}", env_value)
        return value
    elif isinstance(value, dict):
        return {k: _resolve_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_resolve_env_vars(item) for item in value]
    return value


def load_config_file(config_path: Path | None = None) -> dict[str, Any]:
    """Load configuration from YAML file."""
    if config_path is None:
        # Try default locations
        locations = [
            Path("boot.yaml"),
            Path("config/boot.yaml"),
            Path.home() / ".buildboot" / "boot.yaml",
        ]
        for loc in locations:
            if loc.exists():
                config_path = loc
                break

    if config_path is None or not config_path.exists():
        return {}

    with open(config_path, "r", encoding="utf-8") as f:
        config_data = yaml.safe_load(f) or {}

    # Resolve environment variables
    return _resolve_env_vars(config_data)


@lru_cache
def get_settings(config_path: str | None = None) -> Settings:
    """Get application settings (cached)."""
    path = Path(config_path) if config_path else None
    config_data = load_config_file(path)

    # Convert nested dicts to Pydantic models
    if "project" in config_data:
        config_data["project"] = ProjectConfig(**config_data["project"])
    if "tasks" in config_data:
        config_data["tasks"] = {
            name: TaskConfig(**task) for name, task in (config_data["tasks"] or {}).items()
        }
    if "rebuild" in config_data:
        config_data["rebuild"] = RebuildConfig(**config_data["rebuild"])
    if "delegate" in config_data:
        config_data["delegate"] = DelegateConfig(**config_data["delegate"])

    return Settings(**config_data)


def clear_settings_cache() -> None:
    """Clear the settings cache."""
    get_settings.cache_clear()
