"""Configuration module."""

from .settings import (
    DelegateConfig,
    ProjectConfig,
    RebuildConfig,
    Settings,
    TaskConfig,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "clear_settings_cache",
    "ProjectConfig",
    "TaskConfig",
    "RebuildConfig",
    "DelegateConfig",
]
