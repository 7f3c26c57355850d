"""Integration modules for external processes and files."""

from .shell import ShellOptions, SyncHandle, current_shell_dir, launch, shell_dir
from .descriptor import (
    ProjectDescriptor,
    merge_descriptor,
    read_descriptor,
    write_descriptor,
)

__all__ = [
    # Process launcher
    "ShellOptions",
    "SyncHandle",
    "current_shell_dir",
    "launch",
    "shell_dir",
    # Descriptor files
    "ProjectDescriptor",
    "merge_descriptor",
    "read_descriptor",
    "write_descriptor",
]
