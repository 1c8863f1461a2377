"""Platform layer: process execution and filesystem primitives."""

from .files import (
    atomic_symlink,
    atomic_write_text,
    chown_tree,
    copy_tree,
    read_link,
    remove_tree,
    replace_with_symlink,
)
from .process import (
    ProcessError,
    merged_env,
    run,
    run_command,
)

__all__ = [
    # files
    "atomic_symlink",
    "atomic_write_text",
    "chown_tree",
    "copy_tree",
    "read_link",
    "remove_tree",
    "replace_with_symlink",
    # process
    "ProcessError",
    "merged_env",
    "run",
    "run_command",
]
