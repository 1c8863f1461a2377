"""Filesystem helpers.

All functions raise ``OSError`` on failure; the deploy services translate
that into a ``FilesystemError`` value.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path
from uuid import uuid4

__all__ = [
    "atomic_symlink",
    "atomic_write_text",
    "chown_tree",
    "copy_tree",
    "read_link",
    "remove_tree",
    "replace_with_symlink",
]


def atomic_write_text(path: Path, content: str, *, encoding: str = "utf-8") -> None:
    """Write text to path atomically using temp file + replace."""
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.",
        suffix=".tmp",
        dir=str(path.parent),
    )
    tmp_path = Path(tmp_name)

    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)


def atomic_symlink(target: Path, link: Path) -> None:
    """Point ``link`` at ``target`` without a window where ``link`` is missing.

    A symlink is created under a temporary sibling name and renamed over
    ``link``. Works whether ``link`` is absent, a live link, or dangling.
    ``link`` must not be a real directory.
    """
    link.parent.mkdir(parents=True, exist_ok=True)
    tmp_link = link.parent / f".{link.name}.{uuid4().hex[:12]}.tmp"
    os.symlink(str(target), str(tmp_link))
    try:
        os.replace(tmp_link, link)
    finally:
        if tmp_link.is_symlink():
            tmp_link.unlink()


def replace_with_symlink(target: Path, link: Path) -> None:
    """Create or replace ``link`` -> ``target`` (``ln -sfn`` semantics).

    A real directory or file at ``link`` is removed first.
    """
    if link.exists() and not link.is_symlink():
        remove_tree(link)
    atomic_symlink(target, link)


def read_link(link: Path) -> Path | None:
    """Return the target of a symlink, or None if ``link`` is not one."""
    if not link.is_symlink():
        return None
    target = Path(os.readlink(link))
    if not target.is_absolute():
        target = link.parent / target
    return target


def copy_tree(src: Path, dst: Path) -> None:
    """Copy the contents of ``src`` into ``dst``, preserving file metadata.

    Symlinks are copied as links. ``dst`` may already exist.
    """
    shutil.copytree(src, dst, symlinks=True, copy_function=shutil.copy2, dirs_exist_ok=True)


def remove_tree(path: Path) -> None:
    """Remove a file, symlink or directory tree. Missing paths are ignored."""
    if path.is_symlink() or path.is_file():
        path.unlink(missing_ok=True)
        return
    if path.is_dir():
        shutil.rmtree(path)


def _resolve_ids(user: str | None, group: str | None) -> tuple[int, int]:
    import grp
    import pwd

    try:
        uid = pwd.getpwnam(user).pw_uid if user else -1
        gid = grp.getgrnam(group).gr_gid if group else -1
    except KeyError as e:
        raise OSError(f"unknown user or group: {e.args[0]}") from e
    return uid, gid


def chown_tree(root: Path, user: str | None, group: str | None) -> None:
    """Recursively change ownership of ``root`` (like ``chown -R``).

    Symlinks themselves are re-owned, never their targets. No-op if neither
    user nor group is given.
    """
    if (user is None and group is None) or not root.exists():
        return

    uid, gid = _resolve_ids(user, group)
    os.chown(root, uid, gid, follow_symlinks=False)
    for dirpath, dirnames, filenames in os.walk(root):
        for name in (*dirnames, *filenames):
            os.chown(os.path.join(dirpath, name), uid, gid, follow_symlinks=False)
