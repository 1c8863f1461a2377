"""Source synchronization capability.

The deploy pipeline only needs two things from a source: bring the
long-lived working copy up to date (``sync``) or materialize a clean copy
from scratch (``force_export``). Which implementation is used comes from
configuration; the pipeline depends on the protocol alone.
"""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from rollout.core.result import Err, Ok, Result
from rollout.platform.files import copy_tree, remove_tree

__all__ = ["LocalSource", "SourceError", "SourceProvider"]


@dataclass(frozen=True, slots=True)
class SourceError:
    """Error from a source operation.

    Attributes:
        command: The operation or command that failed
        message: Error message
        returncode: Process return code (-1 when no process was involved)
    """

    command: str
    message: str
    returncode: int = -1


class SourceProvider(Protocol):
    """What the deploy pipeline needs from a source-control backend."""

    @property
    def checkout_path(self) -> Path:
        """Working copy that releases are copied from."""
        ...

    def revision_slug(self) -> Result[str, SourceError]:
        """Identifier of the requested revision, usable as a release slug."""
        ...

    def sync(self) -> Result[None, SourceError]:
        """Incrementally update the working copy to the requested revision."""
        ...

    def force_export(self, destination: Path) -> Result[None, SourceError]:
        """Replace ``destination`` with a clean copy of the requested revision."""
        ...


class LocalSource:
    """Source backed by a plain directory on this host.

    Useful for build artifacts produced elsewhere (CI output, unpacked
    archives). The slug for ``HEAD`` is a short content digest.
    """

    def __init__(self, location: Path, destination: Path, revision: str = "HEAD") -> None:
        self.location = location
        self._destination = destination
        self.revision = revision

    @property
    def checkout_path(self) -> Path:
        return self._destination

    def revision_slug(self) -> Result[str, SourceError]:
        if self.revision != "HEAD":
            return Ok(self.revision)
        if not self.location.is_dir():
            return Err(SourceError("digest", f"source directory not found: {self.location}"))
        try:
            return Ok(_tree_digest(self.location)[:12])
        except OSError as e:
            return Err(SourceError("digest", str(e)))

    def sync(self) -> Result[None, SourceError]:
        return self._mirror(self._destination, clean=False)

    def force_export(self, destination: Path) -> Result[None, SourceError]:
        return self._mirror(destination, clean=True)

    def _mirror(self, destination: Path, *, clean: bool) -> Result[None, SourceError]:
        if not self.location.is_dir():
            return Err(SourceError("copy", f"source directory not found: {self.location}"))
        try:
            if clean:
                remove_tree(destination)
            copy_tree(self.location, destination)
        except OSError as e:
            return Err(SourceError("copy", f"{destination}: {e}"))
        return Ok(None)


def _tree_digest(root: Path) -> str:
    """Hash relative paths and file contents under ``root`` in a stable order."""
    digest = hashlib.sha256()
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for name in sorted(filenames):
            path = Path(dirpath) / name
            digest.update(path.relative_to(root).as_posix().encode("utf-8"))
            digest.update(b"\0")
            if path.is_symlink():
                digest.update(os.readlink(path).encode("utf-8"))
            else:
                digest.update(path.read_bytes())
    return digest.hexdigest()
