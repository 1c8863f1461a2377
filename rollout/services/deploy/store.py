"""Release directories under ``{deploy_root}/releases``.

``ReleaseStore`` is the only component that creates or removes release
directories. History is never persisted on its own: it is recomputed from
the directory listing on every call, so what is on disk is the truth.
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from rollout.core.config import DEFAULT_KEEP_RELEASES
from rollout.core.result import Err, Ok, Result
from rollout.platform.files import read_link, remove_tree

from .errors import DeployError, fs_error
from .ledger import ReleaseLedger
from .model import Release, validate_slug

__all__ = ["NullObserver", "ReleaseHistory", "ReleaseObserver", "ReleaseStore"]

ReleaseHistory = list[Release]


class ReleaseObserver(Protocol):
    """External bookkeeping notified when releases appear or disappear."""

    def release_created(self, path: Path) -> None: ...

    def release_deleted(self, path: Path) -> None: ...


class NullObserver:
    def release_created(self, path: Path) -> None:
        del path

    def release_deleted(self, path: Path) -> None:
        del path


class ReleaseStore:
    """Enumerates, creates and deletes releases for one deploy root.

    Args:
        releases_dir: ``{deploy_root}/releases``
        current_path: the ``current`` symlink, read only to find the active release
        observer: notified of ``release_created``/``release_deleted``
        ledger: when given, releases are ordered by ledger (creation) order
            instead of by name, and the ledger is kept up to date
    """

    def __init__(
        self,
        releases_dir: Path,
        current_path: Path,
        *,
        observer: ReleaseObserver | None = None,
        ledger: ReleaseLedger | None = None,
    ) -> None:
        self.releases_dir = releases_dir
        self.current_path = current_path
        self._observer = observer or NullObserver()
        self._ledger = ledger

    def path_for(self, slug: str) -> Path:
        return self.releases_dir / slug

    def list(self) -> ReleaseHistory:
        """All releases on disk, oldest first. No side effects."""
        if not self.releases_dir.is_dir():
            return []
        names = sorted(
            entry.name
            for entry in os.scandir(self.releases_dir)
            if entry.is_dir(follow_symlinks=False)
        )
        if self._ledger is not None:
            on_disk = set(names)
            known = [s for s in self._ledger.slugs() if s in on_disk]
            seen = set(known)
            # Unrecorded directories predate the ledger.
            names = [n for n in names if n not in seen] + known
        return [Release(slug=n, path=self.releases_dir / n) for n in names]

    def get(self, slug: str) -> Release | None:
        return next((r for r in self.list() if r.slug == slug), None)

    def current(self) -> Release | None:
        """The release ``current`` points at, if it still exists on disk."""
        target = read_link(self.current_path)
        if target is None:
            return None
        resolved = os.path.realpath(target)
        for release in self.list():
            if os.path.realpath(release.path) == resolved:
                return release
        return None

    def create(self, slug: str) -> Result[Release, DeployError]:
        """Reserve a release path and emit ``release_created``.

        Only ``releases/`` itself is created; populating the release is the
        pipeline's job.
        """
        valid = validate_slug(slug)
        if isinstance(valid, Err):
            return valid

        release = Release(slug=slug, path=self.path_for(slug))
        try:
            self.releases_dir.mkdir(parents=True, exist_ok=True)
            self._notify_created(release.path)
        except OSError as e:
            return Err(fs_error("create release", release.path, e))
        return Ok(release)

    def delete(self, release: Release | Path) -> Result[None, DeployError]:
        """Remove a release tree and emit ``release_deleted``. Idempotent."""
        path = release.path if isinstance(release, Release) else release
        try:
            remove_tree(path)
            self._notify_deleted(path)
        except OSError as e:
            return Err(fs_error("delete release", path, e))
        return Ok(None)

    @staticmethod
    def prune(history: Sequence[Release], keep: int = DEFAULT_KEEP_RELEASES) -> ReleaseHistory:
        """Releases beyond the newest ``keep``, oldest first.

        Pure: ``history`` must already be ordered.
        """
        if keep < 0:
            raise ValueError(f"keep must be >= 0, got {keep}")
        excess = len(history) - keep
        return list(history[:excess]) if excess > 0 else []

    def _notify_created(self, path: Path) -> None:
        if self._ledger is not None:
            self._ledger.release_created(path)
        self._observer.release_created(path)

    def _notify_deleted(self, path: Path) -> None:
        if self._ledger is not None:
            self._ledger.release_deleted(path)
        self._observer.release_deleted(path)
