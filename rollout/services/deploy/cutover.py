"""Symlink farm and the ``current`` pointer.

``CutoverManager`` links shared resources into a release and swaps the
``current`` symlink. It is the only writer of ``current``.

Ordering used by the pipeline:
    purge -> create dirs -> before-migrate links -> (migration)
    -> general links -> before-migrate links again -> cutover
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from rollout.core.config import DeploymentDescriptor
from rollout.core.result import Err, Ok, Result
from rollout.output.console import ConsoleProtocol, Style
from rollout.platform.files import atomic_symlink, chown_tree, remove_tree, replace_with_symlink

from .errors import DeployError, fs_error
from .model import Release

__all__ = ["CutoverManager", "enforce_ownership"]


def enforce_ownership(
    descriptor: DeploymentDescriptor, console: ConsoleProtocol
) -> Result[None, DeployError]:
    """``chown -R user:group deploy_root``; no-op without user and group."""
    if descriptor.user is None and descriptor.group is None:
        return Ok(None)
    owner = f"{descriptor.user or ''}:{descriptor.group or ''}"
    console.print(f"ensuring ownership {owner} on {descriptor.deploy_root}", Style.DIM)
    try:
        chown_tree(descriptor.deploy_root, descriptor.user, descriptor.group)
    except OSError as e:
        return Err(fs_error("chown", descriptor.deploy_root, e))
    return Ok(None)


def _pairs_info(mapping: Iterable[tuple[str, str]]) -> str:
    return ", ".join(f"{src} => {dst}" for src, dst in mapping) or "none"


class CutoverManager:
    def __init__(self, descriptor: DeploymentDescriptor, console: ConsoleProtocol) -> None:
        self._descriptor = descriptor
        self._console = console

    def purge(self, release: Release, dirs: Iterable[str]) -> Result[None, DeployError]:
        """Remove release-relative paths that shared links will replace."""
        dirs = tuple(dirs)
        if dirs:
            self._console.print(f"purging from release: {', '.join(dirs)}", Style.DIM)
        for rel in dirs:
            target = release.path / rel
            try:
                remove_tree(target)
            except OSError as e:
                return Err(fs_error("purge", target, e))
        return Ok(None)

    def create_dirs(self, release: Release, dirs: Iterable[str]) -> Result[None, DeployError]:
        for rel in dirs:
            target = release.path / rel
            try:
                target.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                return Err(fs_error("create directory", target, e))
        return Ok(None)

    def link_shared(
        self,
        release: Release,
        shared_path: Path,
        mapping: Iterable[tuple[str, str]],
        create_dirs: Iterable[str] = (),
    ) -> Result[None, DeployError]:
        """Link ``release/dest -> shared_path/src`` for each pair.

        ``create_dirs`` are created inside the release first. Existing links
        are replaced, so running this twice is harmless.
        """
        created = self.create_dirs(release, create_dirs)
        if isinstance(created, Err):
            return created

        mapping = tuple(mapping)
        if mapping:
            self._console.print(f"linking shared paths: {_pairs_info(mapping)}", Style.DIM)
        for src, dest in mapping:
            link = release.path / dest
            try:
                link.parent.mkdir(parents=True, exist_ok=True)
                replace_with_symlink(shared_path / src, link)
            except OSError as e:
                return Err(fs_error("link shared path", link, e))
        return Ok(None)

    def cutover(self, release: Release, current_path: Path | None = None) -> Result[None, DeployError]:
        """Atomically point ``current`` at ``release``, then re-own the deploy root."""
        link = current_path or self._descriptor.current_link
        self._console.info(f"linking {release.path} into production at {link}")
        try:
            atomic_symlink(release.path.absolute(), link)
        except OSError as e:
            return Err(fs_error("cutover", link, e))
        return enforce_ownership(self._descriptor, self._console)
