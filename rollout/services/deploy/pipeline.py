"""The deployment pipeline for one new release.

Steps run strictly in order; the first ``Err`` aborts the rest and is
returned unchanged to the caller.

    1. enforce ownership            8. hook before_symlink
    2. sync source                  9. symlink + cutover
    3. copy into release           10. hook before_restart
    4. install dependencies        11. restart
    5. enforce ownership           12. hook after_restart
    6. hook before_migrate         13. prune old releases
    7. migrate
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from rollout.core.config import DeploymentDescriptor
from rollout.core.result import Err, Ok, Result
from rollout.output.console import ConsoleProtocol
from rollout.platform.files import copy_tree
from rollout.scm.source import SourceError, SourceProvider

from .cutover import CutoverManager, enforce_ownership
from .deps import DependencyInstaller
from .errors import CommandFailed, DeployError, FilesystemError, fs_error
from .hooks import CommandRunner, HookRunner
from .model import DeployOutcome, Release
from .restart import Restarter, run_phase_command
from .store import ReleaseStore

__all__ = ["DeployOrchestrator", "source_failure"]

Step = Callable[[], Result[None, DeployError]]


def source_failure(error: SourceError, checkout: Path) -> DeployError:
    """Map a source backend error onto the deploy error kinds."""
    if error.returncode == -1 and error.command in {"copy", "export", "digest"}:
        return FilesystemError(
            operation=f"source {error.command}", path=checkout, detail=error.message
        )
    return CommandFailed(
        phase="source",
        command=error.command,
        returncode=error.returncode,
        stderr=error.message,
    )


class DeployOrchestrator:
    """Runs the full pipeline against a single target release."""

    def __init__(
        self,
        descriptor: DeploymentDescriptor,
        *,
        store: ReleaseStore,
        cutover: CutoverManager,
        source: SourceProvider,
        installer: DependencyInstaller,
        hooks: HookRunner,
        restarter: Restarter,
        console: ConsoleProtocol,
        runner: CommandRunner,
    ) -> None:
        self._d = descriptor
        self._store = store
        self._cutover = cutover
        self._source = source
        self._installer = installer
        self._hooks = hooks
        self._restarter = restarter
        self._console = console
        self._runner = runner

    def run(self, slug: str) -> Result[DeployOutcome, DeployError]:
        release = Release(slug=slug, path=self._store.path_for(slug))
        self._console.header(f"Deploying {slug} to {self._d.deploy_root}")

        steps: list[Step] = [
            self._enforce_ownership,
            self._update_cached_repo,
            lambda: self._copy_cached_repo(slug),
            lambda: self._installer.install(release.path),
            self._enforce_ownership,
            lambda: self._hooks.run("before_migrate", release.path),
            lambda: self.migrate(release),
            lambda: self._hooks.run("before_symlink", release.path),
            lambda: self.symlink(release),
            lambda: self._hooks.run("before_restart", release.path),
            lambda: self._restarter.restart(release),
            lambda: self._hooks.run("after_restart", release.path),
        ]
        for step in steps:
            result = step()
            if isinstance(result, Err):
                return result

        removed = self.cleanup()
        if isinstance(removed, Err):
            return removed
        return Ok(DeployOutcome(action="deployed", release=release, removed=removed.value))

    # -- steps ----------------------------------------------------------------

    def _enforce_ownership(self) -> Result[None, DeployError]:
        return enforce_ownership(self._d, self._console)

    def _update_cached_repo(self) -> Result[None, DeployError]:
        checkout = self._source.checkout_path
        if self._d.force_export:
            self._console.info(f"exporting source to {checkout}")
            result = self._source.force_export(checkout)
        else:
            self._console.info(f"updating the cached checkout at {checkout}")
            result = self._source.sync()
        if isinstance(result, Err):
            return Err(source_failure(result.error, checkout))
        return Ok(None)

    def _copy_cached_repo(self, slug: str) -> Result[None, DeployError]:
        created = self._store.create(slug)
        if isinstance(created, Err):
            return created
        release = created.value

        checkout = self._source.checkout_path
        self._console.info(f"copying the cached checkout to {release.path}")
        try:
            copy_tree(checkout, release.path)
        except OSError as e:
            return Err(fs_error("copy release", release.path, e))
        return Ok(None)

    def migrate(self, release: Release) -> Result[None, DeployError]:
        linked = self._cutover.link_shared(
            release, self._d.shared_dir, self._d.symlink_before_migrate
        )
        if isinstance(linked, Err):
            return linked

        if not self._d.migrate or self._d.migration_command is None:
            return Ok(None)

        owned = self._enforce_ownership()
        if isinstance(owned, Err):
            return owned

        env_info = " ".join(f"{k}='{v}'" for k, v in self._d.environment.items())
        self._console.info(
            f"migrating as {self._d.user or 'current user'} with environment {env_info or '(none)'}"
        )
        return run_phase_command(
            "migrate",
            self._d.migration_command,
            cwd=release.path,
            descriptor=self._d,
            console=self._console,
            runner=self._runner,
        )

    def symlink(self, release: Release) -> Result[None, DeployError]:
        self._console.info("symlinking")
        steps: list[Step] = [
            lambda: self._cutover.purge(release, self._d.purge_before_symlink),
            lambda: self._cutover.link_shared(
                release,
                self._d.shared_dir,
                self._d.symlinks,
                create_dirs=self._d.create_dirs_before_symlink,
            ),
            lambda: self._cutover.link_shared(
                release, self._d.shared_dir, self._d.symlink_before_migrate
            ),
            self._enforce_ownership,
            lambda: self._cutover.cutover(release),
        ]
        for step in steps:
            result = step()
            if isinstance(result, Err):
                return result
        return Ok(None)

    def cleanup(self) -> Result[tuple[Release, ...], DeployError]:
        """Delete releases beyond the retention count, oldest first.

        The release ``current`` points at is never deleted.
        """
        live = self._store.current()
        stale = [
            r for r in ReleaseStore.prune(self._store.list(), self._d.keep_releases) if r != live
        ]
        for old in stale:
            self._console.info(f"removing old release {old.slug}")
            deleted = self._store.delete(old)
            if isinstance(deleted, Err):
                return deleted
        return Ok(tuple(stale))
