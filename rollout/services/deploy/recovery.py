"""Automatic rollback when a new deploy fails.

The wrapper never hides the failure. After recovery the original ``Err`` is
returned as-is (or the original exception is re-raised). If recovery itself
fails, ``RecoveryFailed`` carries both errors and the deploy root needs
manual attention.
"""

from __future__ import annotations

import os
from collections.abc import Callable

from rollout.core.result import Err, Ok, Result
from rollout.output.console import ConsoleProtocol
from rollout.platform.files import read_link

from .errors import DeployError, RecoveryFailed, fs_error
from .model import Release
from .rollback import RollbackController
from .store import ReleaseStore

__all__ = ["FailureRecoveryWrapper"]


class FailureRecoveryWrapper:
    def __init__(
        self,
        store: ReleaseStore,
        rollback: RollbackController,
        console: ConsoleProtocol,
    ) -> None:
        self._store = store
        self._rollback = rollback
        self._console = console

    def run[T](
        self,
        failed: Release,
        previous: Release | None,
        attempt: Callable[[], Result[T, DeployError]],
    ) -> Result[T, DeployError]:
        """Run ``attempt`` for the new release ``failed``; recover on any error.

        Args:
            failed: the release being deployed (deleted if the attempt fails)
            previous: the release ``current`` pointed at before the attempt
            attempt: the deploy itself
        """
        try:
            result = attempt()
        except BaseException:
            recovered = self.recover(failed, previous)
            if isinstance(recovered, Err):
                self._console.error(recovered.error.message)
            raise

        if isinstance(result, Ok):
            return result

        self._console.warning(f"error deploying {failed.slug}: {result.error.message}")
        recovered = self.recover(failed, previous)
        if isinstance(recovered, Err):
            return Err(RecoveryFailed(cause=result.error, recovery=recovered.error))
        return result

    def recover(self, failed: Release, previous: Release | None) -> Result[None, DeployError]:
        """Restore ``previous`` (if any) and delete the failed release."""
        if previous is not None:
            restored = self._rollback.restore(previous)
            if isinstance(restored, Err):
                return restored
        else:
            dropped = self._drop_dangling_current(failed)
            if isinstance(dropped, Err):
                return dropped

        self._console.info(f"removing failed deploy {failed.slug}")
        return self._store.delete(failed)

    def _drop_dangling_current(self, failed: Release) -> Result[None, DeployError]:
        """A first-ever deploy may fail after cutover; don't leave ``current``
        pointing at a release that is about to be deleted."""
        link = self._store.current_path
        target = read_link(link)
        if target is None or os.path.realpath(target) != os.path.realpath(failed.path):
            return Ok(None)
        try:
            link.unlink(missing_ok=True)
        except OSError as e:
            return Err(fs_error("remove current link", link, e))
        return Ok(None)
