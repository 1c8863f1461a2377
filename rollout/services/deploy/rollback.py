"""Rollback target selection and execution.

Two modes:

- explicit: roll back to a named release; every newer release is discarded
- implicit: roll back one step to the second-newest release; only the
  newest is discarded

Only the cutover and restart phases run. Migrations, dependency
installation and the before_migrate/before_symlink hooks do not.
"""

from __future__ import annotations

from collections.abc import Sequence

from rollout.core.result import Err, Ok, Result
from rollout.output.console import ConsoleProtocol

from .cutover import CutoverManager
from .errors import DeployError, NoRollbackTarget, NoSuchRelease
from .model import Release, RollbackPlan
from .restart import Restarter
from .store import ReleaseStore

__all__ = ["RollbackController", "plan_rollback"]


def plan_rollback(
    history: Sequence[Release], target_slug: str | None
) -> Result[RollbackPlan, DeployError]:
    """Pick the new current release and the releases to discard. Pure."""
    slugs = [r.slug for r in history]

    if target_slug is not None:
        if target_slug not in slugs:
            return Err(NoSuchRelease(slug=target_slug, available=tuple(slugs)))
        index = slugs.index(target_slug)
        return Ok(RollbackPlan(target=history[index], discard=tuple(history[index + 1 :])))

    if len(history) < 2:
        return Err(NoRollbackTarget(release_count=len(history)))
    return Ok(RollbackPlan(target=history[-2], discard=(history[-1],)))


class RollbackController:
    def __init__(
        self,
        store: ReleaseStore,
        cutover: CutoverManager,
        restarter: Restarter,
        console: ConsoleProtocol,
    ) -> None:
        self._store = store
        self._cutover = cutover
        self._restarter = restarter
        self._console = console

    def rollback(self, target_slug: str | None = None) -> Result[RollbackPlan, DeployError]:
        """Roll back and discard newer releases.

        Target resolution failures leave the filesystem untouched.
        """
        planned = plan_rollback(self._store.list(), target_slug)
        if isinstance(planned, Err):
            return planned
        plan = planned.value

        self._console.header(f"Rolling back to {plan.target.slug}")
        restored = self.restore(plan.target)
        if isinstance(restored, Err):
            return restored

        for release in plan.discard:
            self._console.info(f"removing release {release.slug}")
            deleted = self._store.delete(release)
            if isinstance(deleted, Err):
                return deleted
        return Ok(plan)

    def restore(self, release: Release) -> Result[None, DeployError]:
        """Cut ``current`` over to ``release`` and restart it."""
        linked = self._cutover.cutover(release)
        if isinstance(linked, Err):
            return linked
        self._console.info("restarting with previous release")
        return self._restarter.restart(release)
