"""Top-level deploy actions: deploy, force_deploy, rollback.

``DeployService`` wires the components for one deploy root and picks the
path for each action:

- deploy of the current slug: nothing to do
- deploy of an existing, non-current slug: rollback to it (no re-copy)
- deploy of a new slug: full pipeline with automatic rollback on failure
- force_deploy: delete any existing copy, full pipeline, no automatic rollback
- rollback: explicit target if given, else one step back

No locking is done here. Running two actions against the same deploy root at
once is unsupported; wrap the CLI in ``flock`` or similar if that can happen.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

from rollout.core.config import DeploymentDescriptor
from rollout.core.result import Err, Ok, Result
from rollout.output.console import ConsoleProtocol
from rollout.platform.process import run_command
from rollout.scm.source import SourceProvider

from .cutover import CutoverManager
from .deps import DependencyInstaller, installer_for
from .errors import DeployError
from .hooks import CommandRunner, HookEvaluator, HookRunner
from .ledger import ReleaseLedger
from .model import DeployOutcome, Release, validate_slug
from .pipeline import DeployOrchestrator, source_failure
from .recovery import FailureRecoveryWrapper
from .restart import Restarter
from .rollback import RollbackController
from .store import ReleaseObserver, ReleaseStore

__all__ = ["DeployService", "TIMESTAMP_FORMAT"]

# Fixed width, so lexicographic order is chronological order.
TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class DeployService:
    def __init__(
        self,
        descriptor: DeploymentDescriptor,
        *,
        console: ConsoleProtocol,
        source: SourceProvider,
        installer: DependencyInstaller | None = None,
        evaluator: HookEvaluator | None = None,
        runner: CommandRunner = run_command,
        observer: ReleaseObserver | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.descriptor = descriptor
        self._console = console
        self._source = source
        self._clock = clock

        ledger = ReleaseLedger(descriptor.ledger_path) if descriptor.ordering == "ledger" else None
        self.store = ReleaseStore(
            descriptor.releases_dir,
            descriptor.current_link,
            observer=observer,
            ledger=ledger,
        )
        cutover = CutoverManager(descriptor, console)
        hooks = HookRunner(descriptor, console, evaluator=evaluator, runner=runner)
        restarter = Restarter(descriptor, console, hooks, runner)

        self.rollbacks = RollbackController(self.store, cutover, restarter, console)
        self.recovery = FailureRecoveryWrapper(self.store, self.rollbacks, console)
        self.orchestrator = DeployOrchestrator(
            descriptor,
            store=self.store,
            cutover=cutover,
            source=source,
            installer=installer or installer_for(descriptor, console, runner=runner),
            hooks=hooks,
            restarter=restarter,
            console=console,
            runner=runner,
        )

    # -- queries --------------------------------------------------------------

    def releases(self) -> list[Release]:
        return self.store.list()

    def current(self) -> Release | None:
        return self.store.current()

    def resolve_slug(self, explicit: str | None = None) -> Result[str, DeployError]:
        """Pick the slug for the requested revision.

        An explicit slug wins; otherwise the configured strategy decides.
        """
        if explicit is not None:
            return validate_slug(explicit)
        if self.descriptor.slug_strategy == "timestamp":
            return validate_slug(self._clock().strftime(TIMESTAMP_FORMAT))

        resolved = self._source.revision_slug()
        if isinstance(resolved, Err):
            return Err(source_failure(resolved.error, self._source.checkout_path))
        return validate_slug(resolved.value)

    # -- actions --------------------------------------------------------------

    def deploy(self, slug: str) -> Result[DeployOutcome, DeployError]:
        valid = validate_slug(slug)
        if isinstance(valid, Err):
            return valid

        previous = self.store.current()
        existing = self.store.get(slug)

        if existing is not None:
            if previous is not None and previous.slug == existing.slug:
                self._console.info(
                    f"already deployed {slug} and it is current; use force-deploy to redeploy"
                )
                return Ok(DeployOutcome(action="unchanged", release=existing))
            self._console.info(
                f"already deployed {slug}; rolling back to it (use force-deploy to re-copy)"
            )
            return self._rollback_outcome(slug)

        release = Release(slug=slug, path=self.store.path_for(slug))
        return self.recovery.run(release, previous, lambda: self.orchestrator.run(slug))

    def force_deploy(self, slug: str) -> Result[DeployOutcome, DeployError]:
        valid = validate_slug(slug)
        if isinstance(valid, Err):
            return valid

        existing = self.store.get(slug)
        if existing is not None:
            self._console.info(f"already deployed {slug}; forcing")
            deleted = self.store.delete(existing)
            if isinstance(deleted, Err):
                return deleted

        # A failed forced deploy is left for the caller to retry.
        return self.orchestrator.run(slug)

    def rollback(self, target_slug: str | None = None) -> Result[DeployOutcome, DeployError]:
        return self._rollback_outcome(target_slug)

    def _rollback_outcome(self, target_slug: str | None) -> Result[DeployOutcome, DeployError]:
        planned = self.rollbacks.rollback(target_slug)
        if isinstance(planned, Err):
            return planned
        plan = planned.value
        return Ok(DeployOutcome(action="rolled_back", release=plan.target, removed=plan.discard))
