"""Pipeline hooks.

A hook point (``before_migrate``, ``before_symlink``, ``before_restart``,
``after_restart``) is resolved once per invocation into exactly one of:

- ``EmbeddedScript``: a Python callable, run in-process
- ``ExplicitFile``: a release-relative file named in configuration
- ``ConventionalFile``: ``{release}/deploy/{hook}.rb`` when it exists
  (``[hooks] suffix`` overrides ``.rb``)
- ``NoHook``: nothing configured and no conventional file

Each run gets a freshly built ``HookContext``; contexts are never shared
between hooks.

Resolution only looks at file names. What a file means is up to the
``HookEvaluator``; ``PythonHookEvaluator`` executes it as Python source with
``context`` in its globals and the release directory as working directory,
whatever its suffix::

    # deploy/before_restart.rb
    context.run(["python", "manage.py", "collectstatic", "--noinput"])
"""

from __future__ import annotations

import contextlib
import runpy
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path, PurePath
from typing import Protocol

from rollout.core.config import DEFAULT_HOOK_SUFFIX, DeploymentDescriptor
from rollout.core.result import Err, Ok, Result
from rollout.output.console import ConsoleProtocol, Style
from rollout.platform.process import ProcessError, run_command

from .errors import DeployError, HookExecutionError, HookNotFound, InvalidHookSpecification

__all__ = [
    "CommandRunner",
    "ConventionalFile",
    "EmbeddedScript",
    "ExplicitFile",
    "HookContext",
    "HookEvaluator",
    "HookResolution",
    "HookRunner",
    "NoHook",
    "PythonHookEvaluator",
    "resolve_hook",
]

CommandRunner = Callable[..., Result[str, ProcessError]]


def _empty_resources() -> list[object]:
    """Factory for an empty resource list (helps type inference)."""
    return []


@dataclass(frozen=True, slots=True)
class HookContext:
    """Execution context handed to one hook run.

    Attributes:
        hook: hook point name
        release_path: release the hook runs against
        descriptor: the deployment configuration
        console: output sink
        resources: scratch collection owned by this run only
    """

    hook: str
    release_path: Path
    descriptor: DeploymentDescriptor
    console: ConsoleProtocol
    runner: CommandRunner = run_command
    resources: list[object] = field(default_factory=_empty_resources)

    def run(self, command: str | Sequence[str], *, cwd: Path | None = None) -> str:
        """Run a command as the deploy user inside the release.

        Raises:
            RuntimeError: on non-zero exit, so that hook scripts fail loudly.
        """
        result = self.runner(
            command,
            cwd=cwd or self.release_path,
            env=dict(self.descriptor.environment),
            user=self.descriptor.user,
            group=self.descriptor.group,
        )
        if isinstance(result, Err):
            raise RuntimeError(f"{result.error}: {result.error.stderr.strip()}")
        return result.value


# -----------------------------------------------------------------------------
# Resolution
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class EmbeddedScript:
    hook: str
    script: Callable[..., object]


@dataclass(frozen=True, slots=True)
class ExplicitFile:
    hook: str
    path: Path


@dataclass(frozen=True, slots=True)
class ConventionalFile:
    hook: str
    path: Path


@dataclass(frozen=True, slots=True)
class NoHook:
    hook: str


HookResolution = EmbeddedScript | ExplicitFile | ConventionalFile | NoHook


def resolve_hook(
    what: str,
    callback_code: object,
    release_path: Path,
    *,
    suffix: str = DEFAULT_HOOK_SUFFIX,
) -> Result[HookResolution, DeployError]:
    """Decide what running hook ``what`` means for this release."""
    if callback_code is None:
        conventional = release_path / "deploy" / f"{what}{suffix}"
        if conventional.is_file():
            return Ok(ConventionalFile(what, conventional))
        return Ok(NoHook(what))
    if isinstance(callback_code, str):
        relative = PurePath(callback_code)
        if relative.is_absolute() or ".." in relative.parts:
            return Err(InvalidHookSpecification(hook=what, value=repr(callback_code)))
        explicit = release_path / relative
        if not explicit.is_file():
            return Err(HookNotFound(hook=what, path=explicit))
        return Ok(ExplicitFile(what, explicit))
    if callable(callback_code):
        return Ok(EmbeddedScript(what, callback_code))
    return Err(InvalidHookSpecification(hook=what, value=repr(callback_code)))


# -----------------------------------------------------------------------------
# Evaluation
# -----------------------------------------------------------------------------


class HookEvaluator(Protocol):
    """Executes hook code; failures come back as ``HookExecutionError``."""

    def run_embedded(
        self, script: Callable[..., object], context: HookContext
    ) -> Result[None, DeployError]: ...

    def run_file(self, path: Path, context: HookContext) -> Result[None, DeployError]: ...


def _describe(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}"


class PythonHookEvaluator:
    """Runs embedded callables and Python hook files in this process."""

    def run_embedded(
        self, script: Callable[..., object], context: HookContext
    ) -> Result[None, DeployError]:
        try:
            returned = script(context)
        except Exception as e:  # noqa: BLE001
            return Err(HookExecutionError(hook=context.hook, detail=_describe(e)))
        # Callables may report failure as a Result instead of raising.
        if isinstance(returned, Err):
            return Err(HookExecutionError(hook=context.hook, detail=str(returned.error)))
        return Ok(None)

    def run_file(self, path: Path, context: HookContext) -> Result[None, DeployError]:
        try:
            with contextlib.chdir(context.release_path):
                runpy.run_path(
                    str(path),
                    init_globals={"context": context},
                    run_name="__rollout_hook__",
                )
        except SystemExit as e:
            if e.code not in (None, 0):
                return Err(HookExecutionError(hook=context.hook, detail=f"exited with {e.code}"))
        except Exception as e:  # noqa: BLE001
            return Err(HookExecutionError(hook=context.hook, detail=_describe(e)))
        return Ok(None)


class HookRunner:
    """Resolves and runs the configured hook points for a deployment."""

    def __init__(
        self,
        descriptor: DeploymentDescriptor,
        console: ConsoleProtocol,
        *,
        evaluator: HookEvaluator | None = None,
        runner: CommandRunner = run_command,
    ) -> None:
        self._descriptor = descriptor
        self._console = console
        self._evaluator = evaluator or PythonHookEvaluator()
        self._runner = runner

    def context(self, what: str, release_path: Path) -> HookContext:
        return HookContext(
            hook=what,
            release_path=release_path,
            descriptor=self._descriptor,
            console=self._console,
            runner=self._runner,
        )

    def run(self, what: str, release_path: Path) -> Result[None, DeployError]:
        code = self._descriptor.hooks.get(what)
        return self.run_code(what, code, release_path)

    def run_code(
        self, what: str, callback_code: object, release_path: Path
    ) -> Result[None, DeployError]:
        resolved = resolve_hook(
            what, callback_code, release_path, suffix=self._descriptor.hooks.suffix
        )
        if isinstance(resolved, Err):
            return resolved

        match resolved.value:
            case NoHook():
                return Ok(None)
            case EmbeddedScript(script=script):
                self._console.print(f"running {what} code block", Style.DIM)
                return self._evaluator.run_embedded(script, self.context(what, release_path))
            case ExplicitFile(path=path) | ConventionalFile(path=path):
                self._console.print(f"running deploy hook: {path}", Style.DIM)
                return self._evaluator.run_file(path, self.context(what, release_path))
