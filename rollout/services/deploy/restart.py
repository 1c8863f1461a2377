"""Restart phase, shared by deploys, rollbacks and failure recovery."""

from __future__ import annotations

from pathlib import Path

from rollout.core.config import Command, DeploymentDescriptor
from rollout.core.result import Err, Ok, Result
from rollout.output.console import ConsoleProtocol, Style

from .errors import CommandFailed, DeployError
from .hooks import CommandRunner, HookRunner
from .model import Release

__all__ = ["Restarter", "command_text", "run_phase_command"]


def command_text(command: Command) -> str:
    return command if isinstance(command, str) else " ".join(command)


def run_phase_command(
    phase: str,
    command: Command,
    *,
    cwd: Path,
    descriptor: DeploymentDescriptor,
    console: ConsoleProtocol,
    runner: CommandRunner,
) -> Result[None, DeployError]:
    """Run a configured command as the deploy user with the deploy environment."""
    console.print(command_text(command), Style.DIM)
    result = runner(
        command,
        cwd=cwd,
        env=dict(descriptor.environment),
        user=descriptor.user,
        group=descriptor.group,
    )
    if isinstance(result, Err):
        return Err(
            CommandFailed(
                phase=phase,
                command=command_text(command),
                returncode=result.error.returncode,
                stderr=result.error.stderr,
            )
        )
    return Ok(None)


class Restarter:
    """Runs the configured restart target, if any.

    An embedded callable runs like a hook against the release; a command
    runs with the ``current`` symlink as working directory.
    """

    def __init__(
        self,
        descriptor: DeploymentDescriptor,
        console: ConsoleProtocol,
        hooks: HookRunner,
        runner: CommandRunner,
    ) -> None:
        self._descriptor = descriptor
        self._console = console
        self._hooks = hooks
        self._runner = runner

    def restart(self, release: Release) -> Result[None, DeployError]:
        target = self._descriptor.restart_command
        if target is None:
            return Ok(None)

        if callable(target):
            self._console.info("restarting app with embedded code block")
            return self._hooks.run_code("restart", target, release.path)

        current = self._descriptor.current_link
        self._console.info(f"restarting app with {command_text(target)} in {current}")
        return run_phase_command(
            "restart",
            target,
            cwd=current,
            descriptor=self._descriptor,
            console=self._console,
            runner=self._runner,
        )
