"""Dependency installation for a freshly copied release."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Protocol

from rollout.core.config import DeploymentDescriptor
from rollout.core.result import Err, Ok, Result
from rollout.output.console import ConsoleProtocol, Style
from rollout.platform.process import run_command

from .errors import CommandFailed, DeployError
from .hooks import CommandRunner

__all__ = ["DependencyInstaller", "NullInstaller", "PipInstaller", "installer_for"]


class DependencyInstaller(Protocol):
    def install(self, release_path: Path) -> Result[None, DeployError]: ...


class NullInstaller:
    def install(self, release_path: Path) -> Result[None, DeployError]:
        del release_path
        return Ok(None)


class PipInstaller:
    """``pip install -r <manifest>`` when the release ships a manifest."""

    def __init__(
        self,
        descriptor: DeploymentDescriptor,
        console: ConsoleProtocol,
        *,
        runner: CommandRunner = run_command,
        python: str = sys.executable,
    ) -> None:
        self._descriptor = descriptor
        self._console = console
        self._runner = runner
        self._python = python

    def install(self, release_path: Path) -> Result[None, DeployError]:
        manifest = self._descriptor.dependencies.manifest
        if not (release_path / manifest).is_file():
            return Ok(None)

        cmd = [self._python, "-m", "pip", "install", "--quiet", "-r", manifest]
        self._console.print(" ".join(cmd), Style.DIM)
        result = self._runner(
            cmd,
            cwd=release_path,
            env=dict(self._descriptor.environment),
            user=self._descriptor.user,
            group=self._descriptor.group,
        )
        if isinstance(result, Err):
            return Err(
                CommandFailed(
                    phase="install",
                    command=" ".join(cmd),
                    returncode=result.error.returncode,
                    stderr=result.error.stderr,
                )
            )
        return Ok(None)


def installer_for(
    descriptor: DeploymentDescriptor,
    console: ConsoleProtocol,
    *,
    runner: CommandRunner = run_command,
) -> DependencyInstaller:
    if descriptor.dependencies.installer == "none":
        return NullInstaller()
    return PipInstaller(descriptor, console, runner=runner)
