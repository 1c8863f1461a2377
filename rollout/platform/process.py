"""Subprocess execution with Result-based error handling.

This is the command-executor seam of the deploy engine. Migration and
restart commands, git, and pip all go through ``run``/``run_command`` so
that tests can monkeypatch a single function.

Usage:
    result = run_command("python manage.py migrate", cwd=release, user="deploy")
    match result:
        case Ok(stdout):
            print(stdout)
        case Err(error):
            print(f"Failed: {error.stderr}")
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from rollout.core.result import Err, Ok, Result

__all__ = ["ProcessError", "merged_env", "run", "run_command"]


@dataclass(frozen=True, slots=True)
class ProcessError:
    """Error from a failed subprocess execution.

    Attributes:
        command: The command that was executed.
        returncode: Exit code, or -1 if the process could not be started.
        stdout: Standard output (may be empty).
        stderr: Standard error (contains error details).
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    def __str__(self) -> str:
        cmd_str = " ".join(self.command[:3])
        if len(self.command) > 3:
            cmd_str += " ..."
        return f"{cmd_str} failed (exit {self.returncode})"


def merged_env(extra: Mapping[str, str] | None) -> dict[str, str] | None:
    """Overlay deploy environment variables on the current environment."""
    if not extra:
        return None
    env = dict(os.environ)
    env.update(extra)
    return env


def run(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Execute an argument list and return stdout or error."""
    return run_command(cmd, cwd=cwd, env=env, timeout=timeout, inherit_env=False)


def run_command(
    command: str | Sequence[str],
    *,
    cwd: Path,
    env: Mapping[str, str] | None = None,
    user: str | None = None,
    group: str | None = None,
    timeout: float | None = None,
    inherit_env: bool = True,
) -> Result[str, ProcessError]:
    """Execute a deploy command synchronously.

    Args:
        command: A shell string, or an argument list run without a shell.
        cwd: Working directory for the command.
        env: Extra environment variables. Merged over the current
            environment unless ``inherit_env`` is False.
        user: Run as this user (requires privileges).
        group: Run as this group (requires privileges).
        timeout: Maximum seconds to wait (None for no limit).

    Returns:
        Ok(stdout) on zero exit, Err(ProcessError) otherwise.
    """
    shell = isinstance(command, str)
    argv: tuple[str, ...] = (command,) if isinstance(command, str) else tuple(command)
    proc_env = merged_env(env) if inherit_env else (dict(env) if env is not None else None)

    try:
        proc = subprocess.run(
            command if shell else list(argv),
            cwd=str(cwd),
            env=proc_env,
            shell=shell,
            user=user,
            group=group,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        return Err(
            ProcessError(
                command=argv,
                returncode=-1,
                stdout=e.stdout if isinstance(e.stdout, str) else "",
                stderr=f"Command timed out after {timeout}s",
            )
        )
    except (OSError, KeyError, ValueError) as e:
        # KeyError: unknown user or group name
        return Err(ProcessError(command=argv, returncode=-1, stdout="", stderr=str(e)))

    if proc.returncode != 0:
        return Err(
            ProcessError(
                command=argv,
                returncode=proc.returncode,
                stdout=proc.stdout,
                stderr=proc.stderr,
            )
        )

    return Ok(proc.stdout)
