"""Error presentation utilities.

Formatting and exit code mapping for deploy and configuration errors.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rollout.core.config import ConfigError
from rollout.core.errors import ErrorCode
from rollout.output.console import Style
from rollout.services.deploy.errors import (
    CommandFailed,
    DeployError,
    FilesystemError,
    HookExecutionError,
    HookNotFound,
    InvalidHookSpecification,
    InvalidSlug,
    NoRollbackTarget,
    NoSuchRelease,
    RecoveryFailed,
)

if TYPE_CHECKING:
    from rollout.output.console import ConsoleProtocol

__all__ = ["deploy_error_exit_code", "print_config_error", "print_deploy_error"]


def _print_hint(hint: str | None, console: ConsoleProtocol) -> None:
    if hint:
        console.print(f"hint: {hint}", Style.DIM)


def print_deploy_error(error: DeployError, console: ConsoleProtocol) -> None:
    """Print a deploy error to the console with its hint."""
    match error:
        case RecoveryFailed(cause=cause, recovery=recovery):
            console.error(cause.message)
            console.error(f"automatic rollback failed: {recovery.message}")
            _print_hint(error.hint, console)
        case CommandFailed(stderr=stderr):
            console.error(error.message)
            # The last line goes out as the hint; show the rest verbatim.
            lines = stderr.strip().splitlines()
            for line in lines[:-1]:
                console.print(f"  {line}", Style.DIM)
            _print_hint(error.hint, console)
        case (
            NoSuchRelease()
            | NoRollbackTarget()
            | InvalidSlug()
            | HookNotFound()
            | InvalidHookSpecification()
            | HookExecutionError()
            | FilesystemError()
        ):
            console.error(error.message)
            _print_hint(error.hint, console)


def print_config_error(error: ConfigError, console: ConsoleProtocol) -> None:
    if error.path is not None:
        console.error(f"{error.path}: {error.message}")
    else:
        console.error(error.message)
    _print_hint(error.hint, console)


def deploy_error_exit_code(error: DeployError) -> int:
    """Get exit code for a deploy error."""
    match error:
        case NoSuchRelease() | NoRollbackTarget() | InvalidSlug() | InvalidHookSpecification():
            return int(ErrorCode.USER_ERROR)
        case HookNotFound() | HookExecutionError() | CommandFailed():
            return int(ErrorCode.DEPLOY_ERROR)
        case FilesystemError():
            return int(ErrorCode.IO_ERROR)
        case RecoveryFailed():
            return int(ErrorCode.RECOVERY_ERROR)
    # Fallback for exhaustiveness
    return int(ErrorCode.DEPLOY_ERROR)
