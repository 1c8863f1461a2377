"""Shared helpers for CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import typer

from rollout.cli.context import DEFAULT_CONFIG
from rollout.core.result import Err, Result
from rollout.output.console import Style
from rollout.output.errors import deploy_error_exit_code, print_deploy_error
from rollout.services.deploy import DeployError, DeployOutcome

if TYPE_CHECKING:
    from rollout.cli.context import CLIContext
    from rollout.output.console import ConsoleProtocol


def config_option() -> Path:
    return typer.Option(
        DEFAULT_CONFIG,
        "--config",
        "-c",
        help="Deployment config file",
    )


def exit_on_error[T](result: Result[T, DeployError], ctx: CLIContext) -> T:
    """Return the value of ``result`` or print the error and exit.

    The exit code follows the error kind (see ``deploy_error_exit_code``).
    """
    if isinstance(result, Err):
        print_deploy_error(result.error, ctx.console)
        raise typer.Exit(code=deploy_error_exit_code(result.error))
    return result.value


def report_outcome(outcome: DeployOutcome, console: ConsoleProtocol) -> None:
    slug = outcome.release.slug
    match outcome.action:
        case "deployed":
            console.success(f"deployed {slug}")
        case "unchanged":
            console.success(f"{slug} is already current")
        case "rolled_back":
            console.success(f"rolled back to {slug}")
    for release in outcome.removed:
        console.print(f"removed {release.slug}", Style.DIM)
