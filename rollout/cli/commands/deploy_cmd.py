"""Deploy commands: deploy and force-deploy."""

from __future__ import annotations

from pathlib import Path

import typer

from rollout.cli.commands._helpers import config_option, exit_on_error, report_outcome
from rollout.cli.context import build_context


def deploy(
    slug: str | None = typer.Option(
        None, "--slug", help="Release name (default: from the [deploy] slug strategy)"
    ),
    config: Path = config_option(),
) -> None:
    """Deploy a new release; roll back automatically if it fails."""
    ctx = build_context(config)
    resolved = exit_on_error(ctx.service.resolve_slug(slug), ctx)
    outcome = exit_on_error(ctx.service.deploy(resolved), ctx)
    report_outcome(outcome, ctx.console)


def force_deploy(
    slug: str | None = typer.Option(
        None, "--slug", help="Release name (default: from the [deploy] slug strategy)"
    ),
    config: Path = config_option(),
) -> None:
    """Deploy even if the release exists. No automatic rollback."""
    ctx = build_context(config)
    resolved = exit_on_error(ctx.service.resolve_slug(slug), ctx)
    outcome = exit_on_error(ctx.service.force_deploy(resolved), ctx)
    report_outcome(outcome, ctx.console)
