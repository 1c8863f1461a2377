from __future__ import annotations

from pathlib import Path

import typer

from rollout.cli.commands._helpers import config_option, exit_on_error, report_outcome
from rollout.cli.context import build_context


def rollback(
    to: str | None = typer.Option(
        None, "--to", help="Release to roll back to (default: the previous one)"
    ),
    config: Path = config_option(),
) -> None:
    """Point current at an older release and drop the newer ones."""
    ctx = build_context(config)
    outcome = exit_on_error(ctx.service.rollback(to), ctx)
    report_outcome(outcome, ctx.console)
