"""Releases command - list releases on disk, oldest first."""

from __future__ import annotations

from pathlib import Path

from rollout.cli.commands._helpers import config_option
from rollout.cli.context import build_context
from rollout.output.console import Style


def releases(config: Path = config_option()) -> None:
    """List releases, marking the current one with '*'."""
    ctx = build_context(config)
    history = ctx.service.releases()
    if not history:
        ctx.console.print(f"no releases under {ctx.descriptor.releases_dir}", Style.DIM)
        return

    current = ctx.service.current()
    for release in history:
        if current is not None and release.slug == current.slug:
            ctx.console.print(f"* {release.slug}", Style.SUCCESS)
        else:
            ctx.console.print(f"  {release.slug}")
