from __future__ import annotations

import typer

from rollout import __version__
from rollout.cli.commands.deploy_cmd import deploy, force_deploy
from rollout.cli.commands.releases_cmd import releases
from rollout.cli.commands.rollback_cmd import rollback

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# Commands
app.command()(deploy)
app.command("force-deploy")(force_deploy)
app.command()(rollback)
app.command()(releases)


def _show_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit.",
        callback=_show_version,
        is_eager=True,
    ),
) -> None:
    """Release-based deploys with atomic cutover and rollback."""
    del version


def main() -> None:
    app()
