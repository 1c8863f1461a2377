from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from rollout.core.config import DeploymentDescriptor, load_config
from rollout.core.errors import ErrorCode
from rollout.core.result import Err
from rollout.output.console import ConsoleProtocol, RichConsole
from rollout.output.errors import print_config_error
from rollout.scm import source_for
from rollout.services.deploy import DeployService

DEFAULT_CONFIG = Path("deploy.toml")


@dataclass(frozen=True, slots=True)
class CLIContext:
    config_path: Path
    descriptor: DeploymentDescriptor
    console: ConsoleProtocol
    service: DeployService


def build_context(config_path: Path = DEFAULT_CONFIG) -> CLIContext:
    console = RichConsole()

    config_result = load_config(config_path)
    if isinstance(config_result, Err):
        print_config_error(config_result.error, console)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))
    descriptor = config_result.value

    try:
        source = source_for(descriptor)
    except ValueError as e:
        console.error(f"{config_path}: {e}")
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    return CLIContext(
        config_path=config_path,
        descriptor=descriptor,
        console=console,
        service=DeployService(descriptor, console=console, source=source),
    )
