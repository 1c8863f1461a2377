from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from rollout.core.config import DependenciesConfig, DeploymentDescriptor, SourceConfig
from rollout.core.result import Err, Ok, Result
from rollout.output.console import MockConsole
from rollout.platform.process import ProcessError
from rollout.scm.source import LocalSource


@dataclass(frozen=True, slots=True)
class RecordedCall:
    command: str | tuple[str, ...]
    cwd: Path
    env: dict[str, str] | None
    user: str | None
    group: str | None


def _empty_calls() -> list[RecordedCall]:
    return []


def _no_failures() -> dict[str, int]:
    return {}


@dataclass
class FakeRunner:
    """Stand-in for ``run_command`` that records calls.

    ``fail`` maps a substring of the command text to the exit code to return.
    ``raise_on`` raises RuntimeError for commands containing that substring.
    ``on_call`` sees every command text before it "runs".
    """

    calls: list[RecordedCall] = field(default_factory=_empty_calls)
    fail: dict[str, int] = field(default_factory=_no_failures)
    raise_on: str | None = None
    on_call: Callable[[str], object] | None = None

    def __call__(
        self,
        command: str | Sequence[str],
        *,
        cwd: Path,
        env: dict[str, str] | None = None,
        user: str | None = None,
        group: str | None = None,
        timeout: float | None = None,
    ) -> Result[str, ProcessError]:
        del timeout
        recorded = command if isinstance(command, str) else tuple(command)
        self.calls.append(RecordedCall(recorded, cwd, env, user, group))
        text = recorded if isinstance(recorded, str) else " ".join(recorded)
        if self.on_call is not None:
            self.on_call(text)
        if self.raise_on is not None and self.raise_on in text:
            raise RuntimeError(f"runner exploded on {text}")
        for needle, code in self.fail.items():
            if needle in text:
                argv = (recorded,) if isinstance(recorded, str) else recorded
                return Err(ProcessError(argv, code, "", f"{needle} failed\n"))
        return Ok("")

    def texts(self) -> list[str]:
        return [c.command if isinstance(c.command, str) else " ".join(c.command) for c in self.calls]


@pytest.fixture
def console() -> MockConsole:
    return MockConsole()


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def artifact(tmp_path: Path) -> Path:
    """A small application tree to deploy."""
    root = tmp_path / "artifact"
    (root / "app").mkdir(parents=True)
    (root / "app" / "main.py").write_text("print('v1')\n", encoding="utf-8")
    (root / "log").mkdir()
    (root / "log" / "dev.log").write_text("local\n", encoding="utf-8")
    return root


@pytest.fixture
def make_descriptor(tmp_path: Path, artifact: Path) -> Callable[..., DeploymentDescriptor]:
    def make(**overrides: Any) -> DeploymentDescriptor:
        values: dict[str, Any] = {
            "deploy_root": tmp_path / "srv",
            "source": SourceConfig(kind="local", location=str(artifact)),
            "dependencies": DependenciesConfig(installer="none"),
        }
        values.update(overrides)
        return DeploymentDescriptor(**values)

    return make


@pytest.fixture
def make_source(artifact: Path) -> Callable[..., LocalSource]:
    def make(descriptor: DeploymentDescriptor, revision: str = "HEAD") -> LocalSource:
        return LocalSource(artifact, descriptor.checkout_path, revision=revision)

    return make


@pytest.fixture
def seed_releases() -> Callable[..., list[Path]]:
    """Create release directories by hand and optionally point ``current``."""

    def seed(
        descriptor: DeploymentDescriptor, *slugs: str, current: str | None = None
    ) -> list[Path]:
        paths: list[Path] = []
        for slug in slugs:
            path = descriptor.releases_dir / slug
            path.mkdir(parents=True)
            (path / "REVISION").write_text(slug, encoding="utf-8")
            paths.append(path)
        if current is not None:
            descriptor.current_link.symlink_to(descriptor.releases_dir / current)
        return paths

    return seed
