"""Tests for hook resolution and evaluation."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from rollout.core.config import DeploymentDescriptor, HooksConfig
from rollout.core.result import Err, Ok
from rollout.output.console import MockConsole
from rollout.services.deploy.errors import (
    HookExecutionError,
    HookNotFound,
    InvalidHookSpecification,
)
from rollout.services.deploy.hooks import (
    ConventionalFile,
    EmbeddedScript,
    ExplicitFile,
    HookContext,
    HookRunner,
    NoHook,
    resolve_hook,
)

if TYPE_CHECKING:
    from conftest import FakeRunner


def _release(tmp_path: Path) -> Path:
    release = tmp_path / "releases" / "a1"
    (release / "deploy").mkdir(parents=True)
    return release


class TestResolveHook:
    def test_no_code_and_no_file_is_noop(self, tmp_path: Path) -> None:
        release = _release(tmp_path)
        assert resolve_hook("before_restart", None, release) == Ok(NoHook("before_restart"))

    def test_conventional_file(self, tmp_path: Path) -> None:
        release = _release(tmp_path)
        hook = release / "deploy" / "before_restart.rb"
        hook.write_text("", encoding="utf-8")

        assert resolve_hook("before_restart", None, release) == Ok(
            ConventionalFile("before_restart", hook)
        )

    def test_conventional_default_ignores_other_suffixes(self, tmp_path: Path) -> None:
        release = _release(tmp_path)
        (release / "deploy" / "before_restart.py").write_text("", encoding="utf-8")

        assert resolve_hook("before_restart", None, release) == Ok(NoHook("before_restart"))

    def test_conventional_suffix_is_configurable(self, tmp_path: Path) -> None:
        release = _release(tmp_path)
        hook = release / "deploy" / "before_restart.py"
        hook.write_text("", encoding="utf-8")

        result = resolve_hook("before_restart", None, release, suffix=".py")

        assert result == Ok(ConventionalFile("before_restart", hook))

    def test_explicit_file(self, tmp_path: Path) -> None:
        release = _release(tmp_path)
        (release / "scripts").mkdir()
        (release / "scripts" / "warm.py").write_text("", encoding="utf-8")

        result = resolve_hook("after_restart", "scripts/warm.py", release)

        assert result == Ok(ExplicitFile("after_restart", release / "scripts" / "warm.py"))

    def test_explicit_missing_file(self, tmp_path: Path) -> None:
        release = _release(tmp_path)

        result = resolve_hook("after_restart", "scripts/warm.py", release)

        assert result == Err(HookNotFound("after_restart", release / "scripts" / "warm.py"))

    @pytest.mark.parametrize("code", ["/etc/profile", "../shared/warm.py", "scripts/../../x.py"])
    def test_explicit_path_must_stay_in_release(self, tmp_path: Path, code: str) -> None:
        release = _release(tmp_path)
        (tmp_path / "releases" / "shared").mkdir()
        (tmp_path / "releases" / "shared" / "warm.py").write_text("", encoding="utf-8")

        result = resolve_hook("after_restart", code, release)

        assert result == Err(InvalidHookSpecification("after_restart", repr(code)))

    def test_callable(self, tmp_path: Path) -> None:
        def script(ctx: HookContext) -> None:
            del ctx

        result = resolve_hook("before_symlink", script, _release(tmp_path))

        assert result == Ok(EmbeddedScript("before_symlink", script))

    def test_invalid_specification(self, tmp_path: Path) -> None:
        result = resolve_hook("before_symlink", 42, _release(tmp_path))

        assert result == Err(InvalidHookSpecification("before_symlink", "42"))


class TestHookRunner:
    def test_runs_conventional_file_in_release(
        self, tmp_path: Path, make_descriptor: Callable[..., DeploymentDescriptor]
    ) -> None:
        release = _release(tmp_path)
        (release / "deploy" / "before_restart.rb").write_text(
            "from pathlib import Path\n"
            "Path('marker.txt').write_text(context.hook)\n",
            encoding="utf-8",
        )
        runner = HookRunner(make_descriptor(), MockConsole())

        assert runner.run("before_restart", release) == Ok(None)

        assert (release / "marker.txt").read_text() == "before_restart"

    def test_missing_hook_is_noop(
        self, tmp_path: Path, make_descriptor: Callable[..., DeploymentDescriptor]
    ) -> None:
        runner = HookRunner(make_descriptor(), MockConsole())
        assert runner.run("after_restart", _release(tmp_path)) == Ok(None)

    def test_file_raising_is_execution_error(
        self, tmp_path: Path, make_descriptor: Callable[..., DeploymentDescriptor]
    ) -> None:
        release = _release(tmp_path)
        (release / "deploy" / "before_migrate.rb").write_text(
            "raise RuntimeError('cache warmup failed')\n", encoding="utf-8"
        )
        runner = HookRunner(make_descriptor(), MockConsole())

        result = runner.run("before_migrate", release)

        assert isinstance(result, Err)
        assert isinstance(result.error, HookExecutionError)
        assert "cache warmup failed" in result.error.detail

    @pytest.mark.parametrize(("code", "ok"), [("0", True), ("None", True), ("2", False)])
    def test_file_sys_exit(
        self,
        tmp_path: Path,
        make_descriptor: Callable[..., DeploymentDescriptor],
        code: str,
        ok: bool,
    ) -> None:
        release = _release(tmp_path)
        (release / "deploy" / "before_symlink.rb").write_text(
            f"import sys\nsys.exit({code})\n", encoding="utf-8"
        )
        runner = HookRunner(make_descriptor(), MockConsole())

        result = runner.run("before_symlink", release)

        assert isinstance(result, Ok) is ok

    def test_embedded_callable_gets_context(
        self, tmp_path: Path, make_descriptor: Callable[..., DeploymentDescriptor]
    ) -> None:
        seen: list[tuple[str, Path]] = []
        hooks = HooksConfig(before_symlink=lambda ctx: seen.append((ctx.hook, ctx.release_path)))
        release = _release(tmp_path)

        result = HookRunner(make_descriptor(hooks=hooks), MockConsole()).run(
            "before_symlink", release
        )

        assert result == Ok(None)
        assert seen == [("before_symlink", release)]

    def test_embedded_callable_raising(
        self, tmp_path: Path, make_descriptor: Callable[..., DeploymentDescriptor]
    ) -> None:
        def boom(ctx: HookContext) -> None:
            raise ValueError("bad asset manifest")

        hooks = HooksConfig(before_restart=boom)
        result = HookRunner(make_descriptor(hooks=hooks), MockConsole()).run(
            "before_restart", _release(tmp_path)
        )

        assert result == Err(HookExecutionError("before_restart", "ValueError: bad asset manifest"))

    def test_embedded_callable_returning_err(
        self, tmp_path: Path, make_descriptor: Callable[..., DeploymentDescriptor]
    ) -> None:
        hooks = HooksConfig(after_restart=lambda ctx: Err("health check failed"))
        result = HookRunner(make_descriptor(hooks=hooks), MockConsole()).run(
            "after_restart", _release(tmp_path)
        )

        assert result == Err(HookExecutionError("after_restart", "health check failed"))

    def test_explicit_missing_file(
        self, tmp_path: Path, make_descriptor: Callable[..., DeploymentDescriptor]
    ) -> None:
        hooks = HooksConfig(after_restart="deploy/nope.rb")
        result = HookRunner(make_descriptor(hooks=hooks), MockConsole()).run(
            "after_restart", _release(tmp_path)
        )

        assert isinstance(result, Err)
        assert isinstance(result.error, HookNotFound)

    def test_each_run_gets_a_fresh_context(
        self, tmp_path: Path, make_descriptor: Callable[..., DeploymentDescriptor]
    ) -> None:
        contexts: list[HookContext] = []

        def remember(ctx: HookContext) -> None:
            ctx.resources.append("handle")
            contexts.append(ctx)

        hooks = HooksConfig(before_migrate=remember, before_symlink=remember)
        runner = HookRunner(make_descriptor(hooks=hooks), MockConsole())
        release = _release(tmp_path)

        runner.run("before_migrate", release)
        runner.run("before_symlink", release)

        assert contexts[0] is not contexts[1]
        assert contexts[0].resources == ["handle"]
        assert contexts[1].resources == ["handle"]


class TestHookContextRun:
    def test_runs_as_deploy_user_in_release(
        self,
        tmp_path: Path,
        make_descriptor: Callable[..., DeploymentDescriptor],
        runner: FakeRunner,
    ) -> None:
        d = make_descriptor(user="deploy", group="www", environment={"APP_ENV": "production"})
        release = _release(tmp_path)
        ctx = HookRunner(d, MockConsole(), runner=runner).context("before_restart", release)

        ctx.run(["python", "manage.py", "collectstatic"])

        call = runner.calls[0]
        assert call.command == ("python", "manage.py", "collectstatic")
        assert call.cwd == release
        assert call.env == {"APP_ENV": "production"}
        assert (call.user, call.group) == ("deploy", "www")

    def test_failure_raises(
        self,
        tmp_path: Path,
        make_descriptor: Callable[..., DeploymentDescriptor],
        runner: FakeRunner,
    ) -> None:
        runner.fail["collectstatic"] = 1
        ctx = HookRunner(make_descriptor(), MockConsole(), runner=runner).context(
            "before_restart", _release(tmp_path)
        )

        with pytest.raises(RuntimeError, match="collectstatic failed"):
            ctx.run("python manage.py collectstatic")
