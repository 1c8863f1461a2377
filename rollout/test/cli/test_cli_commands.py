"""End-to-end tests for the rollout CLI."""

from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

from rollout import __version__
from rollout.cli.app import app
from rollout.core.errors import ErrorCode

runner = CliRunner()


def _project(tmp_path: Path, extra: str = "") -> Path:
    artifact = tmp_path / "build"
    (artifact / "app").mkdir(parents=True)
    (artifact / "app" / "main.py").write_text("print('v1')\n", encoding="utf-8")
    config = tmp_path / "deploy.toml"
    config.write_text(
        "[deploy]\n"
        "root = 'srv'\n"
        "[source]\n"
        "path = 'build'\n"
        "[dependencies]\n"
        "installer = 'none'\n" + extra,
        encoding="utf-8",
    )
    return config


def test_version() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_missing_config_is_env_error(tmp_path: Path) -> None:
    result = runner.invoke(app, ["releases", "--config", str(tmp_path / "nope.toml")])

    assert result.exit_code == int(ErrorCode.ENV_ERROR)


def test_missing_source_location_is_env_error(tmp_path: Path) -> None:
    config = tmp_path / "deploy.toml"
    config.write_text("[deploy]\nroot = 'srv'\n", encoding="utf-8")

    result = runner.invoke(app, ["releases", "-c", str(config)])

    assert result.exit_code == int(ErrorCode.ENV_ERROR)


def test_releases_when_empty(tmp_path: Path) -> None:
    config = _project(tmp_path)

    result = runner.invoke(app, ["releases", "-c", str(config)])

    assert result.exit_code == 0
    assert "no releases" in result.output


def test_deploy_then_list(tmp_path: Path) -> None:
    config = _project(tmp_path)

    first = runner.invoke(app, ["deploy", "--slug", "001", "-c", str(config)])
    second = runner.invoke(app, ["deploy", "--slug", "002", "-c", str(config)])
    listing = runner.invoke(app, ["releases", "-c", str(config)])

    assert first.exit_code == 0, first.output
    assert second.exit_code == 0, second.output
    assert "deployed 002" in second.output
    assert listing.output.splitlines() == ["  001", "* 002"]
    assert (tmp_path / "srv" / "current").resolve() == (tmp_path / "srv" / "releases" / "002").resolve()


def test_deploy_current_again_is_unchanged(tmp_path: Path) -> None:
    config = _project(tmp_path)
    runner.invoke(app, ["deploy", "--slug", "001", "-c", str(config)])

    result = runner.invoke(app, ["deploy", "--slug", "001", "-c", str(config)])

    assert result.exit_code == 0
    assert "already current" in result.output


def test_rollback_without_target_is_user_error(tmp_path: Path) -> None:
    config = _project(tmp_path)
    runner.invoke(app, ["deploy", "--slug", "001", "-c", str(config)])

    result = runner.invoke(app, ["rollback", "-c", str(config)])

    assert result.exit_code == int(ErrorCode.USER_ERROR)
    assert "no release to roll back to" in result.output


def test_rollback_to(tmp_path: Path) -> None:
    config = _project(tmp_path)
    for slug in ("001", "002", "003"):
        runner.invoke(app, ["deploy", "--slug", slug, "-c", str(config)])

    result = runner.invoke(app, ["rollback", "--to", "001", "-c", str(config)])

    assert result.exit_code == 0, result.output
    assert "rolled back to 001" in result.output
    assert sorted(p.name for p in (tmp_path / "srv" / "releases").iterdir()) == ["001"]


def test_bad_slug_is_user_error(tmp_path: Path) -> None:
    config = _project(tmp_path)

    result = runner.invoke(app, ["deploy", "--slug", "a/b", "-c", str(config)])

    assert result.exit_code == int(ErrorCode.USER_ERROR)


def test_failed_deploy_is_rolled_back(tmp_path: Path) -> None:
    config = _project(tmp_path, "[hooks]\nafter_restart = 'deploy/check.py'\n")

    result = runner.invoke(app, ["deploy", "--slug", "001", "-c", str(config)])

    assert result.exit_code == int(ErrorCode.DEPLOY_ERROR)
    assert "can't find callback file" in result.output

    releases = tmp_path / "srv" / "releases"
    assert list(releases.iterdir()) == []
    assert not (tmp_path / "srv" / "current").is_symlink()


def test_force_deploy(tmp_path: Path) -> None:
    config = _project(tmp_path)
    runner.invoke(app, ["deploy", "--slug", "001", "-c", str(config)])
    (tmp_path / "build" / "app" / "main.py").write_text("print('v2')\n", encoding="utf-8")

    result = runner.invoke(app, ["force-deploy", "--slug", "001", "-c", str(config)])

    assert result.exit_code == 0, result.output
    deployed = tmp_path / "srv" / "current" / "app" / "main.py"
    assert deployed.read_text(encoding="utf-8") == "print('v2')\n"
