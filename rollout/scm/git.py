"""Git source backend.

Keeps a cached clone (the working copy) and checks out the requested
revision as a detached HEAD. All operations return Result types.

Usage:
    source = GitSource("https://example.com/shop.git", cache_dir, revision="main")
    match source.sync():
        case Ok(_):
            print(f"checked out into {source.checkout_path}")
        case Err(e):
            print(f"sync failed: {e.message}")
"""

from __future__ import annotations

import re
from pathlib import Path

from rollout.core.result import Err, Ok, Result
from rollout.platform.files import remove_tree
from rollout.platform.process import ProcessError
from rollout.platform.process import run as run_process

from .source import SourceError

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 10 * 60.0
_NETWORK_COMMANDS = {"clone", "fetch", "ls-remote"}
_FULL_SHA = re.compile(r"^[0-9a-f]{40}$")

__all__ = ["GitSource"]


class GitSource:
    """Git-backed source provider.

    Attributes:
        repository: Clone URL or local path of the remote
        revision: Branch, tag or commit to deploy
    """

    def __init__(self, repository: str, destination: Path, revision: str = "HEAD") -> None:
        self.repository = repository
        self._destination = destination
        self.revision = revision

    @property
    def checkout_path(self) -> Path:
        return self._destination

    def revision_slug(self) -> Result[str, SourceError]:
        """Resolve the requested revision to a full commit SHA.

        Full SHAs are returned as-is; anything else is looked up with
        ``git ls-remote`` so no local clone is needed.
        """
        if _FULL_SHA.match(self.revision):
            return Ok(self.revision)

        cwd = self._destination.parent
        cwd.mkdir(parents=True, exist_ok=True)
        result = self._git(["ls-remote", self.repository, self.revision], cwd=cwd)
        match result:
            case Err(e):
                return Err(_source_error("ls-remote", e))
            case Ok(stdout):
                for line in stdout.splitlines():
                    sha = line.split("\t", 1)[0].strip()
                    if _FULL_SHA.match(sha):
                        return Ok(sha)
                return Err(
                    SourceError(
                        command="ls-remote",
                        message=f"revision {self.revision} not found in {self.repository}",
                    )
                )

    def sync(self) -> Result[None, SourceError]:
        """Clone if needed, fetch, then check out the requested revision."""
        if not (self._destination / ".git").exists():
            cloned = self._clone(self._destination)
            if isinstance(cloned, Err):
                return cloned
        else:
            fetched = self._git(["fetch", "--prune", "--tags", "origin"], cwd=self._destination)
            if isinstance(fetched, Err):
                return Err(_source_error("fetch", fetched.error))

        return self._checkout(self._destination)

    def force_export(self, destination: Path) -> Result[None, SourceError]:
        """Fresh clone into ``destination``, checked out, without ``.git``."""
        try:
            remove_tree(destination)
        except OSError as e:
            return Err(SourceError(command="export", message=f"{destination}: {e}"))

        cloned = self._clone(destination)
        if isinstance(cloned, Err):
            return cloned
        checked = self._checkout(destination)
        if isinstance(checked, Err):
            return checked

        try:
            remove_tree(destination / ".git")
        except OSError as e:
            return Err(SourceError(command="export", message=f"{destination}: {e}"))
        return Ok(None)

    def _clone(self, destination: Path) -> Result[None, SourceError]:
        destination.parent.mkdir(parents=True, exist_ok=True)
        result = self._git(
            ["clone", "--quiet", self.repository, str(destination)], cwd=destination.parent
        )
        if isinstance(result, Err):
            return Err(_source_error("clone", result.error))
        return Ok(None)

    def _checkout(self, repo: Path) -> Result[None, SourceError]:
        sha = self._resolve_local(repo)
        if isinstance(sha, Err):
            return sha
        result = self._git(["checkout", "--quiet", "--force", "--detach", sha.value], cwd=repo)
        if isinstance(result, Err):
            return Err(_source_error("checkout", result.error))
        return Ok(None)

    def _resolve_local(self, repo: Path) -> Result[str, SourceError]:
        """Prefer the remote-tracking branch so a stale local branch never wins."""
        for candidate in (f"origin/{self.revision}", self.revision):
            result = self._git(
                ["rev-parse", "--verify", "--quiet", f"{candidate}^{{commit}}"], cwd=repo
            )
            if isinstance(result, Ok) and result.value.strip():
                return Ok(result.value.strip())
        return Err(
            SourceError(command="rev-parse", message=f"unknown revision: {self.revision}")
        )

    def _git(self, args: list[str], *, cwd: Path) -> Result[str, ProcessError]:
        command = args[0] if args else ""
        timeout = (
            _GIT_NETWORK_TIMEOUT_SECONDS if command in _NETWORK_COMMANDS else _GIT_TIMEOUT_SECONDS
        )
        return run_process(["git", *args], cwd=cwd, timeout=timeout)


def _source_error(command: str, error: ProcessError) -> SourceError:
    return SourceError(
        command=command,
        message=error.stderr.strip() or error.stdout.strip() or f"git {command} failed",
        returncode=error.returncode,
    )
