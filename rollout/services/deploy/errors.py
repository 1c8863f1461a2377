"""Error values for the deploy engine.

Every fallible deploy operation returns ``Result[T, DeployError]``. Each
variant exposes ``message`` and ``hint`` so that the CLI can render any of
them without knowing which one it got.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class NoSuchRelease:
    slug: str
    available: tuple[str, ...] = ()

    @property
    def message(self) -> str:
        return f"no release named {self.slug} to roll back to"

    @property
    def hint(self) -> str | None:
        if self.available:
            return f"available releases: {', '.join(self.available)}"
        return None


@dataclass(frozen=True, slots=True)
class NoRollbackTarget:
    release_count: int

    @property
    def message(self) -> str:
        return f"there is no release to roll back to ({self.release_count} on disk)"

    @property
    def hint(self) -> str | None:
        return "implicit rollback needs at least two releases"


@dataclass(frozen=True, slots=True)
class InvalidSlug:
    slug: str
    reason: str

    @property
    def message(self) -> str:
        return f"invalid release slug {self.slug!r}: {self.reason}"

    @property
    def hint(self) -> str | None:
        return "slugs may only contain letters, digits, '.', '_' and '-'"


@dataclass(frozen=True, slots=True)
class HookNotFound:
    hook: str
    path: Path

    @property
    def message(self) -> str:
        return f"can't find callback file for {self.hook}: {self.path}"

    @property
    def hint(self) -> str | None:
        return "explicit hook paths are relative to the release directory"


@dataclass(frozen=True, slots=True)
class InvalidHookSpecification:
    hook: str
    value: str

    @property
    def message(self) -> str:
        return f"don't know what to do with callback for {self.hook}: {self.value}"

    @property
    def hint(self) -> str | None:
        return "use a callable, a release-relative path, or leave it unset"


@dataclass(frozen=True, slots=True)
class HookExecutionError:
    hook: str
    detail: str

    @property
    def message(self) -> str:
        return f"hook {self.hook} failed: {self.detail}"

    @property
    def hint(self) -> str | None:
        return None


@dataclass(frozen=True, slots=True)
class CommandFailed:
    phase: str
    command: str
    returncode: int
    stderr: str = ""

    @property
    def message(self) -> str:
        return f"{self.phase} command failed (exit {self.returncode}): {self.command}"

    @property
    def hint(self) -> str | None:
        tail = self.stderr.strip().splitlines()
        return tail[-1] if tail else None


@dataclass(frozen=True, slots=True)
class FilesystemError:
    operation: str
    path: Path
    detail: str

    @property
    def message(self) -> str:
        return f"{self.operation} failed for {self.path}: {self.detail}"

    @property
    def hint(self) -> str | None:
        return None


@dataclass(frozen=True, slots=True)
class RecoveryFailed:
    """Automatic rollback after a failed deploy did not complete.

    ``cause`` is the original deploy failure; ``recovery`` is what went wrong
    while restoring the previous release. The deploy root needs manual
    attention.
    """

    cause: DeployError
    recovery: DeployError

    @property
    def message(self) -> str:
        return f"{self.cause.message}; rollback to previous release also failed: {self.recovery.message}"

    @property
    def hint(self) -> str | None:
        return "check the current symlink and releases directory by hand"


DeployError = (
    NoSuchRelease
    | NoRollbackTarget
    | InvalidSlug
    | HookNotFound
    | InvalidHookSpecification
    | HookExecutionError
    | CommandFailed
    | FilesystemError
    | RecoveryFailed
)


def fs_error(operation: str, path: Path, exc: OSError) -> FilesystemError:
    """Build a FilesystemError from a caught OSError."""
    return FilesystemError(operation=operation, path=path, detail=exc.strerror or str(exc))
