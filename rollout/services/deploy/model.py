from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from rollout.core.result import Err, Ok, Result

from .errors import InvalidSlug

_SLUG_RE = re.compile(r"[A-Za-z0-9._-]+")

DeployAction = Literal["deployed", "unchanged", "rolled_back"]


@dataclass(frozen=True, slots=True)
class Release:
    """A release directory under ``{deploy_root}/releases``.

    Releases order by slug unless ledger ordering is in effect (the default
    for revision slugs). With name ordering, callers pick slugs whose
    lexicographic order is their chronological order (fixed-width timestamps,
    zero-padded counters).
    """

    slug: str
    path: Path

    def __str__(self) -> str:
        return self.slug


@dataclass(frozen=True, slots=True)
class RollbackPlan:
    """Outcome of target selection: where ``current`` goes and what is dropped."""

    target: Release
    discard: tuple[Release, ...]


@dataclass(frozen=True, slots=True)
class DeployOutcome:
    action: DeployAction
    release: Release
    removed: tuple[Release, ...] = ()


def validate_slug(slug: str) -> Result[str, InvalidSlug]:
    """Check that a slug is a single safe path component."""
    if not slug:
        return Err(InvalidSlug(slug, "empty"))
    if slug in {".", ".."}:
        return Err(InvalidSlug(slug, "reserved name"))
    if not _SLUG_RE.fullmatch(slug):
        return Err(InvalidSlug(slug, "contains unsafe characters"))
    return Ok(slug)
