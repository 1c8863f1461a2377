"""Source-control backends.

Usage:
    from rollout.scm import source_for

    source = source_for(descriptor)
    match source.sync():
        case Ok(_):
            ...
"""

from __future__ import annotations

from pathlib import Path

from rollout.core.config import DeploymentDescriptor
from rollout.scm.git import GitSource
from rollout.scm.source import LocalSource, SourceError, SourceProvider

__all__ = [
    "GitSource",
    "LocalSource",
    "SourceError",
    "SourceProvider",
    "source_for",
]


def source_for(descriptor: DeploymentDescriptor) -> SourceProvider:
    """Build the source provider selected by ``[source] kind``."""
    cfg = descriptor.source
    if cfg.location is None:
        raise ValueError("[source] needs 'repository' (git) or 'path' (local)")
    if cfg.kind == "git":
        return GitSource(cfg.location, descriptor.checkout_path, revision=descriptor.revision)
    location = Path(cfg.location)
    if not location.is_absolute():
        location = descriptor.deploy_root / location
    return LocalSource(location, descriptor.checkout_path, revision=descriptor.revision)
