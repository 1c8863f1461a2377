"""Release-based deployment engine.

Usage:
    from rollout.services.deploy import DeployService

    service = DeployService(descriptor, console=console, source=source)
    match service.deploy(slug):
        case Ok(outcome):
            ...
        case Err(error):
            ...
"""

from .errors import (
    CommandFailed,
    DeployError,
    FilesystemError,
    HookExecutionError,
    HookNotFound,
    InvalidHookSpecification,
    InvalidSlug,
    NoRollbackTarget,
    NoSuchRelease,
    RecoveryFailed,
)
from .model import DeployOutcome, Release, RollbackPlan, validate_slug
from .service import DeployService
from .store import ReleaseObserver, ReleaseStore

__all__ = [
    # service
    "DeployService",
    # model
    "DeployOutcome",
    "Release",
    "RollbackPlan",
    "validate_slug",
    # store
    "ReleaseObserver",
    "ReleaseStore",
    # errors
    "CommandFailed",
    "DeployError",
    "FilesystemError",
    "HookExecutionError",
    "HookNotFound",
    "InvalidHookSpecification",
    "InvalidSlug",
    "NoRollbackTarget",
    "NoSuchRelease",
    "RecoveryFailed",
]
