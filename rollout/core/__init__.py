"""Core domain types: results, exit codes and deployment configuration."""

from .config import (
    ConfigError,
    DeploymentDescriptor,
    HooksConfig,
    SourceConfig,
    load_config,
)
from .errors import ErrorCode
from .result import Err, Ok, Result, is_err, is_ok

__all__ = [
    # config
    "ConfigError",
    "DeploymentDescriptor",
    "HooksConfig",
    "SourceConfig",
    "load_config",
    # errors
    "ErrorCode",
    # result
    "Err",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
]
