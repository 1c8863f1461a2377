"""Exit codes for CLI commands.

The numeric values are process exit statuses and should remain stable so
that wrapper scripts and CI jobs can branch on them.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    - 0: Success
    - 1: User error (bad slug, unknown release, nothing to roll back to)
    - 2: Environment error (missing or invalid deploy.toml)
    - 3: Deploy error (a command or hook failed during the pipeline)
    - 5: I/O error (copy, link or remove failed)
    - 6: Recovery error (automatic rollback itself failed)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    DEPLOY_ERROR = 3
    IO_ERROR = 5
    RECOVERY_ERROR = 6

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK

    @property
    def is_error(self) -> bool:
        return self != ErrorCode.OK
