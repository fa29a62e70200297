"""Error codes for CLI exit status.

The numeric values are the process exit codes of `optic` and should remain
stable, since workflows may branch on them:
- 0: Success
- 1: User error (bad input, unsupported event)
- 2: Environment error (missing tools, missing credentials)
- 3: Release error (git, gh or npm step failed)
- 4: Network error (API or OTP exchange failed)
- 5: I/O error (file not found, permission denied)
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    RELEASE_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK

    @property
    def is_error(self) -> bool:
        return self != ErrorCode.OK
