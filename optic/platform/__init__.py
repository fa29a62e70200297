"""Platform abstraction layer."""

from .process import (
    ProcessError,
    run,
    with_env,
)

__all__ = [
    "ProcessError",
    "run",
    "with_env",
]
