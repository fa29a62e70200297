from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, TypeAlias


ReleaseErrorKind: TypeAlias = Literal[
    "invalid_input",
    "invalid_event",
    "git_failed",
    "gh_failed",
    "npm_failed",
    "artifact_failed",
    "otp_failed",
]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    kind: ReleaseErrorKind
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message
