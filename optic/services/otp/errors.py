from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


TIMEOUT_MESSAGE = "No OTP received or submission timed out."


@dataclass(frozen=True, slots=True)
class OtpError:
    """Why an OTP could not be collected.

    - startup_failed: template unreadable or listener could not be bound.
    - timed_out: nobody submitted a code within the window.
    - aborted: the collector was closed before any code arrived.
    """

    kind: Literal["startup_failed", "timed_out", "aborted"]
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message
