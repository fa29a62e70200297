"""OTP session state.

A session starts `Pending` and moves to exactly one terminal outcome. Every
writer (the submit route, the timeout timer, the collector on startup failure
or early close) goes through the same check-and-set, so whichever arrives
first wins and the others are no-ops.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeAlias, Union


@dataclass(frozen=True, slots=True)
class OtpRequest:
    package_name: str
    package_version: str
    # Externally reachable address of the listener; only shown to the operator.
    base_url: str | None = None


@dataclass(frozen=True, slots=True)
class Pending:
    pass


@dataclass(frozen=True, slots=True)
class Submitted:
    code: str


@dataclass(frozen=True, slots=True)
class TimedOut:
    pass


@dataclass(frozen=True, slots=True)
class Failed:
    reason: str


SessionOutcome: TypeAlias = Union[Pending, Submitted, TimedOut, Failed]


class OtpSession:
    def __init__(
        self,
        request: OtpRequest,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._request = request
        self._created_at = clock()
        self._outcome: SessionOutcome = Pending()
        self._resolved = asyncio.Event()

    @property
    def request(self) -> OtpRequest:
        return self._request

    @property
    def created_at(self) -> float:
        return self._created_at

    @property
    def outcome(self) -> SessionOutcome:
        return self._outcome

    @property
    def is_pending(self) -> bool:
        return isinstance(self._outcome, Pending)

    def _resolve(self, outcome: SessionOutcome) -> bool:
        if not self.is_pending:
            return False
        self._outcome = outcome
        self._resolved.set()
        return True

    def submit(self, code: str) -> bool:
        """Record a submitted code. False if the session was already resolved."""
        return self._resolve(Submitted(code))

    def time_out(self) -> bool:
        return self._resolve(TimedOut())

    def fail(self, reason: str) -> bool:
        return self._resolve(Failed(reason))

    async def wait(self) -> SessionOutcome:
        await self._resolved.wait()
        return self._outcome
