"""One-shot OTP collection over a local HTTP listener.

Lifecycle: bind a socket, serve the form with uvicorn on the running event
loop, wait until the session resolves (submission or timeout), close the
listener, return the outcome. `close()` runs before any result is returned
and is safe to call more than once.

Usage:
    result = await collect_otp(
        OtpRequest(package_name="pkg", package_version="v1.2.3"),
        console=console,
    )
    if isinstance(result, Ok):
        otp = result.value
"""

from __future__ import annotations

import asyncio
import contextlib
import socket
import sys
from dataclasses import dataclass
from pathlib import Path

import uvicorn

from optic.core.config import OTP_TIMEOUT_SECONDS
from optic.core.result import Err, Ok, Result
from optic.output.console import ConsoleProtocol
from optic.services.otp.app import create_otp_app
from optic.services.otp.errors import TIMEOUT_MESSAGE, OtpError
from optic.services.otp.page import DEFAULT_TEMPLATE_PATH, OtpPage
from optic.services.otp.session import (
    Failed,
    OtpRequest,
    OtpSession,
    Pending,
    Submitted,
    TimedOut,
)

_STARTUP_POLL_SECONDS = 0.01


@dataclass(frozen=True, slots=True)
class OtpSettings:
    host: str = "127.0.0.1"
    port: int = 0  # 0 = ephemeral
    timeout_seconds: float = OTP_TIMEOUT_SECONDS
    template_path: Path = DEFAULT_TEMPLATE_PATH
    startup_timeout_seconds: float = 10.0
    close_timeout_seconds: float = 5.0


def _address_option() -> int:
    # On Windows SO_REUSEADDR lets a second socket bind a port that is in use.
    if sys.platform == "win32":
        return socket.SO_EXCLUSIVEADDRUSE
    return socket.SO_REUSEADDR


def _bind_listener(host: str, port: int) -> Result[socket.socket, OtpError]:
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, _address_option(), 1)
        sock.bind((host, port))
        sock.listen(16)
    except OSError as e:
        sock.close()
        return Err(
            OtpError(
                kind="startup_failed",
                message=f"failed to bind OTP listener on {host}:{port}: {e}",
                hint="Pick another otp-port, or free the port.",
            )
        )
    return Ok(sock)


def _format_url(host: str, port: int) -> str:
    if ":" in host:
        return f"http://[{host}]:{port}"
    return f"http://{host}:{port}"


class OtpCollector:
    """Owns one OTP session and the listener serving it."""

    def __init__(
        self,
        request: OtpRequest,
        *,
        console: ConsoleProtocol,
        settings: OtpSettings | None = None,
    ) -> None:
        self._settings = settings or OtpSettings()
        self._console = console
        self._session = OtpSession(request)
        self._page = OtpPage(template_path=self._settings.template_path, request=request)
        self._socket: socket.socket | None = None
        self._server: uvicorn.Server | None = None
        self._serve_task: asyncio.Task[None] | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._url: str | None = None
        self._closed = False

    @property
    def session(self) -> OtpSession:
        return self._session

    @property
    def url(self) -> str | None:
        """Local URL of the listener, once started."""
        return self._url

    @property
    def closed(self) -> bool:
        return self._closed

    async def start(self) -> Result[str, OtpError]:
        """Start listening. Returns the local URL.

        On failure the session is marked failed and nothing is left running.
        """
        if self._closed or self._server is not None:
            return Err(OtpError(kind="startup_failed", message="OTP collector already used"))

        checked = self._page.check()
        if isinstance(checked, Err):
            return self._startup_failed(checked.error)

        bound = _bind_listener(self._settings.host, self._settings.port)
        if isinstance(bound, Err):
            return self._startup_failed(bound.error)
        self._socket = bound.value

        host, port = self._socket.getsockname()[:2]
        self._url = _format_url(host, port)
        self._console.info(f"Starting OTP server on {self._url}")

        app = create_otp_app(
            session=self._session,
            render_page=self._page.render,
            console=self._console,
        )
        config = uvicorn.Config(
            app,
            log_config=None,
            access_log=False,
            lifespan="off",
            timeout_graceful_shutdown=int(self._settings.close_timeout_seconds),
        )
        self._server = uvicorn.Server(config)
        self._serve_task = asyncio.create_task(self._server.serve(sockets=[self._socket]))

        started = await self._wait_started()
        if isinstance(started, Err):
            failed = self._startup_failed(started.error)
            await self.close()
            return failed

        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self._settings.timeout_seconds, self._on_timeout)
        return Ok(self._url)

    async def _wait_started(self) -> Result[None, OtpError]:
        server = self._server
        task = self._serve_task
        assert server is not None and task is not None

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._settings.startup_timeout_seconds
        while not server.started:
            if task.done():
                reason = "server exited during startup"
                if not task.cancelled() and task.exception() is not None:
                    reason = f"server failed during startup: {task.exception()}"
                return Err(OtpError(kind="startup_failed", message=reason))
            if loop.time() >= deadline:
                return Err(
                    OtpError(
                        kind="startup_failed",
                        message="timed out waiting for the OTP server to start",
                    )
                )
            await asyncio.sleep(_STARTUP_POLL_SECONDS)
        return Ok(None)

    def _startup_failed(self, error: OtpError) -> Err[OtpError]:
        self._session.fail(error.message)
        self._console.error(error.pretty())
        return Err(error)

    def _on_timeout(self) -> None:
        if self._session.time_out():
            self._console.error("OTP submission timed out.")

    async def wait(self) -> Result[str, OtpError]:
        """Wait for the session to resolve, close the listener, return the code."""
        if self._server is None and self._session.is_pending:
            return Err(OtpError(kind="aborted", message="OTP collector was not started"))

        outcome = await self._session.wait()
        await self.close()

        match outcome:
            case Submitted(code=code):
                return Ok(code)
            case TimedOut():
                return Err(OtpError(kind="timed_out", message=TIMEOUT_MESSAGE))
            case Failed(reason=reason):
                return Err(OtpError(kind="aborted", message=reason))
            case Pending():
                raise AssertionError("session resolved without an outcome")

    async def close(self) -> None:
        """Stop the listener. Idempotent; failures are logged, never raised."""
        if self._closed:
            return
        self._closed = True

        if self._timer is not None:
            self._timer.cancel()

        if self._server is not None:
            self._server.should_exit = True

        task = self._serve_task
        if task is not None:
            try:
                await asyncio.wait_for(task, timeout=self._settings.close_timeout_seconds + 1)
            except TimeoutError:
                self._console.warning("OTP server did not stop in time; cancelling it")
            except (OSError, RuntimeError) as e:
                self._console.warning(f"failed to close OTP server: {e}")

        if self._socket is not None:
            with contextlib.suppress(OSError):
                self._socket.close()

        # Nobody can submit anymore; release any waiter.
        self._session.fail("OTP collector closed before a code was received")

    async def __aenter__(self) -> OtpCollector:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: object | None,
    ) -> None:
        await self.close()


async def collect_otp(
    request: OtpRequest,
    *,
    console: ConsoleProtocol,
    settings: OtpSettings | None = None,
) -> Result[str, OtpError]:
    """Serve the OTP form until a code is submitted or the window expires."""
    async with OtpCollector(request, console=console, settings=settings) as collector:
        started = await collector.start()
        if isinstance(started, Err):
            return started

        where = request.base_url or started.value
        console.info(
            f"Waiting for the npm OTP of {request.package_name}@{request.package_version}: "
            f"open {where}"
        )
        return await collector.wait()
