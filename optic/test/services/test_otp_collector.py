"""Collector lifecycle against a real listener on an ephemeral port."""

from __future__ import annotations

import asyncio
import socket
from pathlib import Path

import httpx
import pytest

from optic.core.result import Err, Ok, Result
from optic.output.console import MockConsole
from optic.services.otp import (
    TIMEOUT_MESSAGE,
    OtpCollector,
    OtpError,
    OtpRequest,
    OtpSettings,
    collect_otp,
)
from optic.services.otp import collector as collector_mod
from optic.services.otp.session import Failed

REQUEST = OtpRequest(
    package_name="test-package",
    package_version="v1.0.0",
    base_url="http://localhost:3000",
)


def _client(url: str) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=url, trust_env=False, timeout=5.0)


async def _wait_for_url(console: MockConsole) -> str:
    for _ in range(500):
        found = console.find("Starting OTP server on ")
        if found:
            return found[0].message.rsplit(" ", 1)[-1]
        await asyncio.sleep(0.01)
    raise AssertionError("OTP server never started")


def test_collect_otp_end_to_end() -> None:
    console = MockConsole()

    async def scenario() -> tuple[Result[str, OtpError], str]:
        task = asyncio.create_task(
            collect_otp(REQUEST, console=console, settings=OtpSettings(timeout_seconds=10.0))
        )
        url = await _wait_for_url(console)
        async with _client(url) as client:
            page = await client.get("/")
            submitted = await client.post("/otp", json={"otp": "123456"})
            assert submitted.status_code == 200
        return await asyncio.wait_for(task, timeout=10), page.text

    result, page = asyncio.run(scenario())

    assert result == Ok("123456")
    assert "test-package" in page
    assert "v1.0.0" in page
    assert console.find("open http://localhost:3000")


def test_second_submission_does_not_change_result() -> None:
    console = MockConsole()

    async def scenario() -> tuple[Result[str, OtpError], int]:
        async with OtpCollector(REQUEST, console=console) as collector:
            started = await collector.start()
            assert isinstance(started, Ok)
            async with _client(started.value) as client:
                await client.post("/otp", json={"otp": "123456"})
                late = await client.post("/otp", json={"otp": "000000"})
            return await collector.wait(), late.status_code

    result, late_status = asyncio.run(scenario())

    assert result == Ok("123456")
    assert late_status == 409


def test_timeout_resolves_and_closes_listener() -> None:
    console = MockConsole()

    async def scenario() -> tuple[Result[str, OtpError], str]:
        collector = OtpCollector(
            REQUEST,
            console=console,
            settings=OtpSettings(timeout_seconds=0.2),
        )
        started = await collector.start()
        assert isinstance(started, Ok)
        return await collector.wait(), started.value

    result, url = asyncio.run(scenario())

    assert isinstance(result, Err)
    assert result.error.kind == "timed_out"
    assert result.error.message == TIMEOUT_MESSAGE
    assert console.find("OTP submission timed out.")

    with pytest.raises(httpx.ConnectError):
        httpx.get(f"{url}/", trust_env=False, timeout=2.0)


def test_close_is_idempotent() -> None:
    console = MockConsole()

    async def scenario() -> OtpCollector:
        collector = OtpCollector(REQUEST, console=console)
        started = await collector.start()
        assert isinstance(started, Ok)
        await collector.close()
        await collector.close()
        return collector

    collector = asyncio.run(scenario())

    assert collector.closed
    assert isinstance(collector.session.outcome, Failed)
    assert not console.has_warning()


def test_close_before_start_does_not_raise() -> None:
    async def scenario() -> OtpCollector:
        collector = OtpCollector(REQUEST, console=MockConsole())
        await collector.close()
        await collector.close()
        return collector

    assert asyncio.run(scenario()).closed


def test_port_in_use_is_a_startup_failure() -> None:
    console = MockConsole()
    blocker = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    blocker.bind(("127.0.0.1", 0))
    blocker.listen(1)
    port = blocker.getsockname()[1]
    try:
        result = asyncio.run(
            collect_otp(REQUEST, console=console, settings=OtpSettings(port=port))
        )
    finally:
        blocker.close()

    assert isinstance(result, Err)
    assert result.error.kind == "startup_failed"
    assert str(port) in result.error.message
    assert console.has_error()


def test_missing_template_is_a_startup_failure(tmp_path: Path) -> None:
    console = MockConsole()

    async def scenario() -> tuple[Result[str, OtpError], OtpCollector]:
        collector = OtpCollector(
            REQUEST,
            console=console,
            settings=OtpSettings(template_path=tmp_path / "missing.html"),
        )
        return await collector.start(), collector

    result, collector = asyncio.run(scenario())

    assert isinstance(result, Err)
    assert result.error.kind == "startup_failed"
    assert collector.url is None
    assert isinstance(collector.session.outcome, Failed)


def test_wait_without_start_is_aborted() -> None:
    async def scenario() -> Result[str, OtpError]:
        return await OtpCollector(REQUEST, console=MockConsole()).wait()

    result = asyncio.run(scenario())
    assert isinstance(result, Err)
    assert result.error.kind == "aborted"


def test_default_timeout_is_five_minutes() -> None:
    assert OtpSettings().timeout_seconds == 300.0


def test_listener_reuses_addresses_off_windows(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(collector_mod.sys, "platform", "linux")
    option = collector_mod._address_option()  # pyright: ignore[reportPrivateUsage]
    assert option == socket.SO_REUSEADDR


def test_listener_is_exclusive_on_windows(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(collector_mod.sys, "platform", "win32")
    monkeypatch.setattr(collector_mod.socket, "SO_EXCLUSIVEADDRUSE", -5, raising=False)
    assert collector_mod._address_option() == -5  # pyright: ignore[reportPrivateUsage]
