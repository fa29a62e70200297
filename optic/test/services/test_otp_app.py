from __future__ import annotations

from pathlib import Path

from fastapi.testclient import TestClient

from optic.output.console import MockConsole
from optic.services.otp.app import RENDER_ERROR_BODY, create_otp_app
from optic.services.otp.page import DEFAULT_TEMPLATE_PATH, OtpPage
from optic.services.otp.session import OtpRequest, OtpSession, Submitted

REQUEST = OtpRequest(package_name="test-package", package_version="v1.0.0")


def _client(
    session: OtpSession,
    console: MockConsole,
    *,
    template_path: Path = DEFAULT_TEMPLATE_PATH,
) -> TestClient:
    page = OtpPage(template_path=template_path, request=session.request)
    app = create_otp_app(session=session, render_page=page.render, console=console)
    return TestClient(app)


def test_get_serves_rendered_form() -> None:
    session = OtpSession(REQUEST)
    client = _client(session, MockConsole())

    response = client.get("/")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "test-package" in response.text
    assert "v1.0.0" in response.text
    assert "{{" not in response.text
    assert session.is_pending


def test_submit_resolves_session() -> None:
    session = OtpSession(REQUEST)
    console = MockConsole()
    client = _client(session, console)

    response = client.post("/otp", json={"otp": "123456"})

    assert response.status_code == 200
    assert session.outcome == Submitted("123456")
    assert console.find("OTP received")


def test_code_is_stripped() -> None:
    session = OtpSession(REQUEST)
    _client(session, MockConsole()).post("/otp", json={"otp": " 123456\n"})
    assert session.outcome == Submitted("123456")


def test_second_submission_is_rejected() -> None:
    session = OtpSession(REQUEST)
    console = MockConsole()
    client = _client(session, console)

    first = client.post("/otp", json={"otp": "123456"})
    second = client.post("/otp", json={"otp": "654321"})

    assert first.status_code == 200
    assert second.status_code == 409
    assert session.outcome == Submitted("123456")
    assert console.has_warning()


def test_empty_or_missing_code_is_rejected() -> None:
    session = OtpSession(REQUEST)
    client = _client(session, MockConsole())

    assert client.post("/otp", json={"otp": ""}).status_code == 422
    assert client.post("/otp", json={"otp": "   "}).status_code == 422
    assert client.post("/otp", json={}).status_code == 422
    assert session.is_pending


def test_render_failure_answers_500_and_keeps_waiting(tmp_path: Path) -> None:
    session = OtpSession(REQUEST)
    console = MockConsole()
    client = _client(session, console, template_path=tmp_path / "gone.html")

    response = client.get("/")

    assert response.status_code == 500
    assert response.text == RENDER_ERROR_BODY
    assert session.is_pending
    assert console.has_error()

    # The listener still accepts a code afterwards.
    assert client.post("/otp", json={"otp": "123456"}).status_code == 200
    assert session.outcome == Submitted("123456")


def test_any_render_exception_answers_500() -> None:
    session = OtpSession(REQUEST)
    console = MockConsole()

    def broken_renderer() -> str:
        raise RuntimeError("boom")

    app = create_otp_app(session=session, render_page=broken_renderer, console=console)
    response = TestClient(app).get("/")

    assert response.status_code == 500
    assert response.text == RENDER_ERROR_BODY
    assert session.is_pending
    assert console.find("boom")


def test_form_post_is_accepted() -> None:
    session = OtpSession(REQUEST)
    client = _client(session, MockConsole())

    response = client.post("/otp", data={"otp": "123456"})

    assert response.status_code == 200
    assert session.outcome == Submitted("123456")


def test_form_post_without_code_is_rejected() -> None:
    session = OtpSession(REQUEST)
    client = _client(session, MockConsole())

    assert client.post("/otp", data={"code": "123456"}).status_code == 422
    assert client.post("/otp", data={"otp": ""}).status_code == 422
    assert session.is_pending


def test_invalid_json_is_rejected() -> None:
    session = OtpSession(REQUEST)
    client = _client(session, MockConsole())

    response = client.post(
        "/otp", content=b"{not json", headers={"content-type": "application/json"}
    )

    assert response.status_code == 422
    assert session.is_pending
