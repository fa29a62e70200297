"""HTTP routes of the OTP listener.

`GET /` serves the form, `POST /otp` accepts the code as JSON (`{"otp": ...}`,
what the bundled page sends) or as a plain urlencoded form post. The app holds
no state of its own: everything goes through the session.
"""

from __future__ import annotations

from collections.abc import Callable
from urllib.parse import parse_qs

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.responses import HTMLResponse, PlainTextResponse
from pydantic import BaseModel, Field, ValidationError

from optic.output.console import ConsoleProtocol
from optic.services.otp.session import OtpSession

RENDER_ERROR_BODY = "Error loading HTML page"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class OtpSubmission(BaseModel):
    otp: str = Field(min_length=1)


async def read_submission(request: Request) -> OtpSubmission:
    body = await request.body()
    content_type = request.headers.get("content-type", "")
    try:
        if content_type.startswith(FORM_CONTENT_TYPE):
            fields = parse_qs(body.decode("utf-8"))
            return OtpSubmission.model_validate({"otp": (fields.get("otp") or [""])[0]})
        return OtpSubmission.model_validate_json(body)
    except (ValidationError, UnicodeDecodeError) as e:
        raise HTTPException(status_code=422, detail="expected a non-empty otp field") from e


def create_otp_app(
    *,
    session: OtpSession,
    render_page: Callable[[], str],
    console: ConsoleProtocol,
) -> FastAPI:
    app = FastAPI(openapi_url=None, docs_url=None, redoc_url=None)

    @app.get("/", response_class=HTMLResponse)
    async def otp_page() -> Response:  # pyright: ignore[reportUnusedFunction]
        try:
            page = render_page()
        except Exception as e:
            # Only this request fails; the session keeps waiting.
            console.error(f"failed to render OTP page: {e}")
            return PlainTextResponse(RENDER_ERROR_BODY, status_code=500)
        return HTMLResponse(page)

    @app.post("/otp")
    async def submit_otp(  # pyright: ignore[reportUnusedFunction]
        submission: OtpSubmission = Depends(read_submission),
    ) -> PlainTextResponse:
        code = submission.otp.strip()
        if not code:
            raise HTTPException(status_code=422, detail="otp must not be empty")

        if not session.submit(code):
            console.warning("OTP already received; rejecting late submission")
            raise HTTPException(status_code=409, detail="OTP already received")

        console.info("OTP received")
        return PlainTextResponse("OTP received. You can close this window.")

    return app
