from __future__ import annotations

from pathlib import Path

from optic.core.result import Err, Ok, Result
from optic.services.otp.errors import OtpError
from optic.services.otp.session import OtpRequest

DEFAULT_TEMPLATE_PATH = Path(__file__).parent / "assets" / "otp.html"

NAME_PLACEHOLDER = "{{package-name}}"
VERSION_PLACEHOLDER = "{{package-version}}"


def load_template(path: Path) -> Result[str, OtpError]:
    try:
        return Ok(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        return Err(
            OtpError(
                kind="startup_failed",
                message=f"failed to read OTP page template: {e}",
                hint=str(path),
            )
        )


def render_template(template: str, request: OtpRequest) -> str:
    rendered = template.replace(NAME_PLACEHOLDER, request.package_name)
    return rendered.replace(VERSION_PLACEHOLDER, request.package_version)


class OtpPage:
    """Renders the OTP form.

    The template is re-read on every request so a file that disappears after
    startup fails that request only, never the session.
    """

    def __init__(self, *, template_path: Path, request: OtpRequest) -> None:
        self._template_path = template_path
        self._request = request

    def check(self) -> Result[None, OtpError]:
        template = load_template(self._template_path)
        if isinstance(template, Err):
            return template
        return Ok(None)

    def render(self) -> str:
        """Return the page HTML.

        Raises:
            OSError: If the template cannot be read.
            UnicodeDecodeError: If the template is not UTF-8.
        """
        template = self._template_path.read_text(encoding="utf-8")
        return render_template(template, self._request)
