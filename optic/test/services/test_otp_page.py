from __future__ import annotations

from pathlib import Path

import pytest

from optic.core.result import Err, Ok
from optic.services.otp.page import (
    DEFAULT_TEMPLATE_PATH,
    NAME_PLACEHOLDER,
    VERSION_PLACEHOLDER,
    OtpPage,
    load_template,
    render_template,
)
from optic.services.otp.session import OtpRequest

REQUEST = OtpRequest(
    package_name="test-package",
    package_version="v1.0.0",
    base_url="http://localhost:3000",
)


def test_bundled_template_has_placeholders() -> None:
    result = load_template(DEFAULT_TEMPLATE_PATH)
    assert isinstance(result, Ok)
    assert NAME_PLACEHOLDER in result.value
    assert VERSION_PLACEHOLDER in result.value


def test_render_replaces_every_placeholder() -> None:
    page = OtpPage(template_path=DEFAULT_TEMPLATE_PATH, request=REQUEST).render()
    assert "test-package" in page
    assert "v1.0.0" in page
    assert "{{" not in page


def test_render_substitutes_values_verbatim() -> None:
    request = OtpRequest(package_name="a&b", package_version="1.0.0-rc.1+build.5")
    rendered = render_template(f"<p>{NAME_PLACEHOLDER}@{VERSION_PLACEHOLDER}</p>", request)
    assert rendered == "<p>a&b@1.0.0-rc.1+build.5</p>"


def test_scoped_package_name_is_verbatim() -> None:
    request = OtpRequest(package_name="@scope/pkg", package_version="v2.0.0")
    assert render_template(NAME_PLACEHOLDER, request) == "@scope/pkg"


def test_check_missing_template(tmp_path: Path) -> None:
    page = OtpPage(template_path=tmp_path / "missing.html", request=REQUEST)
    result = page.check()
    assert isinstance(result, Err)
    assert result.error.kind == "startup_failed"
    assert result.error.hint == str(tmp_path / "missing.html")


def test_render_rereads_template(tmp_path: Path) -> None:
    path = tmp_path / "otp.html"
    path.write_text(f"first {NAME_PLACEHOLDER}", encoding="utf-8")
    page = OtpPage(template_path=path, request=REQUEST)
    assert page.render() == "first test-package"

    path.write_text(f"second {VERSION_PLACEHOLDER}", encoding="utf-8")
    assert page.render() == "second v1.0.0"

    path.unlink()
    with pytest.raises(OSError):
        page.render()
