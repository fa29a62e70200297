"""Tests for optic.core.config module."""

from __future__ import annotations

from pathlib import Path

import pytest

from optic.core.config import (
    DEFAULT_COMMIT_MESSAGE,
    DEFAULT_OPTIC_URL,
    OTP_TIMEOUT_SECONDS,
    ActionInputs,
    inputs_from_env,
    load_config,
    load_inputs,
)
from optic.core.result import Err, Ok


class TestActionInputs:
    def test_defaults(self) -> None:
        inputs = ActionInputs()
        assert inputs.npm_tag == "latest"
        assert inputs.semver == "patch"
        assert inputs.commit_message == DEFAULT_COMMIT_MESSAGE
        assert inputs.version_prefix == "v"
        assert inputs.optic_url == DEFAULT_OPTIC_URL
        assert inputs.monorepo_root == "packages"
        assert inputs.notify_linked_issues is True
        assert inputs.sync_semver_tags is False
        assert inputs.collect_otp is False
        assert inputs.otp_timeout == OTP_TIMEOUT_SECONDS

    def test_otp_timeout_is_five_minutes(self) -> None:
        assert OTP_TIMEOUT_SECONDS == 300.0
        assert ActionInputs().otp_timeout == 300.0

    def test_frozen(self) -> None:
        inputs = ActionInputs()
        with pytest.raises(AttributeError):
            inputs.npm_tag = "next"  # type: ignore[misc]

    def test_from_mapping(self) -> None:
        inputs = ActionInputs.from_mapping(
            {
                "npm-token": " secret ",
                "npm-tag": "next",
                "semver": "minor",
                "sync-semver-tags": "TRUE",
                "notify-linked-issues": "false",
                "monorepo-package": "pkg-a",
                "collect-otp": "true",
                "otp-port": "4000",
                "otp-timeout": "12.5",
            }
        )
        assert inputs.npm_token == "secret"
        assert inputs.npm_tag == "next"
        assert inputs.semver == "minor"
        assert inputs.sync_semver_tags is True
        assert inputs.notify_linked_issues is False
        assert inputs.monorepo_package == "pkg-a"
        assert inputs.collect_otp is True
        assert inputs.otp_port == 4000
        assert inputs.otp_timeout == 12.5

    def test_blank_values_fall_back_to_defaults(self) -> None:
        inputs = ActionInputs.from_mapping({"npm-token": "  ", "npm-tag": ""})
        assert inputs.npm_token is None
        assert inputs.npm_tag == "latest"

    def test_empty_version_prefix_is_kept(self) -> None:
        assert ActionInputs.from_mapping({"version-prefix": ""}).version_prefix == ""

    def test_only_true_is_truthy(self) -> None:
        inputs = ActionInputs.from_mapping({"sync-semver-tags": "yes"})
        assert inputs.sync_semver_tags is False

    def test_bad_number_raises(self) -> None:
        with pytest.raises(ValueError):
            ActionInputs.from_mapping({"otp-port": "abc"})


def test_inputs_from_env() -> None:
    env = {
        "INPUT_NPM-TOKEN": "a",
        "INPUT_SYNC_SEMVER_TAGS": "true",
        "PATH": "/usr/bin",
    }
    assert inputs_from_env(env) == {"npm-token": "a", "sync-semver-tags": "true"}


class TestLoadConfig:
    def test_reads_inputs_table(self, tmp_path: Path) -> None:
        path = tmp_path / "optic.toml"
        path.write_text(
            '[inputs]\nnpm-tag = "beta"\nsync-semver-tags = true\notp-port = 3000\n',
            encoding="utf-8",
        )
        result = load_config(path)
        assert isinstance(result, Ok)
        assert result.value == {"npm-tag": "beta", "sync-semver-tags": "true", "otp-port": "3000"}

    def test_missing_file(self, tmp_path: Path) -> None:
        result = load_config(tmp_path / "nope.toml")
        assert isinstance(result, Err)
        assert "not found" in result.error.message

    def test_invalid_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.toml"
        path.write_text("[inputs\n", encoding="utf-8")
        result = load_config(path)
        assert isinstance(result, Err)
        assert "Invalid TOML" in result.error.message

    def test_missing_inputs_table(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.toml"
        path.write_text('[other]\nx = "y"\n', encoding="utf-8")
        result = load_config(path)
        assert isinstance(result, Err)
        assert result.error.message == "Missing [inputs] table"


class TestLoadInputs:
    def test_env_wins_over_file(self, tmp_path: Path) -> None:
        path = tmp_path / "optic.toml"
        path.write_text('[inputs]\nnpm-tag = "beta"\nsemver = "major"\n', encoding="utf-8")
        result = load_inputs(environ={"INPUT_NPM-TAG": "next"}, config_path=path)
        assert isinstance(result, Ok)
        assert result.value.npm_tag == "next"
        assert result.value.semver == "major"

    def test_env_only(self) -> None:
        result = load_inputs(environ={"INPUT_GITHUB-TOKEN": "t"})
        assert isinstance(result, Ok)
        assert result.value.github_token == "t"

    def test_invalid_value_is_config_error(self) -> None:
        result = load_inputs(environ={"INPUT_OTP-TIMEOUT": "soon"})
        assert isinstance(result, Err)
        assert result.error.message.startswith("Invalid input value")
