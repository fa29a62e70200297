from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


PR_TITLE_PREFIX = "[OPTIC-RELEASE-AUTOMATION]"
RELEASE_BOT_LOGIN = "optic-release-automation[bot]"

ReleaseType = Literal["major", "minor", "patch"]


@dataclass(frozen=True, slots=True)
class RepoRef:
    owner: str
    name: str

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.name}"

    @classmethod
    def parse(cls, slug: str) -> RepoRef | None:
        owner, sep, name = slug.strip().partition("/")
        if not sep or not owner or not name or "/" in name:
            return None
        return cls(owner=owner, name=name)


@dataclass(frozen=True, slots=True)
class PullRequestRef:
    """A PR mentioned in release notes."""

    owner: str
    repo: str
    number: int


@dataclass(frozen=True, slots=True)
class IssueRef:
    owner: str
    repo: str
    number: int


@dataclass(frozen=True, slots=True)
class DraftRelease:
    id: int
    tag_name: str
    html_url: str
    body: str


@dataclass(frozen=True, slots=True)
class PublishedRelease:
    id: int
    html_url: str
    body: str


@dataclass(frozen=True, slots=True)
class Artifact:
    url: str
    label: str


@dataclass(frozen=True, slots=True)
class ReleaseMeta:
    """Non-sensitive release data carried in the release PR body."""

    id: int
    version: str
    npm_tag: str | None = None
    monorepo_package: str | None = None
    monorepo_root: str | None = None
    optic_url: str | None = None

    @property
    def branch(self) -> str:
        if self.monorepo_package:
            return f"release/{self.monorepo_package}-{self.version}"
        return f"release/{self.version}"
