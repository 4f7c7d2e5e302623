"""Typed views over GitHub REST payloads.

Each record is built with ``from_api`` which applies the defaulting rules for
optional nested objects. Only truly required identifiers raise DataShapeError.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from gh_activity.errors import DataShapeError

PLACEHOLDER_USER_ID = "-"
PLACEHOLDER_USER_NAME = "unknown"


def _require(payload: dict, key: str, kind: str) -> Any:
    value = payload.get(key)
    if value is None:
        raise DataShapeError(f"{kind} payload is missing required field '{key}'")
    return value


def _obj(payload: dict, key: str) -> dict:
    # GitHub sends null for absent nested objects
    value = payload.get(key)
    return value if isinstance(value, dict) else {}


@dataclass(frozen=True)
class Identity:
    id: Optional[str]
    name: Optional[str]
    avatar_url: Optional[str] = None

    @classmethod
    def from_user(cls, user: dict) -> "Identity":
        """Account identity, or the placeholder when GitHub has none."""
        if not user:
            return cls(id=PLACEHOLDER_USER_ID, name=PLACEHOLDER_USER_NAME, avatar_url="")
        user_id = user.get("id")
        return cls(
            id=str(user_id) if user_id is not None else PLACEHOLDER_USER_ID,
            name=user.get("login") or PLACEHOLDER_USER_NAME,
            avatar_url=user.get("avatar_url") or "",
        )

    @classmethod
    def optional(cls, user: dict) -> "Identity":
        """Identity that stays empty when absent (e.g. closed_by on open issues)."""
        user_id = user.get("id")
        return cls(
            id=str(user_id) if user_id is not None else None,
            name=user.get("login"),
        )


@dataclass(frozen=True)
class BranchRef:
    label: Optional[str] = None
    name: Optional[str] = None
    sha: Optional[str] = None

    @classmethod
    def from_api(cls, ref: dict) -> "BranchRef":
        return cls(label=ref.get("label"), name=ref.get("ref"), sha=ref.get("sha"))


@dataclass(frozen=True)
class CommitAuthor:
    """Git author metadata, distinct from the GitHub account."""

    name: Optional[str] = None
    email: Optional[str] = None
    date: Optional[str] = None


@dataclass(frozen=True)
class OrganizationRecord:
    external_id: int
    name: str
    url: Optional[str]

    @classmethod
    def from_api(cls, payload: dict) -> "OrganizationRecord":
        return cls(
            external_id=_require(payload, "id", "organization"),
            name=_require(payload, "login", "organization"),
            url=payload.get("url"),
        )


@dataclass(frozen=True)
class RepositoryRecord:
    external_id: int
    name: str
    url: Optional[str]
    type: Optional[str]

    @classmethod
    def from_api(cls, payload: dict) -> "RepositoryRecord":
        return cls(
            external_id=_require(payload, "id", "repository"),
            name=_require(payload, "name", "repository"),
            url=payload.get("url"),
            # /orgs/{org}/repos has no "type"; fall back to the visibility
            type=payload.get("type") or payload.get("visibility"),
        )


@dataclass(frozen=True)
class CommitRecord:
    sha: str
    author: Identity
    commit_author: CommitAuthor
    message: str
    url: Optional[str]
    kind: str = field(default="commit", init=False)

    @classmethod
    def from_api(cls, payload: dict) -> "CommitRecord":
        git_author = _obj(_obj(payload, "commit"), "author")
        return cls(
            sha=_require(payload, "sha", "commit"),
            author=Identity.from_user(_obj(payload, "author")),
            commit_author=CommitAuthor(
                name=git_author.get("name"),
                email=git_author.get("email"),
                date=git_author.get("date"),
            ),
            message=_obj(payload, "commit").get("message") or "",
            url=payload.get("url"),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PullRequestRecord:
    external_id: int
    number: Optional[int]
    url: Optional[str]
    state: Optional[str]
    title: Optional[str]
    user: Identity
    created_on: Optional[str]
    closed_on: Optional[str]
    merged_on: Optional[str]
    merge_commit_sha: Optional[str]
    head: BranchRef
    base: BranchRef
    kind: str = field(default="pull_request", init=False)

    @classmethod
    def from_api(cls, payload: dict) -> "PullRequestRecord":
        return cls(
            external_id=_require(payload, "id", "pull request"),
            number=payload.get("number"),
            url=payload.get("url"),
            state=payload.get("state"),
            title=payload.get("title"),
            user=Identity.from_user(_obj(payload, "user")),
            created_on=payload.get("created_at"),
            closed_on=payload.get("closed_at"),
            merged_on=payload.get("merged_at"),
            merge_commit_sha=payload.get("merge_commit_sha"),
            head=BranchRef.from_api(_obj(payload, "head")),
            base=BranchRef.from_api(_obj(payload, "base")),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class IssueRecord:
    external_id: int
    number: int
    url: Optional[str]
    state: Optional[str]
    title: Optional[str]
    user: Identity
    created_on: Optional[str]
    closed_on: Optional[str]
    closed_by: Identity
    is_pull_request: bool = False
    kind: str = field(default="issue", init=False)

    @classmethod
    def from_api(cls, payload: dict) -> "IssueRecord":
        return cls(
            external_id=_require(payload, "id", "issue"),
            number=_require(payload, "number", "issue"),
            url=payload.get("url"),
            state=payload.get("state"),
            title=payload.get("title"),
            user=Identity.from_user(_obj(payload, "user")),
            created_on=payload.get("created_at"),
            closed_on=payload.get("closed_at"),
            closed_by=Identity.optional(_obj(payload, "closed_by")),
            is_pull_request="pull_request" in payload,
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data.pop("is_pull_request")
        return data
