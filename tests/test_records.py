"""Tests for payload parsing and defaulting."""

from __future__ import annotations

import pytest

from gh_activity.errors import DataShapeError
from gh_activity.github.records import (
    BranchRef,
    CommitRecord,
    IssueRecord,
    PullRequestRecord,
    RepositoryRecord,
)
from tests.helpers import commit_payload, issue_payload, pr_payload, repo_payload, user


def test_commit_without_author_gets_placeholder():
    record = CommitRecord.from_api(commit_payload("a" * 40, author=None))
    assert record.author.id == "-"
    assert record.author.name == "unknown"
    assert record.author.avatar_url == ""
    assert record.commit_author.email == "git@example.com"


def test_commit_with_author():
    record = CommitRecord.from_api(commit_payload("a" * 40, author=user("carol", 3)))
    assert record.author.id == "3"
    assert record.author.name == "carol"
    assert record.message == "fix things"


def test_commit_missing_nested_commit():
    record = CommitRecord.from_api({"sha": "c" * 40})
    assert record.message == ""
    assert record.commit_author.name is None


def test_commit_without_sha_is_rejected():
    with pytest.raises(DataShapeError):
        CommitRecord.from_api({"commit": {"message": "x"}})


def test_pull_request_missing_branches():
    payload = pr_payload(1, 1, user("alice", 1))
    payload["head"] = None
    del payload["base"]
    record = PullRequestRecord.from_api(payload)
    assert record.head == BranchRef()
    assert record.base == BranchRef()


def test_pull_request_branch_fields():
    record = PullRequestRecord.from_api(pr_payload(1, 1, user("alice", 1)))
    assert record.head.name == "feature"
    assert record.base.label == "acme:main"
    assert record.merged_on == "2024-01-03T00:00:00Z"


def test_issue_pull_request_shadow_flag():
    assert IssueRecord.from_api(issue_payload(1, 1, user("bob", 2), is_pr=True)).is_pull_request
    assert not IssueRecord.from_api(issue_payload(2, 2, user("bob", 2))).is_pull_request


def test_open_issue_has_empty_closer():
    record = IssueRecord.from_api(issue_payload(1, 1, user("bob", 2), state="open"))
    assert record.closed_by.id is None
    assert record.closed_by.name is None


def test_issue_to_dict_is_tagged():
    data = IssueRecord.from_api(issue_payload(1, 7, user("bob", 2))).to_dict()
    assert data["kind"] == "issue"
    assert data["number"] == 7
    assert "is_pull_request" not in data


def test_repository_type_falls_back_to_visibility():
    assert RepositoryRecord.from_api(repo_payload("widgets", 1)).type == "public"
