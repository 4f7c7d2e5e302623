"""Tests for the per-repository upserters."""

from __future__ import annotations

import pytest

from gh_activity.errors import TransportError
from gh_activity.upserters.commits import CommitUpserter
from gh_activity.upserters.issues import IssueUpserter
from gh_activity.upserters.pull_requests import PullRequestUpserter
from tests.helpers import StubGitHub, commit_payload, issue_payload, pr_payload, user


def test_commit_missing_author_is_persisted_with_placeholder(fake_db):
    gh = StubGitHub({"/repos/acme/widgets/commits": [commit_payload("a" * 40, author=None)]})
    outcome = CommitUpserter(gh, fake_db).sync("acme", 7, "widgets")

    assert outcome.upserted == 1
    (row,) = fake_db.rows("github_commits")
    assert row["author_id"] == "-"
    assert row["author_name"] == "unknown"
    assert row["repo_id"] == 7
    assert row["commit_author"]["name"] == "Git Author"


def test_pulls_and_issues_request_all_states(fake_db):
    gh = StubGitHub()
    PullRequestUpserter(gh, fake_db).sync("acme", 1, "widgets")
    IssueUpserter(gh, fake_db).sync("acme", 1, "widgets")
    assert gh.calls == [
        ("/repos/acme/widgets/pulls", {"state": "all"}),
        ("/repos/acme/widgets/issues", {"state": "all"}),
    ]


def test_pull_request_row(fake_db):
    gh = StubGitHub({"/repos/acme/widgets/pulls": [pr_payload(300, 1, user("alice", 1))]})
    PullRequestUpserter(gh, fake_db).sync("acme", 1, "widgets")
    (row,) = fake_db.rows("github_pull_requests")
    assert row["external_id"] == 300
    assert row["user_name"] == "alice"
    assert row["head"] == {"label": "acme:feature", "name": "feature", "sha": "h" * 40}
    assert row["merge_commit_sha"] == "m" * 40


def test_issue_upserter_skips_pull_request_shadows(fake_db):
    gh = StubGitHub({
        "/repos/acme/widgets/issues": [
            issue_payload(400, 2, user("bob", 2), closed_by=user("bob", 2)),
            issue_payload(401, 1, user("alice", 1), is_pr=True),
        ],
    })
    outcome = IssueUpserter(gh, fake_db).sync("acme", 1, "widgets")

    assert [r.external_id for r in outcome.records] == [400]
    (row,) = fake_db.rows("github_issues")
    assert row["closed_by_name"] == "bob"


def test_resync_overwrites_instead_of_duplicating(fake_db):
    payload = pr_payload(300, 1, user("alice", 1), state="open", merged=False)
    gh = StubGitHub({"/repos/acme/widgets/pulls": [payload]})
    upserter = PullRequestUpserter(gh, fake_db)
    upserter.sync("acme", 1, "widgets")

    gh.routes["/repos/acme/widgets/pulls"] = [pr_payload(300, 1, user("alice", 1))]
    upserter.sync("acme", 1, "widgets")

    (row,) = fake_db.rows("github_pull_requests")
    assert row["state"] == "closed"
    assert row["merged_on"] == "2024-01-03T00:00:00Z"


def test_rejected_write_is_reported_and_loop_continues(fake_db):
    fake_db.fail_on.add(("github_commits", "b" * 40))
    gh = StubGitHub({
        "/repos/acme/widgets/commits": [
            commit_payload("a" * 40, author=user("carol", 3)),
            commit_payload("b" * 40, author=user("carol", 3)),
            commit_payload("c" * 40, author=user("carol", 3)),
        ],
    })
    outcome = CommitUpserter(gh, fake_db).sync("acme", 1, "widgets")

    assert outcome.upserted == 2
    assert len(outcome.records) == 3
    assert [f.scope for f in outcome.failures] == ["record"]
    assert "b" * 40 in outcome.failures[0].target
    assert len(fake_db.rows("github_commits")) == 2


def test_malformed_payload_is_skipped(fake_db):
    gh = StubGitHub({
        "/repos/acme/widgets/commits": [{"commit": {}}, commit_payload("a" * 40)],
    })
    outcome = CommitUpserter(gh, fake_db).sync("acme", 1, "widgets")
    assert outcome.upserted == 1
    assert len(outcome.failures) == 1


def test_transport_error_propagates(fake_db):
    gh = StubGitHub({"/repos/acme/widgets/commits": TransportError("boom", status_code=500)})
    with pytest.raises(TransportError):
        CommitUpserter(gh, fake_db).sync("acme", 1, "widgets")


def test_empty_repository_has_no_commits(fake_db):
    gh = StubGitHub({"/repos/acme/widgets/commits": TransportError("Git Repository is empty.", status_code=409)})
    outcome = CommitUpserter(gh, fake_db).sync("acme", 1, "widgets")
    assert outcome.records == []
    assert outcome.failures == []


def test_conflict_on_other_collections_propagates(fake_db):
    gh = StubGitHub({"/repos/acme/widgets/pulls": TransportError("conflict", status_code=409)})
    with pytest.raises(TransportError):
        PullRequestUpserter(gh, fake_db).sync("acme", 1, "widgets")
