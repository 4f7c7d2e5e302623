"""Shared fixtures: config, fake storage, stub GitHub, the acme scenario."""

from __future__ import annotations

import pytest

from gh_activity.config import DatabaseConfig, GitHubConfig, IngestionConfig
from tests.helpers import (
    FakeDatabase,
    StubGitHub,
    commit_payload,
    events,
    issue_payload,
    org_payload,
    pr_payload,
    repo_payload,
    user,
)


@pytest.fixture
def github_config() -> GitHubConfig:
    return GitHubConfig(
        token="test-token",
        org_logins=["acme"],
        api_base_url="https://api.github.test",
        page_size=2,
        changelog_workers=2,
        credential_ref="test-credential",
    )


@pytest.fixture
def config(github_config) -> IngestionConfig:
    return IngestionConfig(
        database=DatabaseConfig(url="postgresql://test@localhost/test"),
        github=github_config,
    )


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def acme_routes() -> dict:
    """acme/widgets: two commits (one anonymous), one merged PR by alice,
    one closed issue by bob with three timeline events."""
    return {
        "/orgs/acme": org_payload("acme", 100),
        "/orgs/acme/repos": [repo_payload("widgets", 200)],
        "/repos/acme/widgets/commits": [
            commit_payload("a" * 40, author=user("carol", 3)),
            commit_payload("b" * 40, author=None),
        ],
        "/repos/acme/widgets/pulls": [pr_payload(300, 1, user("alice", 1))],
        "/repos/acme/widgets/issues": [
            issue_payload(400, 2, user("bob", 2), closed_by=user("bob", 2)),
            issue_payload(401, 1, user("alice", 1), is_pr=True),
        ],
        "/repos/acme/widgets/issues/2/events": events(3),
    }


@pytest.fixture
def acme_github(acme_routes) -> StubGitHub:
    return StubGitHub(acme_routes)
