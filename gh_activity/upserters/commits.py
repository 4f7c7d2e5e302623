"""Commits: keyed by sha."""

from __future__ import annotations

import logging
from dataclasses import asdict

from gh_activity.base_upserter import BaseUpserter
from gh_activity.errors import TransportError
from gh_activity.github.records import CommitRecord

logger = logging.getLogger("gh_activity.upserter")

# GitHub answers /commits on a repository with no commits with 409 Conflict
EMPTY_REPOSITORY_STATUS = 409


class CommitUpserter(BaseUpserter):
    ENTITY_KIND = "commit"
    RESOURCE_PATH = "/repos/{org}/{repo}/commits"
    TABLE = "github_commits"
    COLUMNS = [
        "sha", "author_id", "author_name", "author_avatar_url",
        "commit_author", "message", "url", "repo_id",
    ]
    CONFLICT = ["sha"]

    def fetch(self, org_login: str, repo_name: str) -> list[dict]:
        try:
            return super().fetch(org_login, repo_name)
        except TransportError as exc:
            if exc.status_code != EMPTY_REPOSITORY_STATUS:
                raise
            logger.info("Repository is empty, no commits", extra={"org": org_login, "repo": repo_name})
            return []

    def parse(self, payload: dict) -> CommitRecord:
        return CommitRecord.from_api(payload)

    def row(self, record: CommitRecord, repo_id: int) -> tuple:
        return (
            record.sha,
            record.author.id,
            record.author.name,
            record.author.avatar_url or "",
            asdict(record.commit_author),
            record.message,
            record.url,
            repo_id,
        )

    def key(self, record: CommitRecord) -> str:
        return record.sha
