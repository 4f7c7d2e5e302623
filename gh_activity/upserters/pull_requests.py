"""Pull requests in every state, keyed by GitHub id."""

from __future__ import annotations

from dataclasses import asdict

from gh_activity.base_upserter import BaseUpserter
from gh_activity.github.records import PullRequestRecord


class PullRequestUpserter(BaseUpserter):
    ENTITY_KIND = "pull_request"
    RESOURCE_PATH = "/repos/{org}/{repo}/pulls"
    DEFAULT_PARAMS = {"state": "all"}
    TABLE = "github_pull_requests"
    COLUMNS = [
        "external_id", "number", "url", "state", "title", "user_id", "user_name",
        "created_on", "closed_on", "merged_on", "merge_commit_sha",
        "head", "base", "repo_id",
    ]
    CONFLICT = ["external_id"]

    def parse(self, payload: dict) -> PullRequestRecord:
        return PullRequestRecord.from_api(payload)

    def row(self, record: PullRequestRecord, repo_id: int) -> tuple:
        return (
            record.external_id,
            record.number,
            record.url,
            record.state,
            record.title,
            record.user.id,
            record.user.name,
            record.created_on,
            record.closed_on,
            record.merged_on,
            record.merge_commit_sha,
            asdict(record.head),
            asdict(record.base),
            repo_id,
        )

    def key(self, record: PullRequestRecord) -> str:
        return str(record.external_id)
