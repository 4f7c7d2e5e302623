"""Issues in every state, keyed by GitHub id.

The issues endpoint also returns pull requests; those are left to
PullRequestUpserter and never stored here.
"""

from __future__ import annotations

from gh_activity.base_upserter import BaseUpserter
from gh_activity.github.records import IssueRecord


class IssueUpserter(BaseUpserter):
    ENTITY_KIND = "issue"
    RESOURCE_PATH = "/repos/{org}/{repo}/issues"
    DEFAULT_PARAMS = {"state": "all"}
    TABLE = "github_issues"
    COLUMNS = [
        "external_id", "number", "url", "state", "title", "user_id", "user_name",
        "created_on", "closed_on", "closed_by_id", "closed_by_name", "repo_id",
    ]
    CONFLICT = ["external_id"]

    def parse(self, payload: dict) -> IssueRecord:
        return IssueRecord.from_api(payload)

    def keep(self, record: IssueRecord) -> bool:
        return not record.is_pull_request

    def row(self, record: IssueRecord, repo_id: int) -> tuple:
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
            record.closed_by.id,
            record.closed_by.name,
            repo_id,
        )

    def key(self, record: IssueRecord) -> str:
        return str(record.external_id)
