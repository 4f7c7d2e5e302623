"""Per-user activity roll-up for a single sync run."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from gh_activity.github.records import CommitRecord, IssueRecord, PullRequestRecord


@dataclass
class UserStatEntry:
    user: str
    user_id: Optional[str]
    total_commits: int = 0
    total_prs: int = 0
    total_issues: int = 0
    changelogs: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "user": self.user,
            "userId": self.user_id,
            "totalCommits": self.total_commits,
            "totalPRs": self.total_prs,
            "totalIssues": self.total_issues,
            "changelogs": self.changelogs,
        }


class StatsAccumulator:
    """Username -> UserStatEntry, in first-seen order.

    Every increment goes through get_or_create, so an entry always exists
    before it is touched. One instance belongs to one run; the lock makes it
    safe to fold change-log counts from worker threads.
    """

    def __init__(self) -> None:
        self._entries: dict[str, UserStatEntry] = {}
        self._lock = threading.Lock()

    def get_or_create(self, user: str, user_id: Optional[str]) -> UserStatEntry:
        with self._lock:
            return self._get_or_create(user, user_id)

    def _get_or_create(self, user: str, user_id: Optional[str]) -> UserStatEntry:
        entry = self._entries.get(user)
        if entry is None:
            entry = UserStatEntry(user=user, user_id=user_id)
            self._entries[user] = entry
        return entry

    def add_commit(self, user: str, user_id: Optional[str]) -> None:
        with self._lock:
            self._get_or_create(user, user_id).total_commits += 1

    def add_pull_request(self, user: str, user_id: Optional[str]) -> None:
        with self._lock:
            self._get_or_create(user, user_id).total_prs += 1

    def add_issue(self, user: str, user_id: Optional[str]) -> None:
        with self._lock:
            self._get_or_create(user, user_id).total_issues += 1

    def add_changelog(self, user: str, user_id: Optional[str], count: int) -> None:
        with self._lock:
            self._get_or_create(user, user_id).changelogs += count

    def record_commits(self, commits: Iterable[CommitRecord]) -> None:
        for commit in commits:
            self.add_commit(commit.author.name, commit.author.id)

    def record_pull_requests(self, pulls: Iterable[PullRequestRecord]) -> None:
        for pr in pulls:
            self.add_pull_request(pr.user.name, pr.user.id)

    def record_issues(self, issues: Iterable[IssueRecord]) -> None:
        for issue in issues:
            self.add_issue(issue.user.name, issue.user.id)

    def get(self, user: str) -> Optional[UserStatEntry]:
        return self._entries.get(user)

    def entries(self) -> list[UserStatEntry]:
        with self._lock:
            return list(self._entries.values())

    def to_list(self) -> list[dict[str, Any]]:
        return [entry.to_dict() for entry in self.entries()]

    def __contains__(self, user: str) -> bool:
        return user in self._entries

    def __len__(self) -> int:
        return len(self._entries)
