"""Test doubles and GitHub payload factories."""

from __future__ import annotations

import copy
import itertools
from collections import defaultdict
from typing import Any, Optional

import psycopg2

from gh_activity.github.client import expand_path


class FakeDatabase:
    """In-memory stand-in for Database with the same upsert semantics.

    Rows are keyed by their conflict columns; ``fail_on`` holds
    (table, key) pairs whose writes raise a psycopg2 error.
    """

    def __init__(self) -> None:
        self.tables: dict[str, dict[tuple, dict[str, Any]]] = defaultdict(dict)
        self.runs: dict[str, dict[str, Any]] = {}
        self.fail_on: set[tuple[str, Any]] = set()
        self.writes = 0
        self._ids = defaultdict(lambda: itertools.count(1))
        self._run_ids = itertools.count(1)

    def upsert_row(self, table, columns, row, conflict_columns, update_columns) -> int:
        data = dict(zip(columns, copy.deepcopy(list(row))))
        key = tuple(data[c] for c in conflict_columns)
        if (table, key[0]) in self.fail_on:
            raise psycopg2.OperationalError("write rejected")

        existing = self.tables[table].get(key)
        if existing is None:
            data["id"] = next(self._ids[table])
            self.tables[table][key] = data
            self.writes += 1
        elif any(existing[c] != data[c] for c in update_columns):
            existing.update({c: data[c] for c in update_columns})
            self.writes += 1
        return self.tables[table][key]["id"]

    def rows(self, table: str) -> list[dict[str, Any]]:
        return list(self.tables[table].values())

    def row_by_id(self, table: str, row_id: int) -> Optional[dict[str, Any]]:
        return next((r for r in self.tables[table].values() if r["id"] == row_id), None)

    def record_run_start(self, org_logins: list[str]) -> str:
        run_id = f"run-{next(self._run_ids)}"
        self.runs[run_id] = {"org_logins": org_logins, "status": "RUNNING"}
        return run_id

    def record_run_end(self, run_id: str, status: str, **kwargs) -> None:
        self.runs[run_id].update(status=status, **kwargs)


class StubGitHub:
    """Serves canned responses by expanded path.

    A route value is either the full record list, a single dict (for get),
    or an exception instance to raise.
    """

    def __init__(self, routes: Optional[dict[str, Any]] = None) -> None:
        self.routes: dict[str, Any] = routes or {}
        self.calls: list[tuple[str, dict]] = []

    def _lookup(self, path_template: str, params: Optional[dict]) -> Any:
        path, query = expand_path(path_template, params)
        self.calls.append((path, query))
        if path not in self.routes:
            return []
        value = self.routes[path]
        if isinstance(value, Exception):
            raise value
        return copy.deepcopy(value)

    def paginate(self, path_template: str, params: Optional[dict] = None) -> list[dict]:
        return self._lookup(path_template, params)

    def get(self, path_template: str, params: Optional[dict] = None) -> Any:
        return self._lookup(path_template, params)

    def paths(self) -> list[str]:
        return [path for path, _ in self.calls]


def user(login: str, user_id: int) -> dict:
    return {"login": login, "id": user_id, "avatar_url": f"https://avatars.example/{login}"}


def org_payload(login: str, org_id: int) -> dict:
    return {"login": login, "id": org_id, "url": f"https://api.github.com/orgs/{login}"}


def repo_payload(name: str, repo_id: int, org: str = "acme") -> dict:
    return {
        "id": repo_id,
        "name": name,
        "full_name": f"{org}/{name}",
        "url": f"https://api.github.com/repos/{org}/{name}",
        "visibility": "public",
    }


def commit_payload(sha: str, author: Optional[dict] = None, message: str = "fix things") -> dict:
    payload = {
        "sha": sha,
        "url": f"https://api.github.com/commits/{sha}",
        "commit": {
            "message": message,
            "author": {"name": "Git Author", "email": "git@example.com", "date": "2024-01-02T03:04:05Z"},
        },
        "author": author,
    }
    return payload


def pr_payload(pr_id: int, number: int, author: dict, state: str = "closed", merged: bool = True) -> dict:
    return {
        "id": pr_id,
        "number": number,
        "url": f"https://api.github.com/pulls/{number}",
        "state": state,
        "title": f"PR {number}",
        "user": author,
        "created_at": "2024-01-01T00:00:00Z",
        "closed_at": "2024-01-03T00:00:00Z" if state == "closed" else None,
        "merged_at": "2024-01-03T00:00:00Z" if merged else None,
        "merge_commit_sha": "m" * 40 if merged else None,
        "head": {"label": "acme:feature", "ref": "feature", "sha": "h" * 40},
        "base": {"label": "acme:main", "ref": "main", "sha": "b" * 40},
    }


def issue_payload(issue_id: int, number: int, author: dict, state: str = "closed",
                  closed_by: Optional[dict] = None, is_pr: bool = False) -> dict:
    payload = {
        "id": issue_id,
        "number": number,
        "url": f"https://api.github.com/issues/{number}",
        "state": state,
        "title": f"Issue {number}",
        "user": author,
        "created_at": "2024-01-01T00:00:00Z",
        "closed_at": "2024-01-05T00:00:00Z" if state == "closed" else None,
        "closed_by": closed_by,
    }
    if is_pr:
        payload["pull_request"] = {"url": f"https://api.github.com/pulls/{number}"}
    return payload


def events(count: int) -> list[dict]:
    return [{"id": i, "event": "labeled"} for i in range(count)]
