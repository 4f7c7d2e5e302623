"""Full-text search indexes and the paged read-back queries that use them."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from gh_activity.db import Database

logger = logging.getLogger("gh_activity.search")

MAX_PAGE_SIZE = 1000
TS_CONFIG = "simple"


def _document(*fields: str) -> str:
    # Queries must repeat this exact expression for the planner to use the index
    joined = " || ' ' || ".join(f"coalesce({f}, '')" for f in fields)
    return f"to_tsvector('{TS_CONFIG}', {joined})"


SEARCH_DOCUMENTS: dict[str, str] = {
    "github_commits": _document(
        "message", "sha", "author_name",
        "commit_author->>'name'", "commit_author->>'email'",
    ),
    "github_pull_requests": _document("merge_commit_sha", "title", "user_name"),
    "github_issues": _document("title", "closed_by_name", "user_name"),
}


class SearchIndexManager:
    """Creates the GIN text-search indexes. Run once at startup."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def ensure_indexes(self) -> list[str]:
        created: list[str] = []
        with self.db.transaction() as cur:
            for table, document in SEARCH_DOCUMENTS.items():
                index_name = f"{table}_search_idx"
                cur.execute(
                    f"CREATE INDEX IF NOT EXISTS {index_name} "
                    f"ON {table} USING GIN (({document}))"
                )
                created.append(index_name)
        logger.info("Search indexes ensured: %s", created)
        return created


@dataclass(frozen=True)
class Page:
    data: list[dict[str, Any]]
    total_count: int

    def to_dict(self) -> dict[str, Any]:
        return {"data": self.data, "totalCount": self.total_count}


def _list(
    db: Database,
    table: str,
    org_names: Sequence[str],
    page: int,
    page_size: int,
    search: Optional[str],
) -> Page:
    if page < 1 or page_size < 1:
        raise ValueError("page and page_size must be positive")
    page_size = min(page_size, MAX_PAGE_SIZE)

    where = (
        "repo_id IN (SELECT r.id FROM github_repositories r "
        "JOIN github_organizations o ON o.id = r.organization_id "
        "WHERE o.name = ANY(%s))"
    )
    params: list[Any] = [list(org_names)]
    if search:
        where += f" AND {SEARCH_DOCUMENTS[table]} @@ plainto_tsquery('{TS_CONFIG}', %s)"
        params.append(search)

    total = db.fetch_value(f"SELECT COUNT(*) FROM {table} WHERE {where}", params)
    rows = db.fetch_all(
        f"SELECT * FROM {table} WHERE {where} ORDER BY id LIMIT %s OFFSET %s",
        params + [page_size, (page - 1) * page_size],
    )
    return Page(data=rows, total_count=int(total or 0))


def list_commits(db: Database, org_names: Sequence[str], page: int = 1,
                 page_size: int = 100, search: Optional[str] = None) -> Page:
    return _list(db, "github_commits", org_names, page, page_size, search)


def list_pull_requests(db: Database, org_names: Sequence[str], page: int = 1,
                       page_size: int = 100, search: Optional[str] = None) -> Page:
    return _list(db, "github_pull_requests", org_names, page, page_size, search)


def list_issues(db: Database, org_names: Sequence[str], page: int = 1,
                page_size: int = 100, search: Optional[str] = None) -> Page:
    return _list(db, "github_issues", org_names, page, page_size, search)
