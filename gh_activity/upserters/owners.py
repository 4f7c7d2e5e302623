"""Organization and repository rows, the owners every activity row points at."""

from __future__ import annotations

import psycopg2

from gh_activity.db import Database
from gh_activity.errors import PersistenceError
from gh_activity.github.records import OrganizationRecord, RepositoryRecord


def upsert_organization(db: Database, org: OrganizationRecord, credential_ref: str) -> int:
    """Create or refresh an organization row; returns its surrogate id."""
    try:
        return db.upsert_row(
            "github_organizations",
            ["external_id", "name", "url", "credential_ref"],
            (org.external_id, org.name, org.url, credential_ref),
            ["external_id"],
            ["name", "url", "credential_ref"],
        )
    except psycopg2.Error as exc:
        raise PersistenceError(f"Could not store organization {org.name}: {exc}") from exc


def upsert_repository(db: Database, repo: RepositoryRecord, organization_id: int) -> int:
    """Create or refresh a repository row under organization_id."""
    try:
        return db.upsert_row(
            "github_repositories",
            ["external_id", "name", "url", "type", "organization_id"],
            (repo.external_id, repo.name, repo.url, repo.type, organization_id),
            ["external_id"],
            ["name", "url", "type", "organization_id"],
        )
    except psycopg2.Error as exc:
        raise PersistenceError(f"Could not store repository {repo.name}: {exc}") from exc
