"""Organization -> repository -> (commits, pull requests, issues) traversal."""

from __future__ import annotations

import logging
import threading
import time
import traceback
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence, Union

from gh_activity.changelog import ChangelogEnricher
from gh_activity.config import IngestionConfig
from gh_activity.db import Database
from gh_activity.errors import (
    DataShapeError,
    Failure,
    GhActivityError,
    PersistenceError,
    SyncCancelled,
    SyncFailed,
    TransportError,
)
from gh_activity.github.client import GitHubClient
from gh_activity.github.records import OrganizationRecord, RepositoryRecord
from gh_activity.stats import StatsAccumulator, UserStatEntry
from gh_activity.upserters.commits import CommitUpserter
from gh_activity.upserters.issues import IssueUpserter
from gh_activity.upserters.owners import upsert_organization, upsert_repository
from gh_activity.upserters.pull_requests import PullRequestUpserter

logger = logging.getLogger("gh_activity.orchestrator")


@dataclass
class SyncResult:
    stats: list[UserStatEntry] = field(default_factory=list)
    records: list[Any] = field(default_factory=list)
    failures: list[Failure] = field(default_factory=list)
    counts: dict[str, int] = field(default_factory=dict)
    run_id: Optional[str] = None

    @property
    def partial(self) -> bool:
        return bool(self.failures)

    def bump(self, key: str, amount: int) -> None:
        self.counts[key] = self.counts.get(key, 0) + amount

    def to_dict(self) -> dict[str, Any]:
        return {
            "runId": self.run_id,
            "partial": self.partial,
            "stats": [entry.to_dict() for entry in self.stats],
            "failures": [f.to_dict() for f in self.failures],
            "counts": dict(self.counts),
        }


class OrgSyncOrchestrator:
    """Runs one sync over a list of organization logins.

    Organizations and repositories are walked one at a time. A failure while
    reading an organization skips that organization; a failure inside a
    repository skips that repository. Cancellation aborts the whole run.
    """

    def __init__(self, config: IngestionConfig, db: Database, client: GitHubClient) -> None:
        self.config = config
        self.db = db
        self.client = client
        self.commits = CommitUpserter(client, db)
        self.pull_requests = PullRequestUpserter(client, db)
        self.issues = IssueUpserter(client, db)
        self.enricher = ChangelogEnricher(client, config.github.changelog_workers)

    def run(self, org_logins: Sequence[str]) -> SyncResult:
        started = time.monotonic()
        run_id = self.db.record_run_start(list(org_logins))
        result = SyncResult(run_id=run_id)
        accumulator = StatsAccumulator()

        try:
            synced = 0
            for org_login in org_logins:
                if self._sync_org(org_login, accumulator, result):
                    synced += 1
        except Exception as exc:
            self.db.record_run_end(
                run_id=run_id,
                status="FAILED",
                records_upserted=sum(result.counts.values()),
                failure_count=len(result.failures),
                error_message=str(exc)[:1000],
                error_detail={"traceback": traceback.format_exc()},
            )
            logger.error("Sync failed: %s", exc, extra={"run_id": run_id})
            raise

        if org_logins and synced == 0:
            self.db.record_run_end(
                run_id=run_id,
                status="FAILED",
                failure_count=len(result.failures),
                error_message="No organization could be synced",
                error_detail={"failures": [f.to_dict() for f in result.failures]},
            )
            raise SyncFailed("No organization could be synced", result.failures)

        result.stats = accumulator.entries()
        total = sum(result.counts.values())
        self.db.record_run_end(
            run_id=run_id,
            status="PARTIAL" if result.partial else "SUCCESS",
            records_upserted=total,
            failure_count=len(result.failures),
            error_detail={"failures": [f.to_dict() for f in result.failures]} if result.partial else None,
        )
        logger.info(
            "Sync complete",
            extra={
                "run_id": run_id,
                "records": total,
                "failures": len(result.failures),
                "duration_s": round(time.monotonic() - started, 3),
            },
        )
        return result

    def _sync_org(self, org_login: str, accumulator: StatsAccumulator, result: SyncResult) -> bool:
        """Returns False when the organization itself could not be read."""
        try:
            org = OrganizationRecord.from_api(self.client.get("/orgs/{org}", {"org": org_login}))
            org_id = upsert_organization(self.db, org, self.config.github.credential_ref)
            repos = self.client.paginate("/orgs/{org}/repos", {"org": org_login})
        except (TransportError, DataShapeError, PersistenceError) as exc:
            logger.error("Skipping organization %s: %s", org_login, exc, extra={"org": org_login})
            result.failures.append(Failure("organization", org_login, str(exc)))
            return False
        result.bump("organizations", 1)
        logger.info("Syncing %d repositories", len(repos), extra={"org": org_login})

        for payload in repos:
            repo_name = payload.get("name") or str(payload.get("id"))
            try:
                self._sync_repo(org_login, org_id, RepositoryRecord.from_api(payload), accumulator, result)
            except SyncCancelled:
                raise
            except GhActivityError as exc:
                logger.error(
                    "Skipping repository %s/%s: %s", org_login, repo_name, exc,
                    extra={"org": org_login, "repo": repo_name},
                )
                result.failures.append(Failure("repository", f"{org_login}/{repo_name}", str(exc)))
        return True

    def _sync_repo(
        self,
        org_login: str,
        org_id: int,
        repo: RepositoryRecord,
        accumulator: StatsAccumulator,
        result: SyncResult,
    ) -> None:
        repo_id = upsert_repository(self.db, repo, org_id)
        result.bump("repositories", 1)

        commits = self.commits.sync(org_login, repo_id, repo.name)
        pulls = self.pull_requests.sync(org_login, repo_id, repo.name)
        issues = self.issues.sync(org_login, repo_id, repo.name)

        # Nothing from this repository is counted until all three fetches succeed
        accumulator.record_commits(commits.records)
        accumulator.record_pull_requests(pulls.records)
        accumulator.record_issues(issues.records)

        for outcome in (commits, pulls, issues):
            result.records.extend(outcome.records)
            result.failures.extend(outcome.failures)
        result.bump("commits", commits.upserted)
        result.bump("pull_requests", pulls.upserted)
        result.bump("issues", issues.upserted)

        result.failures.extend(
            self.enricher.enrich(org_login, repo.name, issues.records, accumulator)
        )


def sync_organizations(
    client: GitHubClient,
    org_logins: Sequence[str],
    db: Database,
    config: IngestionConfig,
) -> SyncResult:
    """Sync the organizations and return per-user roll-ups in ``stats``."""
    return OrgSyncOrchestrator(config, db, client).run(org_logins)


def sync_organizations_raw(
    client: GitHubClient,
    org_logins: Sequence[str],
    db: Database,
    config: IngestionConfig,
) -> list[dict[str, Any]]:
    """Sync the organizations and return every normalized record instead."""
    result = OrgSyncOrchestrator(config, db, client).run(org_logins)
    return [record.to_dict() for record in result.records]


def discover_organizations(client: GitHubClient, db: Database, config: IngestionConfig) -> list[str]:
    """Store every organization the token can see and return their logins."""
    logins: list[str] = []
    for payload in client.paginate("/user/orgs"):
        org = OrganizationRecord.from_api(payload)
        upsert_organization(db, org, config.github.credential_ref)
        logins.append(org.name)
    logger.info("Discovered %d organizations", len(logins))
    return logins


def run_sync(
    config: IngestionConfig,
    db: Database,
    org_logins: Optional[Sequence[str]] = None,
    cancel_event: Optional[threading.Event] = None,
    raw: bool = False,
) -> Union[SyncResult, list[dict[str, Any]]]:
    """Build a client for this run and sync.

    Falls back to configured logins, then to discovery, when org_logins is
    not given. SYNC_TIMEOUT_SECONDS becomes the client deadline. With raw,
    the normalized records are returned instead of the SyncResult.
    """
    deadline = None
    if config.sync_timeout_s:
        deadline = time.monotonic() + config.sync_timeout_s

    with GitHubClient(config.github, cancel_event=cancel_event, deadline=deadline) as client:
        logins = list(org_logins or config.github.org_logins)
        if not logins:
            logins = discover_organizations(client, db, config)
        if raw:
            return sync_organizations_raw(client, logins, db, config)
        return sync_organizations(client, logins, db, config)
