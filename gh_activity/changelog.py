"""Issue timeline counts folded into the per-user roll-up."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, as_completed

from gh_activity.errors import Failure, GhActivityError, SyncCancelled
from gh_activity.github.client import GitHubClient
from gh_activity.github.records import IssueRecord
from gh_activity.stats import StatsAccumulator

logger = logging.getLogger("gh_activity.changelog")

EVENTS_PATH = "/repos/{org}/{repo}/issues/{issue_number}/events"


class ChangelogEnricher:
    """Fetches issue event timelines with at most max_workers in flight."""

    def __init__(self, client: GitHubClient, max_workers: int = 8) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.client = client
        self.max_workers = max_workers

    def _count_events(self, org_login: str, repo_name: str, issue: IssueRecord) -> int:
        events = self.client.paginate(
            EVENTS_PATH,
            {"org": org_login, "repo": repo_name, "issue_number": issue.number},
        )
        return len(events)

    def enrich(
        self,
        org_login: str,
        repo_name: str,
        issues: list[IssueRecord],
        accumulator: StatsAccumulator,
    ) -> list[Failure]:
        """Add each issue's event count to its author's entry.

        Issues beyond max_workers wait in the executor queue. A failed fetch
        counts as zero for that issue and is returned as a Failure.
        """
        failures: list[Failure] = []
        if not issues:
            return failures

        executor = ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(issues)),
            thread_name_prefix="changelog",
        )
        try:
            future_to_issue: dict[Future, IssueRecord] = {
                executor.submit(self._count_events, org_login, repo_name, issue): issue
                for issue in issues
            }
            for future in as_completed(future_to_issue):
                issue = future_to_issue[future]
                try:
                    count = future.result()
                except SyncCancelled:
                    raise
                except GhActivityError as exc:
                    logger.warning(
                        "Timeline fetch failed for %s/%s#%s: %s",
                        org_login, repo_name, issue.number, exc,
                    )
                    failures.append(
                        Failure("issue", f"{org_login}/{repo_name}#{issue.number}", str(exc))
                    )
                    continue
                accumulator.add_changelog(issue.user.name, issue.user.id, count)
        except SyncCancelled:
            executor.shutdown(wait=True, cancel_futures=True)
            raise
        finally:
            executor.shutdown(wait=True)

        logger.info(
            "Counted timelines for %d issues",
            len(issues) - len(failures),
            extra={"org": org_login, "repo": repo_name, "failures": len(failures)},
        )
        return failures
