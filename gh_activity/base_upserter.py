"""Abstract base class for the per-repository entity upserters."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import psycopg2

from gh_activity.db import Database
from gh_activity.errors import DataShapeError, Failure
from gh_activity.github.client import GitHubClient

logger = logging.getLogger("gh_activity.upserter")


@dataclass
class UpsertOutcome:
    """Everything one upserter saw for one repository."""

    records: list[Any] = field(default_factory=list)
    upserted: int = 0
    failures: list[Failure] = field(default_factory=list)


class BaseUpserter(ABC):
    """Each upserter declares its resource path and table layout, then
    overrides parse() and row()."""

    ENTITY_KIND: str = ""
    RESOURCE_PATH: str = ""
    DEFAULT_PARAMS: dict[str, Any] = {}
    TABLE: str = ""
    COLUMNS: list[str] = []
    CONFLICT: list[str] = []

    def __init__(self, client: GitHubClient, db: Database) -> None:
        self.client = client
        self.db = db

    @property
    def update_columns(self) -> list[str]:
        return [c for c in self.COLUMNS if c not in self.CONFLICT]

    @abstractmethod
    def parse(self, payload: dict) -> Any:
        """Build the typed record for one upstream payload."""

    @abstractmethod
    def row(self, record: Any, repo_id: int) -> tuple:
        """Column values in COLUMNS order."""

    @abstractmethod
    def key(self, record: Any) -> str:
        """External identifier, used in logs and failure reports."""

    def keep(self, record: Any) -> bool:
        return True

    def fetch(self, org_login: str, repo_name: str) -> list[dict]:
        params = {"org": org_login, "repo": repo_name, **self.DEFAULT_PARAMS}
        return self.client.paginate(self.RESOURCE_PATH, params)

    def sync(self, org_login: str, repo_id: int, repo_name: str) -> UpsertOutcome:
        """Fetch the whole collection for one repository and upsert it.

        Transport errors propagate; the caller isolates them per repository.
        Malformed payloads and rejected writes are reported per record and
        the loop carries on.
        """
        started = time.monotonic()
        payloads = self.fetch(org_login, repo_name)

        outcome = UpsertOutcome()
        target_prefix = f"{org_login}/{repo_name}"
        for payload in payloads:
            try:
                record = self.parse(payload)
            except DataShapeError as exc:
                logger.warning("Skipping malformed %s in %s: %s", self.ENTITY_KIND, target_prefix, exc)
                outcome.failures.append(Failure("record", f"{target_prefix}:{self.ENTITY_KIND}", str(exc)))
                continue
            if not self.keep(record):
                continue

            outcome.records.append(record)
            try:
                self.db.upsert_row(
                    self.TABLE,
                    self.COLUMNS,
                    self.row(record, repo_id),
                    self.CONFLICT,
                    self.update_columns,
                )
                outcome.upserted += 1
            except psycopg2.Error as exc:
                logger.error(
                    "Failed to upsert %s %s: %s", self.ENTITY_KIND, self.key(record), exc,
                    extra={"repo": target_prefix, "entity_type": self.ENTITY_KIND},
                )
                outcome.failures.append(
                    Failure("record", f"{target_prefix}:{self.ENTITY_KIND}:{self.key(record)}", str(exc))
                )

        logger.info(
            "Upserted %d/%d %s records",
            outcome.upserted, len(outcome.records), self.ENTITY_KIND,
            extra={
                "org": org_login,
                "repo": repo_name,
                "entity_type": self.ENTITY_KIND,
                "records": outcome.upserted,
                "duration_s": round(time.monotonic() - started, 3),
            },
        )
        return outcome
