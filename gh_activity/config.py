"""Configuration via environment variables with cloud-native secret support.

Supports:
  - Environment variables (local dev)
  - .env files
  - AWS Secrets Manager (aws-secret://name#key)
  - GCP Secret Manager (gcp-secret://name)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from gh_activity.secrets import resolve_database_url, resolve_secret

DEFAULT_API_BASE_URL = "https://api.github.com"


@dataclass(frozen=True)
class DatabaseConfig:
    url: str
    min_connections: int = 2
    max_connections: int = 10


@dataclass(frozen=True)
class GitHubConfig:
    token: str
    org_logins: list[str] = field(default_factory=list)
    api_base_url: str = DEFAULT_API_BASE_URL
    page_size: int = 100
    changelog_workers: int = 8
    request_timeout: float = 30.0
    # Stored on each organization row to record which credential synced it
    credential_ref: str = "env:GITHUB_TOKEN"


@dataclass(frozen=True)
class SchedulerConfig:
    sync_interval_min: int = 30
    misfire_grace_time: int = 300
    max_retries: int = 3


@dataclass(frozen=True)
class IngestionConfig:
    database: DatabaseConfig
    github: GitHubConfig
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    sync_timeout_s: Optional[float] = None


def _split_csv(raw: str) -> list[str]:
    return [s.strip() for s in raw.split(",") if s.strip()]


def load_config() -> IngestionConfig:
    """Load configuration from environment variables.

    GITHUB_TOKEN is required. When GITHUB_ORG_LOGINS is empty the organizations
    visible to the token are discovered at sync time.
    """
    load_dotenv()

    gh_token_raw = os.environ.get("GITHUB_TOKEN", "")
    if not gh_token_raw:
        raise ValueError("GITHUB_TOKEN environment variable is required")

    database = DatabaseConfig(
        url=resolve_database_url(),
        min_connections=int(os.environ.get("DB_MIN_CONNECTIONS", "2")),
        max_connections=int(os.environ.get("DB_MAX_CONNECTIONS", "10")),
    )

    github = GitHubConfig(
        token=resolve_secret(gh_token_raw),
        org_logins=_split_csv(os.environ.get("GITHUB_ORG_LOGINS", "")),
        api_base_url=os.environ.get("GITHUB_API_BASE_URL", DEFAULT_API_BASE_URL),
        page_size=int(os.environ.get("GITHUB_PAGE_SIZE", "100")),
        changelog_workers=int(os.environ.get("GITHUB_CHANGELOG_WORKERS", "8")),
        request_timeout=float(os.environ.get("GITHUB_REQUEST_TIMEOUT", "30")),
        credential_ref=os.environ.get("GITHUB_CREDENTIAL_REF", "env:GITHUB_TOKEN"),
    )

    scheduler = SchedulerConfig(
        sync_interval_min=int(os.environ.get("SYNC_INTERVAL_MIN", "30")),
        misfire_grace_time=int(os.environ.get("SYNC_MISFIRE_GRACE_TIME", "300")),
        max_retries=int(os.environ.get("SYNC_MAX_RETRIES", "3")),
    )

    timeout = float(os.environ.get("SYNC_TIMEOUT_SECONDS", "0"))

    return IngestionConfig(
        database=database,
        github=github,
        scheduler=scheduler,
        sync_timeout_s=timeout or None,
    )
