"""Exceptions and failure reports for the ingestion pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class GhActivityError(Exception):
    """Base exception for pipeline failures."""


class TransportError(GhActivityError):
    """GitHub API unreachable, rate limited, or returned a non-2xx status."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        url: Optional[str] = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class RateLimitExceeded(TransportError):
    """Raised when the rate limit is still exhausted after waiting."""

    def __init__(self, message: str, url: Optional[str] = None, reset_at: Optional[int] = None) -> None:
        super().__init__(message, status_code=403, url=url)
        self.reset_at = reset_at  # Unix timestamp when the limit resets


class PersistenceError(GhActivityError):
    """A storage write for a single record was rejected."""


class DataShapeError(GhActivityError):
    """An upstream payload is missing a field the pipeline cannot default."""


class SyncCancelled(GhActivityError):
    """The run was cancelled or hit its deadline. No partial result exists."""


@dataclass(frozen=True)
class Failure:
    """One isolated unit of work that did not complete.

    scope is one of "organization", "repository", "record", "issue".
    """

    scope: str
    target: str
    error: str

    def to_dict(self) -> dict[str, str]:
        return {"scope": self.scope, "target": self.target, "error": self.error}


class SyncFailed(GhActivityError):
    """No results were obtained for any requested organization."""

    def __init__(self, message: str, failures: list[Failure]) -> None:
        super().__init__(message)
        self.failures = failures
