"""GitHub REST client: bearer auth, Link-header pagination, rate-limit waits."""

from __future__ import annotations

import logging
import re
import string
import threading
import time
from typing import Any, Optional
from urllib.parse import quote

import requests

from gh_activity.config import GitHubConfig
from gh_activity.errors import RateLimitExceeded, SyncCancelled, TransportError

logger = logging.getLogger("gh_activity.client")

MAX_RATE_LIMIT_ATTEMPTS = 5
MAX_RATE_LIMIT_WAIT_S = 300

_NEXT_LINK = re.compile(r'<([^>]+)>\s*;\s*rel="next"')


def next_page_url(link_header: str) -> str:
    """Return the rel="next" target of a Link header, or "" on the last page."""
    match = _NEXT_LINK.search(link_header or "")
    return match.group(1) if match else ""


def expand_path(template: str, params: Optional[dict]) -> tuple[str, dict]:
    """Fill ``{name}`` placeholders from params.

    Returns the expanded path and the params that were not consumed, which
    are sent as the query string.
    """
    remaining = dict(params or {})
    names = [name for _, name, _, _ in string.Formatter().parse(template) if name]
    values = {}
    for name in names:
        if name not in remaining:
            raise ValueError(f"Missing path parameter '{name}' for {template}")
        values[name] = quote(str(remaining.pop(name)), safe="")
    return template.format(**values), remaining


class GitHubClient:
    """Thin wrapper around a requests.Session for the GitHub REST API.

    A cancel event and/or an absolute deadline (``time.monotonic()`` based)
    stop the client before its next request with SyncCancelled.
    """

    def __init__(
        self,
        config: GitHubConfig,
        cancel_event: Optional[threading.Event] = None,
        deadline: Optional[float] = None,
    ) -> None:
        self._base = config.api_base_url.rstrip("/")
        self._page_size = config.page_size
        self._timeout = config.request_timeout
        self._cancel_event = cancel_event
        self._deadline = deadline
        self._session = requests.Session()
        self._session.headers.update({
            "Authorization": f"token {config.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        })

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "GitHubClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _check_cancelled(self) -> None:
        if self._cancel_event is not None and self._cancel_event.is_set():
            raise SyncCancelled("Sync cancelled by caller")
        if self._deadline is not None and time.monotonic() >= self._deadline:
            raise SyncCancelled("Sync deadline exceeded")

    def _wait(self, seconds: float) -> None:
        """Sleep for a rate-limit window, waking early on cancel or deadline."""
        if self._deadline is not None:
            seconds = min(seconds, max(self._deadline - time.monotonic(), 0))
        if self._cancel_event is not None:
            self._cancel_event.wait(seconds)
        else:
            time.sleep(seconds)
        self._check_cancelled()

    @staticmethod
    def _decode(resp: requests.Response, url: str) -> Any:
        try:
            return resp.json()
        except ValueError as exc:
            raise TransportError(
                f"GitHub returned a non-JSON body for {url}",
                status_code=resp.status_code,
                url=url,
            ) from exc

    def _request(self, url: str, params: Optional[dict]) -> requests.Response:
        """GET one page, waiting out primary rate limits."""
        attempt = 0
        while True:
            self._check_cancelled()
            try:
                resp = self._session.get(url, params=params, timeout=self._timeout)
            except requests.RequestException as exc:
                raise TransportError(f"GitHub request failed: {exc}", url=url) from exc

            if resp.status_code in (403, 429) and "rate limit" in resp.text.lower():
                reset = int(resp.headers.get("X-RateLimit-Reset", "0"))
                attempt += 1
                if attempt >= MAX_RATE_LIMIT_ATTEMPTS:
                    raise RateLimitExceeded(
                        "GitHub rate limit exceeded after retries",
                        url=url,
                        reset_at=reset,
                    )
                wait = min(max(reset - int(time.time()), 1), MAX_RATE_LIMIT_WAIT_S)
                logger.warning("GitHub rate limit hit, waiting %ds", wait)
                self._wait(wait)
                continue

            if not resp.ok:
                raise TransportError(
                    f"GitHub returned {resp.status_code} for {url}",
                    status_code=resp.status_code,
                    url=url,
                )
            return resp

    def get(self, path_template: str, params: Optional[dict] = None) -> Any:
        """Fetch a single resource."""
        path, query = expand_path(path_template, params)
        url = f"{self._base}{path}"
        return self._decode(self._request(url, query), url)

    def paginate(self, path_template: str, params: Optional[dict] = None) -> list[dict]:
        """Fetch every page of a collection by following Link headers.

        Nothing is returned unless the collection was drained completely;
        an error on any page discards the pages already read.
        """
        path, query = expand_path(path_template, params)
        query.setdefault("per_page", self._page_size)
        url = f"{self._base}{path}"

        results: list[dict] = []
        pages = 0
        while url:
            resp = self._request(url, query)
            data = self._decode(resp, url)
            if isinstance(data, list):
                results.extend(data)
            else:
                results.append(data)
            pages += 1
            # The next link already carries the query string
            url = next_page_url(resp.headers.get("Link", ""))
            query = None

        logger.debug("Fetched %d records in %d pages from %s", len(results), pages, path)
        return results
