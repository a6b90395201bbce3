"""Pagination driver for the issue source.

Walks the tracker's pages strictly until it reports no next page (cursor 0).
There is no iteration cap; a runaway cursor is bounded by the caller's
scrape timeout, which cancels the loop at the next page fetch.
"""

import logging
from collections.abc import AsyncIterator
from datetime import datetime
from typing import Protocol

from github_exporter import metrics
from github_exporter.connectors.github.client import GitHubClientError
from github_exporter.models import Issue, IssuePage

logger = logging.getLogger("github_exporter.collector.pagination")

FIRST_PAGE = 1

# GitHub returns at most 100 per page, asking for more is harmless
DEFAULT_PER_PAGE = 1000


class FetchError(Exception):
    """Raised when a page fetch fails mid-pagination.

    Aborts the current scrape only. Never retried within the scrape.
    """

    def __init__(self, page: int, message: str):
        self.page = page
        super().__init__(f"Fetching issues page {page} failed: {message}")


class IssueSource(Protocol):
    """Logical paging contract of the issue tracker client."""

    async def list_issues(
        self,
        org: str,
        repo: str,
        page: int = 1,
        per_page: int = 100,
        since: datetime | None = None,
        state: str = "all",
    ) -> IssuePage: ...


async def iter_pages(
    source: IssueSource,
    org: str,
    repo: str,
    since: datetime | None = None,
    per_page: int = DEFAULT_PER_PAGE,
) -> AsyncIterator[list[Issue]]:
    """Yield the issues of each page in received order.

    Args:
        source: Client implementing list_issues
        org: Repository owner
        repo: Repository name
        since: Optional recency cutoff (issues updated after it)
        per_page: Page size hint

    Raises:
        FetchError: If any page fetch fails
    """
    page = FIRST_PAGE
    while True:
        try:
            result = await source.list_issues(
                org, repo, page=page, per_page=per_page, since=since, state="all"
            )
        except GitHubClientError as e:
            raise FetchError(page, str(e)) from e

        metrics.pages_fetched_total.inc()
        logger.debug(
            "page_collected",
            extra={"page": page, "issues": len(result.issues), "org": org, "repo": repo},
        )

        yield result.issues

        if result.is_last:
            logger.debug("pagination_completed", extra={"pages": page})
            return
        page = result.next_page


async def fetch_all(
    source: IssueSource,
    org: str,
    repo: str,
    since: datetime | None = None,
    per_page: int = DEFAULT_PER_PAGE,
) -> list[Issue]:
    """Fetch every issue of the repository across all pages.

    Raises:
        FetchError: If any page fetch fails; no partial result is returned
    """
    issues: list[Issue] = []
    async for page_issues in iter_pages(source, org, repo, since, per_page):
        issues.extend(page_issues)
    return issues
