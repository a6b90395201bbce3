"""GitHub REST API client for repository issues.

Provides an async httpx-based client for GitHub REST API v3 with token auth.
Each call fetches exactly one page; the caller drives pagination using the
page cursor parsed from the Link header.

Requests are not retried here. A failed page surfaces as GitHubClientError
and the exporter relies on the next scrape to try again.

Reference: https://docs.github.com/en/rest/issues/issues#list-repository-issues
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any
from urllib.parse import parse_qs, urlparse

import httpx

from github_exporter.__version__ import __version__
from github_exporter.models import Issue, IssuePage

logger = logging.getLogger("github_exporter.github.client")


class GitHubClientError(Exception):
    """Raised when a GitHub API request fails.

    Wraps httpx errors and HTTP errors for consistent error handling.
    """

    pass


class RateLimitExceeded(GitHubClientError):
    """Raised when GitHub rate limit is exhausted."""

    def __init__(self, reset_at: datetime, message: str = "Rate limit exceeded"):
        self.reset_at = reset_at
        super().__init__(f"{message}. Resets at {reset_at.isoformat()}")


class GitHubClient:
    """GitHub REST API client using httpx with Bearer token auth.

    Uses a long-lived httpx.AsyncClient with connection pooling, shared by
    all scrapes for the lifetime of the process.

    Example:
        >>> async with GitHubClient("ghp_token") as client:
        ...     page = await client.list_issues("giantswarm", "giantswarm", page=1)
        ...     page.next_page
        2
    """

    BASE_URL = "https://api.github.com"

    CONNECT_TIMEOUT = 5.0  # seconds
    READ_TIMEOUT = 30.0  # seconds
    WRITE_TIMEOUT = 5.0  # seconds
    POOL_TIMEOUT = 5.0  # seconds

    def __init__(
        self,
        token: str,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize GitHub client with token authentication.

        Args:
            token: GitHub token with read access to issues
            base_url: GitHub API base URL (default: https://api.github.com)
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self.base_url = (base_url or self.BASE_URL).rstrip("/")

        self._rate_limit_remaining: int | None = None
        self._rate_limit_reset: float | None = None

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
                "User-Agent": f"github-exporter/{__version__}",
            },
            timeout=httpx.Timeout(
                connect=self.CONNECT_TIMEOUT,
                read=self.READ_TIMEOUT,
                write=self.WRITE_TIMEOUT,
                pool=self.POOL_TIMEOUT,
            ),
            transport=transport,
        )

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the httpx client and release connections."""
        await self._client.aclose()

    # --- Issues ---

    async def list_issues(
        self,
        org: str,
        repo: str,
        page: int = 1,
        per_page: int = 100,
        since: datetime | None = None,
        state: str = "all",
    ) -> IssuePage:
        """Fetch one page of repository issues.

        GitHub caps per_page at 100; larger hints are accepted and simply
        yield smaller pages.

        Args:
            org: Repository owner
            repo: Repository name
            page: 1-based page number
            per_page: Page size hint
            since: Only issues updated at or after this time
            state: open, closed or all

        Returns:
            IssuePage with parsed issues and the next page number (0 = last page)

        Raises:
            GitHubClientError: On HTTP, transport or payload errors
            RateLimitExceeded: When the rate limit is exhausted
        """
        params: dict[str, str] = {
            "state": state,
            "page": str(page),
            "per_page": str(per_page),
        }
        if since is not None:
            params["since"] = (
                since.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
            )

        response = await self._request("GET", f"/repos/{org}/{repo}/issues", params)

        try:
            data = response.json()
            issues = [Issue.from_api(item) for item in data]
        except (ValueError, KeyError, TypeError) as e:
            raise GitHubClientError(f"Malformed issues payload: {e}") from e

        next_page = self._parse_next_page(response.headers.get("Link", ""))
        return IssuePage(issues=issues, next_page=next_page)

    # --- Core HTTP ---

    async def _request(
        self, method: str, path: str, params: dict[str, str] | None = None
    ) -> httpx.Response:
        """Make a single HTTP request and map failures to GitHubClientError.

        Raises:
            GitHubClientError: On non-2xx responses and transport errors
            RateLimitExceeded: On primary (403, remaining 0) or secondary (429) limits
        """
        try:
            response = await self._client.request(method, path, params=params)
        except httpx.TimeoutException as e:
            raise GitHubClientError(f"Request timeout: {e}") from e
        except httpx.HTTPError as e:
            raise GitHubClientError(f"HTTP error: {e}") from e

        self._update_rate_limits(response)

        if response.status_code == 403 and (
            response.headers.get("X-RateLimit-Remaining") == "0"
        ):
            reset = float(response.headers.get("X-RateLimit-Reset", "0"))
            raise RateLimitExceeded(datetime.fromtimestamp(reset, tz=timezone.utc))

        if response.status_code == 429:
            retry_after = int(response.headers.get("Retry-After", "60"))
            raise RateLimitExceeded(
                datetime.fromtimestamp(
                    datetime.now(timezone.utc).timestamp() + retry_after,
                    tz=timezone.utc,
                ),
                "Secondary rate limit exceeded",
            )

        if response.status_code >= 400:
            try:
                error_body = response.json() if response.content else {}
            except (ValueError, UnicodeDecodeError):
                error_body = {}
            message = (
                error_body.get("message", response.text)
                if isinstance(error_body, dict)
                else response.text
            )
            raise GitHubClientError(
                f"GitHub API error {response.status_code}: {message}"
            )

        return response

    def _update_rate_limits(self, response: httpx.Response) -> None:
        """Update rate limit tracking from response headers."""
        remaining = response.headers.get("X-RateLimit-Remaining")
        if remaining is not None:
            try:
                self._rate_limit_remaining = int(remaining)
            except ValueError:
                logger.warning(
                    "Non-numeric X-RateLimit-Remaining header: %r", remaining
                )

        reset = response.headers.get("X-RateLimit-Reset")
        if reset is not None:
            try:
                self._rate_limit_reset = float(reset)
            except ValueError:
                logger.warning("Non-numeric X-RateLimit-Reset header: %r", reset)

    # --- Pagination ---

    @staticmethod
    def _parse_next_page(link_header: str) -> int:
        """Extract the page number of the rel="next" link.

        Format: <https://api.github.com/...?page=2>; rel="next", <...>; rel="last"

        Returns:
            Next page number, or 0 when there is no next page
        """
        if not link_header:
            return 0

        for part in link_header.split(","):
            match = re.match(r'\s*<([^>]+)>;\s*rel="next"', part.strip())
            if match:
                query = parse_qs(urlparse(match.group(1)).query)
                try:
                    return int(query.get("page", ["0"])[0])
                except ValueError:
                    logger.warning("Non-numeric page in Link header: %.100s", part)
                    return 0
        return 0

    def get_rate_limit_status(self) -> dict[str, Any]:
        """Get current rate limit status for health reporting."""
        return {
            "primary_remaining": self._rate_limit_remaining,
            "primary_reset": self._rate_limit_reset,
        }
