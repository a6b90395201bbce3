"""GitHub integration package.

Provides the async API client used to page through repository issues.
"""

from .client import GitHubClient, GitHubClientError, RateLimitExceeded

__all__ = [
    "GitHubClient",
    "GitHubClientError",
    "RateLimitExceeded",
]
