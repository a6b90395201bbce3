"""Per-issue classification: relevance, selector matching, time to close.

All functions are pure and only read issue fields.
"""

from github_exporter.config import SELECTOR_SEPARATOR
from github_exporter.models import InvalidStateError, Issue


def is_relevant(issue: Issue) -> bool:
    """Pull requests are listed by the issues endpoint but never counted."""
    return not issue.is_pull_request


def parse_selector(selector: str) -> frozenset[str]:
    """Split a selector such as "bug,urgent" into its required label names."""
    return frozenset(name for name in selector.split(SELECTOR_SEPARATOR) if name)


def matches_selector(issue: Issue, selector: str) -> bool:
    """Check whether the issue carries every label named by the selector.

    Matching is case-sensitive and independent of the order of names in the
    selector. A selector naming no labels matches nothing.
    """
    required = parse_selector(selector)
    if not required:
        return False
    return required <= issue.labels


def seconds_to_close(issue: Issue) -> float:
    """Seconds between creation and close of a closed issue.

    May be negative when the tracker reports a close time before the
    creation time.

    Raises:
        InvalidStateError: If the issue is not closed
    """
    if not issue.is_closed or issue.closed_at is None:
        raise InvalidStateError(
            f"Issue #{issue.number} is {issue.state.value}, time to close is undefined"
        )
    return (issue.closed_at - issue.created_at).total_seconds()
