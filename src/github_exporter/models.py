"""Issue data model consumed by the collector.

Issues are read-only snapshots fetched fresh on every scrape; nothing here is
mutated or persisted.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

__all__ = [
    "InvalidStateError",
    "Issue",
    "IssuePage",
    "IssueState",
    "parse_timestamp",
]


class InvalidStateError(Exception):
    """Raised when an operation is invoked on an issue in the wrong state.

    Indicates a defect at the call site (e.g. asking an open issue for its
    time to close), not a runtime condition to recover from.
    """

    pass


class IssueState(str, Enum):
    """GitHub issue states.

    Note: Uses (str, Enum) so values can be used directly as label values.
    """

    OPEN = "open"
    CLOSED = "closed"


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a GitHub ISO 8601 timestamp ("2024-01-02T03:04:05Z")."""
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@dataclass(frozen=True)
class Issue:
    """One issue as returned by the tracker.

    Attributes:
        number: Tracker-assigned number, unique within the repository
        state: open or closed
        created_at: Creation time (timezone aware)
        closed_at: Close time, only meaningful when state is closed
        labels: Label names carried by the issue
        is_pull_request: GitHub lists pull requests on the issues endpoint
    """

    number: int
    state: IssueState
    created_at: datetime
    closed_at: datetime | None = None
    labels: frozenset[str] = field(default_factory=frozenset)
    is_pull_request: bool = False

    @property
    def is_closed(self) -> bool:
        return self.state is IssueState.CLOSED

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Issue":
        """Build an Issue from a GitHub REST issue object.

        Raises:
            ValueError: If created_at is missing, or a closed issue has no closed_at
        """
        state = IssueState(data["state"])
        created_at = parse_timestamp(data["created_at"])
        closed_at = parse_timestamp(data.get("closed_at"))
        if created_at is None:
            raise ValueError(f"Issue #{data['number']} has no created_at")
        if state is IssueState.CLOSED and closed_at is None:
            raise ValueError(f"Issue #{data['number']} is closed without closed_at")

        return cls(
            number=int(data["number"]),
            state=state,
            created_at=created_at,
            closed_at=closed_at,
            labels=frozenset(
                label["name"] if isinstance(label, dict) else str(label)
                for label in data.get("labels") or []
            ),
            is_pull_request=data.get("pull_request") is not None,
        )


@dataclass(frozen=True)
class IssuePage:
    """One page of issues plus the cursor of the following page.

    next_page is 0 when the tracker reports no further pages.
    """

    issues: list[Issue]
    next_page: int = 0

    @property
    def is_last(self) -> bool:
        return self.next_page == 0
