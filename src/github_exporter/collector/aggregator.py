"""Scrape-local aggregation of issue counts and durations.

One IssueAggregator lives for exactly one scrape. Its tally maps start empty
and are discarded once rendered. Durations go into the long-lived
DurationHistograms handed in at construction.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Literal

from github_exporter.models import Issue

from .classifier import is_relevant, matches_selector, seconds_to_close
from .histograms import DurationHistograms

logger = logging.getLogger("github_exporter.collector.aggregator")

NegativeDurationPolicy = Literal["record", "clamp", "drop"]


@dataclass(frozen=True)
class Dimensions:
    """Which output dimensions a scrape produces.

    Attributes:
        label_counts: Counts per (intrinsic label, state)
        selector_counts: Counts per (selector, state)
        durations: Time-to-close histograms per label and per selector
        timestamps: Per-issue created/closed timestamps of closed issues
    """

    label_counts: bool = True
    selector_counts: bool = True
    durations: bool = True
    timestamps: bool = False


@dataclass(frozen=True)
class TallyKey:
    """Count dimension: a label name or selector string plus issue state."""

    label: str
    state: str


@dataclass(frozen=True)
class TimestampKey:
    """Per-issue dimension: a label name or selector string plus issue number."""

    label: str
    number: str


@dataclass
class AggregatorState:
    """Final tallies of one scrape, consumed by the renderer."""

    label_counts: dict[TallyKey, float] = field(default_factory=dict)
    selector_counts: dict[TallyKey, float] = field(default_factory=dict)
    state_counts: dict[str, float] = field(default_factory=dict)
    open_label_seconds: dict[TimestampKey, float] = field(default_factory=dict)
    closed_label_seconds: dict[TimestampKey, float] = field(default_factory=dict)
    open_labels_seconds: dict[TimestampKey, float] = field(default_factory=dict)
    closed_labels_seconds: dict[TimestampKey, float] = field(default_factory=dict)
    issues_seen: int = 0


class IssueAggregator:
    """Accumulates counts over a linear pass of issues.

    For each relevant issue:
    1. every intrinsic label counts under (label, state), and a closed
       issue's time to close is observed for that label;
    2. every matching selector counts under (selector, state), with the same
       duration observation under the selector;
    3. the issue counts under its state alone.

    Example:
        >>> aggregator = IssueAggregator("giantswarm", "roadmap", ["bug,urgent"])
        >>> aggregator.add_all(issues)
        >>> state = aggregator.snapshot()
    """

    def __init__(
        self,
        org: str,
        repo: str,
        selectors: list[str] | tuple[str, ...] = (),
        dimensions: Dimensions = Dimensions(),
        histograms: DurationHistograms | None = None,
        negative_duration_policy: NegativeDurationPolicy = "record",
    ) -> None:
        if dimensions.durations and histograms is None:
            raise ValueError("durations dimension requires a DurationHistograms")

        self.org = org
        self.repo = repo
        self.selectors = tuple(selectors)
        self.dimensions = dimensions
        self.histograms = histograms
        self.negative_duration_policy = negative_duration_policy

        self._label_counts: defaultdict[TallyKey, float] = defaultdict(float)
        self._selector_counts: defaultdict[TallyKey, float] = defaultdict(float)
        self._state_counts: defaultdict[str, float] = defaultdict(float)
        self._open_label_seconds: dict[TimestampKey, float] = {}
        self._closed_label_seconds: dict[TimestampKey, float] = {}
        self._open_labels_seconds: dict[TimestampKey, float] = {}
        self._closed_labels_seconds: dict[TimestampKey, float] = {}
        self._issues_seen = 0

    def add(self, issue: Issue) -> bool:
        """Fold one issue into the tallies.

        Returns:
            False if the issue was skipped as a pull request
        """
        if not is_relevant(issue):
            return False

        self._issues_seen += 1
        state = issue.state.value

        duration = None
        if issue.is_closed and self.dimensions.durations:
            duration = self._duration(issue)

        for label in issue.labels:
            if self.dimensions.label_counts:
                self._label_counts[TallyKey(label, state)] += 1
            if duration is not None:
                self.histograms.observe_label(self.org, self.repo, label, duration)
            if issue.is_closed and self.dimensions.timestamps:
                key = TimestampKey(label, str(issue.number))
                self._open_label_seconds[key] = issue.created_at.timestamp()
                self._closed_label_seconds[key] = issue.closed_at.timestamp()

        for selector in self.selectors:
            if not matches_selector(issue, selector):
                continue
            if self.dimensions.selector_counts:
                self._selector_counts[TallyKey(selector, state)] += 1
            if duration is not None:
                self.histograms.observe_selector(
                    self.org, self.repo, selector, duration
                )
            if issue.is_closed and self.dimensions.timestamps:
                key = TimestampKey(selector, str(issue.number))
                self._open_labels_seconds[key] = issue.created_at.timestamp()
                self._closed_labels_seconds[key] = issue.closed_at.timestamp()

        self._state_counts[state] += 1
        return True

    def add_all(self, issues) -> int:
        """Fold a sequence of issues. Returns the number of relevant issues."""
        return sum(1 for issue in issues if self.add(issue))

    def snapshot(self) -> AggregatorState:
        return AggregatorState(
            label_counts=dict(self._label_counts),
            selector_counts=dict(self._selector_counts),
            state_counts=dict(self._state_counts),
            open_label_seconds=dict(self._open_label_seconds),
            closed_label_seconds=dict(self._closed_label_seconds),
            open_labels_seconds=dict(self._open_labels_seconds),
            closed_labels_seconds=dict(self._closed_labels_seconds),
            issues_seen=self._issues_seen,
        )

    def _duration(self, issue: Issue) -> float | None:
        """Time to close after applying the negative duration policy.

        Returns None when the observation is dropped.
        """
        seconds = seconds_to_close(issue)
        if seconds >= 0:
            return seconds

        logger.warning(
            "negative_close_duration",
            extra={
                "number": issue.number,
                "seconds": seconds,
                "policy": self.negative_duration_policy,
            },
        )
        if self.negative_duration_policy == "drop":
            return None
        if self.negative_duration_policy == "clamp":
            return 0.0
        return seconds
