"""Issue metrics collection engine.

Pagination driver, classifier, aggregator, duration histograms and snapshot
renderer, wired together by IssueCollector.
"""

from .aggregator import AggregatorState, Dimensions, IssueAggregator, TallyKey, TimestampKey
from .classifier import is_relevant, matches_selector, parse_selector, seconds_to_close
from .histograms import DEFAULT_BUCKETS, DurationHistograms, exponential_buckets
from .issue import IssueCollector, IssueCollectorConfig
from .pagination import FetchError, fetch_all, iter_pages
from .renderer import SnapshotCollector, SnapshotRenderer

__all__ = [
    "DEFAULT_BUCKETS",
    "AggregatorState",
    "Dimensions",
    "DurationHistograms",
    "FetchError",
    "IssueAggregator",
    "IssueCollector",
    "IssueCollectorConfig",
    "SnapshotCollector",
    "SnapshotRenderer",
    "TallyKey",
    "TimestampKey",
    "exponential_buckets",
    "fetch_all",
    "is_relevant",
    "iter_pages",
    "matches_selector",
    "parse_selector",
    "seconds_to_close",
]
