"""Issue collector: one full collection pass per scrape.

Each scrape runs Fetching -> Aggregating -> Rendering from an empty state.
Pages are aggregated as they arrive; if a page fails the scrape raises
FetchError and its tallies are discarded. Durations already observed into
the long-lived histograms stay there.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from prometheus_client import CollectorRegistry
from prometheus_client.metrics_core import Metric

from github_exporter import metrics
from github_exporter.config import ConfigError

from .aggregator import AggregatorState, Dimensions, IssueAggregator, NegativeDurationPolicy
from .histograms import DurationHistograms
from .pagination import DEFAULT_PER_PAGE, IssueSource, iter_pages
from .renderer import SnapshotCollector, SnapshotRenderer

logger = logging.getLogger("github_exporter.collector.issue")


@dataclass(frozen=True)
class IssueCollectorConfig:
    """Plain values the collector needs, assembled by the bootstrap code."""

    org: str
    repo: str
    custom_labels: tuple[str, ...] = ()
    since_enabled: bool = True
    since_days: int = 365
    per_page: int = DEFAULT_PER_PAGE
    dimensions: Dimensions = Dimensions()
    negative_duration_policy: NegativeDurationPolicy = "record"

    def effective_since(self, now: datetime) -> datetime | None:
        """Recency cutoff for this scrape.

        Per-issue timestamps need the full history, so they disable the cutoff.
        """
        if not self.since_enabled or self.dimensions.timestamps:
            return None
        return now - timedelta(days=self.since_days)


class IssueCollector:
    """Collects issue metrics for one repository.

    Attributes:
        client: Issue source implementing list_issues
        config: Collector settings
        histograms: Process-lifetime duration histograms
        renderer: Snapshot renderer bound to org/repo and dimensions
    """

    def __init__(
        self,
        client: IssueSource,
        config: IssueCollectorConfig,
        histograms: DurationHistograms | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the collector.

        Raises:
            ConfigError: If client is missing, or durations are enabled
                without a histogram registry
        """
        if client is None:
            raise ConfigError("IssueCollector.client must not be empty")
        if config.dimensions.durations and histograms is None:
            raise ConfigError("IssueCollector.histograms must not be empty")

        self.client = client
        self.config = config
        self.histograms = histograms
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.renderer = SnapshotRenderer(
            config.org, config.repo, config.dimensions, histograms
        )

    async def scrape(self) -> AggregatorState:
        """Fetch every page and aggregate it.

        Raises:
            FetchError: If any page fails; no partial state is returned
        """
        aggregator = IssueAggregator(
            self.config.org,
            self.config.repo,
            self.config.custom_labels,
            self.config.dimensions,
            self.histograms,
            self.config.negative_duration_policy,
        )
        since = self.config.effective_since(self._clock())

        async for issues in iter_pages(
            self.client,
            self.config.org,
            self.config.repo,
            since=since,
            per_page=self.config.per_page,
        ):
            aggregator.add_all(issues)

        state = aggregator.snapshot()
        metrics.issues_fetched.set(state.issues_seen)
        logger.info(
            "scrape_completed",
            extra={
                "org": self.config.org,
                "repo": self.config.repo,
                "issues": state.issues_seen,
            },
        )
        return state

    def describe(self) -> list[Metric]:
        return self.renderer.describe()

    async def collect(self) -> list[Metric]:
        """Run a scrape and render it."""
        return self.renderer.render(await self.scrape())

    def registry_for(self, state: AggregatorState) -> CollectorRegistry:
        """Build a registry serving exactly one scrape's snapshot."""
        registry = CollectorRegistry()
        registry.register(SnapshotCollector(self.renderer, state))
        return registry
