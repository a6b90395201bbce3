"""Long-lived time-to-close histograms.

DurationHistograms is created once at startup and handed to every scrape by
reference. Observations accumulate for the lifetime of the process, so a
failed scrape does not lose what earlier scrapes recorded. The histograms
are not registered in any global registry; the renderer pulls their samples
into each scrape's output.
"""

from collections.abc import Sequence

from prometheus_client import Histogram
from prometheus_client.metrics_core import Metric

from .constants import LABEL_LABEL, LABEL_LABELS, LABEL_ORG, LABEL_REPO, build_fq_name

DAY_SECONDS = 86400.0


def exponential_buckets(start: float, factor: float, count: int) -> list[float]:
    """Return count bucket bounds: start, start*factor, start*factor**2, ...

    Raises:
        ValueError: On non-positive start, factor <= 1 or count < 1
    """
    if count < 1:
        raise ValueError("bucket count must be at least 1")
    if start <= 0:
        raise ValueError("first bucket bound must be positive")
    if factor <= 1:
        raise ValueError("bucket factor must be greater than 1")
    return [start * factor**i for i in range(count)]


DEFAULT_BUCKETS = exponential_buckets(DAY_SECONDS, 2, 10)


class DurationHistograms:
    """Process-lifetime registry of time-to-close histograms.

    Two histograms share the bucket layout:
    - github_exporter_issue_time_to_close_label_seconds{org,repo,label}
    - github_exporter_issue_time_to_close_labels_seconds{org,repo,labels}

    Observations above the last finite bucket land in +Inf. Each labelled
    child of a prometheus_client Histogram guards its buckets with its own
    lock, so concurrent scrapes may observe safely.
    """

    def __init__(self, buckets: Sequence[float] = DEFAULT_BUCKETS) -> None:
        self.buckets = list(buckets)

        self.label_seconds = Histogram(
            build_fq_name("time_to_close_label_seconds"),
            "Seconds from creation to close of Github issues per label.",
            [LABEL_ORG, LABEL_REPO, LABEL_LABEL],
            buckets=self.buckets,
            registry=None,
        )
        self.labels_seconds = Histogram(
            build_fq_name("time_to_close_labels_seconds"),
            "Seconds from creation to close of Github issues per combined labels.",
            [LABEL_ORG, LABEL_REPO, LABEL_LABELS],
            buckets=self.buckets,
            registry=None,
        )

    def observe_label(self, org: str, repo: str, label: str, seconds: float) -> None:
        self.label_seconds.labels(org, repo, label).observe(seconds)

    def observe_selector(
        self, org: str, repo: str, selector: str, seconds: float
    ) -> None:
        self.labels_seconds.labels(org, repo, selector).observe(seconds)

    def describe(self) -> list[Metric]:
        return [*self.label_seconds.describe(), *self.labels_seconds.describe()]

    def collect(self) -> list[Metric]:
        return [*self.label_seconds.collect(), *self.labels_seconds.collect()]
