"""Snapshot rendering of aggregated issue data into Prometheus metric families.

The renderer has two contracts:
- describe(): the static metric name and label schema, without values
- render(state): one family per described name, with samples from the state

Every gauge family declared by describe() is emitted by render(), possibly
without samples. Histogram families come from the long-lived
DurationHistograms and always carry the observations accumulated so far.
"""

from prometheus_client.metrics_core import GaugeMetricFamily, Metric

from .aggregator import AggregatorState, Dimensions, TallyKey, TimestampKey
from .constants import (
    LABEL_LABEL,
    LABEL_LABELS,
    LABEL_NUMBER,
    LABEL_ORG,
    LABEL_REPO,
    LABEL_STATE,
    build_fq_name,
)
from .histograms import DurationHistograms

# name, documentation, dimension label, value label, Dimensions and AggregatorState attribute
_COUNT_METRICS = (
    ("label_count", "Github issues per label.", LABEL_LABEL, LABEL_STATE, "label_counts"),
    ("labels_count", "Github issues per combined labels.", LABEL_LABELS, LABEL_STATE, "selector_counts"),
)

_TIMESTAMP_METRICS = (
    ("open_label_seconds", "Timestamps of open issues per label.", LABEL_LABEL, "open_label_seconds"),
    ("closed_label_seconds", "Timestamps of closed issues per label.", LABEL_LABEL, "closed_label_seconds"),
    ("open_labels_seconds", "Timestamps of open issues per combined labels.", LABEL_LABELS, "open_labels_seconds"),
    ("closed_labels_seconds", "Timestamps of closed issues per combined labels.", LABEL_LABELS, "closed_labels_seconds"),
)


class SnapshotRenderer:
    """Turns AggregatorState into metric families for one repository."""

    def __init__(
        self,
        org: str,
        repo: str,
        dimensions: Dimensions = Dimensions(),
        histograms: DurationHistograms | None = None,
    ) -> None:
        self.org = org
        self.repo = repo
        self.dimensions = dimensions
        self.histograms = histograms

    def describe(self) -> list[Metric]:
        """Metric families without samples, one per emitted name."""
        return self._families(None)

    def render(self, state: AggregatorState) -> list[Metric]:
        """Metric families with samples taken from state.

        Emission order carries no meaning.
        """
        return self._families(state)

    def _families(self, state: AggregatorState | None) -> list[Metric]:
        families: list[Metric] = []

        for name, doc, label, value_label, attr in _COUNT_METRICS:
            if not getattr(self.dimensions, attr):
                continue
            family = GaugeMetricFamily(
                build_fq_name(name), doc, labels=[LABEL_ORG, LABEL_REPO, label, value_label]
            )
            if state is not None:
                self._add_tallies(family, getattr(state, attr))
            families.append(family)

        if self.dimensions.timestamps:
            for name, doc, label, attr in _TIMESTAMP_METRICS:
                family = GaugeMetricFamily(
                    build_fq_name(name),
                    doc,
                    labels=[LABEL_ORG, LABEL_REPO, label, LABEL_NUMBER],
                )
                if state is not None:
                    self._add_timestamps(family, getattr(state, attr))
                families.append(family)

        states = GaugeMetricFamily(
            build_fq_name("states_count"),
            "Github issue states.",
            labels=[LABEL_ORG, LABEL_REPO, LABEL_STATE],
        )
        if state is not None:
            for issue_state, value in state.state_counts.items():
                states.add_metric([self.org, self.repo, issue_state], value)
        families.append(states)

        if self.dimensions.durations and self.histograms is not None:
            if state is None:
                families.extend(self.histograms.describe())
            else:
                families.extend(self.histograms.collect())

        return families

    def _add_tallies(
        self, family: GaugeMetricFamily, tallies: dict[TallyKey, float]
    ) -> None:
        for key, value in tallies.items():
            family.add_metric([self.org, self.repo, key.label, key.state], value)

    def _add_timestamps(
        self, family: GaugeMetricFamily, timestamps: dict[TimestampKey, float]
    ) -> None:
        for key, value in timestamps.items():
            family.add_metric([self.org, self.repo, key.label, key.number], value)


class SnapshotCollector:
    """prometheus_client collector serving one finished scrape.

    Registered in a per-scrape CollectorRegistry, so the registry's
    describe-time check sees the same names collect() produces.
    """

    def __init__(self, renderer: SnapshotRenderer, state: AggregatorState) -> None:
        self._renderer = renderer
        self._state = state

    def describe(self):
        return self._renderer.describe()

    def collect(self):
        return self._renderer.render(self._state)
