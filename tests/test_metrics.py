"""Tests for the exporter self-metrics."""

from prometheus_client import REGISTRY, Counter, Gauge, Histogram, Info

from github_exporter import metrics
from github_exporter.__version__ import __version__


class TestMetricDefinitions:
    def test_metric_types(self):
        assert isinstance(metrics.scrapes_total, Counter)
        assert isinstance(metrics.pages_fetched_total, Counter)
        assert isinstance(metrics.issues_fetched, Gauge)
        assert isinstance(metrics.scrape_duration_seconds, Histogram)
        assert isinstance(metrics.build_info, Info)

    def test_scrapes_total_labels(self):
        assert metrics.scrapes_total._labelnames == ("status",)

    def test_naming_convention(self):
        for metric in (
            metrics.scrapes_total,
            metrics.pages_fetched_total,
            metrics.issues_fetched,
            metrics.scrape_duration_seconds,
            metrics.build_info,
        ):
            assert metric._name.startswith("github_exporter_")

    def test_build_info_version(self):
        assert (
            REGISTRY.get_sample_value("github_exporter_build_info", {"version": __version__})
            == 1.0
        )


class TestMetricUpdates:
    def test_scrapes_total_increments(self):
        before = REGISTRY.get_sample_value(
            "github_exporter_scrapes_total", {"status": "success"}
        ) or 0.0

        metrics.scrapes_total.labels(status="success").inc()

        after = REGISTRY.get_sample_value(
            "github_exporter_scrapes_total", {"status": "success"}
        )
        assert after == before + 1

    def test_issues_fetched_set(self):
        metrics.issues_fetched.set(12)
        assert REGISTRY.get_sample_value("github_exporter_issues_fetched") == 12
