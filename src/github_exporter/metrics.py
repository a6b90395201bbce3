"""
Prometheus metrics describing the exporter itself.

These live on the default prometheus_client registry and are served next to
the issue metrics. Naming: snake_case, github_exporter_ prefix.
"""

from prometheus_client import Counter, Gauge, Histogram, Info

from github_exporter.__version__ import __version__

# ==============================================================================
# COUNTERS
# ==============================================================================

scrapes_total = Counter(
    "github_exporter_scrapes_total",
    "Total scrape attempts",
    ["status"],
    # status: success, failed, timeout
)

pages_fetched_total = Counter(
    "github_exporter_pages_fetched_total",
    "Total issue pages fetched from GitHub",
)

# ==============================================================================
# GAUGES
# ==============================================================================

issues_fetched = Gauge(
    "github_exporter_issues_fetched",
    "Relevant issues seen by the last successful scrape",
)

# ==============================================================================
# HISTOGRAMS
# ==============================================================================

scrape_duration_seconds = Histogram(
    "github_exporter_scrape_duration_seconds",
    "Scrape wall time in seconds",
    buckets=[0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0],
    # Large repositories take one request per 100 issues
)

# ==============================================================================
# INFO
# ==============================================================================

build_info = Info("github_exporter_build", "Exporter build information")

build_info.info({"version": __version__})
