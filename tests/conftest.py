"""Shared pytest fixtures for github-exporter tests.

Fixture Organization:
    - Environment fixtures: keep host env vars out of configuration tests
    - Sample data fixtures: issue factory and a scripted issue source
    - Collector fixtures: histograms and a scrape-ready IssueCollector
"""

import os
import sys
from datetime import timedelta
from pathlib import Path

import pytest

from github_exporter.collector import (
    Dimensions,
    DurationHistograms,
    IssueCollector,
    IssueCollectorConfig,
)

# Make issue_helpers importable from every test directory
tests_dir = Path(__file__).parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))

from issue_helpers import T0, ScriptedIssueSource, make_issue  # noqa: E402

# =============================================================================
# Pytest CLI Options
# =============================================================================


def pytest_addoption(parser):
    """Add custom command line options for test selection."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests against the real GitHub API (needs GITHUB_TOKEN)",
    )


def pytest_collection_modifyitems(session, config, items):
    """Skip integration tests unless --run-integration is provided."""
    if config.getoption("--run-integration", default=False):
        return
    skip_integration = pytest.mark.skip(
        reason="Need --run-integration option to run integration tests"
    )
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


# =============================================================================
# Environment and Logging Isolation
# =============================================================================

ENV_PREFIXES = (
    "GITHUB_",
    "CUSTOM_LABELS",
    "SINCE_",
    "PER_PAGE",
    "LABEL_COUNTS",
    "SELECTOR_COUNTS",
    "DURATIONS",
    "TIMESTAMPS",
    "NEGATIVE_DURATION",
    "HISTOGRAM_",
    "SCRAPE_TIMEOUT",
    "LISTEN_",
    "LOG_LEVEL",
    "LOG_FORMAT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, request):
    """Remove exporter env vars so tests only see what they set.

    Integration tests keep the environment, they need GITHUB_TOKEN.
    """
    if request.node.get_closest_marker("integration"):
        yield
        return
    for key in list(os.environ):
        if key.upper().startswith(ENV_PREFIXES):
            monkeypatch.delenv(key, raising=False)
    yield


@pytest.fixture
def scenario_issues():
    """One open bug, one bug+urgent closed after a day, one pull request."""
    return [
        make_issue(1, "open", ["bug"]),
        make_issue(2, "closed", ["bug", "urgent"], closed_after=86400),
        make_issue(3, "open", ["bug"], is_pull_request=True),
    ]


@pytest.fixture
def histograms():
    """Fresh duration histograms with the default day-based buckets."""
    return DurationHistograms()


@pytest.fixture
def collector_config():
    return IssueCollectorConfig(
        org="giantswarm",
        repo="roadmap",
        custom_labels=("bug,urgent",),
        dimensions=Dimensions(),
    )


@pytest.fixture
def make_collector(histograms, collector_config):
    """Factory building an IssueCollector over scripted pages."""

    def _make(pages, fail_on=None, config=None):
        source = ScriptedIssueSource(pages, fail_on=fail_on)
        collector = IssueCollector(
            source,
            config or collector_config,
            histograms,
            clock=lambda: T0 + timedelta(days=400),
        )
        return collector, source

    return _make


@pytest.fixture(autouse=True)
def reset_logging():
    """Re-enable propagation on github_exporter loggers so caplog sees them.

    configure_logging() installs its own handler and turns propagation off.
    """
    import logging

    def _reset():
        for name in list(logging.Logger.manager.loggerDict.keys()):
            if name.startswith("github_exporter"):
                child_logger = logging.getLogger(name)
                child_logger.handlers.clear()
                child_logger.propagate = True

    _reset()
    yield
    _reset()
