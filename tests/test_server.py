"""Tests for the FastAPI service: /metrics, /health, /live, /ready."""

import asyncio
import json

import httpx
import pytest
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY
from prometheus_client.parser import text_string_to_metric_families

from github_exporter.config import load_config
from github_exporter.connectors.github import GitHubClient
from github_exporter.server import build_collector_config, create_app
from issue_helpers import ScriptedIssueSource, make_issue

LABEL_COUNT = "github_exporter_issue_label_count"
LABELS_COUNT = "github_exporter_issue_labels_count"
STATES_COUNT = "github_exporter_issue_states_count"


def _config(**overrides):
    values = {
        "github_token": "ghp_test_token_123",
        "github_org": "giantswarm",
        "github_repo": "roadmap",
        "custom_labels": ["bug,urgent"],
        "scrape_timeout": 5.0,
    }
    values.update(overrides)
    return load_config(_env_file=None, **values)


def _scrapes(status: str) -> float:
    return REGISTRY.get_sample_value("github_exporter_scrapes_total", {"status": status}) or 0.0


def _samples(text: str) -> dict[tuple, float]:
    return {
        (sample.name, tuple(sorted(sample.labels.items()))): sample.value
        for family in text_string_to_metric_families(text)
        for sample in family.samples
    }


class SlowSource:
    """Issue source that never answers in time."""

    async def list_issues(self, org, repo, page=1, per_page=100, since=None, state="all"):
        await asyncio.sleep(30)


@pytest.fixture
def scenario_source():
    return ScriptedIssueSource(
        [
            [make_issue(1, "open", ["bug"]), make_issue(2, "closed", ["bug", "urgent"], closed_after=86400)],
            [make_issue(3, "open", ["bug"], is_pull_request=True)],
        ]
    )


class TestBuildCollectorConfig:
    def test_maps_settings(self):
        config = _config(
            since_enabled=False,
            timestamps_enabled=True,
            durations_enabled=False,
            negative_duration_policy="drop",
        )

        collector_config = build_collector_config(config)

        assert collector_config.org == "giantswarm"
        assert collector_config.repo == "roadmap"
        assert collector_config.custom_labels == ("bug,urgent",)
        assert collector_config.since_enabled is False
        assert collector_config.dimensions.timestamps is True
        assert collector_config.dimensions.durations is False
        assert collector_config.negative_duration_policy == "drop"


class TestMetricsEndpoint:
    def test_successful_scrape(self, scenario_source):
        before = _scrapes("success")
        with TestClient(create_app(_config(), client=scenario_source)) as client:
            response = client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        samples = _samples(response.text)
        base = (("org", "giantswarm"), ("repo", "roadmap"))
        assert samples[(LABEL_COUNT, tuple(sorted(base + (("label", "bug"), ("state", "open")))))] == 1
        assert samples[(LABEL_COUNT, tuple(sorted(base + (("label", "bug"), ("state", "closed")))))] == 1
        assert samples[(LABELS_COUNT, tuple(sorted(base + (("labels", "bug,urgent"), ("state", "closed")))))] == 1
        assert samples[(STATES_COUNT, tuple(sorted(base + (("state", "open"),))))] == 1
        assert samples[(STATES_COUNT, tuple(sorted(base + (("state", "closed"),))))] == 1
        assert "github_exporter_scrapes_total" in response.text
        assert _scrapes("success") == before + 1

    def test_fetches_every_page(self, scenario_source):
        with TestClient(create_app(_config(), client=scenario_source)) as client:
            client.get("/metrics")

        assert [call["page"] for call in scenario_source.calls] == [1, 2]
        assert scenario_source.calls[0]["per_page"] == 1000

    def test_page_failure_returns_503(self):
        source = ScriptedIssueSource([[make_issue(1, "open", ["bug"])], []], fail_on=2)
        before = _scrapes("failed")
        with TestClient(create_app(_config(), client=source)) as client:
            response = client.get("/metrics")

        assert response.status_code == 503
        assert LABEL_COUNT not in response.text
        assert _scrapes("failed") == before + 1

    def test_incomplete_issue_record_returns_503(self):
        record = {
            "number": 7,
            "state": "closed",
            "created_at": "2024-01-01T00:00:00Z",
            "closed_at": None,
            "labels": [{"name": "bug"}],
        }

        def handler(request):
            return httpx.Response(200, content=json.dumps([record]))

        github = GitHubClient(token="t", transport=httpx.MockTransport(handler))
        before = _scrapes("failed")
        with TestClient(create_app(_config(timestamps_enabled=True), client=github)) as client:
            response = client.get("/metrics")
            ready = client.get("/ready")

        assert response.status_code == 503
        assert "Malformed" in response.text
        assert _scrapes("failed") == before + 1
        assert ready.status_code == 503

    def test_timeout_returns_504(self):
        before = _scrapes("timeout")
        app = create_app(_config(scrape_timeout=0.05), client=SlowSource())
        with TestClient(app) as client:
            response = client.get("/metrics")

        assert response.status_code == 504
        assert _scrapes("timeout") == before + 1

    def test_each_request_scrapes_fresh(self, scenario_source):
        with TestClient(create_app(_config(), client=scenario_source)) as client:
            first = _samples(client.get("/metrics").text)
            second = _samples(client.get("/metrics").text)

        assert len(scenario_source.calls) == 4
        key = (STATES_COUNT, (("org", "giantswarm"), ("repo", "roadmap"), ("state", "open")))
        assert first[key] == second[key] == 1

    def test_disabled_dimension_absent(self, scenario_source):
        config = _config(label_counts_enabled=False, durations_enabled=False)
        with TestClient(create_app(config, client=scenario_source)) as client:
            response = client.get("/metrics")

        assert response.status_code == 200
        assert LABEL_COUNT + "{" not in response.text
        assert "time_to_close" not in response.text
        assert LABELS_COUNT in response.text


class TestProbes:
    def test_health_before_first_scrape(self, scenario_source):
        with TestClient(create_app(_config(), client=scenario_source)) as client:
            data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["org"] == "giantswarm"
        assert data["repo"] == "roadmap"
        assert data["last_scrape_status"] is None
        assert data["rate_limit_remaining"] is None

    def test_health_degraded_after_failure(self):
        source = ScriptedIssueSource([[]], fail_on=1)
        with TestClient(create_app(_config(), client=source)) as client:
            client.get("/metrics")
            data = client.get("/health").json()

        assert data["status"] == "degraded"
        assert data["last_scrape_status"] == "failed"
        assert data["last_scrape_at"] is not None

    def test_live(self, scenario_source):
        with TestClient(create_app(_config(), client=scenario_source)) as client:
            response = client.get("/live")

        assert response.status_code == 200
        assert response.json() == {"status": "alive"}

    def test_ready_follows_last_scrape(self):
        source = ScriptedIssueSource([[make_issue(1, "open", ["bug"])]], fail_on=1)
        with TestClient(create_app(_config(), client=source)) as client:
            assert client.get("/ready").status_code == 200

            client.get("/metrics")
            response = client.get("/ready")
            assert response.status_code == 503
            assert response.json() == {"status": "not_ready"}

            source.fail_on = None
            client.get("/metrics")
            assert client.get("/ready").json() == {"status": "ready"}
