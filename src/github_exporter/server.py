"""github-exporter HTTP API.

FastAPI service exposing:
- /metrics: one fresh scrape per request, Prometheus text exposition
- /health, /live, /ready: probes for the container runtime

Structured logging with extras dict, pydantic response models.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest
from pydantic import BaseModel, Field

from github_exporter import metrics
from github_exporter.__version__ import __version__
from github_exporter.collector import (
    Dimensions,
    DurationHistograms,
    FetchError,
    IssueCollector,
    IssueCollectorConfig,
    exponential_buckets,
)
from github_exporter.collector.pagination import IssueSource
from github_exporter.config import ExporterConfig
from github_exporter.connectors.github import GitHubClient

logger = logging.getLogger("github_exporter.server")


def build_collector_config(config: ExporterConfig) -> IssueCollectorConfig:
    """Turn loaded settings into the plain values the collector consumes."""
    return IssueCollectorConfig(
        org=config.github_org,
        repo=config.github_repo,
        custom_labels=tuple(config.custom_labels),
        since_enabled=config.since_enabled,
        since_days=config.since_days,
        per_page=config.per_page,
        dimensions=Dimensions(
            label_counts=config.label_counts_enabled,
            selector_counts=config.selector_counts_enabled,
            durations=config.durations_enabled,
            timestamps=config.timestamps_enabled,
        ),
        negative_duration_policy=config.negative_duration_policy,
    )


@dataclass
class ExporterState:
    """Objects living for the whole process, shared by every scrape."""

    collector: IssueCollector
    client: IssueSource
    scrape_timeout: float
    owns_client: bool = False
    last_scrape_status: str | None = None
    last_scrape_at: datetime | None = None

    def record(self, scrape_status: str) -> None:
        self.last_scrape_status = scrape_status
        self.last_scrape_at = datetime.now(timezone.utc)
        metrics.scrapes_total.labels(status=scrape_status).inc()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str = Field(..., description="Health status: healthy or degraded")
    org: str = Field(..., description="GitHub organization")
    repo: str = Field(..., description="GitHub repository")
    version: str = Field(..., description="Exporter version")
    last_scrape_status: Optional[str] = Field(
        None, description="success, failed or timeout; null before the first scrape"
    )
    last_scrape_at: Optional[datetime] = Field(
        None, description="UTC time of the last scrape"
    )
    rate_limit_remaining: Optional[int] = Field(
        None, description="GitHub primary rate limit remaining"
    )


def create_app(config: ExporterConfig, client: IssueSource | None = None) -> FastAPI:
    """Build the FastAPI app and the process-lifetime collector objects.

    Args:
        config: Validated exporter configuration
        client: Optional issue source; a GitHubClient is created when omitted
    """
    owns_client = client is None
    if client is None:
        client = GitHubClient(
            token=config.github_token.get_secret_value(),
            base_url=config.github_base_url,
        )

    histograms = DurationHistograms(
        exponential_buckets(
            config.histogram_bucket_start,
            config.histogram_bucket_factor,
            config.histogram_bucket_count,
        )
    )
    exporter = ExporterState(
        collector=IssueCollector(client, build_collector_config(config), histograms),
        client=client,
        scrape_timeout=config.scrape_timeout,
        owns_client=owns_client,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "exporter_started",
            extra={"org": config.github_org, "repo": config.github_repo},
        )
        yield
        if exporter.owns_client:
            await exporter.client.close()

    app = FastAPI(
        title="github-exporter",
        description="Prometheus exporter for GitHub issue metrics",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.exporter = exporter

    @app.get("/metrics", tags=["Metrics"])
    async def scrape_metrics(request: Request):
        """
        Run one full collection pass and return Prometheus text exposition.

        A failed or timed out scrape returns 503/504 and no issue gauges.
        """
        exporter: ExporterState = request.app.state.exporter
        collector = exporter.collector
        start = time.monotonic()
        try:
            state = await asyncio.wait_for(
                collector.scrape(), timeout=exporter.scrape_timeout
            )
        except asyncio.TimeoutError:
            exporter.record("timeout")
            logger.error(
                "scrape_timeout", extra={"timeout_seconds": exporter.scrape_timeout}
            )
            return PlainTextResponse(
                "scrape timed out", status_code=status.HTTP_504_GATEWAY_TIMEOUT
            )
        except FetchError as e:
            exporter.record("failed")
            logger.error("scrape_failed", extra={"page": e.page, "error": str(e)})
            return PlainTextResponse(
                f"scrape failed: {e}", status_code=status.HTTP_503_SERVICE_UNAVAILABLE
            )
        finally:
            metrics.scrape_duration_seconds.observe(time.monotonic() - start)

        exporter.record("success")
        output = generate_latest(collector.registry_for(state)) + generate_latest(
            REGISTRY
        )
        return Response(content=output, media_type=CONTENT_TYPE_LATEST)

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health(request: Request):
        """
        Health of the exporter based on the last scrape.

        Status values:
        - healthy: no scrape yet, or the last scrape succeeded
        - degraded: the last scrape failed or timed out
        """
        exporter: ExporterState = request.app.state.exporter
        degraded = exporter.last_scrape_status not in (None, "success")
        rate_limit = None
        if isinstance(exporter.client, GitHubClient):
            rate_limit = exporter.client.get_rate_limit_status()["primary_remaining"]
        return HealthResponse(
            status="degraded" if degraded else "healthy",
            org=exporter.collector.config.org,
            repo=exporter.collector.config.repo,
            version=__version__,
            last_scrape_status=exporter.last_scrape_status,
            last_scrape_at=exporter.last_scrape_at,
            rate_limit_remaining=rate_limit,
        )

    @app.get("/live", tags=["Health"])
    async def liveness():
        """Liveness probe: the process is running."""
        return {"status": "alive"}

    @app.get("/ready", tags=["Health"])
    async def readiness(request: Request):
        """
        Readiness probe.

        Returns 503 while the most recent scrape is failing.
        """
        exporter: ExporterState = request.app.state.exporter
        if exporter.last_scrape_status in (None, "success"):
            return {"status": "ready"}
        logger.warning(
            "readiness_check_failed",
            extra={"last_scrape_status": exporter.last_scrape_status},
        )
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready"},
        )

    return app
