"""Configuration management with pydantic-settings for github-exporter.

Loads from (in order of precedence):
1. Environment variables (highest priority)
2. .env file in the working directory
3. Default values (lowest priority)

The collector engine never reads this module; the bootstrap code turns an
ExporterConfig into plain values (see server.build_collector_config).
"""

import json
import logging
from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, SecretStr, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

logger = logging.getLogger("github_exporter.config")

__all__ = [
    "SELECTOR_SEPARATOR",
    "ConfigError",
    "ExporterConfig",
    "get_config",
    "load_config",
    "parse_selectors",
    "reset_config",
]

# Separates label names inside one selector ("bug,urgent")
SELECTOR_SEPARATOR = ","

# Separates selectors in the CUSTOM_LABELS env var ("bug,urgent;kind/flake")
SELECTOR_LIST_SEPARATOR = ";"


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid.

    Fatal: the exporter does not start without a valid configuration.
    """

    pass


def parse_selectors(raw: str) -> list[str]:
    """Split a CUSTOM_LABELS value into selector strings.

    Accepts a JSON list (``["bug,urgent", "kind/flake"]``) or selectors
    separated by ``;``.
    """
    raw = raw.strip()
    if not raw:
        return []
    if raw.startswith("["):
        return json.loads(raw)
    return [s.strip() for s in raw.split(SELECTOR_LIST_SEPARATOR) if s.strip()]


class ExporterConfig(BaseSettings):
    """Configuration for github-exporter.

    Attributes:
        github_token: Access credential for the GitHub REST API
        github_org: Organization owning the repository
        github_repo: Repository name ("owner/repo" accepted when github_org is empty)
        github_base_url: REST API base URL
        custom_labels: Ordered label selectors, each a comma-joined conjunction
        since_enabled: Only fetch issues updated within since_days
        since_days: Recency window in days
        per_page: Page size hint sent to GitHub
        label_counts_enabled: Emit per-label counts
        selector_counts_enabled: Emit per-selector counts
        durations_enabled: Record time-to-close histograms
        timestamps_enabled: Emit per-issue open/closed timestamp gauges
        negative_duration_policy: What to do with closed-before-created issues
        histogram_bucket_start: First histogram bucket bound in seconds
        histogram_bucket_factor: Growth factor between buckets
        histogram_bucket_count: Number of finite histogram buckets
        scrape_timeout: Upper bound for one scrape in seconds
        listen_host: HTTP bind address
        listen_port: HTTP port
        log_level: Logging level
        log_format: json or text
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        validate_default=True,
        frozen=True,
        extra="ignore",
    )

    # GitHub
    github_token: SecretStr = Field(
        default=SecretStr(""),
        description="GitHub token used for API access (needs issues:read)",
    )
    github_org: str = Field(default="", description="GitHub organization")
    github_repo: str = Field(default="", description="GitHub repository")
    github_base_url: str = Field(
        default="https://api.github.com", description="GitHub REST API base URL"
    )

    # Collection
    custom_labels: Annotated[list[str], NoDecode] = Field(
        default_factory=list,
        description="Label selectors, e.g. 'bug,urgent;kind/flake', used verbatim as label values",
    )
    since_enabled: bool = Field(
        default=True, description="Only fetch issues updated within since_days"
    )
    since_days: int = Field(default=365, ge=1, le=3650)
    per_page: int = Field(
        default=1000,
        ge=1,
        le=1000,
        description="Page size hint. GitHub honours at most 100.",
    )

    # Output dimensions
    label_counts_enabled: bool = Field(default=True)
    selector_counts_enabled: bool = Field(default=True)
    durations_enabled: bool = Field(default=True)
    timestamps_enabled: bool = Field(
        default=False,
        description="Emit per-issue timestamps. Needs full history, disables since cutoff.",
    )
    negative_duration_policy: Literal["record", "clamp", "drop"] = Field(
        default="record"
    )

    # Histogram buckets: start, start*factor, ... (count finite buckets)
    histogram_bucket_start: float = Field(default=86400.0, gt=0)
    histogram_bucket_factor: float = Field(default=2.0, gt=1)
    histogram_bucket_count: int = Field(default=10, ge=1, le=50)

    # Serving
    scrape_timeout: float = Field(default=60.0, gt=0, le=600)
    listen_host: str = Field(default="0.0.0.0")
    listen_port: int = Field(default=8000, ge=1, le=65535)

    # Logging
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
    )
    log_format: str = Field(default="json", pattern="^(json|text)$")

    @model_validator(mode="before")
    @classmethod
    def split_owner_repo(cls, data):
        """Accept GITHUB_REPO=owner/repo when GITHUB_ORG is not set."""
        if isinstance(data, dict):
            repo = data.get("github_repo")
            if isinstance(repo, str) and "/" in repo and not data.get("github_org"):
                org, _, name = repo.partition("/")
                data = {**data, "github_org": org, "github_repo": name}
        return data

    @field_validator("custom_labels", mode="before")
    @classmethod
    def parse_custom_labels(cls, v):
        if isinstance(v, str):
            return parse_selectors(v)
        return v

    @field_validator("custom_labels")
    @classmethod
    def validate_selectors(cls, v: list[str]) -> list[str]:
        """Reject empty label names and names padded with whitespace.

        Selectors are used verbatim as the labels metric label value.
        """
        for selector in v:
            for name in selector.split(SELECTOR_SEPARATOR):
                if not name or name != name.strip():
                    raise ValueError(f"Invalid label selector: '{selector}'")
        return v

    @field_validator("github_base_url")
    @classmethod
    def strip_base_url(cls, v: str) -> str:
        return v.rstrip("/")

    @model_validator(mode="after")
    def validate_github_config(self) -> "ExporterConfig":
        """Credential, organization and repository are required."""
        if not self.github_token.get_secret_value():
            raise ValueError("GITHUB_TOKEN is required")
        if not self.github_org:
            raise ValueError("GITHUB_ORG is required (or GITHUB_REPO=owner/repo)")
        if not self.github_repo or "/" in self.github_repo:
            raise ValueError("GITHUB_REPO must be a repository name")
        return self


def load_config(**overrides) -> ExporterConfig:
    """Load and validate configuration.

    Raises:
        ConfigError: If a required value is missing or a value is invalid.
    """
    try:
        return ExporterConfig(**overrides)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


@lru_cache(maxsize=1)
def get_config() -> ExporterConfig:
    """Get global configuration singleton.

    First call loads from environment + .env file, subsequent calls return
    the cached instance.

    Raises:
        ConfigError: If configuration values are missing or invalid.
    """
    return load_config()


def reset_config() -> None:
    """Reset configuration singleton. Only use in test code."""
    get_config.cache_clear()
