"""github-exporter - Prometheus metrics for GitHub issues.

Pulls every issue of one repository on each scrape and exposes:
- issue counts per label, per combined label selector and per state
- time-to-close histograms per label and per selector

Python Version: 3.10+ required
"""

from .__version__ import __version__
from .config import ConfigError, ExporterConfig, get_config, load_config, reset_config
from .logging_config import StructuredFormatter, TextFormatter, configure_logging
from .models import InvalidStateError, Issue, IssuePage, IssueState

__all__ = [
    "__version__",
    "ConfigError",
    "ExporterConfig",
    "InvalidStateError",
    "Issue",
    "IssuePage",
    "IssueState",
    "StructuredFormatter",
    "TextFormatter",
    "configure_logging",
    "get_config",
    "load_config",
    "reset_config",
]
