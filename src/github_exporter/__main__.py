"""github-exporter entrypoint.

Usage:
    github-exporter
    python -m github_exporter

Environment:
    GITHUB_TOKEN, GITHUB_ORG, GITHUB_REPO are required.
    See config.py for all variables.
"""

import logging
import sys

import uvicorn

from github_exporter.config import ConfigError, get_config
from github_exporter.logging_config import configure_logging
from github_exporter.server import create_app

logger = logging.getLogger("github_exporter.main")


def main() -> None:
    configure_logging()

    try:
        config = get_config()
    except ConfigError as e:
        logger.error("config_invalid", extra={"error": str(e)})
        sys.exit(1)

    configure_logging(config.log_level, config.log_format)
    logger.info(
        "exporter_starting",
        extra={
            "org": config.github_org,
            "repo": config.github_repo,
            "custom_labels": config.custom_labels,
            "listen_port": config.listen_port,
        },
    )

    app = create_app(config)
    uvicorn.run(app, host=config.listen_host, port=config.listen_port, log_config=None)


if __name__ == "__main__":
    main()
