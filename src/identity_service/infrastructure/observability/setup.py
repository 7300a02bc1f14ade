"""Logging configuration for the service process."""

import logging

from identity_service.config.settings import Settings

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
# Records from the audit/http loggers are already JSON; keep the line bare
JSON_FORMAT = "%(message)s"


def configure_logging(settings: Settings) -> None:
    """Install the root handler according to settings.log_level/log_format"""
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format=JSON_FORMAT if settings.log_format == "json" else TEXT_FORMAT,
        force=True,
    )
