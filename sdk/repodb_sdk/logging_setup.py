"""
Logging configuration for applications embedding RepoDB.

The SDK itself only logs through module loggers; call setup_logging() once
at startup to get a configured root handler.
"""

from __future__ import annotations

import logging
from typing import IO, Optional

import json_log_formatter

from .config import Settings

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Third-party loggers that are chatty at INFO (one line per HTTP request)
QUIET_LOGGERS = ("httpx", "httpcore")


class RepoDbJSONFormatter(json_log_formatter.JSONFormatter):
    """One JSON object per line, with level and logger next to the message."""

    def json_record(self, message: str, extra: dict, record: logging.LogRecord) -> dict:
        payload = super().json_record(message, extra, record)
        payload["level"] = record.levelname
        payload["logger"] = record.name
        return payload


def build_formatter(log_format: str) -> logging.Formatter:
    """Formatter for ``log_format`` ("json" or "text")."""
    if log_format.lower() == "json":
        return RepoDbJSONFormatter()
    return logging.Formatter(TEXT_FORMAT)


def setup_logging(settings: Settings, stream: Optional[IO[str]] = None) -> logging.Handler:
    """Install a single root handler configured from settings.

    Args:
        settings: SDK settings (log_level, log_format)
        stream: Where to write; stderr when omitted

    Returns:
        The installed handler
    """
    handler = logging.StreamHandler(stream)
    handler.setFormatter(build_formatter(settings.log_format))

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    root_logger.handlers = [handler]

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return handler
