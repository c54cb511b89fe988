"""
Logging configuration.
JSON lines in production, human-readable in development.

The globe clock runs APScheduler jobs many times a second, and APScheduler
reports every job run at INFO. Its executor logger is therefore held at
WARNING whenever the frame job fires faster than once a second, so the
service log stays readable.
"""

from __future__ import annotations

import logging
import sys

import json_log_formatter

from travio_geo.config import Settings, get_settings

logger = logging.getLogger(__name__)

DEV_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
DEV_DATEFMT = "%Y-%m-%d %H:%M:%S"


class GlobeJSONFormatter(json_log_formatter.JSONFormatter):
    """JSON lines tagged with the logger name and level."""

    def json_record(self, message, extra, record):
        extra = super().json_record(message, extra, record)
        extra["logger"] = record.name
        extra["level"] = record.levelname
        return extra


def setup_logging() -> None:
    """Configure root logging based on environment."""
    settings = get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    handler = logging.StreamHandler(sys.stdout)
    if settings.env == "production":
        handler.setFormatter(GlobeJSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(DEV_FORMAT, datefmt=DEV_DATEFMT))
    root.handlers = [handler]

    _quiet_third_party(settings)
    logger.debug("Logging configured: env=%s level=%s", settings.env, logging.getLevelName(level))


def scheduler_runs_per_second(settings: Settings) -> float:
    """How often the globe clock fires, counting both jobs."""
    nav = settings.navigation
    return 1.0 / nav.spin_interval + 1.0 / nav.frame_interval


def _quiet_third_party(settings: Settings) -> None:
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    nav = settings.navigation
    executors = logging.getLogger("apscheduler.executors")
    if not settings.scheduler.enabled or nav.frame_interval >= 1.0:
        executors.setLevel(logging.NOTSET)
        return
    executors.setLevel(logging.WARNING)
    logger.debug("apscheduler job logs muted: %.0f runs/s", scheduler_runs_per_second(settings))
