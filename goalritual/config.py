"""Settings loaded from <root>/config.yaml, plus logging setup."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from goalritual.fileio import read_yaml

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass
class Settings:
    timezone: str = "UTC"
    debounce_seconds: float = 1.0
    tick_seconds: float = 60.0
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Settings:
        if not d or not isinstance(d, dict):
            return cls()
        level = str(d.get("log_level", "INFO")).upper()
        return cls(
            timezone=str(d.get("timezone", "UTC")),
            debounce_seconds=max(0.0, float(d.get("debounce_seconds", 1.0))),
            tick_seconds=max(1.0, float(d.get("tick_seconds", 60.0))),
            log_level=level if level in VALID_LOG_LEVELS else "INFO",
        )

    def tzinfo(self) -> ZoneInfo:
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown timezone %r, falling back to UTC", self.timezone)
            return ZoneInfo("UTC")


def load_settings(path: Path) -> Settings:
    """Load settings, falling back to defaults on a missing or broken file."""
    try:
        return Settings.from_dict(read_yaml(path))
    except (ValueError, TypeError) as e:
        logger.warning("Ignoring invalid config %s: %s", path, e)
        return Settings()
    except yaml.YAMLError as e:
        logger.warning("Could not read config %s: %s", path, e)
        return Settings()


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
