"""Runtime settings resolved from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime, tzinfo
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from deadline_engine.logger import logger

_PREFIX = "DEADLINE_ENGINE_"


def _env(name: str) -> Optional[str]:
    raw = os.getenv(_PREFIX + name)
    if raw is None or raw.strip() == "":
        return None
    return raw.strip()


def _parse_bool(raw: str) -> bool:
    return raw.lower() in ("1", "true", "yes", "on", "y")


def _parse_number(name: str, raw: str, default, cast):
    try:
        value = cast(raw)
    except ValueError:
        logger.warning(f"{_PREFIX}{name}={raw!r} is not a number, using {default}")
        return default
    if value < 0:
        logger.warning(f"{_PREFIX}{name}={raw!r} is negative, using {default}")
        return default
    return value


_ENV_FIELDS = {
    "db_path": ("DB_PATH", str),
    "user_id": ("USER_ID", str),
    "scan_interval_seconds": ("SCAN_INTERVAL", float),
    "settle_delay_seconds": ("SETTLE_DELAY", float),
    "timezone": ("TIMEZONE", str),
    "desktop_alerts": ("DESKTOP_ALERTS", bool),
    "write_retries": ("WRITE_RETRIES", int),
    "retry_base_delay": ("RETRY_BASE_DELAY", float),
    "log_level": ("LOG_LEVEL", str),
    "log_file": ("LOG_FILE", str),
}


@dataclass
class Settings:
    """Engine configuration; environment variables override the defaults."""

    db_path: str = "data/deadline_engine.db"
    user_id: str = "local"
    scan_interval_seconds: float = 60.0
    settle_delay_seconds: float = 2.0
    timezone: Optional[str] = None
    desktop_alerts: bool = True
    write_retries: int = 3
    retry_base_delay: float = 0.5
    log_level: str = "INFO"
    log_file: str = "logs/deadline_engine.log"

    def __post_init__(self) -> None:
        for attr, (name, cast) in _ENV_FIELDS.items():
            raw = _env(name)
            if raw is None:
                continue
            if cast is bool:
                value = _parse_bool(raw)
            elif cast in (int, float):
                value = _parse_number(name, raw, getattr(self, attr), cast)
            else:
                value = raw
            setattr(self, attr, value)

        self.write_retries = max(1, int(self.write_retries))
        self.log_level = self.log_level.upper()

    @property
    def tz(self) -> Optional[tzinfo]:
        """Configured zone, or ``None`` for the machine's local zone."""

        if not self.timezone:
            return None
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown time zone '{self.timezone}', falling back to the local zone")
            return None

    def now(self) -> datetime:
        """Current time as an aware datetime in the viewer's zone."""

        zone = self.tz
        if zone is None:
            return datetime.now().astimezone()
        return datetime.now(zone)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance, reading ``.env`` first."""

    load_dotenv()
    return Settings()
