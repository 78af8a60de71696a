"""Logging setup.

Call ``setup_logging`` once at startup, then use ``logger.info(...)`` and
friends from any module.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Literal, Union

from loguru import logger

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL", "FATAL"]

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level:<8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} - {message}"

_LEVEL_ALIAS = {"FATAL": "CRITICAL"}


def _normalize_level(level: Union[str, LogLevel]) -> str:
    return _LEVEL_ALIAS.get(str(level).upper(), str(level).upper())


def _file_handler(path: Path, *, level: str, retention: str) -> dict:
    return {
        "sink": path,
        "level": level,
        "format": FILE_FORMAT,
        "rotation": "5 MB",
        "retention": retention,
        "encoding": "utf-8",
    }


def setup_logging(
    log_level: Union[str, LogLevel],
    log_file: Union[str, Path, None],
    console_level: Union[str, LogLevel] = "INFO",
) -> None:
    """Configure a coloured stderr sink plus main and error-only log files."""

    handlers: list[dict] = [
        {
            "sink": sys.stderr,
            "level": _normalize_level(console_level),
            "format": CONSOLE_FORMAT,
            "colorize": True,
        }
    ]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        error_path = log_path.with_name(f"{log_path.stem}_error{log_path.suffix}")
        handlers.append(_file_handler(log_path, level=_normalize_level(log_level), retention="14 days"))
        handlers.append(_file_handler(error_path, level="ERROR", retention="60 days"))

    logger.configure(handlers=handlers)


__all__ = ["setup_logging", "logger"]
