"""Event bus carrying surfaced alerts and user actions to listeners."""

from __future__ import annotations

from typing import Callable, Optional

from pyee.asyncio import AsyncIOEventEmitter

from deadline_engine.logger import logger


class E:
    ALERT_SURFACED = "alert.surfaced"
    ALERT_SNOOZED = "alert.snoozed"
    ALERT_DISMISSED = "alert.dismissed"
    WRITE_FAILED = "alert.write_failed"
    SCAN_COMPLETED = "scan.completed"


class Bus(AsyncIOEventEmitter):
    """Emitter whose listener errors are logged instead of raised."""

    def __init__(self) -> None:
        super().__init__()
        super().on("error", self._log_listener_error)

    @staticmethod
    def _log_listener_error(exc: BaseException) -> None:
        logger.opt(exception=exc).error(f"Event listener failed: {exc}")

    def on(self, event: str, f: Optional[Callable] = None):
        if f is None:
            return lambda handler: self.on(event, handler)
        logger.debug(f"Registered listener: {event} -> {getattr(f, '__name__', f)}")
        return super().on(event, f)


bus = Bus()

__all__ = ["Bus", "E", "bus"]
