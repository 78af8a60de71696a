"""Alert delivery and the snooze / dismiss actions offered on each alert."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from deadline_engine.channels import PERMISSION_DEFAULT, PERMISSION_GRANTED, AlertChannel
from deadline_engine.errors import DismissalWriteError
from deadline_engine.events import Bus, E, bus as default_bus
from deadline_engine.logger import logger
from deadline_engine.schema import MISSED, NotificationCandidate, NotificationPreferences
from deadline_engine.stores.base import NotificationStore

ACTION_SNOOZE_1H = "snooze_1h"
ACTION_SNOOZE_24H = "snooze_24h"
ACTION_DISMISS = "dismiss"
ALERT_ACTIONS = (ACTION_SNOOZE_1H, ACTION_SNOOZE_24H, ACTION_DISMISS)

_SNOOZE_HOURS = {ACTION_SNOOZE_1H: 1, ACTION_SNOOZE_24H: 24}


@dataclass
class Alert:
    """Visual alert for one surfaced candidate."""

    candidate: NotificationCandidate
    variant: str
    actions: tuple[str, ...] = ALERT_ACTIONS
    closed: bool = False

    @property
    def key(self) -> str:
        return self.candidate.key_text


@dataclass
class WriteResult:
    """Outcome of persisting a snooze or dismissal."""

    key: str
    ok: bool
    attempts: int
    dismissed_until: Optional[datetime] = None
    error: Optional[DismissalWriteError] = None


def _log_toast(alert: Alert) -> None:
    candidate = alert.candidate
    logger.info(f"[{candidate.category}] {candidate.title} - {candidate.body} ({alert.key})")


def _local_now() -> datetime:
    return datetime.now().astimezone()


class AlertDispatcher:
    """Plays the tone, shows the alert and raises the native notification.

    The channel is shared for the whole process. Store writes triggered by
    alert actions run as background tasks so the alert closes immediately.
    """

    def __init__(
        self,
        store: NotificationStore,
        user_id: str,
        channel: AlertChannel,
        *,
        bus: Optional[Bus] = None,
        toast: Callable[[Alert], None] = _log_toast,
        clock: Callable[[], datetime] = _local_now,
        retries: int = 3,
        retry_base_delay: float = 0.5,
    ) -> None:
        self.store = store
        self.user_id = user_id
        self.channel = channel
        self.bus = bus if bus is not None else default_bus
        self.toast = toast
        self.clock = clock
        self.retries = max(1, retries)
        self.retry_base_delay = retry_base_delay
        self.open_alerts: dict[str, Alert] = {}
        self._permission_requested = False
        self._pending: set[asyncio.Task] = set()

    def request_permission(self) -> str:
        """Ask for native notification permission at most once per session."""

        if not self._permission_requested and self.channel.permission == PERMISSION_DEFAULT:
            self._permission_requested = True
            try:
                self.channel.request_permission()
            except Exception as exc:  # noqa: BLE001
                logger.debug(f"Permission request failed: {exc}")
        return self.channel.permission

    def dispatch(self, candidate: NotificationCandidate, preferences: Optional[NotificationPreferences]) -> Alert:
        """Deliver one candidate on every available channel."""

        if preferences is not None and preferences.sound_enabled:
            try:
                self.channel.play_tone()
            except Exception as exc:  # noqa: BLE001
                logger.debug(f"Alert tone unavailable: {exc}")

        alert = Alert(candidate=candidate, variant="destructive" if candidate.category == MISSED else "default")
        self.open_alerts[alert.key] = alert
        self.toast(alert)

        if self.channel.permission == PERMISSION_GRANTED:
            try:
                self.channel.notify(candidate.title, candidate.body)
            except Exception as exc:  # noqa: BLE001
                logger.debug(f"Native notification unavailable: {exc}")

        return alert

    def act(self, key: str, action: str) -> asyncio.Task:
        """Handle a click on an alert action; must run inside the event loop."""

        if action not in ALERT_ACTIONS:
            raise ValueError(f"Unknown alert action '{action}'")

        alert = self.open_alerts.pop(key, None)
        if alert is not None:
            alert.closed = True

        if action == ACTION_DISMISS:
            coro = self.dismiss(key)
        else:
            coro = self.snooze(key, _SNOOZE_HOURS[action])

        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> list[WriteResult]:
        """Wait for outstanding action writes."""

        if not self._pending:
            return []
        return list(await asyncio.gather(*self._pending))

    async def snooze(self, key: str, hours: float) -> WriteResult:
        """Suppress ``key`` until ``hours`` from now."""

        if hours <= 0:
            raise ValueError("Snooze duration must be positive")
        until = self.clock() + timedelta(hours=hours)
        return await self._write(key, until, E.ALERT_SNOOZED)

    async def dismiss(self, key: str) -> WriteResult:
        """Suppress ``key`` permanently."""

        return await self._write(key, None, E.ALERT_DISMISSED)

    async def _write(self, key: str, until: Optional[datetime], event: str) -> WriteResult:
        delay = self.retry_base_delay
        error: Optional[DismissalWriteError] = None

        for attempt in range(1, self.retries + 1):
            try:
                await self.store.upsert_dismissal(self.user_id, key, until)
            except Exception as exc:  # noqa: BLE001
                error = DismissalWriteError(key, exc)
                logger.warning(f"Dismissal write failed (attempt {attempt}/{self.retries}): {error}")
                if attempt < self.retries:
                    await asyncio.sleep(delay)
                    delay *= 2
                continue

            self.bus.emit(event, key=key, user_id=self.user_id, dismissed_until=until)
            return WriteResult(key=key, ok=True, attempts=attempt, dismissed_until=until)

        result = WriteResult(key=key, ok=False, attempts=self.retries, dismissed_until=until, error=error)
        logger.error(f"Giving up on dismissal write for {key}: {error}")
        self.bus.emit(E.WRITE_FAILED, result=result)
        return result
