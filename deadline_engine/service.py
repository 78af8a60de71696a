"""Scan loop driving the scanner, gate and dispatcher."""

from __future__ import annotations

import asyncio
import inspect
from datetime import datetime
from typing import Awaitable, Callable, Optional, Union

from deadline_engine.dispatcher import AlertDispatcher
from deadline_engine.engine import scan
from deadline_engine.events import Bus, E, bus as default_bus
from deadline_engine.logger import logger
from deadline_engine.schema import Event, NotificationCandidate
from deadline_engine.stores.base import NotificationStore

EventsProvider = Callable[[], Union[list[Event], Awaitable[list[Event]]]]


async def _wait(shutdown_event: asyncio.Event, seconds: float) -> bool:
    """Sleep up to ``seconds``; True when shutdown was requested meanwhile."""

    try:
        await asyncio.wait_for(shutdown_event.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        return False
    return True


class NotificationService:
    """Runs scan passes for one user.

    The first pass waits ``settle_delay`` so event data can load. Later passes
    repeat every ``scan_interval`` seconds; ``scan_interval <= 0`` scans once.
    Keys surfaced in this session are not shown again until a snooze for them
    is seen, so repeated passes never stack duplicate alerts. Snoozes are read
    from the store each pass, so ones written by another process count too.
    """

    def __init__(
        self,
        store: NotificationStore,
        dispatcher: AlertDispatcher,
        events_provider: EventsProvider,
        *,
        user_id: str,
        clock: Callable[[], datetime],
        bus: Optional[Bus] = None,
        scan_interval: float = 60.0,
        settle_delay: float = 2.0,
    ) -> None:
        self.store = store
        self.dispatcher = dispatcher
        self.events_provider = events_provider
        self.user_id = user_id
        self.clock = clock
        self.bus = bus if bus is not None else default_bus
        self.scan_interval = scan_interval
        self.settle_delay = settle_delay
        self.surfaced: set[str] = set()
        self._snoozed_until: dict[str, datetime] = {}
        self.last_scan_at: Optional[datetime] = None
        self._lock = asyncio.Lock()

        self.bus.on(E.ALERT_SNOOZED, self._release)

    def _release(self, key: str, user_id: Optional[str] = None, **_) -> None:
        # a snoozed alert may surface again once the snooze runs out
        if user_id == self.user_id:
            self.surfaced.discard(key)

    def _release_new_snoozes(self, dismissals) -> None:
        for record in dismissals:
            until = record.dismissed_until
            if until is None or self._snoozed_until.get(record.notification_key) == until:
                continue
            self._snoozed_until[record.notification_key] = until
            self.surfaced.discard(record.notification_key)

    async def _load_events(self) -> list[Event]:
        result = self.events_provider()
        if inspect.isawaitable(result):
            result = await result
        return list(result or [])

    async def scan_once(self) -> list[NotificationCandidate]:
        """Run one pass and dispatch every surviving candidate."""

        async with self._lock:
            now = self.clock()
            self.last_scan_at = now
            try:
                events = await self._load_events()
                preferences = await self.store.get_preferences(self.user_id)
                dismissals = await self.store.list_dismissals(self.user_id)
            except Exception as exc:  # noqa: BLE001
                logger.warning(f"Notification data unavailable, skipping pass: {exc}")
                return []

            self._release_new_snoozes(dismissals)

            if preferences is None or not events:
                logger.debug("No events or preferences loaded yet, nothing to scan")
                return []

            surfaced = scan(now, events, preferences, dismissals, surfaced=self.surfaced)
            for candidate in surfaced:
                self.surfaced.add(candidate.key_text)
                try:
                    self.dispatcher.dispatch(candidate, preferences)
                except Exception as exc:  # noqa: BLE001
                    logger.opt(exception=exc).error(f"Could not dispatch {candidate.key_text}")
                self.bus.emit(E.ALERT_SURFACED, candidate)

            logger.debug(f"Scan at {now.isoformat()} surfaced {len(surfaced)} alert(s)")
            self.bus.emit(E.SCAN_COMPLETED, now=now, surfaced=surfaced)
            return surfaced

    async def undismiss(self, key: str) -> None:
        """Clear a stored dismissal so the key can fire again."""

        await self.store.clear_dismissal(self.user_id, key)
        self.surfaced.discard(key)

    async def run(self, shutdown_event: asyncio.Event) -> None:
        """Scan until ``shutdown_event`` is set."""

        self.dispatcher.request_permission()
        logger.info("Notification service started")

        if not await _wait(shutdown_event, self.settle_delay):
            while not shutdown_event.is_set():
                await self.scan_once()
                if self.scan_interval <= 0:
                    break
                if await _wait(shutdown_event, self.scan_interval):
                    break

        await self.dispatcher.drain()
        self.bus.remove_listener(E.ALERT_SNOOZED, self._release)
        logger.info("Notification service stopped")
