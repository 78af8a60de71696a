"""In-process store used by tests and the demos."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Optional

from deadline_engine.schema import DismissedNotification, NotificationPreferences
from deadline_engine.stores.base import validate_preference_changes


class MemoryStore:
    """Dict-backed implementation of ``NotificationStore``."""

    def __init__(self) -> None:
        self._preferences: dict[str, NotificationPreferences] = {}
        self._dismissals: dict[tuple[str, str], DismissedNotification] = {}

    async def get_preferences(self, user_id: str) -> NotificationPreferences:
        if user_id not in self._preferences:
            self._preferences[user_id] = NotificationPreferences(user_id=user_id)
        return replace(self._preferences[user_id])

    async def update_preferences(self, user_id: str, **changes: bool) -> NotificationPreferences:
        updates = validate_preference_changes(changes)
        current = await self.get_preferences(user_id)
        self._preferences[user_id] = replace(current, **updates)
        return replace(self._preferences[user_id])

    async def list_dismissals(self, user_id: str) -> list[DismissedNotification]:
        return [replace(record) for (owner, _), record in self._dismissals.items() if owner == user_id]

    async def upsert_dismissal(self, user_id: str, key: str, dismissed_until: Optional[datetime]) -> None:
        self._dismissals[(user_id, key)] = DismissedNotification(
            user_id=user_id,
            notification_key=key,
            dismissed_until=dismissed_until,
        )

    async def clear_dismissal(self, user_id: str, key: str) -> None:
        self._dismissals.pop((user_id, key), None)
