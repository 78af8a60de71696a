"""Preference and dismissal store interface."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from deadline_engine.schema import PREFERENCE_FLAGS, DismissedNotification, NotificationPreferences


class NotificationStore(Protocol):
    """Per-user preferences plus dismissals keyed by ``(user_id, key)``."""

    async def get_preferences(self, user_id: str) -> NotificationPreferences: ...

    async def update_preferences(self, user_id: str, **changes: bool) -> NotificationPreferences: ...

    async def list_dismissals(self, user_id: str) -> list[DismissedNotification]: ...

    async def upsert_dismissal(self, user_id: str, key: str, dismissed_until: Optional[datetime]) -> None: ...

    async def clear_dismissal(self, user_id: str, key: str) -> None: ...


def validate_preference_changes(changes: dict) -> dict[str, bool]:
    """Reject unknown preference names; coerce values to bool."""

    unknown = sorted(set(changes) - set(PREFERENCE_FLAGS))
    if unknown:
        raise ValueError(f"Unknown preference fields {unknown}")
    return {name: bool(value) for name, value in changes.items()}
