"""SQLite-backed store; dismissals survive process restarts.

Timestamps are stored as ISO-8601 text.
"""

from __future__ import annotations

import os
from datetime import datetime
from typing import Optional

import aiosqlite

from deadline_engine.errors import StoreError
from deadline_engine.logger import logger
from deadline_engine.schema import PREFERENCE_FLAGS, DismissedNotification, NotificationPreferences
from deadline_engine.stores.base import validate_preference_changes

_SCHEMA_V1 = """
CREATE TABLE IF NOT EXISTS notification_preferences (
    user_id TEXT PRIMARY KEY,
    notify_on_day INTEGER NOT NULL DEFAULT 1,
    notify_1_day_before INTEGER NOT NULL DEFAULT 1,
    notify_7_days_before INTEGER NOT NULL DEFAULT 1,
    sound_enabled INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS dismissed_notifications (
    user_id TEXT NOT NULL,
    notification_key TEXT NOT NULL,
    dismissed_until TEXT,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (user_id, notification_key)
);
"""

_PREFERENCE_COLUMNS = ", ".join(PREFERENCE_FLAGS)


def _to_text(moment: Optional[datetime]) -> Optional[str]:
    return moment.isoformat() if moment is not None else None


def _from_text(raw: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(raw) if raw else None


class SqliteStore:
    """``NotificationStore`` on top of an aiosqlite connection."""

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        self.conn: Optional[aiosqlite.Connection] = None

    async def open(self) -> "SqliteStore":
        if self.db_path != ":memory:":
            db_dir = os.path.dirname(self.db_path)
            if db_dir:
                os.makedirs(db_dir, exist_ok=True)
        self.conn = await aiosqlite.connect(self.db_path)

        async with self.conn.execute("PRAGMA user_version") as cursor:
            row = await cursor.fetchone()
            user_version = row[0]

        if user_version < 1:
            await self.conn.executescript(_SCHEMA_V1)
            await self.conn.execute("PRAGMA user_version = 1")
            logger.debug(f"Initialised notification schema in {self.db_path}")

        await self.conn.commit()
        return self

    async def close(self) -> None:
        if self.conn is not None:
            await self.conn.close()
            self.conn = None

    async def __aenter__(self) -> "SqliteStore":
        return await self.open()

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _ensure_conn(self) -> aiosqlite.Connection:
        if self.conn is None:
            raise StoreError("Store is not open, call open() first")
        return self.conn

    async def get_preferences(self, user_id: str) -> NotificationPreferences:
        conn = self._ensure_conn()
        await conn.execute("INSERT OR IGNORE INTO notification_preferences (user_id) VALUES (?)", (user_id,))
        await conn.commit()
        async with conn.execute(
            f"SELECT {_PREFERENCE_COLUMNS} FROM notification_preferences WHERE user_id = ?",
            (user_id,),
        ) as cursor:
            row = await cursor.fetchone()
        flags = {name: bool(value) for name, value in zip(PREFERENCE_FLAGS, row)}
        return NotificationPreferences(user_id=user_id, **flags)

    async def update_preferences(self, user_id: str, **changes: bool) -> NotificationPreferences:
        updates = validate_preference_changes(changes)
        current = await self.get_preferences(user_id)
        if not updates:
            return current

        conn = self._ensure_conn()
        # column names come from PREFERENCE_FLAGS only
        assignments = ", ".join(f"{name} = ?" for name in updates)
        await conn.execute(
            f"UPDATE notification_preferences SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE user_id = ?",
            (*[int(value) for value in updates.values()], user_id),
        )
        await conn.commit()
        logger.trace(f"Updated preferences for {user_id}: {updates}")
        return await self.get_preferences(user_id)

    async def list_dismissals(self, user_id: str) -> list[DismissedNotification]:
        conn = self._ensure_conn()
        async with conn.execute(
            "SELECT notification_key, dismissed_until FROM dismissed_notifications WHERE user_id = ?",
            (user_id,),
        ) as cursor:
            rows = await cursor.fetchall()
        return [
            DismissedNotification(user_id=user_id, notification_key=row[0], dismissed_until=_from_text(row[1]))
            for row in rows
        ]

    async def upsert_dismissal(self, user_id: str, key: str, dismissed_until: Optional[datetime]) -> None:
        conn = self._ensure_conn()
        await conn.execute(
            "INSERT INTO dismissed_notifications (user_id, notification_key, dismissed_until) VALUES (?, ?, ?) "
            "ON CONFLICT (user_id, notification_key) DO UPDATE SET "
            "dismissed_until = excluded.dismissed_until, updated_at = CURRENT_TIMESTAMP",
            (user_id, key, _to_text(dismissed_until)),
        )
        await conn.commit()
        logger.trace(f"Upserted dismissal: user_id={user_id}, key={key}, until={dismissed_until}")

    async def clear_dismissal(self, user_id: str, key: str) -> None:
        conn = self._ensure_conn()
        await conn.execute(
            "DELETE FROM dismissed_notifications WHERE user_id = ? AND notification_key = ?",
            (user_id, key),
        )
        await conn.commit()
