import asyncio
from datetime import datetime, timedelta

from deadline_engine.channels import NullAlertChannel
from deadline_engine.dispatcher import AlertDispatcher
from deadline_engine.engine import scan
from deadline_engine.events import Bus
from deadline_engine.schema import Event, NotificationPreferences, Stage
from deadline_engine.stores.memory_store import MemoryStore
from deadline_engine.stores.sqlite_store import SqliteStore


def sample_events():
    return [
        Event(
            "e1",
            "Hackathon",
            [
                Stage(id="s1", name="Idea", deadline_end=datetime(2025, 3, 10, 18, 0)),
                Stage(id="s2", name="Prototype", deadline_end=datetime(2025, 3, 11, 12, 0)),
                Stage(id="s3", name="Registration", deadline_end=datetime(2025, 3, 1, 12, 0)),
            ],
        )
    ]


def keys_of(candidates):
    return [candidate.key_text for candidate in candidates]


def dispatcher_for(store, clock):
    return AlertDispatcher(store, "u1", NullAlertChannel(), bus=Bus(), clock=clock, retry_base_delay=0)


def test_scan_is_idempotent_until_dismissed():
    now = datetime(2025, 3, 10, 9, 0)
    preferences = NotificationPreferences(user_id="u1")

    async def run():
        store = MemoryStore()
        first = scan(now, sample_events(), preferences, await store.list_dismissals("u1"))
        second = scan(now, sample_events(), preferences, await store.list_dismissals("u1"))
        assert keys_of(first) == keys_of(second)
        assert keys_of(first) == ["end-s1-2025-03-10", "tomorrow-s2", "missed-end-s3"]

        dispatcher = dispatcher_for(store, lambda: now)
        for candidate in first:
            assert (await dispatcher.dismiss(candidate.key_text)).ok
        third = scan(now, sample_events(), preferences, await store.list_dismissals("u1"))
        assert third == []

    asyncio.run(run())


def test_snoozed_key_returns_after_snooze_expires():
    start = datetime(2025, 3, 10, 9, 0)
    preferences = NotificationPreferences(user_id="u1", notify_on_day=False, notify_7_days_before=False)
    events = [Event("e1", "Hackathon", [Stage(id="s1", name="Idea", deadline_end=datetime(2025, 3, 11, 12, 0))])]

    async def run():
        store = MemoryStore()
        dispatcher = dispatcher_for(store, lambda: start)
        result = await dispatcher.snooze("tomorrow-s1", 1)
        assert result.ok
        assert result.dismissed_until == start + timedelta(hours=1)

        dismissals = await store.list_dismissals("u1")
        assert scan(start + timedelta(minutes=30), events, preferences, dismissals) == []
        later = scan(start + timedelta(minutes=90), events, preferences, dismissals)
        assert keys_of(later) == ["tomorrow-s1"]

    asyncio.run(run())


def test_permanent_dismissal_survives_restart(tmp_path):
    db_path = str(tmp_path / "notifications.db")
    events = [Event("e1", "Hackathon", [Stage(id="s1", name="Idea", deadline_end=datetime(2025, 3, 1, 12, 0))])]

    async def dismiss_then_close():
        async with SqliteStore(db_path) as store:
            preferences = await store.get_preferences("u1")
            now = datetime(2025, 3, 2, 9, 0)
            assert keys_of(scan(now, events, preferences, [])) == ["missed-end-s1"]
            assert (await dispatcher_for(store, lambda: now).dismiss("missed-end-s1")).ok

    async def reopen_and_scan():
        async with SqliteStore(db_path) as store:
            preferences = await store.get_preferences("u1")
            dismissals = await store.list_dismissals("u1")
            for days in (1, 30, 365):
                now = datetime(2025, 3, 2, 9, 0) + timedelta(days=days)
                assert scan(now, events, preferences, dismissals) == []

    asyncio.run(dismiss_then_close())
    asyncio.run(reopen_and_scan())
