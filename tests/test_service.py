import asyncio
from datetime import datetime, timedelta

from deadline_engine.dispatcher import AlertDispatcher
from deadline_engine.events import Bus, E
from deadline_engine.schema import Event, Stage
from deadline_engine.service import NotificationService
from deadline_engine.stores.memory_store import MemoryStore

START = datetime(2025, 3, 10, 9, 0)


class RecordingChannel:
    def __init__(self):
        self.permission = "default"
        self.requests = 0
        self.tones = 0
        self.notified = []

    def request_permission(self):
        self.requests += 1
        self.permission = "granted"
        return self.permission

    def play_tone(self):
        self.tones += 1

    def notify(self, title, body):
        self.notified.append(title)


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def sample_events():
    return [
        Event(
            "e1",
            "Hackathon",
            [
                Stage(id="s1", name="Idea", deadline_end=datetime(2025, 3, 11, 12, 0)),
                Stage(id="s2", name="Registration", deadline_end=datetime(2025, 3, 1, 12, 0)),
                Stage(id="s3", name="Done", deadline_end=datetime(2025, 3, 10, 12, 0), is_completed=True),
            ],
        )
    ]


def build(events_provider=sample_events, scan_interval=60.0):
    bus = Bus()
    clock = Clock(START)
    store = MemoryStore()
    channel = RecordingChannel()
    shown = []
    dispatcher = AlertDispatcher(
        store, "u1", channel, bus=bus, toast=shown.append, clock=clock, retry_base_delay=0
    )
    service = NotificationService(
        store,
        dispatcher,
        events_provider,
        user_id="u1",
        clock=clock,
        bus=bus,
        scan_interval=scan_interval,
        settle_delay=0,
    )
    return service, dispatcher, store, channel, clock, shown


def test_scan_once_dispatches_and_emits_each_key_once_per_session():
    service, _, _, channel, _, shown = build()
    surfaced_events = []
    service.bus.on(E.ALERT_SURFACED, lambda candidate: surfaced_events.append(candidate.key_text))

    async def run():
        first = await service.scan_once()
        second = await service.scan_once()
        return first, second

    first, second = asyncio.run(run())
    assert [c.key_text for c in first] == ["tomorrow-s1", "missed-end-s2"]
    assert second == []
    assert surfaced_events == ["tomorrow-s1", "missed-end-s2"]
    assert [alert.key for alert in shown] == ["tomorrow-s1", "missed-end-s2"]
    assert channel.tones == 2


def test_snoozed_alert_resurfaces_after_snooze_in_same_session():
    service, dispatcher, _, _, clock, _ = build()

    async def run():
        await service.scan_once()
        result = await dispatcher.act("tomorrow-s1", "snooze_1h")
        assert result.ok

        clock.now = START + timedelta(minutes=30)
        assert await service.scan_once() == []

        clock.now = START + timedelta(minutes=90)
        return await service.scan_once()

    again = asyncio.run(run())
    assert [c.key_text for c in again] == ["tomorrow-s1"]


def test_dismissed_alert_never_resurfaces_until_undismissed():
    service, dispatcher, _, _, clock, _ = build()

    async def run():
        await service.scan_once()
        await dispatcher.act("missed-end-s2", "dismiss")
        clock.now = START + timedelta(days=3)
        later = await service.scan_once()
        assert "missed-end-s2" not in [c.key_text for c in later]

        await service.undismiss("missed-end-s2")
        return await service.scan_once()

    again = asyncio.run(run())
    assert [c.key_text for c in again] == ["missed-end-s2"]


def test_missing_data_makes_pass_a_no_op():
    service, _, _, _, _, shown = build(events_provider=lambda: [])
    assert asyncio.run(service.scan_once()) == []

    def broken():
        raise OSError("events not loaded")

    broken_service, _, _, _, _, broken_shown = build(events_provider=broken)
    assert asyncio.run(broken_service.scan_once()) == []
    assert shown == [] and broken_shown == []


def test_async_events_provider_is_awaited():
    async def provider():
        return sample_events()

    service, _, _, _, _, _ = build(events_provider=provider)
    assert len(asyncio.run(service.scan_once())) == 2


def test_listener_error_does_not_stop_pass():
    service, _, _, _, _, shown = build()

    def explode(candidate):
        raise RuntimeError("listener bug")

    service.bus.on(E.ALERT_SURFACED, explode)
    surfaced = asyncio.run(service.scan_once())
    assert len(surfaced) == 2
    assert len(shown) == 2


def test_run_one_shot_requests_permission_and_stops():
    service, _, _, channel, _, shown = build(scan_interval=0)

    async def run():
        await service.run(asyncio.Event())

    asyncio.run(run())
    assert channel.requests == 1
    assert channel.notified == ["Deadline Tomorrow: Idea", "Missed Deadline: Registration"]
    assert service.last_scan_at == START
    assert len(shown) == 2


def test_run_stops_on_shutdown_during_periodic_scans():
    service, _, _, _, _, _ = build(scan_interval=3600)

    async def run():
        shutdown = asyncio.Event()
        task = asyncio.create_task(service.run(shutdown))
        await asyncio.sleep(0.05)
        shutdown.set()
        await asyncio.wait_for(task, timeout=5)

    asyncio.run(run())
    assert service.last_scan_at == START


def test_snooze_written_through_another_bus_is_picked_up_from_the_store():
    service, _, store, _, clock, _ = build()
    other = AlertDispatcher(store, "u1", RecordingChannel(), bus=Bus(), clock=clock, retry_base_delay=0)

    async def run():
        first = await service.scan_once()
        assert (await other.snooze("tomorrow-s1", 1)).ok

        clock.now = START + timedelta(minutes=30)
        assert await service.scan_once() == []

        clock.now = START + timedelta(minutes=90)
        again = await service.scan_once()
        later = await service.scan_once()
        return first, again, later

    first, again, later = asyncio.run(run())
    assert [c.key_text for c in first] == ["tomorrow-s1", "missed-end-s2"]
    assert [c.key_text for c in again] == ["tomorrow-s1"]
    assert later == []


def test_snooze_only_releases_the_snoozing_users_service():
    bus = Bus()
    clock = Clock(START)
    store = MemoryStore()
    services = {}
    dispatchers = {}
    for user_id in ("alice", "bob"):
        dispatchers[user_id] = AlertDispatcher(
            store, user_id, RecordingChannel(), bus=bus, toast=lambda alert: None, clock=clock, retry_base_delay=0
        )
        services[user_id] = NotificationService(
            store, dispatchers[user_id], sample_events, user_id=user_id, clock=clock, bus=bus, settle_delay=0
        )

    async def run():
        await services["alice"].scan_once()
        await services["bob"].scan_once()
        assert (await dispatchers["alice"].snooze("tomorrow-s1", 1)).ok
        return await services["bob"].scan_once()

    assert asyncio.run(run()) == []
    assert "tomorrow-s1" not in services["alice"].surfaced
    assert "tomorrow-s1" in services["bob"].surfaced


def test_run_unregisters_snooze_listener():
    service, _, _, _, _, _ = build(scan_interval=0)
    assert service._release in service.bus.listeners(E.ALERT_SNOOZED)

    asyncio.run(service.run(asyncio.Event()))
    assert service._release not in service.bus.listeners(E.ALERT_SNOOZED)


def test_concurrent_passes_dispatch_each_key_once():
    service, _, _, channel, _, shown = build()

    async def run():
        return await asyncio.gather(service.scan_once(), service.scan_once())

    first, second = asyncio.run(run())
    keys = [c.key_text for c in first + second]
    assert sorted(keys) == ["missed-end-s2", "tomorrow-s1"]
    assert len(shown) == 2
    assert channel.tones == 2
