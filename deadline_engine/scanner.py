"""Deadline scanning: which reminders are due for each stage boundary."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from deadline_engine.keys import (
    BOUNDARY_END,
    BOUNDARY_START,
    WINDOW_7_DAYS,
    WINDOW_MISSED,
    WINDOW_TOMORROW,
    NotificationKey,
    OnDayKey,
    RelativeOnceKey,
)
from deadline_engine.schema import MISSED, UPCOMING, Event, NotificationCandidate, NotificationPreferences, Stage

_WINDOW_TODAY = "today"

_TITLES = {
    (_WINDOW_TODAY, BOUNDARY_END): "Deadline Today: {stage}",
    (_WINDOW_TODAY, BOUNDARY_START): "Starts Today: {stage}",
    (WINDOW_TOMORROW, BOUNDARY_END): "Deadline Tomorrow: {stage}",
    (WINDOW_TOMORROW, BOUNDARY_START): "Starts Tomorrow: {stage}",
    (WINDOW_7_DAYS, BOUNDARY_END): "Upcoming: {stage}",
    (WINDOW_7_DAYS, BOUNDARY_START): "Starting Soon: {stage}",
    (WINDOW_MISSED, BOUNDARY_END): "Missed Deadline: {stage}",
}

_BODIES = {
    (_WINDOW_TODAY, BOUNDARY_END): "is due today!",
    (_WINDOW_TODAY, BOUNDARY_START): "starts today!",
    (WINDOW_TOMORROW, BOUNDARY_END): "is due tomorrow!",
    (WINDOW_TOMORROW, BOUNDARY_START): "starts tomorrow!",
    (WINDOW_7_DAYS, BOUNDARY_END): "is due in 7 days!",
    (WINDOW_7_DAYS, BOUNDARY_START): "starts in 7 days!",
    (WINDOW_MISSED, BOUNDARY_END): "deadline has passed!",
}


def to_viewer_time(moment: datetime, now: datetime) -> datetime:
    """Express ``moment`` in the same clock as ``now`` so days and order compare."""

    if now.tzinfo is not None:
        if moment.tzinfo is None:
            return moment.replace(tzinfo=now.tzinfo)
        return moment.astimezone(now.tzinfo)
    if moment.tzinfo is not None:
        return moment.astimezone().replace(tzinfo=None)
    return moment


def _candidate(
    event: Event,
    stage: Stage,
    boundary: str,
    deadline: datetime,
    window: str,
    key: NotificationKey,
    category: str,
) -> NotificationCandidate:
    body = _BODIES[(window, boundary)]
    return NotificationCandidate(
        key=key,
        category=category,
        event_id=event.id,
        event_title=event.title,
        stage_id=stage.id,
        stage_name=stage.name,
        boundary=boundary,
        deadline=deadline,
        title=_TITLES[(window, boundary)].format(stage=stage.name),
        body=f'{event.title} - Stage "{stage.name}" {body}',
    )


def _scan_stage(
    event: Event,
    stage: Stage,
    now: datetime,
    today: date,
    preferences: NotificationPreferences,
) -> list[NotificationCandidate]:
    found: list[NotificationCandidate] = []
    for boundary, moment in stage.boundaries():
        local = to_viewer_time(moment, now)
        day = local.date()

        if preferences.notify_on_day and day == today:
            key = OnDayKey(stage_id=stage.id, boundary=boundary, day=day)
            found.append(_candidate(event, stage, boundary, moment, _WINDOW_TODAY, key, UPCOMING))

        if preferences.notify_1_day_before and day == today + timedelta(days=1):
            key = RelativeOnceKey(stage_id=stage.id, boundary=boundary, window=WINDOW_TOMORROW)
            found.append(_candidate(event, stage, boundary, moment, WINDOW_TOMORROW, key, UPCOMING))

        if preferences.notify_7_days_before and day == today + timedelta(days=7):
            key = RelativeOnceKey(stage_id=stage.id, boundary=boundary, window=WINDOW_7_DAYS)
            found.append(_candidate(event, stage, boundary, moment, WINDOW_7_DAYS, key, UPCOMING))

        if boundary == BOUNDARY_END and local < now:
            key = RelativeOnceKey(stage_id=stage.id, boundary=BOUNDARY_END, window=WINDOW_MISSED)
            found.append(_candidate(event, stage, boundary, moment, WINDOW_MISSED, key, MISSED))
    return found


def scan_stages(
    now: datetime,
    events: Iterable[Event],
    preferences: Optional[NotificationPreferences],
) -> list[NotificationCandidate]:
    """Return every reminder due at ``now`` for the incomplete stages.

    Calendar-day checks use the day of ``now``, so pass ``now`` in the
    viewer's time zone. Missing preferences or events produce nothing.
    """

    if preferences is None:
        return []

    today = now.date()
    candidates: list[NotificationCandidate] = []
    for event in events or []:
        for stage in event.stages or []:
            if stage.is_completed:
                continue
            candidates.extend(_scan_stage(event, stage, now, today, preferences))
    return candidates
