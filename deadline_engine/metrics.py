"""Deadline summary counts for dashboards."""

from __future__ import annotations

from datetime import datetime, timedelta

from deadline_engine.scanner import to_viewer_time
from deadline_engine.schema import Event


def deadline_summary(events: list[Event], now: datetime) -> dict:
    """Count events, completed/missed stages and upcoming deadlines."""

    if not events:
        return {
            "total_events": 0,
            "completed_events": 0,
            "completed_stages": 0,
            "missed_stages": 0,
            "upcoming_deadlines": {"today": 0, "this_week": 0, "this_month": 0},
        }

    today = now.date()
    completed_events = 0
    completed_stages = 0
    missed_stages = 0
    upcoming = {"today": 0, "this_week": 0, "this_month": 0}

    for event in events:
        stages = event.stages or []
        if stages and all(stage.is_completed for stage in stages):
            completed_events += 1

        for stage in stages:
            if stage.is_completed:
                completed_stages += 1
                continue

            deadline = to_viewer_time(stage.deadline_end, now)
            if deadline < now:
                missed_stages += 1
                continue

            if deadline.date() == today:
                upcoming["today"] += 1
            if deadline.date() <= today + timedelta(days=7):
                upcoming["this_week"] += 1
            if deadline.date() <= today + timedelta(days=30):
                upcoming["this_month"] += 1

    return {
        "total_events": len(events),
        "completed_events": completed_events,
        "completed_stages": completed_stages,
        "missed_stages": missed_stages,
        "upcoming_deadlines": upcoming,
    }
