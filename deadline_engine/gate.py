"""Suppression of dismissed, snoozed and already-surfaced reminders."""

from __future__ import annotations

from datetime import datetime
from typing import AbstractSet, Iterable, Optional

from deadline_engine.scanner import to_viewer_time
from deadline_engine.schema import DismissedNotification, NotificationCandidate


def is_dismissed(record: Optional[DismissedNotification], now: datetime) -> bool:
    """True for a permanent dismissal or a snooze that has not yet expired."""

    if record is None:
        return False
    if record.dismissed_until is None:
        return True
    return to_viewer_time(record.dismissed_until, now) > now


def index_dismissals(dismissals: Iterable[DismissedNotification]) -> dict[str, DismissedNotification]:
    """Index dismissal records by key; the last record for a key wins."""

    return {record.notification_key: record for record in dismissals or []}


def filter_candidates(
    candidates: Iterable[NotificationCandidate],
    dismissals: Iterable[DismissedNotification],
    now: datetime,
    surfaced: Optional[AbstractSet[str]] = None,
) -> list[NotificationCandidate]:
    """Keep the candidates that should actually surface at ``now``."""

    by_key = index_dismissals(dismissals)
    already = surfaced or frozenset()
    kept = []
    for candidate in candidates:
        key = candidate.key_text
        if key in already:
            continue
        if is_dismissed(by_key.get(key), now):
            continue
        kept.append(candidate)
    return kept
