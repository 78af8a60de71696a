"""Single scan pass: scanner followed by the dismissal gate."""

from __future__ import annotations

from datetime import datetime
from typing import AbstractSet, Iterable, Optional

from deadline_engine.gate import filter_candidates
from deadline_engine.scanner import scan_stages
from deadline_engine.schema import DismissedNotification, Event, NotificationCandidate, NotificationPreferences


def scan(
    now: datetime,
    events: Iterable[Event],
    preferences: Optional[NotificationPreferences],
    dismissals: Iterable[DismissedNotification],
    surfaced: Optional[AbstractSet[str]] = None,
) -> list[NotificationCandidate]:
    """Return the reminders that are due at ``now`` and not suppressed."""

    candidates = scan_stages(now, events, preferences)
    return filter_candidates(candidates, dismissals, now, surfaced=surfaced)
