"""Core data schema for events, stages and notification state."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from deadline_engine.keys import BOUNDARY_END, BOUNDARY_START, NotificationKey

UPCOMING = "upcoming"
MISSED = "missed"


@dataclass
class Stage:
    """One phase of a tracked event with its own deadline window."""

    id: str
    name: str
    deadline_end: datetime
    deadline_start: Optional[datetime] = None
    is_completed: bool = False
    completed_at: Optional[datetime] = None

    def boundaries(self) -> list[tuple[str, datetime]]:
        """Return (boundary, timestamp) pairs, end first."""

        pairs = [(BOUNDARY_END, self.deadline_end)]
        if self.deadline_start is not None:
            pairs.append((BOUNDARY_START, self.deadline_start))
        return pairs


@dataclass
class Event:
    """Tracked event owning its stages."""

    id: str
    title: str
    stages: list[Stage] = field(default_factory=list)


@dataclass
class NotificationPreferences:
    """Per-user reminder switches; everything is on for a new user."""

    user_id: str
    notify_on_day: bool = True
    notify_1_day_before: bool = True
    notify_7_days_before: bool = True
    sound_enabled: bool = True


PREFERENCE_FLAGS = ("notify_on_day", "notify_1_day_before", "notify_7_days_before", "sound_enabled")


@dataclass
class DismissedNotification:
    """Persisted dismissal; ``dismissed_until=None`` means permanent."""

    user_id: str
    notification_key: str
    dismissed_until: Optional[datetime] = None


@dataclass(frozen=True)
class NotificationCandidate:
    """A reminder the scanner decided is due for one stage boundary."""

    key: NotificationKey
    category: str
    event_id: str
    event_title: str
    stage_id: str
    stage_name: str
    boundary: str
    deadline: datetime
    title: str
    body: str

    @property
    def key_text(self) -> str:
        return str(self.key)


def toggle_stage_completion(stage: Stage, completed: bool, now: datetime) -> Stage:
    """Mark a stage complete (stamping ``completed_at``) or reopen it."""

    stage.is_completed = completed
    stage.completed_at = now if completed else None
    return stage
