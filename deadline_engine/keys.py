"""Notification key variants used for de-duplication and dismissal.

Two kinds of key exist. ``OnDayKey`` embeds the calendar date of the
boundary so the reminder may repeat if the deadline moves to another day.
``RelativeOnceKey`` is date independent and fires at most once per stage,
boundary and window unless the dismissal is cleared.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Union

BOUNDARY_START = "start"
BOUNDARY_END = "end"
BOUNDARIES = (BOUNDARY_END, BOUNDARY_START)

WINDOW_TOMORROW = "tomorrow"
WINDOW_7_DAYS = "7days"
WINDOW_MISSED = "missed"
WINDOWS = (WINDOW_TOMORROW, WINDOW_7_DAYS, WINDOW_MISSED)

_ON_DAY_RE = re.compile(r"^(start|end)-(.+)-(\d{4}-\d{2}-\d{2})$")
_MISSED_RE = re.compile(r"^missed-end-(.+)$")
_RELATIVE_START_RE = re.compile(r"^(tomorrow|7days)-start-(.+)$")
_RELATIVE_END_RE = re.compile(r"^(tomorrow|7days)-(.+)$")


def _check_boundary(boundary: str) -> None:
    if boundary not in BOUNDARIES:
        raise ValueError(f"Unknown boundary '{boundary}'")


@dataclass(frozen=True)
class OnDayKey:
    stage_id: str
    boundary: str
    day: date

    def __post_init__(self) -> None:
        _check_boundary(self.boundary)

    def __str__(self) -> str:
        return f"{self.boundary}-{self.stage_id}-{self.day.isoformat()}"


@dataclass(frozen=True)
class RelativeOnceKey:
    stage_id: str
    boundary: str
    window: str

    def __post_init__(self) -> None:
        _check_boundary(self.boundary)
        if self.window not in WINDOWS:
            raise ValueError(f"Unknown reminder window '{self.window}'")
        # passing a start date is not alarming
        if self.window == WINDOW_MISSED and self.boundary != BOUNDARY_END:
            raise ValueError("Only end boundaries can be missed")

    def __str__(self) -> str:
        if self.window == WINDOW_MISSED:
            return f"missed-end-{self.stage_id}"
        if self.boundary == BOUNDARY_START:
            return f"{self.window}-start-{self.stage_id}"
        return f"{self.window}-{self.stage_id}"


NotificationKey = Union[OnDayKey, RelativeOnceKey]


def parse_key(text: str) -> NotificationKey:
    """Parse a stored key string back into its variant.

    Relative end keys are not self-delimiting: an end key for a stage id that
    begins with ``start-`` (``tomorrow-start-x``) reads back as a start key for
    stage ``x``.
    """

    value = text.strip()

    match = _ON_DAY_RE.match(value)
    if match:
        try:
            day = date.fromisoformat(match.group(3))
        except ValueError as exc:
            raise ValueError(f"Malformed date in notification key '{text}'") from exc
        return OnDayKey(stage_id=match.group(2), boundary=match.group(1), day=day)

    match = _MISSED_RE.match(value)
    if match:
        return RelativeOnceKey(stage_id=match.group(1), boundary=BOUNDARY_END, window=WINDOW_MISSED)

    match = _RELATIVE_START_RE.match(value)
    if match:
        return RelativeOnceKey(stage_id=match.group(2), boundary=BOUNDARY_START, window=match.group(1))

    match = _RELATIVE_END_RE.match(value)
    if match:
        return RelativeOnceKey(stage_id=match.group(2), boundary=BOUNDARY_END, window=match.group(1))

    raise ValueError(f"Unrecognised notification key '{text}'")
