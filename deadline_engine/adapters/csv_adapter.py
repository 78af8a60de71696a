"""CSV adapter: one row per stage, grouped into events by ``event_id``."""

from __future__ import annotations

import csv
from datetime import datetime
from typing import Optional

from deadline_engine.schema import Event, Stage

_REQUIRED_FIELDS = {"event_id", "event_title", "stage_id", "stage_name", "deadline_end"}
_TRUE_VALUES = {"1", "true", "yes", "y"}
_FALSE_VALUES = {"", "0", "false", "no", "n"}


def _parse_timestamp(raw: Optional[str], row_number: int, field: str) -> Optional[datetime]:
    if raw in (None, ""):
        return None
    try:
        return datetime.fromisoformat(raw.strip())
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"Row {row_number}: malformed {field}") from exc


def _parse_completed(raw: Optional[str], row_number: int) -> bool:
    value = (raw or "").strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"Row {row_number}: invalid is_completed '{raw}'")


def _parse_row(row: dict, row_number: int) -> tuple[str, str, Stage]:
    missing = sorted(field for field in _REQUIRED_FIELDS if not row.get(field))
    if missing:
        raise ValueError(f"Row {row_number}: missing required fields {missing}")

    stage = Stage(
        id=row["stage_id"].strip(),
        name=row["stage_name"].strip(),
        deadline_end=_parse_timestamp(row["deadline_end"], row_number, "deadline_end"),
        deadline_start=_parse_timestamp(row.get("deadline_start"), row_number, "deadline_start"),
        is_completed=_parse_completed(row.get("is_completed"), row_number),
        completed_at=_parse_timestamp(row.get("completed_at"), row_number, "completed_at"),
    )
    return row["event_id"].strip(), row["event_title"].strip(), stage


def parse(file_path: str) -> list[Event]:
    """Parse a CSV file into events, keeping first-seen event order."""

    with open(file_path, newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        if not reader.fieldnames:
            return []

        events: dict[str, Event] = {}
        for row_number, row in enumerate(reader, start=2):
            event_id, title, stage = _parse_row(row, row_number)
            if event_id not in events:
                events[event_id] = Event(id=event_id, title=title)
            events[event_id].stages.append(stage)
        return list(events.values())
