"""JSON adapter for events with nested stages."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Optional

from deadline_engine.schema import Event, Stage

_REQUIRED_EVENT_FIELDS = {"id", "title"}
_REQUIRED_STAGE_FIELDS = {"id", "name", "deadline_end"}


def _parse_timestamp(raw, where: str, field: str) -> Optional[datetime]:
    if raw in (None, ""):
        return None
    try:
        return datetime.fromisoformat(str(raw))
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"{where}: malformed {field}") from exc


def _parse_stage(item: dict, where: str) -> Stage:
    if not isinstance(item, dict):
        raise ValueError(f"{where}: stage must be an object")
    missing = sorted(field for field in _REQUIRED_STAGE_FIELDS if not item.get(field))
    if missing:
        raise ValueError(f"{where}: missing required fields {missing}")

    completed = item.get("is_completed", False)
    if not isinstance(completed, bool):
        raise ValueError(f"{where}: is_completed must be true or false")

    return Stage(
        id=str(item["id"]).strip(),
        name=str(item["name"]).strip(),
        deadline_end=_parse_timestamp(item["deadline_end"], where, "deadline_end"),
        deadline_start=_parse_timestamp(item.get("deadline_start"), where, "deadline_start"),
        is_completed=completed,
        completed_at=_parse_timestamp(item.get("completed_at"), where, "completed_at"),
    )


def _parse_item(item: dict, index: int) -> Event:
    if not isinstance(item, dict):
        raise ValueError(f"Item {index}: event must be an object")
    missing = sorted(field for field in _REQUIRED_EVENT_FIELDS if not item.get(field))
    if missing:
        raise ValueError(f"Item {index}: missing required fields {missing}")

    stages_raw = item.get("stages") or []
    if not isinstance(stages_raw, list):
        raise ValueError(f"Item {index}: stages must be a list")

    return Event(
        id=str(item["id"]).strip(),
        title=str(item["title"]).strip(),
        stages=[_parse_stage(stage, f"Item {index} stage {n}") for n, stage in enumerate(stages_raw, start=1)],
    )


def parse(file_path: str) -> list[Event]:
    """Parse a JSON file holding a list of events."""

    with open(file_path, encoding="utf-8") as handle:
        payload = json.load(handle)

    if not isinstance(payload, list):
        raise ValueError("JSON payload must be a list of objects")

    return [_parse_item(item, i) for i, item in enumerate(payload, start=1)]
