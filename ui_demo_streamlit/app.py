"""Streamlit demo UI for deadline-engine."""

from __future__ import annotations

import asyncio
import tempfile
from datetime import date, datetime, time
from pathlib import Path
from typing import Any

from deadline_engine.adapters import csv_adapter, json_adapter
from deadline_engine.channels import NullAlertChannel
from deadline_engine.dispatcher import ACTION_DISMISS, ACTION_SNOOZE_1H, ACTION_SNOOZE_24H, AlertDispatcher
from deadline_engine.engine import scan
from deadline_engine.metrics import deadline_summary
from deadline_engine.schema import MISSED, PREFERENCE_FLAGS, NotificationPreferences
from deadline_engine.stores.memory_store import MemoryStore

USER_ID = "streamlit-demo"

_ACTION_LABELS = {
    ACTION_SNOOZE_1H: "Snooze 1h",
    ACTION_SNOOZE_24H: "Snooze 24h",
    ACTION_DISMISS: "Dismiss",
}


def _parse_events_from_path(file_path: str) -> list:
    suffix = Path(file_path).suffix.lower()
    if suffix == ".csv":
        return csv_adapter.parse(file_path)
    if suffix == ".json":
        return json_adapter.parse(file_path)
    raise ValueError("Unsupported file type. Please use .csv or .json")


def _parse_uploaded(uploaded_file) -> list:
    suffix = Path(uploaded_file.name).suffix.lower()
    with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as handle:
        handle.write(uploaded_file.getbuffer())
        temp_path = handle.name
    return _parse_events_from_path(temp_path)


def run_engine(events: list, now: datetime, preferences: NotificationPreferences, store: MemoryStore) -> dict[str, Any]:
    """Run one scan pass and return a UI-friendly result payload."""

    dismissals = asyncio.run(store.list_dismissals(USER_ID))
    due = scan(now, events, preferences, dismissals)
    return {
        "summary": deadline_summary(events, now),
        "alerts": due,
        "dismissals": dismissals,
    }


def _apply_action(store: MemoryStore, now: datetime, key: str, action: str) -> str:
    dispatcher = AlertDispatcher(store, USER_ID, NullAlertChannel(), clock=lambda: now, retry_base_delay=0)
    if action == ACTION_DISMISS:
        result = asyncio.run(dispatcher.dismiss(key))
    else:
        result = asyncio.run(dispatcher.snooze(key, 1 if action == ACTION_SNOOZE_1H else 24))
    if not result.ok:
        return f"Could not save action for {key}: {result.error}"
    return f"{_ACTION_LABELS[action]}: {key}"


def main() -> None:
    import streamlit as st

    st.set_page_config(page_title="Deadline Engine Demo", layout="wide")
    st.title("Deadline Engine — Streamlit Demo")

    if "store" not in st.session_state:
        st.session_state["store"] = MemoryStore()
    store: MemoryStore = st.session_state["store"]
    if "last_action" in st.session_state:
        st.toast(st.session_state.pop("last_action"))

    with st.sidebar:
        st.header("Controls")
        uploaded = st.file_uploader("Upload events", type=["csv", "json"])
        use_demo = st.checkbox("Load demo events", value=True)
        now_date = st.date_input("Now (date)", value=date(2025, 3, 10))
        now_time = st.time_input("Now (time)", value=time(9, 0))
        st.subheader("Preferences")
        flags = {name: st.checkbox(name, value=True) for name in PREFERENCE_FLAGS}

    now = datetime.combine(now_date, now_time)
    preferences = NotificationPreferences(user_id=USER_ID, **flags)

    try:
        if use_demo:
            events = json_adapter.parse("examples/sample_events.json")
            data_source = "demo events (examples/sample_events.json)"
        elif uploaded is not None:
            events = _parse_uploaded(uploaded)
            data_source = f"uploaded file ({uploaded.name})"
        else:
            st.info("Upload a CSV/JSON file or enable 'Load demo events'.")
            return

        result = run_engine(events, now, preferences, store)
        st.success(f"Loaded {len(events)} events from {data_source}.")

        st.subheader("A) Deadline Summary")
        summary = result["summary"]
        c1, c2, c3, c4 = st.columns(4)
        c1.metric("Events", summary["total_events"])
        c2.metric("Completed stages", summary["completed_stages"])
        c3.metric("Missed stages", summary["missed_stages"])
        c4.metric("Due today", summary["upcoming_deadlines"]["today"])
        st.table([summary["upcoming_deadlines"]])

        st.subheader("B) Alerts")
        if not result["alerts"]:
            st.write("No alerts due.")
        for candidate in result["alerts"]:
            box = st.error if candidate.category == MISSED else st.warning
            box(f"**{candidate.title}**  \n{candidate.body}")
            cols = st.columns(3)
            for col, action in zip(cols, _ACTION_LABELS):
                if col.button(_ACTION_LABELS[action], key=f"{action}:{candidate.key_text}"):
                    st.session_state["last_action"] = _apply_action(store, now, candidate.key_text, action)
                    st.rerun()

        st.subheader("C) Stored Dismissals")
        rows = [
            {
                "key": record.notification_key,
                "dismissed_until": record.dismissed_until.isoformat() if record.dismissed_until else "permanent",
            }
            for record in result["dismissals"]
        ]
        if rows:
            st.table(rows)
        else:
            st.write("Nothing dismissed yet.")

    except ValueError as exc:
        st.error(f"Input error: {exc}")


if __name__ == "__main__":
    main()
