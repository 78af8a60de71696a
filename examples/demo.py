"""Demo script for deadline-engine."""

import asyncio
import sys
from datetime import datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from deadline_engine.adapters.json_adapter import parse
from deadline_engine.engine import scan
from deadline_engine.metrics import deadline_summary
from deadline_engine.stores.memory_store import MemoryStore


async def run(now: datetime) -> None:
    events = parse("examples/sample_events.json")
    store = MemoryStore()
    preferences = await store.get_preferences("demo")

    due = scan(now, events, preferences, await store.list_dismissals("demo"))
    print("Summary:", deadline_summary(events, now))
    for candidate in due:
        print(f"[{candidate.category}] {candidate.key_text}: {candidate.title}")

    # dismiss everything, then scan again
    for candidate in due:
        await store.upsert_dismissal("demo", candidate.key_text, None)
    again = scan(now, events, preferences, await store.list_dismissals("demo"))
    print("After dismissing:", [candidate.key_text for candidate in again])


def main() -> None:
    asyncio.run(run(datetime.fromisoformat("2025-03-10T09:00:00")))


if __name__ == "__main__":
    main()
