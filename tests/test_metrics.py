from datetime import datetime

from deadline_engine.metrics import deadline_summary
from deadline_engine.schema import Event, Stage, toggle_stage_completion


def sample_events():
    return [
        Event(
            "e1",
            "Hackathon",
            [
                Stage(id="s1", name="Registration", deadline_end=datetime(2025, 3, 1, 12, 0)),
                Stage(id="s2", name="Idea", deadline_end=datetime(2025, 3, 10, 18, 0)),
                Stage(id="s3", name="Prototype", deadline_end=datetime(2025, 3, 15, 18, 0)),
                Stage(id="s4", name="Final", deadline_end=datetime(2025, 3, 30, 18, 0)),
            ],
        ),
        Event(
            "e2",
            "Grant",
            [Stage(id="s5", name="Abstract", deadline_end=datetime(2025, 3, 5, 12, 0), is_completed=True)],
        ),
    ]


def test_deadline_summary_counts():
    summary = deadline_summary(sample_events(), datetime(2025, 3, 10, 9, 0))
    assert summary["total_events"] == 2
    assert summary["completed_events"] == 1
    assert summary["completed_stages"] == 1
    assert summary["missed_stages"] == 1
    assert summary["upcoming_deadlines"] == {"today": 1, "this_week": 2, "this_month": 3}


def test_deadline_summary_empty():
    summary = deadline_summary([], datetime(2025, 3, 10, 9, 0))
    assert summary["total_events"] == 0
    assert summary["upcoming_deadlines"]["today"] == 0


def test_toggle_stage_completion():
    stage = Stage(id="s1", name="Idea", deadline_end=datetime(2025, 3, 10, 18, 0))
    now = datetime(2025, 3, 10, 12, 0)

    toggle_stage_completion(stage, True, now)
    assert stage.is_completed and stage.completed_at == now

    toggle_stage_completion(stage, False, now)
    assert not stage.is_completed and stage.completed_at is None
