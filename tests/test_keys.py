from datetime import date

import pytest

from deadline_engine.keys import OnDayKey, RelativeOnceKey, parse_key


def test_key_rendering():
    assert str(OnDayKey("s1", "end", date(2025, 3, 10))) == "end-s1-2025-03-10"
    assert str(OnDayKey("s1", "start", date(2025, 3, 10))) == "start-s1-2025-03-10"
    assert str(RelativeOnceKey("s1", "end", "tomorrow")) == "tomorrow-s1"
    assert str(RelativeOnceKey("s1", "start", "tomorrow")) == "tomorrow-start-s1"
    assert str(RelativeOnceKey("s1", "end", "7days")) == "7days-s1"
    assert str(RelativeOnceKey("s1", "start", "7days")) == "7days-start-s1"
    assert str(RelativeOnceKey("s1", "end", "missed")) == "missed-end-s1"


def test_start_boundary_cannot_be_missed():
    with pytest.raises(ValueError):
        RelativeOnceKey("s1", "start", "missed")


def test_parse_key_with_uuid_stage_id():
    stage_id = "3f2b8c1e-9a4d-4e2b-8f0a-1c2d3e4f5a6b"
    for key in (
        OnDayKey(stage_id, "end", date(2025, 3, 10)),
        OnDayKey(stage_id, "start", date(2025, 12, 31)),
        RelativeOnceKey(stage_id, "end", "tomorrow"),
        RelativeOnceKey(stage_id, "start", "7days"),
        RelativeOnceKey(stage_id, "end", "missed"),
    ):
        assert parse_key(str(key)) == key


def test_parse_key_rejects_unknown_text():
    with pytest.raises(ValueError):
        parse_key("later-s1")
    with pytest.raises(ValueError):
        parse_key("end-s1-2025-13-40")


def test_end_key_for_start_prefixed_stage_id_reads_back_as_start():
    key = RelativeOnceKey("start-x", "end", "tomorrow")
    assert str(key) == "tomorrow-start-x"
    assert parse_key(str(key)) == RelativeOnceKey("x", "start", "tomorrow")
