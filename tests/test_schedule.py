from __future__ import annotations

from datetime import datetime, timezone

import pytest

from h5phub.sync.schedule import SyncSchedule


def _at(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def test_unknown_schedule_rejected(tmp_path):
    with pytest.raises(ValueError):
        SyncSchedule("hourly", tmp_path / "schedule.json")


def test_never_is_never_due(tmp_path):
    schedule = SyncSchedule("never", tmp_path / "schedule.json")
    assert not schedule.enabled
    assert schedule.is_due(_at(2026, 1, 1)) is False
    assert schedule.next_run() is None
    assert schedule.tick(lambda: "ran") is None


def test_first_tick_runs_immediately(tmp_path):
    schedule = SyncSchedule("daily", tmp_path / "schedule.json")
    assert schedule.last_run() is None
    assert schedule.tick(lambda: "ran", now=_at(2026, 3, 4, 15, 30)) == "ran"
    assert schedule.last_run() == _at(2026, 3, 4, 15, 30)


def test_daily_waits_for_next_midnight(tmp_path):
    schedule = SyncSchedule("daily", tmp_path / "schedule.json")
    schedule.mark_ran(_at(2026, 3, 4, 15, 30))

    assert schedule.next_run() == _at(2026, 3, 5)
    assert schedule.is_due(_at(2026, 3, 4, 23, 59)) is False
    assert schedule.is_due(_at(2026, 3, 5, 0, 1)) is True

    calls: list[int] = []
    assert schedule.tick(lambda: calls.append(1), now=_at(2026, 3, 4, 20)) is None
    assert calls == []


def test_weekly_fires_on_sunday(tmp_path):
    schedule = SyncSchedule("weekly", tmp_path / "schedule.json")
    # 2026-03-04 is a Wednesday.
    schedule.mark_ran(_at(2026, 3, 4, 9))
    assert schedule.next_run() == _at(2026, 3, 8)
    assert schedule.is_due(_at(2026, 3, 7, 12)) is False
    assert schedule.is_due(_at(2026, 3, 8, 0, 5)) is True


def test_corrupt_state_counts_as_never_run(tmp_path):
    state = tmp_path / "schedule.json"
    state.write_text("not json", encoding="utf-8")
    schedule = SyncSchedule("daily", state)
    assert schedule.last_run() is None
    assert schedule.is_due(_at(2026, 1, 1)) is True
