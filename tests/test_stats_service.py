import datetime as dt

import pytest

from conftest import OTHER, USER
from core.config import Settings
from domain.errors import InvalidInput
from domain.models import DayStatus, TaskKind, TaskState
from services.stats_service import StatsService


def _daily(tasks, n, prefix="T"):
    return [tasks.create_task(USER, f"{prefix}{i}") for i in range(n)]


def test_total_counts_every_sub_item(tasks, stats):
    a = tasks.create_task(USER, "A")
    tasks.create_task(USER, "B")
    tasks.create_task(USER, "A.1", parent_id=a.id)
    tasks.create_task(USER, "A.2", parent_id=a.id)
    tasks.create_task(OTHER, "Theirs")

    result = stats.get_range_stats(USER, "2025-03-10", "2025-03-10")
    day = result.daily[0]
    assert day.totals.total == 4
    assert day.totals.not_started == 4
    assert day.status is DayStatus.NONE


def test_one_time_tasks_count_only_on_due_day(tasks, ledger, stats):
    _daily(tasks, 2)
    once = tasks.create_task(USER, "Dentist", kind=TaskKind.ONE_TIME, due_date="2025-03-09")
    ledger.set_state(USER, once.id, TaskState.COMPLETED, "2025-03-09")
    # an entry on another day does not count for that day
    ledger.set_state(USER, once.id, TaskState.COMPLETED, "2025-03-10")

    result = stats.get_range_stats(USER, "2025-03-08", "2025-03-10")
    totals = {d.date: (d.totals.total, d.totals.completed) for d in result.daily}
    assert totals == {"2025-03-08": (2, 0), "2025-03-09": (3, 1), "2025-03-10": (2, 0)}


def test_fold_and_aggregates(tasks, ledger, stats):
    ts = _daily(tasks, 3)
    ledger.set_state(USER, ts[0].id, TaskState.COMPLETED, "2025-03-09")
    ledger.set_state(USER, ts[1].id, TaskState.SKIPPED, "2025-03-09")
    ledger.set_state(USER, ts[2].id, TaskState.NOT_STARTED, "2025-03-09")
    for t in ts:
        ledger.set_state(USER, t.id, TaskState.COMPLETED, "2025-03-10")

    result = stats.get_range_stats(USER, "2025-03-09", "2025-03-10")
    d9, d10 = result.daily
    assert (d9.totals.completed, d9.totals.skipped, d9.totals.not_started, d9.totals.total) == (1, 1, 1, 3)
    assert d9.status is DayStatus.NONE
    assert d10.status is DayStatus.FLAWLESS

    agg = result.aggregates
    assert (agg.completed, agg.skipped, agg.not_started, agg.total) == (4, 1, 1, 6)
    assert result.start == "2025-03-09"
    assert result.end == "2025-03-10"


def test_good_day_boundary(tasks, ledger, stats):
    ts = _daily(tasks, 10)
    for t in ts[:7]:
        ledger.set_state(USER, t.id, TaskState.COMPLETED, "2025-03-10")
    for t in ts[:6]:
        ledger.set_state(USER, t.id, TaskState.COMPLETED, "2025-03-09")

    result = stats.get_range_stats(USER, "2025-03-09", "2025-03-10")
    assert [d.status for d in result.daily] == [DayStatus.NONE, DayStatus.GOOD]


def test_empty_population_is_none(stats):
    result = stats.get_range_stats(USER, "2025-03-09", "2025-03-10")
    assert all(d.totals.total == 0 and d.status is DayStatus.NONE for d in result.daily)
    assert result.streaks.current == 0
    assert result.streaks.best == 0


def test_cancelled_task_entries_are_not_counted(tasks, ledger, stats):
    keep, gone = _daily(tasks, 2)
    ledger.set_state(USER, gone.id, TaskState.COMPLETED, "2025-03-10")
    tasks.delete_task(USER, gone.id)

    day = stats.get_range_stats(USER, "2025-03-10", "2025-03-10").daily[0]
    assert (day.totals.total, day.totals.completed, day.totals.not_started) == (1, 0, 1)


def test_streaks_over_range(tasks, ledger, stats):
    (t,) = _daily(tasks, 1)
    for day in ("2025-03-05", "2025-03-07", "2025-03-08", "2025-03-09"):
        ledger.set_state(USER, t.id, TaskState.COMPLETED, day)

    result = stats.get_range_stats(USER, "2025-03-05", "2025-03-09")
    assert [d.status for d in result.daily] == [
        DayStatus.FLAWLESS,
        DayStatus.NONE,
        DayStatus.FLAWLESS,
        DayStatus.FLAWLESS,
        DayStatus.FLAWLESS,
    ]
    assert result.streaks.current == 3
    assert result.streaks.best == 3
    assert result.streaks.flawless_days == 4
    assert result.streaks.total_days == 5

    result = stats.get_range_stats(USER, "2025-03-05", "2025-03-10")
    assert result.streaks.current == 0
    assert result.streaks.best == 3


def test_start_after_end_rejected_before_any_query(stats, monkeypatch):
    def boom(*args, **kwargs):
        raise AssertionError("aggregation should not run")

    monkeypatch.setattr(stats.tasks, "count_active_daily", boom)
    monkeypatch.setattr(stats.entries, "list_relevant_in_range", boom)
    with pytest.raises(InvalidInput):
        stats.get_range_stats(USER, "2025-03-10", "2025-03-09")


def test_unparseable_range_rejected(stats):
    with pytest.raises(InvalidInput):
        stats.get_range_stats(USER, "not-a-date", "2025-03-09")


def test_default_range_uses_configured_start(stats):
    result = stats.get_range_stats(USER)
    assert result.start == "2025-03-01"
    assert result.end == "2025-03-10"
    assert len(result.daily) == 10


def test_default_range_with_window(db, clock):
    s = StatsService(db, clock, Settings(stats_window_days=7))
    result = s.get_range_stats(USER)
    assert (result.start, result.end) == ("2025-03-04", "2025-03-10")
    # explicit end, window counts back from it
    result = s.get_range_stats(USER, end="2025-02-01")
    assert (result.start, result.end) == ("2025-01-26", "2025-02-01")


def test_default_start_clamped_to_end(db, clock):
    s = StatsService(db, clock, Settings(stats_default_start=dt.date(2025, 6, 1)))
    result = s.get_range_stats(USER)
    assert (result.start, result.end) == ("2025-03-10", "2025-03-10")


def test_to_dict_shape(tasks, ledger, stats):
    (t,) = _daily(tasks, 1)
    ledger.set_state(USER, t.id, TaskState.COMPLETED, "2025-03-10")
    data = stats.get_range_stats(USER, "2025-03-10", "2025-03-10").to_dict()
    assert data["range"] == {"start": "2025-03-10", "end": "2025-03-10"}
    assert data["aggregates"] == {"completed": 1, "skipped": 0, "not_started": 0, "total": 1}
    assert data["daily"][0]["status"] == "FLAWLESS"
    assert data["streaks"] == {"current": 1, "best": 1}
    assert data["day_stats"] == {"good": 0, "flawless": 1, "total": 1}
