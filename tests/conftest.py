import datetime as dt

import pytest

from core.config import Settings
from core.dates import FixedClock
from services.focus_service import FocusService
from services.ledger_service import LedgerService
from services.stats_service import StatsService
from services.task_service import TaskService
from storage.db import Database

USER = "user-a"
OTHER = "user-b"

# UTC-5, so a UTC timestamp late in the evening falls on the next UTC day
LOCAL_TZ = dt.timezone(dt.timedelta(hours=-5))


@pytest.fixture
def db():
    d = Database(":memory:")
    d.init_schema()
    yield d
    d.close()


@pytest.fixture
def clock():
    return FixedClock(dt.datetime(2025, 3, 10, 9, 30), tz=LOCAL_TZ)


@pytest.fixture
def settings():
    return Settings(stats_default_start=dt.date(2025, 3, 1))


@pytest.fixture
def tasks(db, clock):
    return TaskService(db, clock.tz)


@pytest.fixture
def ledger(db, clock):
    return LedgerService(db, clock)


@pytest.fixture
def stats(db, clock, settings):
    return StatsService(db, clock, settings)


@pytest.fixture
def focus(db, ledger):
    return FocusService(db, ledger)


@pytest.fixture
def mission(tasks):
    """A daily mission with three sub-items."""
    parent = tasks.create_task(USER, "Morning routine")
    subs = [tasks.create_task(USER, name, parent_id=parent.id) for name in ("Stretch", "Water", "Journal")]
    return parent, subs
