import sqlite3

import pytest

from conftest import USER
from domain.errors import StorageUnavailable
from domain.models import TaskState
from storage.db import Database
from storage.repos import DEFAULT_CATEGORIES, CategoryRepo, EntryRepo, TaskRepo


def test_entry_unique_per_task_and_day(db):
    t = TaskRepo(db).create(USER, "Read")
    db.conn.execute(
        "INSERT INTO entries(id, task_id, day, state, created_at) VALUES('e1', ?, '2025-03-10', 'COMPLETED', 0)",
        (t.id,),
    )
    with pytest.raises(sqlite3.IntegrityError):
        db.conn.execute(
            "INSERT INTO entries(id, task_id, day, state, created_at) VALUES('e2', ?, '2025-03-10', 'SKIPPED', 0)",
            (t.id,),
        )


def test_upsert_updates_in_place(db):
    t = TaskRepo(db).create(USER, "Read")
    entries = EntryRepo(db)
    first = entries.upsert(t.id, "2025-03-10", TaskState.COMPLETED)
    second = entries.upsert(t.id, "2025-03-10", TaskState.SKIPPED)
    assert first.id == second.id
    assert second.state is TaskState.SKIPPED


def test_purge_before(db, ledger):
    t = TaskRepo(db).create(USER, "Read")
    entries = EntryRepo(db)
    for day in ("2025-03-08", "2025-03-09", "2025-03-10"):
        entries.upsert(t.id, day, TaskState.COMPLETED)
    assert entries.purge_before("2025-03-10") == 2
    # history gone means NOT_STARTED, nothing else changes
    assert ledger.resolve_state(t.id, "2025-03-09") is TaskState.NOT_STARTED
    assert ledger.resolve_state(t.id, "2025-03-10") is TaskState.COMPLETED


def test_default_categories_seeded_once(db):
    repo = CategoryRepo(db)
    names = [c.name for c in repo.list(USER)]
    assert names == list(DEFAULT_CATEGORIES)
    assert [c.order for c in repo.list(USER)] == list(range(len(DEFAULT_CATEGORIES)))
    assert len(repo.list(USER)) == len(DEFAULT_CATEGORIES)


def test_transaction_rolls_back(db):
    repo = TaskRepo(db)
    with pytest.raises(RuntimeError):
        with db.transaction():
            repo.create(USER, "Temp")
            raise RuntimeError("boom")
    assert db.conn.execute("SELECT COUNT(1) AS c FROM tasks").fetchone()["c"] == 0


def test_nested_transaction_joins_outer(db):
    repo = TaskRepo(db)
    with pytest.raises(RuntimeError):
        with db.transaction():
            with db.transaction():
                repo.create(USER, "Inner")
            raise RuntimeError("boom")
    assert db.conn.execute("SELECT COUNT(1) AS c FROM tasks").fetchone()["c"] == 0


def test_guard_translates_sqlite_errors(db):
    with pytest.raises(StorageUnavailable) as exc:
        with db.guard() as conn:
            conn.execute("SELECT * FROM missing_table")
    assert exc.value.message == "Storage unavailable"
    assert isinstance(exc.value.__cause__, sqlite3.OperationalError)

