# storage/repos.py
#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import logging
import sqlite3
import time
import uuid
from typing import Dict, Iterable, List, Optional, Sequence

from domain.models import (
    DEFAULT_CATEGORY,
    Category,
    CompletionEntry,
    FocusItem,
    Task,
    TaskKind,
    TaskState,
)
from storage.db import Database

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = ("MAIN", "MORNING", "FOOD", "BOOKS", "COURSES")

_TASK_COLS = """
    id, user_id, title, description, kind, due_date, category,
    sort_order, parent_id, is_cancelled, created_at, updated_at
"""


def _now_ts() -> int:
    return int(time.time())


def _marks(n: int) -> str:
    return ",".join("?" * n)


def _task(r: sqlite3.Row) -> Task:
    return Task(
        id=r["id"],
        user_id=r["user_id"],
        title=r["title"],
        description=r["description"],
        kind=TaskKind(r["kind"]),
        due_date=r["due_date"],
        category=r["category"] or DEFAULT_CATEGORY,
        order=r["sort_order"],
        parent_id=r["parent_id"],
        is_cancelled=bool(r["is_cancelled"]),
        created_at=r["created_at"],
        updated_at=r["updated_at"],
    )


def _entry(r: sqlite3.Row) -> CompletionEntry:
    return CompletionEntry(
        id=r["id"],
        task_id=r["task_id"],
        day=r["day"],
        state=TaskState(r["state"]),
        created_at=r["created_at"],
    )


class TaskRepo:
    def __init__(self, db: Database):
        self.db = db

    def create(
        self,
        user_id: str,
        title: str,
        kind: TaskKind = TaskKind.DAILY,
        description: Optional[str] = None,
        due_date: Optional[str] = None,
        category: str = DEFAULT_CATEGORY,
        order: int = 0,
        parent_id: Optional[str] = None,
    ) -> Task:
        tid = str(uuid.uuid4())
        ts = _now_ts()
        self.db.conn.execute(
            """
            INSERT INTO tasks(
                id, user_id, title, description, kind, due_date, category,
                sort_order, parent_id, is_cancelled, created_at, updated_at
            )
            VALUES(?,?,?,?,?,?,?,?,?,0,?,?)
            """,
            (
                tid,
                user_id,
                title,
                description,
                kind.value,
                due_date,
                category,
                order,
                parent_id,
                ts,
                ts,
            ),
        )
        self.db.commit()
        return self.get(tid)

    def get(self, task_id: str) -> Optional[Task]:
        r = self.db.conn.execute(
            f"SELECT {_TASK_COLS} FROM tasks WHERE id=?",
            (task_id,),
        ).fetchone()
        return _task(r) if r else None

    def get_owned(self, task_id: str, user_id: str) -> Optional[Task]:
        r = self.db.conn.execute(
            f"SELECT {_TASK_COLS} FROM tasks WHERE id=? AND user_id=?",
            (task_id, user_id),
        ).fetchone()
        return _task(r) if r else None

    def list_for_day(self, user_id: str, day: str) -> List[Task]:
        """Non-cancelled DAILY tasks plus ONE_TIME tasks due on `day`."""
        rows = self.db.conn.execute(
            f"""
            SELECT {_TASK_COLS} FROM tasks
            WHERE user_id=?
              AND (
                (kind='DAILY' AND is_cancelled=0)
                OR (kind='ONE_TIME' AND due_date=?)
              )
            ORDER BY sort_order ASC, created_at ASC, rowid ASC
            """,
            (user_id, day),
        ).fetchall()
        return [_task(r) for r in rows]

    def count_active_daily(self, user_id: str) -> int:
        r = self.db.conn.execute(
            "SELECT COUNT(1) AS c FROM tasks WHERE user_id=? AND kind='DAILY' AND is_cancelled=0",
            (user_id,),
        ).fetchone()
        return int(r["c"] or 0)

    def count_one_time_by_day(self, user_id: str, start: str, end: str) -> Dict[str, int]:
        rows = self.db.conn.execute(
            """
            SELECT due_date, COUNT(1) AS c FROM tasks
            WHERE user_id=? AND kind='ONE_TIME' AND due_date >= ? AND due_date <= ?
            GROUP BY due_date
            """,
            (user_id, start, end),
        ).fetchall()
        return {r["due_date"]: int(r["c"]) for r in rows}

    def list_children(self, parent_id: str) -> List[Task]:
        """Active sub-items of a mission."""
        rows = self.db.conn.execute(
            f"""
            SELECT {_TASK_COLS} FROM tasks
            WHERE parent_id=? AND is_cancelled=0
            ORDER BY sort_order ASC, created_at ASC, rowid ASC
            """,
            (parent_id,),
        ).fetchall()
        return [_task(r) for r in rows]

    def owned_ids(self, user_id: str, task_ids: Sequence[str]) -> List[str]:
        if not task_ids:
            return []
        rows = self.db.conn.execute(
            f"SELECT id FROM tasks WHERE user_id=? AND id IN ({_marks(len(task_ids))})",
            (user_id, *task_ids),
        ).fetchall()
        return [r["id"] for r in rows]

    def max_order(self, user_id: str, parent_id: Optional[str]) -> int:
        if parent_id is None:
            r = self.db.conn.execute(
                "SELECT COALESCE(MAX(sort_order), -1) AS m FROM tasks WHERE user_id=? AND parent_id IS NULL",
                (user_id,),
            ).fetchone()
        else:
            r = self.db.conn.execute(
                "SELECT COALESCE(MAX(sort_order), -1) AS m FROM tasks WHERE user_id=? AND parent_id=?",
                (user_id, parent_id),
            ).fetchone()
        return int(r["m"])

    def update_fields(self, task_id: str, fields: Dict[str, object]) -> None:
        if not fields:
            return
        cols = {
            "title": "title",
            "description": "description",
            "category": "category",
            "due_date": "due_date",
            "order": "sort_order",
        }
        sets = [f"{cols[k]}=?" for k in fields]
        values = list(fields.values())
        self.db.conn.execute(
            f"UPDATE tasks SET {', '.join(sets)}, updated_at=? WHERE id=?",
            (*values, _now_ts(), task_id),
        )
        self.db.commit()

    def set_category_for_children(self, parent_id: str, category: str) -> None:
        self.db.conn.execute(
            "UPDATE tasks SET category=?, updated_at=? WHERE parent_id=?",
            (category, _now_ts(), parent_id),
        )
        self.db.commit()

    def set_order(self, task_id: str, user_id: str, order: int) -> bool:
        cur = self.db.conn.execute(
            "UPDATE tasks SET sort_order=?, updated_at=? WHERE id=? AND user_id=?",
            (order, _now_ts(), task_id, user_id),
        )
        self.db.commit()
        return cur.rowcount == 1

    def cancel(self, task_id: str) -> None:
        # sub-items go down with their mission
        ts = _now_ts()
        self.db.conn.execute(
            "UPDATE tasks SET is_cancelled=1, updated_at=? WHERE id=? OR parent_id=?",
            (ts, task_id, task_id),
        )
        self.db.commit()

    def delete_task(self, task_id: str) -> None:
        # entries and focus rows cascade via FK ON DELETE CASCADE
        self.db.conn.execute("DELETE FROM tasks WHERE id=?", (task_id,))
        self.db.commit()


class EntryRepo:
    def __init__(self, db: Database):
        self.db = db

    def get(self, task_id: str, day: str) -> Optional[CompletionEntry]:
        r = self.db.conn.execute(
            "SELECT id, task_id, day, state, created_at FROM entries WHERE task_id=? AND day=?",
            (task_id, day),
        ).fetchone()
        return _entry(r) if r else None

    def list_for_tasks(self, task_ids: Sequence[str], day: str) -> List[CompletionEntry]:
        if not task_ids:
            return []
        rows = self.db.conn.execute(
            f"""
            SELECT id, task_id, day, state, created_at FROM entries
            WHERE day=? AND task_id IN ({_marks(len(task_ids))})
            """,
            (day, *task_ids),
        ).fetchall()
        return [_entry(r) for r in rows]

    def list_relevant_in_range(self, user_id: str, start: str, end: str) -> List[CompletionEntry]:
        """
        Entries of the user's countable tasks: active DAILY tasks on any day,
        ONE_TIME tasks only on their due day.
        """
        rows = self.db.conn.execute(
            """
            SELECT e.id, e.task_id, e.day, e.state, e.created_at
            FROM entries e
            INNER JOIN tasks t ON e.task_id = t.id
            WHERE t.user_id = ?
              AND e.day >= ? AND e.day <= ?
              AND (
                (t.kind='DAILY' AND t.is_cancelled=0)
                OR (t.kind='ONE_TIME' AND t.due_date = e.day)
              )
            ORDER BY e.day ASC, e.created_at ASC, e.rowid ASC
            """,
            (user_id, start, end),
        ).fetchall()
        return [_entry(r) for r in rows]

    def upsert(self, task_id: str, day: str, state: TaskState) -> CompletionEntry:
        self.db.conn.execute(
            """
            INSERT INTO entries(id, task_id, day, state, created_at) VALUES(?,?,?,?,?)
            ON CONFLICT(task_id, day) DO UPDATE SET state=excluded.state
            """,
            (str(uuid.uuid4()), task_id, day, state.value, _now_ts()),
        )
        self.db.commit()
        return self.get(task_id, day)

    def purge_before(self, day: str) -> int:
        cur = self.db.conn.execute("DELETE FROM entries WHERE day < ?", (day,))
        self.db.commit()
        return cur.rowcount


class CategoryRepo:
    def __init__(self, db: Database):
        self.db = db

    def list(self, user_id: str) -> List[Category]:
        """The user's categories; defaults are seeded on first access."""
        rows = self._rows(user_id)
        if not rows:
            self._seed_defaults(user_id)
            rows = self._rows(user_id)
        return [
            Category(
                id=r["id"],
                user_id=r["user_id"],
                name=r["name"],
                color=r["color"],
                order=r["sort_order"],
                created_at=r["created_at"],
            )
            for r in rows
        ]

    def _rows(self, user_id: str) -> List[sqlite3.Row]:
        return self.db.conn.execute(
            """
            SELECT id, user_id, name, color, sort_order, created_at FROM categories
            WHERE user_id=? ORDER BY sort_order ASC, created_at ASC
            """,
            (user_id,),
        ).fetchall()

    def _seed_defaults(self, user_id: str) -> None:
        ts = _now_ts()
        self.db.conn.executemany(
            """
            INSERT OR IGNORE INTO categories(id, user_id, name, color, sort_order, created_at)
            VALUES(?,?,?,NULL,?,?)
            """,
            [
                (str(uuid.uuid4()), user_id, name, i, ts)
                for i, name in enumerate(DEFAULT_CATEGORIES)
            ],
        )
        self.db.commit()
        logger.info("Seeded default categories for user %s", user_id)


class FocusRepo:
    def __init__(self, db: Database):
        self.db = db

    def list(self, user_id: str) -> List[FocusItem]:
        rows = self.db.conn.execute(
            """
            SELECT id, user_id, task_id, sort_order, selected_at FROM focus_items
            WHERE user_id=? ORDER BY sort_order ASC, selected_at ASC, rowid ASC
            """,
            (user_id,),
        ).fetchall()
        return [
            FocusItem(
                id=r["id"],
                user_id=r["user_id"],
                task_id=r["task_id"],
                order=r["sort_order"],
                selected_at=r["selected_at"],
            )
            for r in rows
        ]

    def get(self, user_id: str, task_id: str) -> Optional[FocusItem]:
        for item in self.list(user_id):
            if item.task_id == task_id:
                return item
        return None

    def add(self, user_id: str, task_id: str) -> FocusItem:
        r = self.db.conn.execute(
            "SELECT COALESCE(MAX(sort_order), -1) AS m FROM focus_items WHERE user_id=?",
            (user_id,),
        ).fetchone()
        self.db.conn.execute(
            """
            INSERT OR IGNORE INTO focus_items(id, user_id, task_id, sort_order, selected_at)
            VALUES(?,?,?,?,?)
            """,
            (str(uuid.uuid4()), user_id, task_id, int(r["m"]) + 1, _now_ts()),
        )
        self.db.commit()
        return self.get(user_id, task_id)

    def remove(self, user_id: str, task_id: str) -> bool:
        cur = self.db.conn.execute(
            "DELETE FROM focus_items WHERE user_id=? AND task_id=?",
            (user_id, task_id),
        )
        self.db.commit()
        return cur.rowcount > 0

    def listed_task_ids(self, user_id: str, task_ids: Iterable[str]) -> List[str]:
        wanted = set(task_ids)
        return [i.task_id for i in self.list(user_id) if i.task_id in wanted]

    def set_order(self, user_id: str, task_id: str, order: int) -> bool:
        cur = self.db.conn.execute(
            "UPDATE focus_items SET sort_order=? WHERE user_id=? AND task_id=?",
            (order, user_id, task_id),
        )
        self.db.commit()
        return cur.rowcount == 1
