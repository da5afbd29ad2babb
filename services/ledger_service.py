# -*- coding: utf-8 -*-

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from core.dates import Clock, DayInput, day_key, normalize_day
from domain.errors import InvalidInput, NotFound
from domain.models import StateChange, Task, TaskKind, TaskState, TaskView
from storage.db import Database
from storage.repos import CategoryRepo, EntryRepo, TaskRepo

logger = logging.getLogger(__name__)


def parse_state(state) -> TaskState:
    if isinstance(state, str):
        state = state.strip().upper()
    try:
        return TaskState(state)
    except ValueError:
        names = "/".join(s.value for s in TaskState)
        raise InvalidInput(f"Invalid state. Use {names}.")


class LedgerService:
    """
    Per-day completion records for tasks.

    A task has at most one entry per calendar day. No entry means
    NOT_STARTED. Completing every sub-item of a mission completes the
    mission for that day; the reverse never happens automatically.
    """

    def __init__(self, db: Database, clock: Optional[Clock] = None):
        self.db = db
        self.clock = clock or Clock()
        self.tasks = TaskRepo(db)
        self.entries = EntryRepo(db)
        self.categories = CategoryRepo(db)

    def normalize(self, day: Optional[DayInput]) -> str:
        if day is None or day == "":
            return day_key(self.clock.today())
        return day_key(normalize_day(day, self.clock.tz))

    # ---- reads ----
    def resolve_state(self, task_id: str, day: Optional[DayInput] = None) -> TaskState:
        key = self.normalize(day)
        with self.db.guard():
            entry = self.entries.get(task_id, key)
        return entry.state if entry else TaskState.NOT_STARTED

    def list_for_day(self, user_id: str, day: Optional[DayInput] = None) -> List[TaskView]:
        key = self.normalize(day)
        with self.db.guard():
            tasks = self.tasks.list_for_day(user_id, key)
            entries = self.entries.list_for_tasks([t.id for t in tasks], key)
            categories = self.categories.list(user_id)

        states = {e.task_id: e.state for e in entries}
        cat_order = {c.name: c.order for c in categories}
        unknown = len(cat_order)

        def sort_key(t: Task):
            # unknown categories go last, grouped by name
            rank = cat_order.get(t.category, unknown)
            label = t.category if rank == unknown else ""
            return (rank, label, t.order, t.created_at)

        views: Dict[str, TaskView] = {
            t.id: TaskView(task=t, current_state=states.get(t.id, TaskState.NOT_STARTED), day=key)
            for t in sorted(tasks, key=sort_key)
        }

        out: List[TaskView] = []
        for view in views.values():
            parent_id = view.task.parent_id
            if parent_id is None:
                out.append(view)
            elif parent_id in views:
                views[parent_id].sub_items.append(view)
            # sub-items of a mission that is not listed are dropped
        return out

    # ---- writes ----
    def set_state(
        self,
        user_id: str,
        task_id: str,
        state,
        day: Optional[DayInput] = None,
    ) -> StateChange:
        new_state = parse_state(state)
        key = self.normalize(day)

        with self.db.transaction():
            task = self.tasks.get_owned(task_id, user_id)
            if not task:
                raise NotFound("Task not found")

            entry = self.entries.upsert(task_id, key, new_state)
            logger.debug("Task %s on %s -> %s", task_id, key, new_state.value)

            if task.parent_id and task.kind is TaskKind.DAILY:
                self._cascade(task.parent_id, key)

        return StateChange(task_id=task_id, state=entry.state, day=key)

    def _cascade(self, parent_id: str, key: str) -> bool:
        """Complete the parent when all of its active sub-items are complete."""
        siblings = self.tasks.list_children(parent_id)
        if not siblings:
            return False

        states = {
            e.task_id: e.state
            for e in self.entries.list_for_tasks([s.id for s in siblings], key)
        }
        if any(states.get(s.id) is not TaskState.COMPLETED for s in siblings):
            return False

        self.entries.upsert(parent_id, key, TaskState.COMPLETED)
        logger.debug("All sub-items done, completed mission %s on %s", parent_id, key)
        return True
