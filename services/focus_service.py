# -*- coding: utf-8 -*-

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from core.dates import DayInput
from domain.errors import Forbidden, InvalidInput, NotFound, StorageUnavailable
from domain.models import FocusItem, ReorderResult, Task, TaskState
from services.ledger_service import LedgerService
from storage.db import Database
from storage.repos import EntryRepo, FocusRepo, TaskRepo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FocusView:
    item: FocusItem
    task: Task
    current_state: TaskState
    day: str


class FocusService:
    """Ordered "today's focus" picks, read back with their completion state."""

    def __init__(self, db: Database, ledger: LedgerService):
        self.db = db
        self.ledger = ledger
        self.tasks = TaskRepo(db)
        self.entries = EntryRepo(db)
        self.focus = FocusRepo(db)

    def add(self, user_id: str, task_id: str) -> FocusItem:
        with self.db.transaction():
            task = self.tasks.get_owned(task_id, user_id)
            if not task or task.is_cancelled:
                raise NotFound("Task not found")
            existing = self.focus.get(user_id, task_id)
            if existing:
                return existing
            return self.focus.add(user_id, task_id)

    def remove(self, user_id: str, task_id: str) -> None:
        with self.db.guard():
            removed = self.focus.remove(user_id, task_id)
        if not removed:
            raise NotFound("Selected task not found")

    def list(self, user_id: str, day: Optional[DayInput] = None) -> List[FocusView]:
        key = self.ledger.normalize(day)
        with self.db.guard():
            items = self.focus.list(user_id)
            tasks = {}
            for item in items:
                t = self.tasks.get_owned(item.task_id, user_id)
                if t and not t.is_cancelled:
                    tasks[t.id] = t
            states = {
                e.task_id: e.state for e in self.entries.list_for_tasks(list(tasks), key)
            }
        return [
            FocusView(
                item=item,
                task=tasks[item.task_id],
                current_state=states.get(item.task_id, TaskState.NOT_STARTED),
                day=key,
            )
            for item in items
            if item.task_id in tasks
        ]

    def reorder(self, user_id: str, orders: Sequence[Tuple[str, int]]) -> ReorderResult:
        if not orders:
            return ReorderResult(updated=[], failed=[])
        for _, order in orders:
            if isinstance(order, bool) or not isinstance(order, int) or order < 0:
                raise InvalidInput("Order must be a non-negative integer")

        ids = [tid for tid, _ in orders]
        with self.db.guard():
            listed = set(self.focus.listed_task_ids(user_id, ids))
        if listed != set(ids):
            raise Forbidden("Some selected tasks do not belong to the user")

        updated: List[str] = []
        failed: List[str] = []
        for task_id, order in orders:
            try:
                with self.db.guard():
                    ok = self.focus.set_order(user_id, task_id, order)
            except StorageUnavailable:
                logger.warning("Focus reorder failed for task %s", task_id)
                ok = False
            (updated if ok else failed).append(task_id)
        return ReorderResult(updated=updated, failed=failed)
