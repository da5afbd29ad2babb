# services/task_service.py
#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import datetime as dt
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from core.dates import DayInput, day_key, normalize_day
from domain.errors import Forbidden, InvalidInput, NotFound, StorageUnavailable
from domain.models import DEFAULT_CATEGORY, ReorderResult, Task, TaskKind
from storage.db import Database
from storage.repos import TaskRepo

logger = logging.getLogger(__name__)

TITLE_MAX = 200
DESCRIPTION_MAX = 1000
CATEGORY_MAX = 191

_UNSET = object()


def _clean_title(title: Optional[str]) -> str:
    title = (title or "").strip()
    if not title:
        raise InvalidInput("Title is required")
    if len(title) > TITLE_MAX:
        raise InvalidInput(f"Title must be {TITLE_MAX} characters or less")
    return title


def _clean_description(description: Optional[str]) -> Optional[str]:
    description = (description or "").strip() or None
    if description and len(description) > DESCRIPTION_MAX:
        raise InvalidInput(f"Description must be {DESCRIPTION_MAX} characters or less")
    return description


def _clean_category(category: Optional[str]) -> str:
    category = (category or "").strip() or DEFAULT_CATEGORY
    if len(category) > CATEGORY_MAX:
        raise InvalidInput(f"Category must be {CATEGORY_MAX} characters or less")
    return category


def _clean_kind(kind) -> TaskKind:
    if isinstance(kind, str):
        kind = kind.strip().upper()
    try:
        return TaskKind(kind)
    except ValueError:
        raise InvalidInput("Invalid task kind. Use DAILY/ONE_TIME.")


class TaskService:
    """
    Task tree lifecycle: missions, their sub-items and one-off tasks.
    Every call is scoped to the owning user; foreign tasks look missing.
    """

    def __init__(self, db: Database, tz: Optional[dt.tzinfo] = None):
        self.db = db
        self.tz = tz
        self.tasks = TaskRepo(db)

    def _owned(self, user_id: str, task_id: str) -> Task:
        t = self.tasks.get_owned(task_id, user_id)
        if not t:
            raise NotFound("Task not found")
        return t

    def get_task(self, user_id: str, task_id: str) -> Task:
        with self.db.guard():
            return self._owned(user_id, task_id)

    # ---- tasks ----
    def create_task(
        self,
        user_id: str,
        title: str,
        kind=TaskKind.DAILY,
        description: Optional[str] = None,
        category: Optional[str] = None,
        due_date: Optional[DayInput] = None,
        parent_id: Optional[str] = None,
    ) -> Task:
        title = _clean_title(title)
        description = _clean_description(description)
        kind = _clean_kind(kind)

        due: Optional[str] = None
        if kind is TaskKind.ONE_TIME:
            if parent_id:
                raise InvalidInput("One-time tasks cannot be sub-items")
            if due_date is None or due_date == "":
                raise InvalidInput("One-time tasks require a due date")
            due = day_key(normalize_day(due_date, self.tz))
            if _clean_category(category) != DEFAULT_CATEGORY:
                raise InvalidInput("One-time tasks have no category")
            category = DEFAULT_CATEGORY
        else:
            if due_date:
                raise InvalidInput("Only one-time tasks take a due date")
            category = _clean_category(category)

        with self.db.transaction():
            if parent_id:
                parent = self.tasks.get_owned(parent_id, user_id)
                if not parent:
                    raise NotFound("Parent task not found")
                if parent.kind is not TaskKind.DAILY:
                    raise InvalidInput("Only daily missions can have sub-items")
                if parent.is_sub_item:
                    raise InvalidInput("Sub-items cannot have sub-items")
                if parent.is_cancelled:
                    raise InvalidInput("Parent task is cancelled")
                category = parent.category

            order = self.tasks.max_order(user_id, parent_id) + 1
            task = self.tasks.create(
                user_id=user_id,
                title=title,
                kind=kind,
                description=description,
                due_date=due,
                category=category,
                order=order,
                parent_id=parent_id,
            )
        logger.debug("Created %s task %s for %s", kind.value, task.id, user_id)
        return task

    def update_task(
        self,
        user_id: str,
        task_id: str,
        title=_UNSET,
        description=_UNSET,
        category=_UNSET,
        due_date=_UNSET,
    ) -> Task:
        fields: Dict[str, object] = {}
        if title is not _UNSET:
            fields["title"] = _clean_title(title)
        if description is not _UNSET:
            fields["description"] = _clean_description(description)
        if category is not _UNSET:
            fields["category"] = _clean_category(category)
        if due_date is not _UNSET:
            if not due_date:
                raise InvalidInput("Due date cannot be empty")
            fields["due_date"] = day_key(normalize_day(due_date, self.tz))

        with self.db.transaction():
            task = self._owned(user_id, task_id)
            if "due_date" in fields and task.kind is not TaskKind.ONE_TIME:
                raise InvalidInput("Only one-time tasks have a due date")
            if "category" in fields:
                if task.is_sub_item:
                    raise InvalidInput("Sub-items take their category from their mission")
                if task.kind is TaskKind.ONE_TIME:
                    raise InvalidInput("One-time tasks have no category")
            if not fields:
                return task

            self.tasks.update_fields(task_id, fields)
            if "category" in fields:
                self.tasks.set_category_for_children(task_id, fields["category"])
            return self.tasks.get(task_id)

    def delete_task(self, user_id: str, task_id: str) -> Task:
        """
        Daily tasks are cancelled so their history survives; one-off tasks
        are removed together with their entries.
        """
        with self.db.transaction():
            task = self._owned(user_id, task_id)
            if task.kind is TaskKind.DAILY:
                self.tasks.cancel(task_id)
                logger.debug("Cancelled task %s", task_id)
                return self.tasks.get(task_id)
            self.tasks.delete_task(task_id)
            logger.debug("Deleted task %s", task_id)
            return task

    def list_children(self, user_id: str, task_id: str) -> List[Task]:
        with self.db.guard():
            self._owned(user_id, task_id)
            return self.tasks.list_children(task_id)

    # ---- ordering ----
    def reorder(self, user_id: str, orders: Sequence[Tuple[str, int]]) -> ReorderResult:
        """
        Apply (task_id, order) pairs as independent row writes.
        Ownership of the whole batch is checked first; rows that fail to
        update afterwards are reported, not raised.
        """
        if not orders:
            return ReorderResult(updated=[], failed=[])
        for _, order in orders:
            if isinstance(order, bool) or not isinstance(order, int) or order < 0:
                raise InvalidInput("Order must be a non-negative integer")

        ids = [tid for tid, _ in orders]
        with self.db.guard():
            owned = set(self.tasks.owned_ids(user_id, ids))
        if owned != set(ids):
            raise Forbidden("Some tasks do not belong to the user")

        updated: List[str] = []
        failed: List[str] = []
        for task_id, order in orders:
            try:
                with self.db.guard():
                    ok = self.tasks.set_order(task_id, user_id, order)
            except StorageUnavailable:
                logger.warning("Reorder failed for task %s", task_id)
                ok = False
            (updated if ok else failed).append(task_id)
        return ReorderResult(updated=updated, failed=failed)
