# -*- coding: utf-8 -*-

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

DEFAULT_CATEGORY = "MAIN"


class TaskKind(str, Enum):
    DAILY = "DAILY"
    ONE_TIME = "ONE_TIME"


class TaskState(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    COMPLETED = "COMPLETED"
    SKIPPED = "SKIPPED"


class DayStatus(str, Enum):
    NONE = "NONE"
    GOOD = "GOOD"
    FLAWLESS = "FLAWLESS"

    @property
    def qualifies(self) -> bool:
        return self is not DayStatus.NONE


@dataclass(frozen=True)
class Task:
    id: str
    user_id: str
    title: str
    kind: TaskKind
    category: str
    order: int
    created_at: int
    updated_at: int
    description: Optional[str] = None
    due_date: Optional[str] = None  # yyyy-mm-dd, ONE_TIME only
    parent_id: Optional[str] = None
    is_cancelled: bool = False

    @property
    def is_sub_item(self) -> bool:
        return self.parent_id is not None


@dataclass(frozen=True)
class CompletionEntry:
    id: str
    task_id: str
    day: str  # yyyy-mm-dd
    state: TaskState
    created_at: int


@dataclass(frozen=True)
class Category:
    id: str
    user_id: str
    name: str
    order: int
    created_at: int
    color: Optional[str] = None


@dataclass(frozen=True)
class FocusItem:
    id: str
    user_id: str
    task_id: str
    order: int
    selected_at: int


# ---- results ----


@dataclass
class TaskView:
    task: Task
    current_state: TaskState
    day: str
    sub_items: List["TaskView"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        t = self.task
        return {
            "id": t.id,
            "title": t.title,
            "description": t.description,
            "kind": t.kind.value,
            "category": t.category,
            "order": t.order,
            "due_date": t.due_date,
            "parent_id": t.parent_id,
            "current_state": self.current_state.value,
            "date": self.day,
            "sub_items": [s.to_dict() for s in self.sub_items],
        }


@dataclass(frozen=True)
class StateChange:
    task_id: str
    state: TaskState
    day: str


@dataclass(frozen=True)
class ReorderResult:
    updated: List[str]
    failed: List[str]

    @property
    def ok(self) -> bool:
        return not self.failed


@dataclass
class Totals:
    completed: int = 0
    skipped: int = 0
    not_started: int = 0
    total: int = 0

    def add(self, other: "Totals") -> None:
        self.completed += other.completed
        self.skipped += other.skipped
        self.not_started += other.not_started
        self.total += other.total


@dataclass(frozen=True)
class DayBreakdown:
    date: str
    totals: Totals
    status: DayStatus


@dataclass(frozen=True)
class StreakSummary:
    current: int = 0
    best: int = 0
    good_days: int = 0
    flawless_days: int = 0
    total_days: int = 0


@dataclass(frozen=True)
class RangeStats:
    start: str
    end: str
    aggregates: Totals
    daily: List[DayBreakdown]
    streaks: StreakSummary

    def to_dict(self) -> Dict[str, Any]:
        def totals(t: Totals) -> Dict[str, int]:
            return {
                "completed": t.completed,
                "skipped": t.skipped,
                "not_started": t.not_started,
                "total": t.total,
            }

        return {
            "range": {"start": self.start, "end": self.end},
            "aggregates": totals(self.aggregates),
            "daily": [
                {"date": d.date, "totals": totals(d.totals), "status": d.status.value}
                for d in self.daily
            ],
            "streaks": {"current": self.streaks.current, "best": self.streaks.best},
            "day_stats": {
                "good": self.streaks.good_days,
                "flawless": self.streaks.flawless_days,
                "total": self.streaks.total_days,
            },
        }
