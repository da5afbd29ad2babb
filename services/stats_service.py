# -*- coding: utf-8 -*-

from __future__ import annotations

import datetime as dt
import logging
from collections import defaultdict
from typing import Dict, List, Optional, Tuple

from core.config import Settings
from core.dates import Clock, DayInput, day_key, iter_days, normalize_day
from core.streaks import analyze_streaks, classify_day
from domain.errors import InvalidInput
from domain.models import DayBreakdown, RangeStats, TaskState, Totals
from storage.db import Database
from storage.repos import EntryRepo, TaskRepo

logger = logging.getLogger(__name__)


class StatsService:
    def __init__(
        self,
        db: Database,
        clock: Optional[Clock] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.clock = clock or Clock()
        self.settings = settings or Settings()
        self.tasks = TaskRepo(db)
        self.entries = EntryRepo(db)

    def resolve_range(
        self, start: Optional[DayInput] = None, end: Optional[DayInput] = None
    ) -> Tuple[dt.date, dt.date]:
        tz = self.clock.tz
        end_day = normalize_day(end, tz) if end else self.clock.today()

        if start:
            start_day = normalize_day(start, tz)
        else:
            window = self.settings.stats_window_days
            if window:
                start_day = end_day - dt.timedelta(days=window - 1)
            else:
                start_day = self.settings.stats_default_start
            # a default start never overtakes the end
            start_day = min(start_day, end_day)

        if start_day > end_day:
            raise InvalidInput("Start date must be before end date")
        return start_day, end_day

    def get_range_stats(
        self,
        user_id: str,
        start: Optional[DayInput] = None,
        end: Optional[DayInput] = None,
    ) -> RangeStats:
        start_day, end_day = self.resolve_range(start, end)
        start_key, end_key = day_key(start_day), day_key(end_day)

        with self.db.guard():
            daily_count = self.tasks.count_active_daily(user_id)
            one_time_by_day = self.tasks.count_one_time_by_day(user_id, start_key, end_key)
            entries = self.entries.list_relevant_in_range(user_id, start_key, end_key)

        states_by_day: Dict[str, List[TaskState]] = defaultdict(list)
        for e in entries:
            states_by_day[e.day].append(e.state)

        daily: List[DayBreakdown] = []
        aggregates = Totals()
        for day in iter_days(start_day, end_day):
            key = day_key(day)
            totals = self._fold_day(
                daily_count + one_time_by_day.get(key, 0), states_by_day.get(key, [])
            )
            daily.append(
                DayBreakdown(
                    date=key,
                    totals=totals,
                    status=classify_day(totals.completed, totals.total),
                )
            )
            aggregates.add(totals)

        streaks = analyze_streaks([d.status for d in daily])
        logger.debug(
            "Stats for %s %s..%s: %d days, current streak %d",
            user_id,
            start_key,
            end_key,
            len(daily),
            streaks.current,
        )
        return RangeStats(
            start=start_key,
            end=end_key,
            aggregates=aggregates,
            daily=daily,
            streaks=streaks,
        )

    @staticmethod
    def _fold_day(total: int, states: List[TaskState]) -> Totals:
        # stale entries beyond the day's population are ignored
        counted = states[:total]
        completed = sum(1 for s in counted if s is TaskState.COMPLETED)
        skipped = sum(1 for s in counted if s is TaskState.SKIPPED)
        return Totals(
            completed=completed,
            skipped=skipped,
            not_started=max(0, total - completed - skipped),
            total=total,
        )
