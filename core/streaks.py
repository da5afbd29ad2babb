# -*- coding: utf-8 -*-

from fractions import Fraction
from typing import Sequence

from domain.models import DayStatus, StreakSummary

GOOD_THRESHOLD = Fraction(7, 10)
FLAWLESS_THRESHOLD = Fraction(1)


def classify_day(completed: int, total: int) -> DayStatus:
    if total <= 0:
        return DayStatus.NONE
    ratio = Fraction(completed, total)
    if ratio >= FLAWLESS_THRESHOLD:
        return DayStatus.FLAWLESS
    if ratio >= GOOD_THRESHOLD:
        return DayStatus.GOOD
    return DayStatus.NONE


def current_streak(statuses: Sequence[DayStatus]) -> int:
    """Qualifying days in a row, counted back from the newest day."""
    run = 0
    for status in reversed(statuses):
        if not status.qualifies:
            break
        run += 1
    return run


def best_streak(statuses: Sequence[DayStatus]) -> int:
    run = 0
    best = 0
    for status in statuses:
        if status.qualifies:
            run += 1
            best = max(best, run)
        else:
            run = 0
    return best


def analyze_streaks(statuses: Sequence[DayStatus]) -> StreakSummary:
    """
    statuses are ordered oldest -> newest.

    current is anchored at the newest day, best is the longest run anywhere
    in the range, so they are computed in separate walks.
    """
    return StreakSummary(
        current=current_streak(statuses),
        best=best_streak(statuses),
        good_days=sum(1 for s in statuses if s is DayStatus.GOOD),
        flawless_days=sum(1 for s in statuses if s is DayStatus.FLAWLESS),
        total_days=len(statuses),
    )
