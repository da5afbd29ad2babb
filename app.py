#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import argparse
import json
import logging
import sys
from dataclasses import dataclass
from typing import List, Mapping, Optional

from rich import box
from rich.console import Console
from rich.table import Table

from core.config import Settings, load_settings
from core.dates import Clock
from domain.errors import TrackerError
from domain.models import DayStatus, TaskKind, TaskState, TaskView
from services.focus_service import FocusService
from services.ledger_service import LedgerService
from services.stats_service import StatsService
from services.task_service import TaskService
from storage.db import Database
from storage.repos import EntryRepo

logger = logging.getLogger(__name__)

COLORS = {
    "primary": "bright_cyan",
    "success": "green",
    "warning": "bright_yellow",
    "error": "bright_red",
    "muted": "grey58",
}

STATE_STYLE = {
    TaskState.COMPLETED: COLORS["success"],
    TaskState.SKIPPED: COLORS["warning"],
    TaskState.NOT_STARTED: COLORS["muted"],
}

STATUS_STYLE = {
    DayStatus.FLAWLESS: COLORS["success"],
    DayStatus.GOOD: COLORS["primary"],
    DayStatus.NONE: COLORS["muted"],
}


@dataclass
class App:
    settings: Settings
    db: Database
    clock: Clock
    tasks: TaskService
    ledger: LedgerService
    stats: StatsService
    focus: FocusService


def build_app(settings: Settings, clock: Optional[Clock] = None) -> App:
    db = Database(db_path=settings.db_path)
    db.init_schema()

    clock = clock or Clock.from_name(settings.tz)
    ledger = LedgerService(db, clock)
    return App(
        settings=settings,
        db=db,
        clock=clock,
        tasks=TaskService(db, clock.tz),
        ledger=ledger,
        stats=StatsService(db, clock, settings),
        focus=FocusService(db, ledger),
    )


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="missions", description="Daily missions tracker")
    parser.add_argument("--user", help="User id (defaults to configured user_id)")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("list", help="Tasks for a day with their state")
    p.add_argument("--date", help="YYYY-MM-DD or ISO timestamp (default: today)")

    p = sub.add_parser("add", help="Create a task")
    p.add_argument("title")
    p.add_argument("--description")
    p.add_argument("--category")
    p.add_argument("--parent", help="Mission id to attach this sub-item to")
    p.add_argument("--one-time", action="store_true", help="One-off task bound to --due")
    p.add_argument("--due", help="Due date for one-off tasks")

    p = sub.add_parser("state", help="Set a task's state for a day")
    p.add_argument("task_id")
    p.add_argument("state", choices=[s.value for s in TaskState])
    p.add_argument("--date")

    p = sub.add_parser("done", help="Mark a task completed")
    p.add_argument("task_id")
    p.add_argument("--date")

    p = sub.add_parser("delete", help="Cancel a daily task or delete a one-off task")
    p.add_argument("task_id")

    p = sub.add_parser("stats", help="Completion stats and streaks for a range")
    p.add_argument("--start")
    p.add_argument("--end")
    p.add_argument("--json", action="store_true", help="Print raw JSON")

    p = sub.add_parser("focus", help="Today's focus list")
    p.add_argument("action", choices=["add", "remove", "list"])
    p.add_argument("task_id", nargs="?")
    p.add_argument("--date")

    p = sub.add_parser("sweep", help="Purge completion entries older than a day")
    p.add_argument("--before", help="Cutoff day (default: today)")

    return parser


def _render_day(console: Console, views: List[TaskView], day: str) -> None:
    table = Table(title=f"Missions for {day}", box=box.SIMPLE, padding=(0, 1))
    table.add_column("ID", style=COLORS["muted"], no_wrap=True)
    table.add_column("Task")
    table.add_column("Category", style=COLORS["primary"])
    table.add_column("State")

    def row(v: TaskView, indent: str = "") -> None:
        title = indent + v.task.title
        if v.task.kind is TaskKind.ONE_TIME:
            title += " (once)"
        state = v.current_state
        table.add_row(
            v.task.id,
            title,
            v.task.category,
            f"[{STATE_STYLE[state]}]{state.value}[/]",
        )

    for v in views:
        row(v)
        for s in v.sub_items:
            row(s, indent="  └ ")

    if not views:
        console.print(f"[{COLORS['muted']}]No tasks for {day}.[/]")
        return
    console.print(table)


def _render_stats(console: Console, stats) -> None:
    agg = stats.aggregates
    summary = Table(box=box.SIMPLE, show_header=False, padding=(0, 1))
    summary.add_row("Range", f"{stats.start} .. {stats.end}")
    summary.add_row("Completed", str(agg.completed))
    summary.add_row("Skipped", str(agg.skipped))
    summary.add_row("Not started", str(agg.not_started))
    summary.add_row("Total", str(agg.total))
    summary.add_row("Current streak", str(stats.streaks.current))
    summary.add_row("Best streak", str(stats.streaks.best))
    summary.add_row("Good / flawless days", f"{stats.streaks.good_days} / {stats.streaks.flawless_days}")
    console.print(summary)

    days = Table(box=box.SIMPLE, padding=(0, 1))
    for col in ("Date", "Done", "Skipped", "Open", "Total", "Status"):
        days.add_column(col)
    for d in stats.daily:
        t = d.totals
        days.add_row(
            d.date,
            str(t.completed),
            str(t.skipped),
            str(t.not_started),
            str(t.total),
            f"[{STATUS_STYLE[d.status]}]{d.status.value}[/]",
        )
    console.print(days)


def run(app: App, args: argparse.Namespace, console: Console) -> int:
    user = args.user or app.settings.user_id

    if args.command == "list":
        day = app.ledger.normalize(args.date)
        _render_day(console, app.ledger.list_for_day(user, day), day)

    elif args.command == "add":
        task = app.tasks.create_task(
            user,
            args.title,
            kind=TaskKind.ONE_TIME if args.one_time else TaskKind.DAILY,
            description=args.description,
            category=args.category,
            due_date=args.due,
            parent_id=args.parent,
        )
        console.print(f"[{COLORS['success']}]Created[/] {task.id} {task.title}")

    elif args.command in ("state", "done"):
        state = TaskState.COMPLETED if args.command == "done" else args.state
        change = app.ledger.set_state(user, args.task_id, state, args.date)
        console.print(f"{change.task_id} {change.day} -> {change.state.value}")

    elif args.command == "delete":
        task = app.tasks.delete_task(user, args.task_id)
        verb = "Cancelled" if task.kind is TaskKind.DAILY else "Deleted"
        console.print(f"{verb} {task.id} {task.title}")

    elif args.command == "stats":
        stats = app.stats.get_range_stats(user, args.start, args.end)
        if args.json:
            console.print_json(json.dumps(stats.to_dict()))
        else:
            _render_stats(console, stats)

    elif args.command == "focus":
        if args.action != "list" and not args.task_id:
            console.print(f"[{COLORS['error']}]focus {args.action} needs a task id[/]")
            return 2
        if args.action == "add":
            app.focus.add(user, args.task_id)
        elif args.action == "remove":
            app.focus.remove(user, args.task_id)
        for v in app.focus.list(user, args.date):
            console.print(f"{v.item.order:>3} {v.task.title} [{STATE_STYLE[v.current_state]}]{v.current_state.value}[/]")

    elif args.command == "sweep":
        cutoff = app.ledger.normalize(args.before)
        with app.db.guard():
            removed = EntryRepo(app.db).purge_before(cutoff)
        logger.info("Purged %d entries before %s", removed, cutoff)
        console.print(f"Purged {removed} entries before {cutoff}")

    return 0


def main(
    argv: Optional[List[str]] = None,
    console: Optional[Console] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> int:
    console = console or Console()
    args = _parser().parse_args(argv)

    try:
        settings = load_settings(environ)
        logging.basicConfig(level=settings.log_level, format="%(levelname)s: %(message)s")
        app = build_app(settings)
    except TrackerError as e:
        console.print(f"[{COLORS['error']}]{e.kind}:[/] {e.message}")
        return 1

    try:
        return run(app, args, console)
    except TrackerError as e:
        console.print(f"[{COLORS['error']}]{e.kind}:[/] {e.message}")
        return 1
    finally:
        app.db.close()


if __name__ == "__main__":
    sys.exit(main())
