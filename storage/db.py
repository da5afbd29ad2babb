#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import logging
import sqlite3
from contextlib import contextmanager
from typing import Iterator

from domain.errors import StorageUnavailable

logger = logging.getLogger(__name__)


class Database:
    def __init__(self, db_path: str = "missions.db"):
        self.db_path = db_path
        self._tx_depth = 0
        try:
            self.conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            logger.exception("Cannot open database %s", self.db_path)
            raise StorageUnavailable() from e
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON;")

    def init_schema(self):
        with self.guard():
            self._init_schema()

    def _init_schema(self):
        cur = self.conn.cursor()

        # --- tasks ---
        cur.execute("""
            CREATE TABLE IF NOT EXISTS tasks (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                title TEXT NOT NULL,
                description TEXT,
                kind TEXT NOT NULL DEFAULT 'DAILY',
                due_date TEXT,
                category TEXT NOT NULL DEFAULT 'MAIN',
                sort_order INTEGER NOT NULL DEFAULT 0,
                parent_id TEXT REFERENCES tasks(id) ON DELETE CASCADE,
                is_cancelled INTEGER NOT NULL DEFAULT 0,
                created_at INTEGER NOT NULL,
                updated_at INTEGER NOT NULL
            );
        """)

        # --- completion entries: at most one per (task, day) ---
        cur.execute("""
            CREATE TABLE IF NOT EXISTS entries (
                id TEXT PRIMARY KEY,
                task_id TEXT NOT NULL,
                day TEXT NOT NULL,
                state TEXT NOT NULL,
                created_at INTEGER NOT NULL,
                UNIQUE (task_id, day),
                FOREIGN KEY(task_id) REFERENCES tasks(id) ON DELETE CASCADE
            );
        """)

        # --- categories ---
        cur.execute("""
            CREATE TABLE IF NOT EXISTS categories (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                name TEXT NOT NULL,
                color TEXT,
                sort_order INTEGER NOT NULL,
                created_at INTEGER NOT NULL,
                UNIQUE (user_id, name)
            );
        """)

        # --- focus list ---
        cur.execute("""
            CREATE TABLE IF NOT EXISTS focus_items (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                task_id TEXT NOT NULL,
                sort_order INTEGER NOT NULL,
                selected_at INTEGER NOT NULL,
                UNIQUE (user_id, task_id),
                FOREIGN KEY(task_id) REFERENCES tasks(id) ON DELETE CASCADE
            );
        """)

        # --- indexes ---
        cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_user ON tasks(user_id);")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_parent ON tasks(parent_id);")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_entries_day ON entries(day);")
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_focus_user ON focus_items(user_id);"
        )

        self.conn.commit()

    # ---- error translation / transactions ----
    @contextmanager
    def guard(self) -> Iterator[sqlite3.Connection]:
        """Turn sqlite failures into StorageUnavailable, logging the detail."""
        try:
            yield self.conn
        except sqlite3.Error as e:
            logger.exception("Storage failure on %s", self.db_path)
            # an open transaction would block the next BEGIN IMMEDIATE
            if self._tx_depth == 0 and self.conn.in_transaction:
                self.conn.rollback()
            raise StorageUnavailable() from e

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        One atomic unit. Nested use joins the outer transaction; repo
        commits are deferred until the outermost block exits.
        """
        with self.guard():
            outer = self._tx_depth == 0
            if outer:
                self.conn.execute("BEGIN IMMEDIATE")
            self._tx_depth += 1
            try:
                yield self.conn
            except BaseException:
                self._tx_depth -= 1
                if outer:
                    self.conn.rollback()
                raise
            self._tx_depth -= 1
            if outer:
                self.conn.commit()

    def commit(self) -> None:
        if self._tx_depth == 0:
            self.conn.commit()

    def close(self):
        try:
            self.conn.close()
        except sqlite3.Error:
            logger.warning("Error while closing %s", self.db_path, exc_info=True)
