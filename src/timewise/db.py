"""SQLite storage for activities, sessions and user configuration."""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator

from .config import UserConfig
from .errors import DataIntegrityError
from .models import Activity, Interval, Session

logger = logging.getLogger(__name__)


def open_database(path: Path, *, check_same_thread: bool = True) -> sqlite3.Connection:
    """Open (and initialize) the SQLite database."""
    conn = sqlite3.connect(
        path,
        isolation_level=None,
        check_same_thread=check_same_thread,
    )
    conn.row_factory = sqlite3.Row
    enable_foreign_keys(conn)
    initialize_schema(conn)
    return conn


@contextmanager
def database_connection(
    path: Path, *, check_same_thread: bool = True
) -> Iterator[sqlite3.Connection]:
    conn = open_database(path, check_same_thread=check_same_thread)
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    conn.execute("BEGIN IMMEDIATE;")
    try:
        yield conn
    except BaseException:
        conn.execute("ROLLBACK;")
        raise
    conn.execute("COMMIT;")


def enable_foreign_keys(conn: sqlite3.Connection) -> None:
    conn.execute("PRAGMA foreign_keys = ON;")


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS activities (
            id TEXT PRIMARY KEY,
            label TEXT NOT NULL,
            category TEXT NOT NULL,
            priority TEXT NOT NULL,
            cognitive_load TEXT NOT NULL,
            daily_max INTEGER,
            session_max INTEGER,
            archived INTEGER NOT NULL DEFAULT 0,
            estimated_duration INTEGER,
            scheduled_days TEXT NOT NULL DEFAULT '[]'
        );

        CREATE TABLE IF NOT EXISTS sessions (
            id TEXT PRIMARY KEY,
            position INTEGER NOT NULL,
            activity_id TEXT NOT NULL,
            session_start INTEGER NOT NULL,
            session_end INTEGER NOT NULL,
            total_duration INTEGER NOT NULL,
            auto_stopped INTEGER NOT NULL DEFAULT 0
        );

        CREATE TABLE IF NOT EXISTS intervals (
            session_id TEXT NOT NULL REFERENCES sessions(id) ON DELETE CASCADE,
            position INTEGER NOT NULL,
            start_ms INTEGER NOT NULL,
            end_ms INTEGER NOT NULL,
            duration INTEGER NOT NULL,
            PRIMARY KEY (session_id, position)
        );

        CREATE TABLE IF NOT EXISTS user_config (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_sessions_start
            ON sessions(session_start);
        """
    )


class SqliteRepository:
    """Repository backed by a single SQLite file.

    Every save is a whole-collection replace inside one transaction, so a
    reader never observes a half-written collection.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        with database_connection(self.db_path):
            pass

    def get_activities(self) -> list[Activity]:
        with database_connection(self.db_path) as conn:
            rows = conn.execute("SELECT * FROM activities ORDER BY rowid;").fetchall()
        return [
            Activity(
                id=row["id"],
                label=row["label"],
                category=row["category"],
                priority=row["priority"],
                cognitive_load=row["cognitive_load"],
                daily_max=row["daily_max"],
                session_max=row["session_max"],
                archived=bool(row["archived"]),
                estimated_duration=row["estimated_duration"],
                scheduled_days=json.loads(row["scheduled_days"]),
            )
            for row in rows
        ]

    def save_activities(self, activities: Iterable[Activity]) -> None:
        activities = list(activities)
        with database_connection(self.db_path) as conn, transaction(conn):
            conn.execute("DELETE FROM activities;")
            conn.executemany(
                """
                INSERT INTO activities (
                    id, label, category, priority, cognitive_load,
                    daily_max, session_max, archived,
                    estimated_duration, scheduled_days
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        a.id,
                        a.label,
                        a.category,
                        a.priority,
                        a.cognitive_load,
                        a.daily_max,
                        a.session_max,
                        1 if a.archived else 0,
                        a.estimated_duration,
                        json.dumps(a.scheduled_days),
                    )
                    for a in activities
                ],
            )
        logger.debug("Saved %d activities.", len(activities))

    def get_sessions(self) -> list[Session]:
        with database_connection(self.db_path) as conn:
            session_rows = conn.execute(
                "SELECT * FROM sessions ORDER BY position;"
            ).fetchall()
            interval_rows = conn.execute(
                "SELECT * FROM intervals ORDER BY session_id, position;"
            ).fetchall()

        intervals: dict[str, list[Interval]] = {}
        for row in interval_rows:
            intervals.setdefault(row["session_id"], []).append(
                Interval(start=row["start_ms"], end=row["end_ms"], duration=row["duration"])
            )
        return [
            Session(
                id=row["id"],
                activity_id=row["activity_id"],
                session_start=row["session_start"],
                session_end=row["session_end"],
                intervals=intervals.get(row["id"], []),
                total_duration=row["total_duration"],
                auto_stopped=bool(row["auto_stopped"]),
            )
            for row in session_rows
        ]

    def save_sessions(self, sessions: Iterable[Session]) -> None:
        sessions = list(sessions)
        for session in sessions:
            if session.session_end is None or session.open_interval is not None:
                raise DataIntegrityError(
                    f"Session {session.id} is still open and cannot be stored."
                )
        with database_connection(self.db_path) as conn, transaction(conn):
            conn.execute("DELETE FROM intervals;")
            conn.execute("DELETE FROM sessions;")
            conn.executemany(
                """
                INSERT INTO sessions (
                    id, position, activity_id, session_start, session_end,
                    total_duration, auto_stopped
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        s.id,
                        position,
                        s.activity_id,
                        s.session_start,
                        s.session_end,
                        s.total_duration,
                        1 if s.auto_stopped else 0,
                    )
                    for position, s in enumerate(sessions)
                ],
            )
            conn.executemany(
                """
                INSERT INTO intervals (session_id, position, start_ms, end_ms, duration)
                VALUES (?, ?, ?, ?, ?)
                """,
                [
                    (s.id, position, i.start, i.end, i.duration)
                    for s in sessions
                    for position, i in enumerate(s.intervals)
                ],
            )
        logger.debug("Saved %d sessions.", len(sessions))

    def get_user_config(self) -> UserConfig:
        with database_connection(self.db_path) as conn:
            rows = conn.execute("SELECT key, value FROM user_config;").fetchall()
        return UserConfig.from_mapping({row["key"]: json.loads(row["value"]) for row in rows})

    def save_user_config(self, config: UserConfig) -> None:
        with database_connection(self.db_path) as conn, transaction(conn):
            conn.execute("DELETE FROM user_config;")
            conn.executemany(
                "INSERT INTO user_config (key, value) VALUES (?, ?)",
                [(key, json.dumps(value)) for key, value in config.to_mapping().items()],
            )
