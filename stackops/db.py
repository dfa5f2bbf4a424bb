from __future__ import annotations

import os
import sqlite3
from typing import Any

from . import console
from .outcomes import utc_now
from .settings import settings


def _resolve_db_path() -> str:
    """Return a file path usable by sqlite.

    If the configured path is a directory (e.g. a bind mount that Docker
    created as a directory), the DB file is placed inside it.
    """

    p = os.path.abspath(settings.db_path)

    if os.path.isdir(p):
        p = os.path.join(p, "stackops.db")

    parent = os.path.dirname(p)
    if parent and not os.path.exists(parent):
        os.makedirs(parent, exist_ok=True)

    return p


def connect() -> sqlite3.Connection:
    conn = sqlite3.connect(_resolve_db_path(), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def init_db() -> bool:
    """Create tables if they do not exist.

    Returns False when the database cannot be opened. The event log is
    optional, so callers keep going without it.
    """
    try:
        with connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS events (
                  id INTEGER PRIMARY KEY AUTOINCREMENT,
                  ts TEXT NOT NULL,
                  level TEXT NOT NULL,
                  service_name TEXT,
                  container TEXT,
                  message TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_events_ts ON events(ts);
                """
            )
    except (sqlite3.Error, OSError) as e:
        console.warning(f"Event log unavailable ({settings.db_path}): {e}")
        return False
    return True


def log_event(level: str, message: str, service_name: str | None = None, container: str | None = None) -> None:
    try:
        with connect() as conn:
            conn.execute(
                "INSERT INTO events (ts, level, service_name, container, message) VALUES (?, ?, ?, ?, ?)",
                (utc_now(), level.upper(), service_name, container, message),
            )
    except (sqlite3.Error, OSError) as e:
        console.warning(f"Could not record event: {e}")


def latest_events(limit: int = 100) -> list[dict[str, Any]]:
    with connect() as conn:
        rows = conn.execute("SELECT * FROM events ORDER BY id DESC LIMIT ?", (limit,)).fetchall()
        return [dict(r) for r in rows]
