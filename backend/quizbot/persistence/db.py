"""SQLite connection + schema initialisation."""
from __future__ import annotations
import os
import sqlite3
from typing import Optional

from quizbot.core.config import DATABASE_PATH

_MIGRATIONS_DIR = os.path.join(os.path.dirname(__file__), "migrations")


def get_connection(database_path: Optional[str] = None) -> sqlite3.Connection:
    conn = sqlite3.connect(database_path or DATABASE_PATH, timeout=10, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    return conn


def init_db(database_path: Optional[str] = None) -> None:
    """Run all migration SQL files, in name order, against the database."""
    path = database_path or DATABASE_PATH
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    scripts = sorted(f for f in os.listdir(_MIGRATIONS_DIR) if f.endswith(".sql"))
    conn = get_connection(path)
    try:
        for name in scripts:
            with open(os.path.join(_MIGRATIONS_DIR, name), "r", encoding="utf-8") as f:
                conn.executescript(f.read())
        conn.commit()
    finally:
        conn.close()
