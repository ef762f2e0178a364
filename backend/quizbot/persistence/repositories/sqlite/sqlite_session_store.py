"""SQLite implementation of SessionStore.

Durable and safe across processes: every read-then-write runs inside a
``BEGIN IMMEDIATE`` transaction, which takes the database write lock up front
so two interactions on the same conversation cannot interleave.
"""
from __future__ import annotations
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Iterator, Optional, Sequence

from quizbot.domain.session.models import (
    AnswerRecord,
    AnswerStat,
    ConversationState,
    TaskTake,
    UserInfo,
    to_millis,
    utc_now,
)
from quizbot.persistence.db import get_connection
from quizbot.persistence.interfaces.session_store import RefillFn, SessionStore

logger = logging.getLogger(__name__)


class SqliteSessionStore(SessionStore):

    def __init__(self, database_path: Optional[str] = None):
        self._database_path = database_path

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        conn = get_connection(self._database_path)
        try:
            conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @staticmethod
    def _replace_queue(conn: sqlite3.Connection, conversation_id: int, question_ids: Sequence[int]) -> None:
        conn.execute("DELETE FROM conversation_task WHERE conversation_id = ?", (conversation_id,))
        conn.executemany(
            "INSERT INTO conversation_task (conversation_id, question_id) VALUES (?, ?)",
            [(conversation_id, qid) for qid in question_ids],
        )

    @staticmethod
    def _pop_tail(conn: sqlite3.Connection, conversation_id: int) -> Optional[int]:
        row = conn.execute(
            """
            SELECT id, question_id FROM conversation_task
            WHERE conversation_id = ?
            ORDER BY id DESC
            LIMIT 1
            """,
            (conversation_id,),
        ).fetchone()
        if row is None:
            return None
        conn.execute("DELETE FROM conversation_task WHERE id = ?", (row["id"],))
        return row["question_id"]

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------
    def touch_user(self, user: UserInfo) -> bool:
        now = utc_now().isoformat()
        with self._transaction() as conn:
            exists = conn.execute("SELECT 1 FROM user_info WHERE uid = ?", (user.uid,)).fetchone()
            if exists:
                conn.execute(
                    """
                    UPDATE user_info
                    SET username = ?, full_name = ?, last_active_at = ?
                    WHERE uid = ?
                    """,
                    (user.username, user.full_name, now, user.uid),
                )
                return False
            conn.execute(
                """
                INSERT INTO user_info (uid, username, full_name, created_at, last_active_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (user.uid, user.username, user.full_name, now, now),
            )
        logger.info("New user: %s uid=%s", user.display, user.uid)
        return True

    # ------------------------------------------------------------------
    # Conversation state
    # ------------------------------------------------------------------
    def get_state(self, conversation_id: int) -> ConversationState:
        conn = get_connection(self._database_path)
        try:
            # filter and queue come from one snapshot
            conn.execute("BEGIN")
            row = conn.execute(
                "SELECT filter FROM conversation_state WHERE conversation_id = ?", (conversation_id,)
            ).fetchone()
            queue = conn.execute(
                "SELECT question_id FROM conversation_task WHERE conversation_id = ? ORDER BY id",
                (conversation_id,),
            ).fetchall()
            conn.commit()
        finally:
            conn.close()
        return ConversationState(
            filter_text=row["filter"] if row else None,
            pending_queue=[r["question_id"] for r in queue],
        )

    def update_state(self, conversation_id: int, state: ConversationState) -> None:
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO conversation_state (conversation_id, filter)
                VALUES (?, ?)
                ON CONFLICT(conversation_id) DO UPDATE SET filter = excluded.filter
                """,
                (conversation_id, state.filter_text),
            )
            self._replace_queue(conn, conversation_id, state.pending_queue)

    def enqueue_tasks(self, conversation_id: int, question_ids: Sequence[int]) -> None:
        with self._transaction() as conn:
            self._replace_queue(conn, conversation_id, question_ids)

    def take_next_task(self, conversation_id: int) -> Optional[int]:
        with self._transaction() as conn:
            return self._pop_tail(conn, conversation_id)

    def pop_task(self, conversation_id: int, refill: RefillFn) -> TaskTake:
        with self._transaction() as conn:
            question_id = self._pop_tail(conn, conversation_id)
            if question_id is not None:
                return TaskTake(question_id)

            row = conn.execute(
                "SELECT filter FROM conversation_state WHERE conversation_id = ?", (conversation_id,)
            ).fetchone()
            filter_text = row["filter"] if row else None
            queue = list(refill(filter_text))
            self._replace_queue(conn, conversation_id, queue)
            return TaskTake(self._pop_tail(conn, conversation_id), len(queue), filter_text)

    # ------------------------------------------------------------------
    # Answers
    # ------------------------------------------------------------------
    def record_answer(self, record: AnswerRecord) -> None:
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO user_answer (uid, question_id, correct, asked_at_ms, answered_at_ms)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    record.user_id,
                    record.question_id,
                    1 if record.correct else 0,
                    to_millis(record.asked_at),
                    to_millis(record.answered_at),
                ),
            )

    def windowed_stat(self, user_id: int, window: timedelta, now: Optional[datetime] = None) -> AnswerStat:
        now = now or utc_now()
        conn = get_connection(self._database_path)
        try:
            row = conn.execute(
                """
                SELECT COUNT(*) AS count, COALESCE(SUM(correct), 0) AS correct
                FROM user_answer
                WHERE uid = ? AND answered_at_ms BETWEEN ? AND ?
                """,
                (user_id, to_millis(now - window), to_millis(now)),
            ).fetchone()
        finally:
            conn.close()
        return AnswerStat(count=row["count"], correct=row["correct"])
