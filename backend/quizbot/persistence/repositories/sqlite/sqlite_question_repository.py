"""SQLite implementation of QuestionRepository."""
from __future__ import annotations
import json
import logging
from typing import List, Optional, Sequence, Set, Tuple

from quizbot.domain.question.filter import FilterExpression, FilterInfo, collect_filter_info, matches
from quizbot.domain.question.models import Question
from quizbot.persistence.db import get_connection
from quizbot.persistence.interfaces.question_repository import QuestionRepository

logger = logging.getLogger(__name__)


def _row_to_question(row) -> Question:
    return Question.from_dict(json.loads(row["question_data"]))


class SqliteQuestionRepository(QuestionRepository):

    def __init__(self, database_path: Optional[str] = None):
        self._database_path = database_path

    def upsert_questions(self, questions: Sequence[Question]) -> Tuple[int, int]:
        conn = get_connection(self._database_path)
        try:
            conn.execute("BEGIN IMMEDIATE")
            conn.execute("CREATE TEMP TABLE IF NOT EXISTS import_batch (id INTEGER PRIMARY KEY)")
            conn.execute("DELETE FROM import_batch")
            for question in questions:
                data = question.to_dict()
                conn.execute(
                    """
                    INSERT INTO question_info (id, active, attributes, question_data)
                    VALUES (:id, 1, :attributes, :question_data)
                    ON CONFLICT(id) DO UPDATE SET
                        active        = 1,
                        attributes    = excluded.attributes,
                        question_data = excluded.question_data
                    """,
                    {
                        "id": question.id,
                        "attributes": json.dumps({a.name: a.value for a in question.attributes}, ensure_ascii=False),
                        "question_data": json.dumps(data, ensure_ascii=False),
                    },
                )
                conn.execute("INSERT OR IGNORE INTO import_batch (id) VALUES (?)", (question.id,))

            upserted = conn.execute("SELECT COUNT(*) FROM import_batch").fetchone()[0]
            cur = conn.execute(
                """
                UPDATE question_info SET active = 0
                WHERE active = 1 AND id NOT IN (SELECT id FROM import_batch)
                """
            )
            deactivated = cur.rowcount
            conn.execute("DROP TABLE import_batch")
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

        logger.info("Upserted %d questions, deactivated %d", upserted, deactivated)
        return upserted, deactivated

    def _active_questions(self) -> List[Question]:
        conn = get_connection(self._database_path)
        try:
            rows = conn.execute(
                "SELECT question_data FROM question_info WHERE active = 1 ORDER BY id"
            ).fetchall()
        finally:
            conn.close()
        return [_row_to_question(r) for r in rows]

    def get_question_ids(self, expression: Optional[FilterExpression] = None) -> List[int]:
        # substring matching over attribute values happens in Python
        expression = expression or FilterExpression()
        return [q.id for q in self._active_questions() if matches(q.attributes, expression)]

    def get_question(self, question_id: int) -> Optional[Question]:
        conn = get_connection(self._database_path)
        try:
            row = conn.execute(
                "SELECT question_data FROM question_info WHERE id = ?", (question_id,)
            ).fetchone()
        finally:
            conn.close()
        return _row_to_question(row) if row else None

    def collect_filter_info(self) -> List[FilterInfo]:
        return collect_filter_info(self._active_questions())

    def active_ids(self) -> Set[int]:
        conn = get_connection(self._database_path)
        try:
            rows = conn.execute("SELECT id FROM question_info WHERE active = 1").fetchall()
        finally:
            conn.close()
        return {r["id"] for r in rows}
