"""In-process implementation of QuestionRepository."""
from __future__ import annotations
import logging
import threading
from typing import Dict, List, Optional, Sequence, Set, Tuple

from quizbot.domain.question.filter import FilterExpression, FilterInfo, collect_filter_info, matches
from quizbot.domain.question.models import Question
from quizbot.persistence.interfaces.question_repository import QuestionRepository

logger = logging.getLogger(__name__)


class InMemoryQuestionRepository(QuestionRepository):

    def __init__(self, questions: Sequence[Question] = ()):
        self._lock = threading.Lock()
        # insertion ordered; inactive questions stay resolvable by id
        self._questions: Dict[int, Question] = {}
        self._active: Set[int] = set()
        if questions:
            self.upsert_questions(questions)

    def upsert_questions(self, questions: Sequence[Question]) -> Tuple[int, int]:
        with self._lock:
            batch_ids = set()
            for question in questions:
                self._questions[question.id] = question
                batch_ids.add(question.id)
            deactivated = len(self._active - batch_ids)
            self._active = batch_ids
        logger.info("Upserted %d questions, deactivated %d", len(batch_ids), deactivated)
        return len(batch_ids), deactivated

    def _active_questions(self) -> List[Question]:
        with self._lock:
            return [q for qid, q in self._questions.items() if qid in self._active]

    def get_question_ids(self, expression: Optional[FilterExpression] = None) -> List[int]:
        expression = expression or FilterExpression()
        return [q.id for q in self._active_questions() if matches(q.attributes, expression)]

    def get_question(self, question_id: int) -> Optional[Question]:
        with self._lock:
            return self._questions.get(question_id)

    def collect_filter_info(self) -> List[FilterInfo]:
        return collect_filter_info(self._active_questions())

    def active_ids(self) -> Set[int]:
        with self._lock:
            return set(self._active)
