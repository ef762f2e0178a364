"""Chooses the next question for a conversation.

Every eligible question is asked once, in random order, before any question
is asked again. The queue lives in the SessionStore; regeneration and pop
happen in one store call so concurrent interactions of the same
conversation never see a half-built queue.
"""
from __future__ import annotations
import logging
import random
import threading
from dataclasses import dataclass
from typing import List, Optional

from quizbot.domain.common.errors import NoMatchingQuestions, NoTaskFound
from quizbot.domain.question.filter import parse_filter
from quizbot.domain.question.models import Question
from quizbot.domain.session.models import ConversationState
from quizbot.persistence.interfaces.question_repository import QuestionRepository
from quizbot.persistence.interfaces.session_store import SessionStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Selection:
    question: Question
    # size of the queue generated for this pick, None if the queue was reused
    loaded_count: Optional[int]
    # filter the new queue was built with; only set together with loaded_count
    filter_text: Optional[str]


class TaskSelector:
    def __init__(self, questions: QuestionRepository, store: SessionStore, rng: Optional[random.Random] = None):
        self._questions = questions
        self._store = store
        self._rng = rng or random.Random()
        self._rng_lock = threading.Lock()

    def eligible_ids(self, filter_text: Optional[str]) -> List[int]:
        """Active question ids matching ``filter_text`` (all when it is empty)."""
        return self._questions.get_question_ids(parse_filter(filter_text or ""))

    def _refill(self, filter_text: Optional[str]) -> List[int]:
        ids = self.eligible_ids(filter_text)
        if not ids:
            raise NoMatchingQuestions(filter_text)
        with self._rng_lock:
            self._rng.shuffle(ids)
        return ids

    def next(self, conversation_id: int) -> Selection:
        take = self._store.pop_task(conversation_id, self._refill)
        if take.loaded_count is not None:
            logger.debug("#%s generated %d tasks", conversation_id, take.loaded_count)
        if take.question_id is None:
            raise NoTaskFound()

        question = self._questions.get_question(take.question_id)
        if question is None:
            raise NoTaskFound()

        return Selection(question=question, loaded_count=take.loaded_count, filter_text=take.filter_text)

    def change_filter(self, conversation_id: int, filter_text: str) -> int:
        """Store a new filter and drop the queue. Returns the eligible count.

        A filter that selects nothing is rejected and the state is left as is.
        """
        ids = self.eligible_ids(filter_text)
        if not ids:
            raise NoMatchingQuestions(filter_text)
        self._store.update_state(conversation_id, ConversationState(filter_text=filter_text))
        logger.debug("#%s filter set to %r (%d tasks)", conversation_id, filter_text, len(ids))
        return len(ids)

    def reset_filter(self, conversation_id: int) -> None:
        self._store.update_state(conversation_id, ConversationState())
        logger.debug("#%s filter reset", conversation_id)
