"""In-process SessionStore: dictionaries guarded by per-conversation locks.

Not durable: everything is lost on restart. Conversations never block each
other: the global lock is only held to look up or create a conversation's
own lock, never while its state is being changed.
"""
from __future__ import annotations
import logging
import threading
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

from quizbot.domain.session.models import (
    AnswerRecord,
    AnswerStat,
    ConversationState,
    TaskTake,
    UserInfo,
    utc_now,
)
from quizbot.persistence.interfaces.session_store import RefillFn, SessionStore

logger = logging.getLogger(__name__)


class InMemorySessionStore(SessionStore):

    def __init__(self):
        self._registry_lock = threading.Lock()
        self._conversation_locks: Dict[int, threading.Lock] = {}
        self._conversations: Dict[int, ConversationState] = {}

        self._users_lock = threading.Lock()
        self._users: Dict[int, UserInfo] = {}
        self._answers: Dict[int, List[AnswerRecord]] = {}

    def _lock_for(self, conversation_id: int) -> threading.Lock:
        with self._registry_lock:
            lock = self._conversation_locks.get(conversation_id)
            if lock is None:
                lock = self._conversation_locks[conversation_id] = threading.Lock()
                self._conversations[conversation_id] = ConversationState()
            return lock

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------
    def touch_user(self, user: UserInfo) -> bool:
        with self._users_lock:
            existing = self._users.get(user.uid)
            if existing is None:
                self._users[user.uid] = user
                logger.info("New user: %s uid=%s", user.display, user.uid)
                return True
            self._users[user.uid] = replace(
                existing,
                username=user.username,
                full_name=user.full_name,
                last_active_at=utc_now(),
            )
            return False

    # ------------------------------------------------------------------
    # Conversation state
    # ------------------------------------------------------------------
    def get_state(self, conversation_id: int) -> ConversationState:
        with self._lock_for(conversation_id):
            return self._conversations[conversation_id].copy()

    def update_state(self, conversation_id: int, state: ConversationState) -> None:
        with self._lock_for(conversation_id):
            self._conversations[conversation_id] = state.copy()

    def enqueue_tasks(self, conversation_id: int, question_ids: Sequence[int]) -> None:
        with self._lock_for(conversation_id):
            self._conversations[conversation_id].pending_queue = list(question_ids)

    def take_next_task(self, conversation_id: int) -> Optional[int]:
        with self._lock_for(conversation_id):
            queue = self._conversations[conversation_id].pending_queue
            return queue.pop() if queue else None

    def pop_task(self, conversation_id: int, refill: RefillFn) -> TaskTake:
        with self._lock_for(conversation_id):
            state = self._conversations[conversation_id]
            if state.pending_queue:
                return TaskTake(state.pending_queue.pop())
            state.pending_queue = list(refill(state.filter_text))
            loaded = len(state.pending_queue)
            question_id = state.pending_queue.pop() if loaded else None
            return TaskTake(question_id, loaded, state.filter_text)

    # ------------------------------------------------------------------
    # Answers
    # ------------------------------------------------------------------
    def record_answer(self, record: AnswerRecord) -> None:
        with self._users_lock:
            self._answers.setdefault(record.user_id, []).append(record)

    def windowed_stat(self, user_id: int, window: timedelta, now: Optional[datetime] = None) -> AnswerStat:
        now = now or utc_now()
        since = now - window
        with self._users_lock:
            records = [r for r in self._answers.get(user_id, []) if since <= r.answered_at <= now]
        return AnswerStat(count=len(records), correct=sum(1 for r in records if r.correct))
