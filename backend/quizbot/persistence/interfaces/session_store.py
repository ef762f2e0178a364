"""Abstract store for conversation state and long-term user data.

Every method is one atomic unit: implementations must never expose a
half-applied read-then-write of a conversation's filter or queue.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence

from quizbot.domain.session.models import AnswerRecord, AnswerStat, ConversationState, TaskTake, UserInfo

# Given the conversation's raw filter text, return the new (already shuffled) queue.
# May raise to abort the pop without touching the stored state.
RefillFn = Callable[[Optional[str]], List[int]]


class SessionStore(ABC):

    @abstractmethod
    def touch_user(self, user: UserInfo) -> bool:
        """Create the user or bump last_active_at. Returns True for a new user."""
        ...

    @abstractmethod
    def get_state(self, conversation_id: int) -> ConversationState:
        """Snapshot of the conversation (a fresh default state if unseen)."""
        ...

    @abstractmethod
    def update_state(self, conversation_id: int, state: ConversationState) -> None:
        """Replace filter and queue together."""
        ...

    @abstractmethod
    def enqueue_tasks(self, conversation_id: int, question_ids: Sequence[int]) -> None:
        """Replace the pending queue; the last id is delivered first."""
        ...

    @abstractmethod
    def take_next_task(self, conversation_id: int) -> Optional[int]:
        """Pop from the tail of the queue, None when empty."""
        ...

    @abstractmethod
    def pop_task(self, conversation_id: int, refill: RefillFn) -> TaskTake:
        """Pop from the tail, regenerating the queue with ``refill`` first if it
        is empty, all inside one critical section."""
        ...

    @abstractmethod
    def record_answer(self, record: AnswerRecord) -> None:
        """Append-only."""
        ...

    @abstractmethod
    def windowed_stat(self, user_id: int, window: timedelta, now: Optional[datetime] = None) -> AnswerStat:
        """Count and correct count of answers with answered_at in [now - window, now]."""
        ...
