"""Per-conversation and per-user session models."""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def from_millis(millis: int) -> datetime:
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)


@dataclass
class ConversationState:
    filter_text: Optional[str] = None
    # consumed from the tail
    pending_queue: List[int] = field(default_factory=list)

    def copy(self) -> "ConversationState":
        return ConversationState(self.filter_text, list(self.pending_queue))


@dataclass
class UserInfo:
    uid: int
    full_name: str = ""
    username: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    last_active_at: datetime = field(default_factory=utc_now)

    @property
    def display(self) -> str:
        return f"@{self.username or 'unknown'} ({self.full_name})"


@dataclass(frozen=True)
class AnswerRecord:
    user_id: int
    question_id: int
    correct: bool
    asked_at: datetime
    answered_at: datetime


@dataclass(frozen=True)
class AnswerStat:
    count: int = 0
    correct: int = 0

    @property
    def accuracy_percent(self) -> int:
        if self.count == 0:
            return 0
        return self.correct * 100 // self.count


@dataclass(frozen=True)
class TaskTake:
    """Outcome of one atomic pop: the id (None if nothing left), the size of a
    freshly generated queue (None when no regeneration happened) and the filter
    the queue was generated with."""
    question_id: Optional[int]
    loaded_count: Optional[int] = None
    filter_text: Optional[str] = None
