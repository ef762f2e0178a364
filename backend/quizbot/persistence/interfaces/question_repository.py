"""Abstract repository interface for the question corpus."""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Set, Tuple

from quizbot.domain.question.filter import FilterExpression, FilterInfo
from quizbot.domain.question.models import Question


class QuestionRepository(ABC):

    @abstractmethod
    def upsert_questions(self, questions: Sequence[Question]) -> Tuple[int, int]:
        """Insert or reactivate every question of the batch and deactivate the
        ones missing from it. Returns (upserted, deactivated)."""
        ...

    @abstractmethod
    def get_question_ids(self, expression: Optional[FilterExpression] = None) -> List[int]:
        """Ids of active questions matching ``expression`` (all active if None)."""
        ...

    @abstractmethod
    def get_question(self, question_id: int) -> Optional[Question]:
        """Return the question, active or not, or None."""
        ...

    @abstractmethod
    def collect_filter_info(self) -> List[FilterInfo]:
        """Attribute names with their possible values over active questions."""
        ...

    @abstractmethod
    def active_ids(self) -> Set[int]:
        ...
