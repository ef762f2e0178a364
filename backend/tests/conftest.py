"""Shared fixtures: question factories and repositories."""
import pytest

from quizbot.domain.question.rules import build_question
from quizbot.persistence.repositories.memory.memory_question_repository import InMemoryQuestionRepository


def _question(
    masked="Vidim *****.",
    base="velika kuća",
    correct="veliku kuću",
    wrong=("velike kuće", "velikoj kući", "velika kuća"),
    filters=(("case", "accusative"),),
    hints=(),
    info=(),
    sentence="",
):
    result = build_question({
        "sentence": sentence,
        "masked_sentence": masked,
        "base": base,
        "correct": correct,
        "wrong_answers": list(wrong),
        "filters": [{"name": n, "value": v} for n, v in filters],
        "hints": [{"name": n, "value": v} for n, v in hints],
        "info": list(info),
    })
    assert result.is_success, result.error
    return result.value


@pytest.fixture
def make_question():
    return _question


@pytest.fixture
def genitive_question():
    return _question(
        masked="Ovo je knjiga *****.",
        base="moja sestra",
        correct="moje sestre",
        wrong=("moju sestru", "mojoj sestri", "moja sestra"),
        filters=(("case", "genitive"),),
        hints=(("падеж", "genitiv"),),
        info=("Это книга моей сестры.",),
    )


@pytest.fixture
def accusative_question():
    return _question()


@pytest.fixture
def question_repo(genitive_question, accusative_question):
    return InMemoryQuestionRepository([genitive_question, accusative_question])
