"""Dependency injection container: wires implementations to interfaces."""
from __future__ import annotations
from functools import lru_cache

from quizbot.application.corpus_app_service import CorpusAppService
from quizbot.application.quiz_app_service import QuizAppService
from quizbot.core import config
from quizbot.domain.session.token import AnswerTokenCodec
from quizbot.persistence.interfaces.question_repository import QuestionRepository
from quizbot.persistence.interfaces.session_store import SessionStore
from quizbot.persistence.repositories.memory.memory_question_repository import InMemoryQuestionRepository
from quizbot.persistence.repositories.memory.memory_session_store import InMemorySessionStore
from quizbot.persistence.repositories.sqlite.sqlite_question_repository import SqliteQuestionRepository
from quizbot.persistence.repositories.sqlite.sqlite_session_store import SqliteSessionStore

STORE_BACKENDS = ("memory", "sqlite")


def _backend() -> str:
    if config.STORE_BACKEND not in STORE_BACKENDS:
        raise ValueError(f"Unknown STORE_BACKEND '{config.STORE_BACKEND}', expected one of {STORE_BACKENDS}")
    return config.STORE_BACKEND


@lru_cache(maxsize=1)
def get_question_repo() -> QuestionRepository:
    if _backend() == "sqlite":
        return SqliteQuestionRepository()
    return InMemoryQuestionRepository()


@lru_cache(maxsize=1)
def get_session_store() -> SessionStore:
    if _backend() == "sqlite":
        return SqliteSessionStore()
    return InMemorySessionStore()


@lru_cache(maxsize=1)
def get_token_codec() -> AnswerTokenCodec:
    return AnswerTokenCodec(config.TOKEN_SECRET)


@lru_cache(maxsize=1)
def get_corpus_app_service() -> CorpusAppService:
    return CorpusAppService(repo=get_question_repo())


@lru_cache(maxsize=1)
def get_quiz_app_service() -> QuizAppService:
    return QuizAppService(
        questions=get_question_repo(),
        store=get_session_store(),
        codec=get_token_codec(),
        feedback_chat_id=config.FEEDBACK_CHAT_ID,
        next_question_delay=config.NEXT_QUESTION_DELAY_SECONDS,
        escape_chars=config.MARKUP_ESCAPE_CHARS,
    )
