"""Application service: turns chat interactions into quiz actions.

One coroutine per inbound interaction. Store calls block, so they are pushed
to the threadpool; transport calls are awaited. Every interaction runs under
:meth:`QuizAppService._guard`, which reports failures to the user instead of
letting them escape to the transport.
"""
from __future__ import annotations
import asyncio
import logging
import random
from typing import Awaitable, Callable, List, Optional

from fastapi.concurrency import run_in_threadpool

from quizbot.application.task_selector import Selection, TaskSelector
from quizbot.domain.common.errors import (
    FeedbackChatNotConfigured,
    MissingReplyContext,
    NoMatchingQuestions,
    QuizError,
)
from quizbot.domain.common.text import escape_markup, plural_ru
from quizbot.domain.question.filter import FilterInfo
from quizbot.domain.question.renderer import build_prompt, first_line
from quizbot.domain.session.grading import answered_text, grade_answer
from quizbot.domain.session.models import AnswerRecord, from_millis, to_millis, utc_now
from quizbot.domain.session.scoring import STATS_WINDOW, progress_feedback
from quizbot.domain.session.token import AnswerTokenCodec
from quizbot.persistence.interfaces.question_repository import QuestionRepository
from quizbot.persistence.interfaces.session_store import SessionStore
from quizbot.transport.chat_transport import MARKDOWN_V2, ChatTransport, InboundCallback, InboundMessage

logger = logging.getLogger(__name__)

HELP_TEXT = (
    "Привет! Этот бот поможет потренировать падежи сербского языка.\n"
    "\n"
    "/start - следующее задание\n"
    "/filter - выбрать задания по падежу, числу и другим признакам\n"
    "/feedback <текст> - написать авторам (можно ответом на сообщение бота)\n"
    "\n"
    "Вернуться к этому сообщению можно командой /help или любым другим текстом."
)

FILTER_HELP_TEXT = (
    "Фильтр позволяет выбрать задания по определенным признакам.\n"
    "Например, можно оставить только задания с падежом genitive.\n"
    "\n"
    "Перечислите через запятую значения, которые нужно оставить. Например, `/filter genitive, accusative`.\n"
    "\n"
    "Чтобы задание удовлетворяло нескольким признакам сразу, разделите их точкой с запятой. "
    "Например, `/filter genitive, accusative; plural`.\n"
    "\n"
    "Чтобы сбросить фильтр, используйте `/filter-reset` или `/filter -`.\n"
    "\n"
    "Возможные значения:\n"
)
FILTER_HELP_ESCAPE_CHARS = ".-*_()[]"

NOTHING_FOUND_TEXT = "Ничего не найдено по фильтру, попробуйте изменить его"
FEEDBACK_PROMPT_TEXT = (
    "Пожалуйста, напишите текст, что хотите отправить. "
    "В дополнение можно ответить на сообщение бота, чтобы сослаться на него."
)
FEEDBACK_THANKS_TEXT = "Спасибо, сообщение отправлено!"
ERROR_TEXT = "Ууупс! случилась неприятность:\n{error}\n\nНапишите (нажмите) /start, чтобы продолжить"

RESET_FILTER_ARGUMENT = "-"


def parse_command(text: Optional[str]) -> tuple[str, Optional[str]]:
    """Split ``/name argument`` into ``("name", "argument")``.

    Plain text yields an empty command name. ``/start@some_bot`` is read as
    ``start``. A missing or blank argument is None.
    """
    text = (text or "").strip()
    if not text.startswith("/"):
        return "", text or None
    name, _, argument = text[1:].partition(" ")
    name = name.split("@", 1)[0].lower()
    argument = argument.strip()
    return name, argument or None


class QuizAppService:
    def __init__(
        self,
        questions: QuestionRepository,
        store: SessionStore,
        codec: AnswerTokenCodec,
        feedback_chat_id: Optional[int] = None,
        next_question_delay: float = 1.0,
        escape_chars: str = ".-!()",
        rng: Optional[random.Random] = None,
    ):
        self._questions = questions
        self._store = store
        self._codec = codec
        self._feedback_chat_id = feedback_chat_id
        self._next_question_delay = next_question_delay
        self._escape_chars = escape_chars
        self._rng = rng or random.Random()
        # the selector shuffles in worker threads, prompts are built on the event loop
        self._selector = TaskSelector(questions, store, random.Random(self._rng.getrandbits(64)))

    # ------------------------------------------------------------------
    # Inbound interactions
    # ------------------------------------------------------------------
    async def handle_message(self, transport: ChatTransport, message: InboundMessage) -> None:
        cid = message.conversation_id

        async def action():
            if message.user is not None:
                await run_in_threadpool(self._store.touch_user, message.user)
            else:
                logger.debug("#%s got message from unknown user", cid)

            command, argument = parse_command(message.text)
            if command == "start":
                await self.ask_next(transport, cid)
            elif command == "filter":
                await self.handle_filter(transport, cid, argument)
            elif command == "filter-reset":
                await self.handle_filter(transport, cid, RESET_FILTER_ARGUMENT)
            elif command == "feedback":
                await self.send_feedback(transport, message, argument)
            else:
                await transport.send_message(cid, HELP_TEXT)

        await self._guard(transport, cid, action)

    async def handle_callback(self, transport: ChatTransport, callback: InboundCallback) -> None:
        cid = callback.conversation_id

        async def action():
            if callback.user is not None:
                await run_in_threadpool(self._store.touch_user, callback.user)
            await transport.answer_callback(callback.callback_id)

            if callback.message is None:
                raise MissingReplyContext()
            await self.handle_answer(transport, callback)

        await self._guard(transport, cid, action)

    # ------------------------------------------------------------------
    # Questions and answers
    # ------------------------------------------------------------------
    async def ask_next(self, transport: ChatTransport, conversation_id: int) -> None:
        selection = await run_in_threadpool(self._selector.next, conversation_id)
        if selection.loaded_count is not None:
            await transport.send_message(conversation_id, self._loaded_notice(selection), parse_mode=MARKDOWN_V2)

        prompt = build_prompt(
            selection.question,
            self._codec,
            presented_at_ms=to_millis(utc_now()),
            escape_chars=self._escape_chars,
            rng=self._rng,
        )
        logger.debug("#%s asking: %s", conversation_id, first_line(prompt.text))
        await transport.send_message(conversation_id, prompt.text, buttons=prompt.options, parse_mode=MARKDOWN_V2)

    @staticmethod
    def _loaded_notice(selection: Selection) -> str:
        count = selection.loaded_count
        tasks = plural_ru(count, "задач", "задача", "задачи")
        suffix = ""
        if selection.filter_text:
            shown = escape_markup(selection.filter_text, "`\\")
            suffix = f" по фильтру `{shown}` \\(используйте /filter, чтобы поменять\\)"
        return (
            f"У меня есть {count} {tasks}{suffix}, поехали\\!\n\n"
            "_Напоминаю, задачи сгенерированы автоматически и могут содержать ошибки\\. "
            "Хотя мы очень старались, чтобы это происходило пореже\\._"
        )

    async def handle_answer(self, transport: ChatTransport, callback: InboundCallback) -> None:
        cid = callback.conversation_id
        message = callback.message
        grade = grade_answer(self._codec, callback.data, message.buttons)
        logger.debug("#%s got answer correct=%s", cid, grade.correct)

        if callback.user is not None:
            record = AnswerRecord(
                user_id=callback.user.uid,
                question_id=grade.token.question_id,
                correct=grade.correct,
                asked_at=from_millis(grade.token.presented_at_ms),
                answered_at=utc_now(),
            )
            await run_in_threadpool(self._store.record_answer, record)
        else:
            logger.warning("#%s answer without a user, not recorded", cid)

        await transport.edit_message(
            cid,
            message.message_id,
            answered_text(message.text, grade, self._escape_chars),
            buttons=None,
            parse_mode=MARKDOWN_V2,
        )

        if callback.user is not None:
            stat = await run_in_threadpool(self._store.windowed_stat, callback.user.uid, STATS_WINDOW)
            feedback = progress_feedback(stat)
            if feedback:
                await transport.send_message(cid, feedback)

        await asyncio.sleep(self._next_question_delay)
        await self.ask_next(transport, cid)

    # ------------------------------------------------------------------
    # Filters
    # ------------------------------------------------------------------
    def filter_info(self) -> List[FilterInfo]:
        return self._questions.collect_filter_info()

    async def handle_filter(self, transport: ChatTransport, conversation_id: int, argument: Optional[str]) -> None:
        if argument is None:
            await self.send_filter_help(transport, conversation_id)
            return

        if argument == RESET_FILTER_ARGUMENT:
            await run_in_threadpool(self._selector.reset_filter, conversation_id)
        else:
            try:
                await run_in_threadpool(self._selector.change_filter, conversation_id, argument)
            except NoMatchingQuestions:
                await transport.send_message(conversation_id, NOTHING_FOUND_TEXT)
                return
        await self.ask_next(transport, conversation_id)

    async def send_filter_help(self, transport: ChatTransport, conversation_id: int) -> None:
        text = FILTER_HELP_TEXT
        for info in await run_in_threadpool(self.filter_info):
            text += f"- {info.name}: {', '.join(info.possible_values)}\n"
        await transport.send_message(
            conversation_id,
            escape_markup(text, FILTER_HELP_ESCAPE_CHARS),
            parse_mode=MARKDOWN_V2,
        )

    # ------------------------------------------------------------------
    # Feedback
    # ------------------------------------------------------------------
    async def send_feedback(self, transport: ChatTransport, message: InboundMessage, text: Optional[str]) -> None:
        if self._feedback_chat_id is None:
            raise FeedbackChatNotConfigured()
        if text is None:
            await transport.send_message(message.conversation_id, FEEDBACK_PROMPT_TEXT)
            return

        sender = message.user.display if message.user is not None else ""
        forwarded = f"Feedback from {sender}:\n\n{text}"
        if message.reply_to_text is not None:
            forwarded += f"\n\nReply to:\n\n{message.reply_to_text}"
        await transport.send_message(self._feedback_chat_id, forwarded)
        await transport.send_message(message.conversation_id, FEEDBACK_THANKS_TEXT)

    # ------------------------------------------------------------------
    # Error boundary
    # ------------------------------------------------------------------
    async def _guard(
        self,
        transport: ChatTransport,
        conversation_id: int,
        action: Callable[[], Awaitable[None]],
    ) -> None:
        try:
            await action()
        except QuizError as err:
            logger.error("#%s error: %s", conversation_id, err)
            await transport.send_message(conversation_id, ERROR_TEXT.format(error=err))
        except Exception as err:
            logger.exception("#%s unexpected error", conversation_id)
            await transport.send_message(conversation_id, ERROR_TEXT.format(error=err))
