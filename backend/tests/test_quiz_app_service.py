"""Interaction flows through QuizAppService, recorded by the outbox transport."""
import asyncio
import random
from datetime import timedelta

import pytest

from quizbot.application.corpus_app_service import CorpusAppService
from quizbot.application.quiz_app_service import HELP_TEXT, NOTHING_FOUND_TEXT, QuizAppService
from quizbot.domain.question.renderer import QUESTION_PRELUDE, Button
from quizbot.domain.session.grading import Grade, answered_text
from quizbot.domain.session.models import ConversationState, UserInfo
from quizbot.domain.session.token import AnswerToken, AnswerTokenCodec
from quizbot.persistence.repositories.memory.memory_question_repository import InMemoryQuestionRepository
from quizbot.persistence.repositories.memory.memory_session_store import InMemorySessionStore
from quizbot.transport.chat_transport import DisplayedMessage, InboundCallback, InboundMessage
from quizbot.transport.outbox import OutboxTransport

SECRET = "service-secret"
CID = 100
USER = UserInfo(uid=7, full_name="Ana Petrović", username="ana")

CORPUS = """
theme: Padeži
category: imenice
questions:
  - masked_sentence: Ovo je knjiga *****.
    base: moja sestra
    correct: moje sestre
    wrong_answers: [moju sestru, mojoj sestri, moja sestra]
    filters:
      - {name: case, value: genitive}
  - masked_sentence: Vidim *****.
    base: velika kuća
    correct: veliku kuću
    wrong_answers: [velike kuće, velikoj kući]
    filters:
      - {name: case, value: accusative}
"""


@pytest.fixture
def codec():
    return AnswerTokenCodec(SECRET)


@pytest.fixture
def store():
    return InMemorySessionStore()


@pytest.fixture
def repo(tmp_path):
    path = tmp_path / "cases.yaml"
    path.write_text(CORPUS, encoding="utf-8")
    repo = InMemoryQuestionRepository()
    assert CorpusAppService(repo).run_import(str(path)).is_success
    return repo


@pytest.fixture
def service(repo, store, codec):
    return QuizAppService(repo, store, codec, next_question_delay=0, rng=random.Random(0))


def send(svc, text, user=USER, reply_to_text=None):
    outbox = OutboxTransport()
    asyncio.run(svc.handle_message(outbox, InboundMessage(CID, user, text, reply_to_text)))
    return outbox.actions


def press(svc, question_action, button_index=None, data=None, user=USER, buttons=None):
    shown = buttons if buttons is not None else question_action["buttons"]
    message = DisplayedMessage(
        message_id=question_action["message_id"],
        text=question_action["text"],
        buttons=[Button(b["text"], b["data"]) for b in shown],
    )
    if data is None:
        data = question_action["buttons"][button_index]["data"]
    outbox = OutboxTransport()
    asyncio.run(svc.handle_callback(outbox, InboundCallback(CID, "cb-1", user, data, message)))
    return outbox.actions


def questions_in(actions):
    return [a for a in actions if a["type"] == "send_message" and a["buttons"]]


def option_index(codec, question_action, correct):
    for i, button in enumerate(question_action["buttons"]):
        if codec.decode(button["data"]).is_correct is correct:
            return i
    raise AssertionError("no such option")


# ------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------
def test_unknown_text_shows_help(service):
    for text in ("hello", "/help", "/unknown", None):
        actions = send(service, text)
        assert [a["text"] for a in actions] == [HELP_TEXT]


def test_start_announces_queue_and_asks(service):
    actions = send(service, "/start")
    notice, question = actions
    assert notice["text"].startswith("У меня есть 2 задачи, поехали\\!")
    assert notice["parse_mode"] == "MarkdownV2"
    assert question["text"].startswith(QUESTION_PRELUDE)
    assert question["parse_mode"] == "MarkdownV2"
    assert 3 <= len(question["buttons"]) <= 4

    # second question comes from the same queue, no notice
    assert len(send(service, "/start")) == 1


def test_start_with_bot_suffix(service):
    assert len(questions_in(send(service, "/start@quiz_bot"))) == 1


def test_filter_help_lists_values(service):
    (action,) = send(service, "/filter")
    assert "\\- case: accusative, genitive" in action["text"]
    assert action["parse_mode"] == "MarkdownV2"


def test_filter_without_matches(service, store):
    assert [a["text"] for a in send(service, "/filter dative")] == [NOTHING_FOUND_TEXT]
    assert store.get_state(CID) == ConversationState()


def test_filter_then_reset(service, store):
    notice, question = send(service, "/filter genitive")
    assert "1 задача по фильтру `genitive`" in notice["text"]
    assert "Ovo je knjiga" in question["text"]

    for command in ("/filter -", "/filter-reset"):
        actions = send(service, command)
        assert actions[0]["text"].startswith("У меня есть 2 задачи, поехали")
        assert store.get_state(CID).filter_text is None


# ------------------------------------------------------------------
# Answers
# ------------------------------------------------------------------
def test_end_to_end_correct_answer(service, store, codec):
    (question,) = questions_in(send(service, "/filter genitive"))
    actions = press(service, question, option_index(codec, question, True))

    assert actions[0] == {"type": "answer_callback", "callback_id": "cb-1"}
    edit = actions[1]
    assert edit["type"] == "edit_message"
    assert edit["message_id"] == question["message_id"]
    assert edit["buttons"] == []
    assert edit["parse_mode"] == "MarkdownV2"
    assert not edit["text"].startswith(QUESTION_PRELUDE)
    assert edit["text"].endswith("\n\n\n✅ moje sestre")
    assert "❌" not in edit["text"]
    # next question follows right away
    assert len(questions_in(actions)) == 1

    stat = store.windowed_stat(USER.uid, timedelta(hours=24))
    assert (stat.count, stat.correct) == (1, 1)


def test_wrong_answer_shows_both(service, store, codec):
    (question,) = questions_in(send(service, "/filter genitive"))
    wrong = option_index(codec, question, False)
    actions = press(service, question, wrong)

    edit = actions[1]
    chosen = question["buttons"][wrong]["text"]
    assert edit["text"].endswith(f"\n❌ {chosen}\n✅ moje sestre")
    stat = store.windowed_stat(USER.uid, timedelta(hours=24))
    assert (stat.count, stat.correct) == (1, 0)


def test_answered_text_keeps_markup_and_opens_spoilers():
    sent = QUESTION_PRELUDE + "Ovo je `[moja sestra]`\\.\n\nrod: ||ženski||"
    grade = Grade(AnswerToken(1, 0, False, 0), correct=False, chosen_text="moju (sestru).", correct_text="moje sestre")

    text = answered_text(sent, grade, ".-!()")
    assert text == "Ovo je `[moja sestra]`\\.\n\nrod: ženski\n\n\n❌ moju \\(sestru\\)\\.\n✅ moje sestre"


def test_selector_does_not_share_the_prompt_rng(repo, store, codec):
    rng = random.Random(0)
    service = QuizAppService(repo, store, codec, next_question_delay=0, rng=rng)
    assert service._rng is rng
    assert service._selector._rng is not rng


def test_progress_feedback_every_fifth_answer(service, codec):
    (question,) = questions_in(send(service, "/start"))
    feedback = []
    for _ in range(5):
        actions = press(service, question, option_index(codec, question, True))
        feedback += [a["text"] for a in actions if a["type"] == "send_message" and "За сутки" in a["text"]]
        question = questions_in(actions)[-1]
    assert feedback == ["За сутки у вас 5 ответов, из них 5 правильных (100%).\nПревосходно, так держать!"]


# ------------------------------------------------------------------
# Tampering and stale callbacks
# ------------------------------------------------------------------
def _error_texts(actions):
    return [a["text"] for a in actions if a["type"] == "send_message" and a["text"].startswith("Ууупс!")]


def test_forged_token_is_reported(service, store):
    (question,) = questions_in(send(service, "/start"))
    forged = AnswerTokenCodec("other").encode(1, 0, True, 0)
    actions = press(service, question, data=forged)
    (error,) = _error_texts(actions)
    assert "Malformed answer token" in error
    assert error.endswith("Напишите (нажмите) /start, чтобы продолжить")
    assert store.windowed_stat(USER.uid, timedelta(hours=24)).count == 0


def test_button_from_another_message_is_rejected(service, codec):
    first, second = questions_in(send(service, "/start") + send(service, "/start"))
    actions = press(service, second, data=first["buttons"][0]["data"])
    (error,) = _error_texts(actions)
    assert "Bad callback data in button" in error


def test_tampered_sibling_is_rejected(service, codec):
    (question,) = questions_in(send(service, "/start"))
    buttons = [dict(b) for b in question["buttons"]]
    buttons[-1]["data"] = "garbage"
    actions = press(service, question, button_index=0, buttons=buttons)
    (error,) = _error_texts(actions)
    assert "Bad callback data in button" in error


def test_missing_message_is_reported(service):
    outbox = OutboxTransport()
    asyncio.run(service.handle_callback(outbox, InboundCallback(CID, "cb", USER, "x", None)))
    (error,) = _error_texts(outbox.actions)
    assert "No message found" in error


def test_missing_buttons_are_reported(service):
    (question,) = questions_in(send(service, "/start"))
    (error,) = _error_texts(press(service, question, button_index=0, buttons=[]))
    assert "No reply markup" in error


def test_unexpected_errors_are_reported(repo, codec, caplog):
    class BrokenStore(InMemorySessionStore):
        def pop_task(self, conversation_id, refill):
            raise RuntimeError("disk on fire")

    svc = QuizAppService(repo, BrokenStore(), codec, next_question_delay=0)
    (error,) = _error_texts(send(svc, "/start"))
    assert "disk on fire" in error
    assert "unexpected error" in caplog.text


# ------------------------------------------------------------------
# Feedback
# ------------------------------------------------------------------
def test_feedback_requires_configured_chat(service):
    (error,) = _error_texts(send(service, "/feedback hello"))
    assert "No feedback chat id" in error


def test_feedback_is_forwarded(repo, store, codec):
    svc = QuizAppService(repo, store, codec, feedback_chat_id=-500, next_question_delay=0)
    forwarded, thanks = send(svc, "/feedback typo here", reply_to_text="Vidim kuću")
    assert forwarded["conversation_id"] == -500
    assert forwarded["text"] == "Feedback from @ana (Ana Petrović):\n\ntypo here\n\nReply to:\n\nVidim kuću"
    assert thanks["conversation_id"] == CID


def test_feedback_without_text_asks_for_it(repo, store, codec):
    svc = QuizAppService(repo, store, codec, feedback_chat_id=-500, next_question_delay=0)
    (prompt,) = send(svc, "/feedback")
    assert prompt["conversation_id"] == CID
    assert prompt["text"].startswith("Пожалуйста, напишите текст")
