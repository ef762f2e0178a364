"""Grades a pressed answer button against the buttons of its own message.

The pressed token alone is not trusted: the grade comes from scanning every
sibling button of the original message, finding the one the engine marked
correct when it rendered the question, and comparing indexes.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Sequence

from quizbot.domain.common.errors import BadCallbackDataInButton, MalformedToken, MissingReplyContext
from quizbot.domain.common.text import escape_markup
from quizbot.domain.question.renderer import QUESTION_PRELUDE, SPOILER, Button
from quizbot.domain.session.token import AnswerToken, AnswerTokenCodec


@dataclass(frozen=True)
class Grade:
    token: AnswerToken
    correct: bool
    chosen_text: str
    correct_text: str


def grade_answer(codec: AnswerTokenCodec, pressed_data: Optional[str], buttons: Sequence[Button]) -> Grade:
    if not pressed_data:
        raise MalformedToken("No data")
    pressed = codec.decode(pressed_data)

    if not buttons:
        raise MissingReplyContext("No reply markup")

    siblings: list[tuple[Button, AnswerToken]] = []
    for button in buttons:
        try:
            siblings.append((button, codec.decode(button.data)))
        except MalformedToken as e:
            raise BadCallbackDataInButton() from e

    for _, token in siblings:
        if token.question_id != pressed.question_id or token.presented_at_ms != pressed.presented_at_ms:
            raise BadCallbackDataInButton("Bad callback data in button: buttons belong to another question")

    correct = [(b, t) for b, t in siblings if t.is_correct]
    if len(correct) != 1:
        raise BadCallbackDataInButton("Bad callback data in button: expected exactly one correct option")

    chosen = [(b, t) for b, t in siblings if t.option_index == pressed.option_index]
    if len(chosen) != 1 or chosen[0][1] != pressed:
        raise BadCallbackDataInButton("Bad callback data in button: pressed option is not on the message")

    (correct_button, correct_token), (chosen_button, _) = correct[0], chosen[0]
    return Grade(
        token=pressed,
        correct=pressed.option_index == correct_token.option_index,
        chosen_text=chosen_button.text,
        correct_text=correct_button.text,
    )


def answered_text(original_text: Optional[str], grade: Grade, escape_chars: str) -> str:
    """MarkdownV2 source of an answered question.

    ``original_text`` is the source the question was sent with. The prelude is
    dropped, hint spoilers are opened and the outcome is appended with the
    option texts escaped like the rest of the message.
    """
    text = original_text or ""
    if text.startswith(QUESTION_PRELUDE):
        text = text[len(QUESTION_PRELUDE):]
    text = text.replace(SPOILER, "")
    text += "\n\n"
    if not grade.correct:
        text += f"\n❌ {escape_markup(grade.chosen_text, escape_chars)}"
    text += f"\n✅ {escape_markup(grade.correct_text, escape_chars)}"
    return text
