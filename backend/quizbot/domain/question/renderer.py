"""Turns a Question into display text plus answer buttons."""
from __future__ import annotations
import logging
import random
from dataclasses import dataclass
from typing import List, Optional

from quizbot.domain.common.text import escape_markup
from quizbot.domain.question.models import Question
from quizbot.domain.question.rules import BLANK_MARKER
from quizbot.domain.session.token import AnswerTokenCodec

logger = logging.getLogger(__name__)

QUESTION_PRELUDE = "➖❔➖❔➖❔➖❔➖❔➖\n\n\n"
MISSING_WORD = "?????"
MAX_DISTRACTORS = 3
# ||...|| renders as a spoiler: hidden until the user taps it
SPOILER = "||"


@dataclass(frozen=True)
class Button:
    text: str
    data: str


@dataclass(frozen=True)
class RenderedQuestion:
    text: str
    options: List[Button]


def fill_blanks(template: str, base: str) -> str:
    """Put the base words into the ``*****`` blanks of ``template``.

    Blanks take one word each, left to right, except the last one which takes
    every remaining word. A blank with no word left gets a placeholder.
    """
    words = base.split()
    parts = template.split(BLANK_MARKER)
    last_blank = len(parts) - 2

    result = [parts[0]]
    for i, part in enumerate(parts[1:]):
        if i >= len(words):
            logger.warning("Not enough words in base %r for sentence %r", base, template)
            filled = MISSING_WORD
        elif i < last_blank:
            filled = words[i]
        else:
            filled = " ".join(words[i:])
        result.append(f"`[{filled}]`")
        result.append(part)
    return "".join(result)


def compose_text(question: Question, escape_chars: str) -> str:
    text = QUESTION_PRELUDE + fill_blanks(question.prompt_template, question.base) + "\n"
    for line in question.supplemental_info:
        text += f"\n\n_{line}_\n"
    for hint in question.hints:
        text += f"\n{hint.name}: {SPOILER}{hint.value}{SPOILER}"
    return escape_markup(text, escape_chars)


def pick_options(question: Question, rng: random.Random) -> list[tuple[str, bool]]:
    pool = [d for d in dict.fromkeys(question.distractors) if d != question.correct_answer]
    chosen = rng.sample(pool, min(MAX_DISTRACTORS, len(pool)))
    options = [(question.correct_answer, True)] + [(d, False) for d in chosen]
    rng.shuffle(options)
    return options


def build_prompt(
    question: Question,
    codec: AnswerTokenCodec,
    presented_at_ms: int,
    escape_chars: str,
    rng: Optional[random.Random] = None,
) -> RenderedQuestion:
    rng = rng or random.Random()
    buttons = [
        Button(text=text, data=codec.encode(question.id, index, is_correct, presented_at_ms))
        for index, (text, is_correct) in enumerate(pick_options(question, rng))
    ]
    return RenderedQuestion(text=compose_text(question, escape_chars), options=buttons)


def first_line(rendered_text: str) -> str:
    """Sentence line of a rendered question, for logs."""
    body = rendered_text[len(QUESTION_PRELUDE):] if rendered_text.startswith(QUESTION_PRELUDE) else rendered_text
    lines = body.strip().splitlines()
    return lines[0] if lines else ""
