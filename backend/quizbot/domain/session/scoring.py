"""Progress feedback policy over the rolling answer window."""
from __future__ import annotations
from datetime import timedelta
from typing import Optional

from quizbot.domain.common.text import plural_ru
from quizbot.domain.session.models import AnswerStat

STATS_WINDOW = timedelta(hours=24)
FEEDBACK_EVERY = 5

# Upper bounds (inclusive) of the accuracy bands, in percent
ENCOURAGEMENT_MAX = 30
AFFIRMATION_MAX = 90

ENCOURAGEMENT = "encouragement"
AFFIRMATION = "affirmation"
PRAISE = "praise"

_CLOSINGS = {
    ENCOURAGEMENT: "Не сдавайтесь, с каждым ответом будет получаться лучше!",
    AFFIRMATION: "Хороший результат, продолжайте в том же духе!",
    PRAISE: "Превосходно, так держать!",
}


def feedback_category(percent: int) -> str:
    if percent <= ENCOURAGEMENT_MAX:
        return ENCOURAGEMENT
    if percent <= AFFIRMATION_MAX:
        return AFFIRMATION
    return PRAISE


def feedback_due(stat: AnswerStat) -> bool:
    return stat.count > 0 and stat.count % FEEDBACK_EVERY == 0


def progress_feedback(stat: AnswerStat) -> Optional[str]:
    """Message to send after a graded answer, or None when no feedback is due."""
    if not feedback_due(stat):
        return None
    percent = stat.accuracy_percent
    answers = plural_ru(stat.count, "ответов", "ответ", "ответа")
    correct = plural_ru(stat.correct, "правильных", "правильный", "правильных")
    return (
        f"За сутки у вас {stat.count} {answers}, из них {stat.correct} {correct} ({percent}%).\n"
        f"{_CLOSINGS[feedback_category(percent)]}"
    )
