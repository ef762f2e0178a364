"""Progress feedback policy."""
import pytest

from quizbot.domain.session.models import AnswerStat
from quizbot.domain.session.scoring import (
    AFFIRMATION,
    ENCOURAGEMENT,
    PRAISE,
    feedback_category,
    feedback_due,
    progress_feedback,
)


@pytest.mark.parametrize("percent, category", [
    (0, ENCOURAGEMENT),
    (30, ENCOURAGEMENT),
    (31, AFFIRMATION),
    (90, AFFIRMATION),
    (91, PRAISE),
    (100, PRAISE),
])
def test_feedback_bands(percent, category):
    assert feedback_category(percent) == category


@pytest.mark.parametrize("count, due", [(0, False), (1, False), (4, False), (5, True), (7, False), (10, True)])
def test_feedback_every_five_answers(count, due):
    assert feedback_due(AnswerStat(count=count, correct=0)) is due


def test_accuracy_is_floored():
    assert AnswerStat(count=3, correct=2).accuracy_percent == 66
    assert AnswerStat().accuracy_percent == 0


def test_progress_message():
    message = progress_feedback(AnswerStat(count=5, correct=4))
    assert message.startswith("За сутки у вас 5 ответов, из них 4 правильных (80%).")
    assert "продолжайте" in message


def test_progress_message_singular():
    message = progress_feedback(AnswerStat(count=10, correct=1))
    assert "10 ответов, из них 1 правильный (10%)" in message
    assert "Не сдавайтесь" in message


def test_no_message_between_milestones():
    assert progress_feedback(AnswerStat(count=6, correct=6)) is None
