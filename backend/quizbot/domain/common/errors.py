"""Error taxonomy of the quiz engine.

Every error here is recoverable at the interaction boundary: it is logged and
shown to the user as a short message with an invitation to /start again.
"""
from __future__ import annotations
from typing import Optional


class QuizError(Exception):
    """Base class for engine errors surfaced to the chat user."""

    default_message = "Quiz error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)


class NoMatchingQuestions(QuizError):
    """The active filter selects no active question. Fixed by changing the filter."""

    default_message = "No questions match the filter"

    def __init__(self, filter_text: Optional[str] = None):
        self.filter_text = filter_text
        if filter_text:
            super().__init__(f"No questions match the filter '{filter_text}'")
        else:
            super().__init__()


class NoTaskFound(QuizError):
    """The corpus is empty or a queued id no longer resolves."""

    default_message = "No task found"


class MalformedToken(QuizError):
    """Callback payload is not a valid answer token."""

    default_message = "Malformed answer token"


class BadCallbackDataInButton(QuizError):
    """A sibling button of the pressed one is missing, foreign or inconsistent."""

    default_message = "Bad callback data in button"


class MissingReplyContext(QuizError):
    """The original message or its buttons did not come with the callback."""

    default_message = "No message found"


class FeedbackChatNotConfigured(QuizError):
    default_message = "No feedback chat id"
