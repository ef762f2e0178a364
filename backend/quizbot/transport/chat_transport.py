"""Chat transport contract: what the engine needs from a messaging platform."""
from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

from quizbot.domain.question.renderer import Button
from quizbot.domain.session.models import UserInfo

MARKDOWN_V2 = "MarkdownV2"


@dataclass
class InboundMessage:
    conversation_id: int
    user: Optional[UserInfo]
    text: Optional[str]
    # text of the message this one replies to, if any
    reply_to_text: Optional[str] = None


@dataclass
class DisplayedMessage:
    """A message as the user currently sees it, buttons included.

    ``text`` is the markup source the message was sent with, not the rendered
    plain text, so an edit can reuse it under the same parse mode.
    """
    message_id: int
    text: Optional[str]
    buttons: List[Button] = field(default_factory=list)


@dataclass
class InboundCallback:
    conversation_id: int
    callback_id: str
    user: Optional[UserInfo]
    data: Optional[str]
    message: Optional[DisplayedMessage] = None


class ChatTransport(ABC):

    @abstractmethod
    async def send_message(
        self,
        conversation_id: int,
        text: str,
        buttons: Optional[List[Button]] = None,
        parse_mode: Optional[str] = None,
    ) -> int:
        """Send a message, one button per row. Returns the new message id."""
        ...

    @abstractmethod
    async def edit_message(
        self,
        conversation_id: int,
        message_id: int,
        text: str,
        buttons: Optional[List[Button]] = None,
        parse_mode: Optional[str] = None,
    ) -> None:
        """Replace text and buttons of a sent message; no buttons removes them."""
        ...

    @abstractmethod
    async def answer_callback(self, callback_id: str) -> None:
        """Acknowledge a button press so the client stops its spinner."""
        ...
