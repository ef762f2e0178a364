"""ChatTransport that records actions instead of delivering them.

The HTTP adapter creates one per request and returns the recorded actions to
the gateway, which performs them against the real messaging platform.
"""
from __future__ import annotations
import itertools
import threading
from typing import List, Optional

from quizbot.domain.question.renderer import Button
from quizbot.transport.chat_transport import ChatTransport

# process-wide, unique across requests
_message_ids = itertools.count(1)
_message_ids_lock = threading.Lock()


def _next_message_id() -> int:
    with _message_ids_lock:
        return next(_message_ids)


def _serialize_buttons(buttons: Optional[List[Button]]) -> List[dict]:
    return [{"text": b.text, "data": b.data} for b in buttons or []]


class OutboxTransport(ChatTransport):

    def __init__(self):
        self.actions: List[dict] = []

    async def send_message(self, conversation_id, text, buttons=None, parse_mode=None) -> int:
        message_id = _next_message_id()
        self.actions.append({
            "type": "send_message",
            "conversation_id": conversation_id,
            "message_id": message_id,
            "text": text,
            "parse_mode": parse_mode,
            "buttons": _serialize_buttons(buttons),
        })
        return message_id

    async def edit_message(self, conversation_id, message_id, text, buttons=None, parse_mode=None) -> None:
        self.actions.append({
            "type": "edit_message",
            "conversation_id": conversation_id,
            "message_id": message_id,
            "text": text,
            "parse_mode": parse_mode,
            "buttons": _serialize_buttons(buttons),
        })

    async def answer_callback(self, callback_id) -> None:
        self.actions.append({"type": "answer_callback", "callback_id": callback_id})
