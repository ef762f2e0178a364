"""Transport gateway endpoints.

The gateway posts inbound chat events and receives the actions the engine
wants performed, in order, as ``{"actions": [...]}``.
"""
from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from quizbot.api.security import verify_transport_secret
from quizbot.application.quiz_app_service import QuizAppService
from quizbot.container import get_quiz_app_service
from quizbot.domain.question.renderer import Button
from quizbot.domain.session.models import UserInfo
from quizbot.transport.chat_transport import DisplayedMessage, InboundCallback, InboundMessage
from quizbot.transport.outbox import OutboxTransport

router = APIRouter(tags=["quiz"])


# ------------------------------------------------------------------
# Pydantic schemas
# ------------------------------------------------------------------
class UserBody(BaseModel):
    uid: int
    full_name: str = ""
    username: Optional[str] = None

    def to_user(self) -> UserInfo:
        return UserInfo(uid=self.uid, full_name=self.full_name, username=self.username)


class ButtonBody(BaseModel):
    text: str
    data: str


class DisplayedMessageBody(BaseModel):
    message_id: int
    text: Optional[str] = None
    buttons: List[ButtonBody] = []


class MessageBody(BaseModel):
    user: Optional[UserBody] = None
    text: Optional[str] = None
    reply_to_text: Optional[str] = None


class CallbackBody(BaseModel):
    callback_id: str
    user: Optional[UserBody] = None
    data: Optional[str] = None
    message: Optional[DisplayedMessageBody] = None


def _displayed(body: Optional[DisplayedMessageBody]) -> Optional[DisplayedMessage]:
    if body is None:
        return None
    return DisplayedMessage(
        message_id=body.message_id,
        text=body.text,
        buttons=[Button(text=b.text, data=b.data) for b in body.buttons],
    )


# ------------------------------------------------------------------
# Health check
# ------------------------------------------------------------------
@router.get("/health")
def health():
    return {"status": "ok"}


# ------------------------------------------------------------------
# Filters
# ------------------------------------------------------------------
@router.get("/filters")
def list_filters(svc: QuizAppService = Depends(get_quiz_app_service)):
    return [{"name": f.name, "possible_values": f.possible_values} for f in svc.filter_info()]


# ------------------------------------------------------------------
# Inbound events
# ------------------------------------------------------------------
@router.post("/conversations/{conversation_id}/messages", dependencies=[Depends(verify_transport_secret)])
async def post_message(
    conversation_id: int,
    body: MessageBody,
    svc: QuizAppService = Depends(get_quiz_app_service),
):
    outbox = OutboxTransport()
    message = InboundMessage(
        conversation_id=conversation_id,
        user=body.user.to_user() if body.user else None,
        text=body.text,
        reply_to_text=body.reply_to_text,
    )
    await svc.handle_message(outbox, message)
    return {"actions": outbox.actions}


@router.post("/conversations/{conversation_id}/callbacks", dependencies=[Depends(verify_transport_secret)])
async def post_callback(
    conversation_id: int,
    body: CallbackBody,
    svc: QuizAppService = Depends(get_quiz_app_service),
):
    outbox = OutboxTransport()
    callback = InboundCallback(
        conversation_id=conversation_id,
        callback_id=body.callback_id,
        user=body.user.to_user() if body.user else None,
        data=body.data,
        message=_displayed(body.message),
    )
    await svc.handle_callback(outbox, callback)
    return {"actions": outbox.actions}
