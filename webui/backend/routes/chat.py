"""Assistant chat routes."""
from __future__ import annotations

from litestar import get, post
from litestar.exceptions import ValidationException

from webui.backend.models import ChatMessageOut, ChatRequest
from webui.backend.workspace import workspace


@get("/api/chat")
async def get_chat() -> list[ChatMessageOut]:
    return [ChatMessageOut.from_message(m) for m in workspace.chat.messages]


@post("/api/chat")
async def post_chat(data: ChatRequest) -> ChatMessageOut:
    if not data.text.strip():
        raise ValidationException("Message is empty.")
    workspace.gate.require()
    reply = await workspace.chat.send(data.text)
    return ChatMessageOut.from_message(reply)
