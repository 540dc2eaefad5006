"""Assistant chat log backed by Gemini."""
from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from .models import ChatMessage

log = logging.getLogger(__name__)

WELCOME_MESSAGE = (
    "Hi! I'm your Storyboard Assistant. Need help writing a scene or describing a shot?"
)
EMPTY_REPLY = "I couldn't generate a response."
ERROR_REPLY = "Sorry, I encountered an error. Please try again."


class ChatBackend(Protocol):
    async def chat(self, history: list[dict], message: str) -> str: ...


class ChatSession:
    """Append-only conversation; the whole history is resent on every turn."""

    def __init__(self, backend: ChatBackend, welcome: str | None = WELCOME_MESSAGE) -> None:
        self.backend = backend
        self._messages: list[ChatMessage] = []
        self._lock = asyncio.Lock()
        if welcome:
            self._messages.append(ChatMessage(role="model", text=welcome))

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def send(self, text: str) -> ChatMessage:
        """Post a user message and return the model's reply (also appended to the log)."""
        if not text or not text.strip():
            raise ValueError("Message is empty.")

        async with self._lock:
            history = [{"role": m.role, "text": m.text} for m in self._messages]
            self._messages.append(ChatMessage(role="user", text=text))
            try:
                reply = await self.backend.chat(history, text)
            except Exception as e:
                log.error("Chat request failed: %s", e)
                reply_msg = ChatMessage(role="model", text=ERROR_REPLY)
            else:
                reply_msg = ChatMessage(role="model", text=reply or EMPTY_REPLY)
            self._messages.append(reply_msg)
            return reply_msg
