"""Pydantic request/response models for the StoryBoard Web API."""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from storyboard.models import ChatMessage, GenerationSettings, Scene


class ScriptRequest(BaseModel):
    script: str


class SceneOut(BaseModel):
    id: str
    position: int               # 1-based, as shown to the user
    script_text: str
    visual_prompt: str
    image_url: str | None = None
    is_loading: bool = False
    error: str | None = None

    @classmethod
    def from_scene(cls, scene: Scene, position: int) -> "SceneOut":
        return cls(position=position, **scene.to_dict())


class SettingsPayload(BaseModel):
    image_size: Literal["1K", "2K", "4K"] = "1K"
    aspect_ratio: Literal["16:9", "9:16", "1:1", "4:3", "3:4"] = "16:9"

    @classmethod
    def from_settings(cls, settings: GenerationSettings) -> "SettingsPayload":
        return cls(**settings.to_dict())


class AccessStatus(BaseModel):
    state: Literal["checking", "locked", "unlocked"]


class SelectKeyRequest(BaseModel):
    api_key: str = ""


class ChatRequest(BaseModel):
    text: str = Field(min_length=1)


class ChatMessageOut(BaseModel):
    id: str
    role: Literal["user", "model"]
    text: str
    timestamp: float

    @classmethod
    def from_message(cls, message: ChatMessage) -> "ChatMessageOut":
        return cls(**message.to_dict())


class BatchResult(BaseModel):
    succeeded: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)


class ConfigPayload(BaseModel):
    gemini_api_key: str = ""
    output_dir: str = "output"
    parser_model: str = "gemini-3-pro-preview"
    image_model: str = "gemini-3-pro-image-preview"
    chat_model: str = "gemini-3-pro-preview"
    image_size: Literal["1K", "2K", "4K"] = "1K"
    aspect_ratio: Literal["16:9", "9:16", "1:1", "4:3", "3:4"] = "16:9"
    max_workers: int = Field(default=1, ge=1, le=8)
