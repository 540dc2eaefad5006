"""Storyboard data model: scenes, generation settings, chat messages."""
from __future__ import annotations

import base64
import time
import uuid
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Literal

from pydantic import BaseModel


class ImageSize(str, Enum):
    SIZE_1K = "1K"
    SIZE_2K = "2K"
    SIZE_4K = "4K"


class AspectRatio(str, Enum):
    WIDE = "16:9"
    TALL = "9:16"
    SQUARE = "1:1"
    STANDARD = "4:3"
    PORTRAIT = "3:4"


@dataclass(frozen=True)
class GenerationSettings:
    """Image settings applied to every request issued while they are current."""
    image_size: ImageSize = ImageSize.SIZE_1K
    aspect_ratio: AspectRatio = AspectRatio.WIDE

    def to_dict(self) -> dict:
        return {"image_size": self.image_size.value, "aspect_ratio": self.aspect_ratio.value}


class SceneDraft(BaseModel):
    """One segment returned by the script parser, before it becomes a Scene."""
    scriptText: str
    visualPrompt: str


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Scene:
    """A single shot derived from the script.

    Scenes are immutable values. The store replaces a scene with an updated
    copy instead of mutating it, so a reader holding an old snapshot never
    sees a half-applied change.

    Attributes:
        id:            Opaque key, stable for the life of the scene.
        script_text:   Excerpt of the script this shot visualizes.
        visual_prompt: Prompt sent to the image model, reused verbatim on
                       regeneration.
        image_url:     ``data:`` URI of the last successful image, if any.
        is_loading:    True while a generation request is in flight.
        error:         Message from the most recent failed attempt.
    """
    id: str
    script_text: str
    visual_prompt: str
    image_url: str | None = None
    is_loading: bool = False
    error: str | None = None

    @classmethod
    def from_draft(cls, draft: SceneDraft) -> "Scene":
        return cls(id=new_id(), script_text=draft.scriptText, visual_prompt=draft.visualPrompt)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ImageResource:
    data: bytes
    mime_type: str = "image/png"

    @property
    def data_uri(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"

    @classmethod
    def from_data_uri(cls, uri: str) -> "ImageResource":
        """Inverse of ``data_uri``. Raises ValueError on anything but a base64 data URI."""
        header, sep, payload = uri.partition(",")
        if not sep or not header.startswith("data:") or not header.endswith(";base64"):
            raise ValueError("Not a base64 data URI")
        mime_type = header[len("data:"):-len(";base64")] or "application/octet-stream"
        return cls(data=base64.b64decode(payload), mime_type=mime_type)


Role = Literal["user", "model"]


@dataclass(frozen=True)
class ChatMessage:
    role: Role
    text: str
    id: str = field(default_factory=new_id)
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return asdict(self)
