"""Gemini client: script segmentation, scene images and the assistant chat."""
from __future__ import annotations

import logging

from google import genai
from google.genai import types
from pydantic import TypeAdapter, ValidationError

from ..config import Config
from ..errors import AccessError, GenerationError, ParseError
from ..models import AspectRatio, ImageResource, ImageSize, SceneDraft

log = logging.getLogger(__name__)

_DRAFTS = TypeAdapter(list[SceneDraft])

_SEGMENT_PROMPT = """You are an expert storyboard artist and director.
Analyze the following script and break it down into distinct visual scenes (shots).
For each scene, provide:
1. 'scriptText': The specific dialogue or action description from the script.
2. 'visualPrompt': A highly detailed, descriptive image generation prompt that describes the camera angle, lighting, characters, setting, and mood for that specific moment.

Script:
{script}
"""

_SEGMENT_SCHEMA = types.Schema(
    type=types.Type.ARRAY,
    items=types.Schema(
        type=types.Type.OBJECT,
        properties={
            "scriptText": types.Schema(type=types.Type.STRING),
            "visualPrompt": types.Schema(type=types.Type.STRING),
        },
        required=["scriptText", "visualPrompt"],
    ),
)

CHAT_SYSTEM_INSTRUCTION = (
    "You are a helpful assistant for a storyboard creation app. You help users refine "
    "their scripts, suggest visual ideas, or answer questions about filmmaking."
)


def decode_scene_drafts(text: str | None) -> list[SceneDraft]:
    """Validate the parser's JSON reply into scene drafts."""
    if not text:
        raise ParseError("No response from AI")
    try:
        return _DRAFTS.validate_json(text)
    except ValidationError as e:
        raise ParseError(f"Could not decode scenes from response: {e.error_count()} error(s)") from e


class GeminiService:
    """The three remote operations the storyboard depends on.

    A new ``genai.Client`` is built for every call from the key currently in
    ``config``, so selecting a different key takes effect on the next request.
    """

    def __init__(self, config: Config) -> None:
        self.config = config

    def _client(self) -> genai.Client:
        if not self.config.gemini_api_key:
            raise AccessError("GEMINI_API_KEY is not set.")
        return genai.Client(api_key=self.config.gemini_api_key)

    async def segment_script(self, script: str) -> list[SceneDraft]:
        client = self._client()
        log.info("Segmenting script (%d chars) with %s", len(script), self.config.parser_model)
        try:
            response = await client.aio.models.generate_content(
                model=self.config.parser_model,
                contents=_SEGMENT_PROMPT.format(script=script),
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=_SEGMENT_SCHEMA,
                ),
            )
        except Exception as e:
            log.error("Script segmentation failed: %s", e)
            raise ParseError(f"Script segmentation failed: {e}") from e

        drafts = decode_scene_drafts(response.text)
        log.info("Script segmented into %d scenes", len(drafts))
        return drafts

    async def generate_image(
        self,
        prompt: str,
        size: ImageSize,
        aspect_ratio: AspectRatio,
    ) -> ImageResource:
        client = self._client()
        log.info("Generating image (%s, %s): %s", size.value, aspect_ratio.value, prompt[:80])
        try:
            response = await client.aio.models.generate_content(
                model=self.config.image_model,
                contents=types.Content(role="user", parts=[types.Part(text=prompt)]),
                config=types.GenerateContentConfig(
                    response_modalities=["TEXT", "IMAGE"],
                    image_config=types.ImageConfig(
                        image_size=size.value,
                        aspect_ratio=aspect_ratio.value,
                    ),
                ),
            )
        except Exception as e:
            log.error("Image request failed: %s", e)
            raise GenerationError(str(e) or "Image request failed") from e

        candidates = response.candidates or []
        content = candidates[0].content if candidates else None
        for part in (content.parts if content and content.parts else []):
            if part.inline_data is not None and part.inline_data.data:
                return ImageResource(
                    data=part.inline_data.data,
                    mime_type=part.inline_data.mime_type or "image/png",
                )

        raise GenerationError("No image generated")

    async def chat(self, history: list[dict], message: str) -> str:
        """Send ``message`` after replaying ``history`` (``{"role", "text"}`` dicts)."""
        client = self._client()
        session = client.aio.chats.create(
            model=self.config.chat_model,
            history=[
                types.Content(role=h["role"], parts=[types.Part(text=h["text"])])
                for h in history
            ],
            config=types.GenerateContentConfig(system_instruction=CHAT_SYSTEM_INSTRUCTION),
        )
        response = await session.send_message(message)
        return response.text or ""
