"""Config read/write routes."""
from __future__ import annotations

from pathlib import Path

from litestar import get, post

from storyboard.config import Config
from webui.backend.models import ConfigPayload
from webui.backend.workspace import workspace


@get("/api/config")
async def get_config() -> ConfigPayload:
    cfg = Config.load()
    return ConfigPayload(
        # Secret keys are masked to their first and last 4 chars
        gemini_api_key=_mask(cfg.gemini_api_key),
        output_dir=str(cfg.output_dir),
        parser_model=cfg.parser_model,
        image_model=cfg.image_model,
        chat_model=cfg.chat_model,
        image_size=cfg.default_settings().image_size.value,
        aspect_ratio=cfg.default_settings().aspect_ratio.value,
        max_workers=cfg.max_workers,
    )


@post("/api/config")
async def save_config(data: ConfigPayload) -> dict:
    cfg = Config.load()
    # Only update secrets if the user sent a non-masked value
    if data.gemini_api_key and "…" not in data.gemini_api_key:
        cfg.gemini_api_key = data.gemini_api_key
    cfg.output_dir = Path(data.output_dir)
    cfg.parser_model = data.parser_model
    cfg.image_model = data.image_model
    cfg.chat_model = data.chat_model
    cfg.image_size = data.image_size
    cfg.aspect_ratio = data.aspect_ratio
    cfg.max_workers = data.max_workers
    cfg.save()

    # Picked up by the next Gemini call; scenes and the gate stay as they are.
    live = workspace.config
    if live is not None:
        live.gemini_api_key = cfg.gemini_api_key
        live.parser_model = cfg.parser_model
        live.image_model = cfg.image_model
        live.chat_model = cfg.chat_model
    return {"ok": True}


def _mask(value: str) -> str:
    if not value:
        return ""
    return value[:4] + "…" + value[-4:] if len(value) > 8 else "…"
