"""Settings and API key management."""
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

from .models import AspectRatio, GenerationSettings, ImageSize

CONFIG_DIR = Path.home() / ".storyboard"
CONFIG_FILE = CONFIG_DIR / "config.json"

# Gemini models
SCRIPT_PARSER_MODEL = "gemini-3-pro-preview"
IMAGE_GENERATOR_MODEL = "gemini-3-pro-image-preview"
CHAT_MODEL = "gemini-3-pro-preview"

# Generation defaults
DEFAULT_IMAGE_SIZE = ImageSize.SIZE_1K.value
DEFAULT_ASPECT_RATIO = AspectRatio.WIDE.value

# Batch worker pool; 1 keeps image requests strictly sequential
DEFAULT_MAX_WORKERS = 1


@dataclass
class Config:
    gemini_api_key: str = ""
    output_dir: Path = field(default_factory=lambda: Path("output"))
    parser_model: str = SCRIPT_PARSER_MODEL
    image_model: str = IMAGE_GENERATOR_MODEL
    chat_model: str = CHAT_MODEL
    image_size: str = DEFAULT_IMAGE_SIZE
    aspect_ratio: str = DEFAULT_ASPECT_RATIO
    max_workers: int = DEFAULT_MAX_WORKERS

    @classmethod
    def load(cls) -> "Config":
        """Load config from env vars then config file."""
        cfg = cls()

        # Env var takes priority
        gemini_key = os.environ.get("GEMINI_API_KEY", "") or os.environ.get("API_KEY", "")

        if CONFIG_FILE.exists():
            try:
                data = json.loads(CONFIG_FILE.read_text(encoding="utf-8-sig"))
                if not gemini_key:
                    gemini_key = data.get("gemini_api_key", "")
                if out := data.get("output_dir"):
                    cfg.output_dir = Path(out)
                if pm := data.get("parser_model"):
                    cfg.parser_model = pm
                if im := data.get("image_model"):
                    cfg.image_model = im
                if cm := data.get("chat_model"):
                    cfg.chat_model = cm
                if size := data.get("image_size"):
                    cfg.image_size = size
                if ratio := data.get("aspect_ratio"):
                    cfg.aspect_ratio = ratio
                if data.get("max_workers") is not None:
                    cfg.max_workers = max(1, int(data["max_workers"]))
            except (json.JSONDecodeError, OSError, TypeError, ValueError):
                pass

        cfg.gemini_api_key = gemini_key
        return cfg

    def save(self) -> None:
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        data = {
            "gemini_api_key": self.gemini_api_key,
            "output_dir": str(self.output_dir),
            "parser_model": self.parser_model,
            "image_model": self.image_model,
            "chat_model": self.chat_model,
            "image_size": self.image_size,
            "aspect_ratio": self.aspect_ratio,
            "max_workers": self.max_workers,
        }
        CONFIG_FILE.write_text(json.dumps(data, indent=2))

    def default_settings(self) -> GenerationSettings:
        """Generation settings from config, falling back to 1K / 16:9 on bad values."""
        try:
            size = ImageSize(self.image_size)
        except ValueError:
            size = ImageSize(DEFAULT_IMAGE_SIZE)
        try:
            ratio = AspectRatio(self.aspect_ratio)
        except ValueError:
            ratio = AspectRatio(DEFAULT_ASPECT_RATIO)
        return GenerationSettings(image_size=size, aspect_ratio=ratio)
