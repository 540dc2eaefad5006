"""Script upload and image download helpers."""
from __future__ import annotations

import io
import logging
from pathlib import Path

from PIL import Image

from .errors import ParseError
from .models import ImageResource, Scene

log = logging.getLogger(__name__)


def decode_script(raw: bytes) -> str:
    """Decode an uploaded script. Only UTF-8 is accepted; empty text is rejected."""
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ParseError(f"Script is not valid UTF-8: {e}") from e
    if not text.strip():
        raise ParseError("Script file is empty.")
    return text


def read_script(path: Path) -> str:
    return decode_script(Path(path).read_bytes())


def export_filename(position: int) -> str:
    """Download name for the scene at 1-based ``position``."""
    return f"storyboard-scene-{position}.png"


def scene_png(scene: Scene) -> bytes:
    """PNG bytes of the scene's image, converting if the model returned another format."""
    if not scene.image_url:
        raise ValueError(f"Scene {scene.id} has no image yet.")
    image = ImageResource.from_data_uri(scene.image_url)
    if image.mime_type == "image/png":
        return image.data

    log.debug("Converting %s image for scene %s to PNG", image.mime_type, scene.id)
    with Image.open(io.BytesIO(image.data)) as img:
        buf = io.BytesIO()
        img.save(buf, format="PNG")
    return buf.getvalue()


def export_image(scene: Scene, position: int, out_dir: Path) -> Path:
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    output_path = out_dir / export_filename(position)
    output_path.write_bytes(scene_png(scene))
    log.info("Saved scene %d to %s", position, output_path)
    return output_path
