"""Script parsing, scene generation and image download routes."""
from __future__ import annotations

from typing import Annotated

from litestar import Response, delete, get, post, put
from litestar.datastructures import UploadFile
from litestar.enums import RequestEncodingType
from litestar.exceptions import NotFoundException
from litestar.params import Body
from litestar.status_codes import HTTP_200_OK, HTTP_202_ACCEPTED

from storyboard.export import decode_script, export_filename, scene_png
from storyboard.models import AspectRatio, GenerationSettings, ImageSize
from webui.backend.models import BatchResult, SceneOut, ScriptRequest, SettingsPayload
from webui.backend.workspace import scenes_payload, workspace


@post("/api/script")
async def parse_script(data: ScriptRequest) -> list[SceneOut]:
    scenes = await workspace.orchestrator.parse(data.script)
    return [SceneOut.from_scene(s, i) for i, s in enumerate(scenes, start=1)]


@post("/api/script/upload")
async def upload_script(
    data: Annotated[UploadFile, Body(media_type=RequestEncodingType.MULTI_PART)],
) -> dict:
    """Read an uploaded text file into the script box; parsing is a separate step."""
    raw = await data.read()
    return {"filename": data.filename, "script": decode_script(raw)}


@get("/api/scenes")
async def list_scenes() -> list[SceneOut]:
    return [SceneOut(**s) for s in scenes_payload(workspace.store.scenes)]


@delete("/api/scenes")
async def clear_scenes() -> None:
    workspace.orchestrator.clear()


@post("/api/scenes/generate")
async def generate_all(wait: bool = False) -> Response[dict]:
    """Start a batch over every scene without an image.

    Returns 202 immediately; progress is visible on ``/api/scenes/stream``.
    With ``?wait=true`` the request blocks until the batch is done.
    """
    workspace.gate.require()
    if wait:
        summary = await workspace.orchestrator.generate_all()
        result = BatchResult(
            succeeded=summary.succeeded, failed=summary.failed, skipped=summary.skipped
        )
        return Response(content=result.model_dump(), status_code=HTTP_200_OK)
    workspace.submit(workspace.orchestrator.generate_all())
    return Response(content={"ok": True}, status_code=HTTP_202_ACCEPTED)


@post("/api/scenes/{scene_id:str}/regenerate")
async def regenerate_scene(scene_id: str, wait: bool = False) -> Response[dict]:
    if workspace.store.get(scene_id) is None:
        raise NotFoundException(f"Scene {scene_id!r} not found")
    workspace.gate.require()
    if wait:
        ok = await workspace.orchestrator.regenerate(scene_id)
        return Response(content={"ok": bool(ok), "scene_id": scene_id}, status_code=HTTP_200_OK)
    workspace.submit(workspace.orchestrator.regenerate(scene_id))
    return Response(content={"ok": True, "scene_id": scene_id}, status_code=HTTP_202_ACCEPTED)


@get("/api/scenes/{scene_id:str}/download")
async def download_scene(scene_id: str) -> Response[bytes]:
    scene = workspace.store.get(scene_id)
    if scene is None or not scene.image_url:
        raise NotFoundException(f"No image for scene {scene_id!r}")
    filename = export_filename(workspace.store.position(scene_id))
    return Response(
        content=scene_png(scene),
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@get("/api/settings")
async def get_settings() -> SettingsPayload:
    return SettingsPayload.from_settings(workspace.orchestrator.settings)


@put("/api/settings")
async def update_settings(data: SettingsPayload) -> SettingsPayload:
    """Takes effect for every request issued from now on, including the rest of a running batch."""
    workspace.orchestrator.settings = GenerationSettings(
        image_size=ImageSize(data.image_size),
        aspect_ratio=AspectRatio(data.aspect_ratio),
    )
    return data
