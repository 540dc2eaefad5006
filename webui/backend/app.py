"""Litestar ASGI application for the StoryBoard Web API."""
from __future__ import annotations

from pathlib import Path

from litestar import Litestar, MediaType, Request, Response
from litestar.config.cors import CORSConfig
from litestar.logging import LoggingConfig
from litestar.static_files import create_static_files_router
from litestar.status_codes import HTTP_403_FORBIDDEN, HTTP_422_UNPROCESSABLE_ENTITY

from storyboard.config import Config
from storyboard.errors import AccessError, ParseError
from webui.backend.routes.access import get_access, select_access
from webui.backend.routes.chat import get_chat, post_chat
from webui.backend.routes.config import get_config, save_config
from webui.backend.routes.scenes import (
    clear_scenes,
    download_scene,
    generate_all,
    get_settings,
    list_scenes,
    parse_script,
    regenerate_scene,
    update_settings,
    upload_script,
)
from webui.backend.routes.stream import stream_scenes
from webui.backend.workspace import workspace

FRONTEND_DIST = Path(__file__).parent.parent / "frontend" / "dist"


async def _on_startup() -> None:
    """Build the workspace (unless already configured) and probe for a key."""
    if not workspace.configured:
        workspace.configure(Config.load())
    await workspace.start()


def _parse_error(request: Request, exc: ParseError) -> Response:
    return Response(
        content={"status_code": HTTP_422_UNPROCESSABLE_ENTITY, "detail": str(exc)},
        status_code=HTTP_422_UNPROCESSABLE_ENTITY,
        media_type=MediaType.JSON,
    )


def _access_error(request: Request, exc: AccessError) -> Response:
    return Response(
        content={"status_code": HTTP_403_FORBIDDEN, "detail": str(exc)},
        status_code=HTTP_403_FORBIDDEN,
        media_type=MediaType.JSON,
    )


app = Litestar(
    route_handlers=[
        get_access,
        select_access,
        parse_script,
        upload_script,
        list_scenes,
        clear_scenes,
        generate_all,
        regenerate_scene,
        download_scene,
        stream_scenes,
        get_settings,
        update_settings,
        get_chat,
        post_chat,
        get_config,
        save_config,
    ],
    cors_config=CORSConfig(
        allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type"],
    ),
    exception_handlers={
        ParseError: _parse_error,
        AccessError: _access_error,
    },
    on_startup=[_on_startup],
    logging_config=LoggingConfig(
        loggers={
            "storyboard": {"level": "INFO", "handlers": ["queue_listener"]},
            "webui": {"level": "INFO", "handlers": ["queue_listener"]},
        }
    ),
)

# Serve built frontend (production). During dev, Vite dev server handles this.
if FRONTEND_DIST.exists():
    app.register(
        create_static_files_router(
            path="/",
            directories=[FRONTEND_DIST],
            html_mode=True,
        )
    )
