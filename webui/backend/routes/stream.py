"""SSE scene streaming route."""
from __future__ import annotations

import json

from litestar import get
from litestar.response import ServerSentEvent, ServerSentEventMessage

from webui.backend.workspace import workspace


@get("/api/scenes/stream", media_type="text/event-stream")
async def stream_scenes() -> ServerSentEvent:
    async def _generate():
        async for msg in workspace.stream():
            yield ServerSentEventMessage(data=json.dumps(msg), event=msg["type"])

    return ServerSentEvent(_generate())
