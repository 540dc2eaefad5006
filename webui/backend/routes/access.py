"""Credential gate routes."""
from __future__ import annotations

from litestar import get, post

from webui.backend.models import AccessStatus, SelectKeyRequest
from webui.backend.workspace import workspace


@get("/api/access")
async def get_access() -> AccessStatus:
    return AccessStatus(state=workspace.gate.state.value)


@post("/api/access/select")
async def select_access(data: SelectKeyRequest) -> AccessStatus:
    state = await workspace.select_key(data.api_key)
    return AccessStatus(state=state.value)
