"""Process-wide storyboard state: scenes, gate, chat and background jobs."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Coroutine

from storyboard.access import AccessGate, AccessState, ConfigCredentials
from storyboard.chat import ChatSession
from storyboard.config import Config
from storyboard.models import Scene
from storyboard.orchestrator import GenerationOrchestrator
from storyboard.store import SceneStore
from storyboard.utils.gemini_client import GeminiService

from .models import SceneOut

log = logging.getLogger(__name__)


def scenes_payload(scenes: tuple[Scene, ...]) -> list[dict]:
    return [SceneOut.from_scene(s, i).model_dump() for i, s in enumerate(scenes, start=1)]


class Workspace:
    def __init__(self) -> None:
        self.config: Config | None = None
        self.store = SceneStore()
        self.gate: AccessGate | None = None
        self.orchestrator: GenerationOrchestrator | None = None
        self.chat: ChatSession | None = None
        self._pending_key: str | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def configured(self) -> bool:
        return self.orchestrator is not None

    def configure(self, config: Config, service: Any = None) -> None:
        """(Re)build every component. ``service`` defaults to a GeminiService on ``config``."""
        self.config = config
        service = service or GeminiService(config)
        self.store = SceneStore()
        self.gate = AccessGate(ConfigCredentials(config, select_key=self._take_pending_key))
        self.orchestrator = GenerationOrchestrator(
            self.store,
            service,
            self.gate,
            settings=config.default_settings(),
            max_workers=config.max_workers,
            progress_cb=lambda msg: log.info(msg.strip()),
        )
        self.chat = ChatSession(service)
        self._pending_key = None

    async def start(self) -> None:
        """Silent credential probe on startup."""
        await self.gate.check()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def select_key(self, api_key: str) -> AccessState:
        self._pending_key = api_key
        return await self.gate.select()

    def submit(self, coro: Coroutine) -> asyncio.Task:
        """Run ``coro`` in the background. Returns immediately."""
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    async def stream(self) -> AsyncIterator[dict]:
        """Async generator: the current scenes, then a new snapshot after every change."""
        queue: asyncio.Queue = asyncio.Queue()
        unsubscribe = self.store.subscribe(queue.put_nowait)
        try:
            yield {"type": "scenes", "scenes": scenes_payload(self.store.scenes)}
            while True:
                scenes = await queue.get()
                yield {"type": "scenes", "scenes": scenes_payload(scenes)}
        finally:
            unsubscribe()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _take_pending_key(self) -> str | None:
        key, self._pending_key = self._pending_key, None
        return key

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error("Background job failed: %s", exc, exc_info=exc)


# Singleton
workspace = Workspace()
