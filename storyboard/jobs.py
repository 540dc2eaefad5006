"""Per-scene image jobs, the batch worker pool and regeneration policies."""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Protocol, Sequence

from .models import AspectRatio, GenerationSettings, ImageResource, ImageSize
from .store import SceneStore

log = logging.getLogger(__name__)

Job = Callable[[], Awaitable[Any]]


class ImageGenerator(Protocol):
    async def generate_image(
        self, prompt: str, size: ImageSize, aspect_ratio: AspectRatio
    ) -> ImageResource: ...


class JobRunner:
    """Runs one image request for one scene and records the outcome on the store."""

    def __init__(self, store: SceneStore, generator: ImageGenerator) -> None:
        self.store = store
        self.generator = generator

    async def run(self, scene_id: str, prompt: str, settings: GenerationSettings) -> bool:
        """Generate an image for ``scene_id``. Returns True on success; never raises."""
        self.store.update_by_id(scene_id, is_loading=True, error=None)
        try:
            image = await self.generator.generate_image(
                prompt, settings.image_size, settings.aspect_ratio
            )
        except Exception as e:
            message = str(e) or "Failed"
            log.warning("Image generation failed for scene %s: %s", scene_id, message)
            self.store.update_by_id(scene_id, is_loading=False, error=message)
            return False

        self.store.update_by_id(
            scene_id, is_loading=False, image_url=image.data_uri, error=None
        )
        log.info("Image ready for scene %s (%d bytes)", scene_id, len(image.data))
        return True


class JobQueue:
    """Worker pool over a queue of jobs.

    With ``max_workers=1`` job *i+1* starts only after job *i* has settled.
    A job that raises is logged and its exception is returned in place of a
    result; it never stops the remaining jobs.
    """

    def __init__(self, max_workers: int = 1) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self.max_workers = max_workers

    async def run_all(self, jobs: Sequence[Job]) -> list[Any]:
        queue: asyncio.Queue[tuple[int, Job]] = asyncio.Queue()
        for item in enumerate(jobs):
            queue.put_nowait(item)
        results: list[Any] = [None] * len(jobs)

        async def _worker() -> None:
            while True:
                try:
                    index, job = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                try:
                    results[index] = await job()
                except Exception as e:
                    log.exception("Job %d failed", index)
                    results[index] = e

        workers = [
            asyncio.create_task(_worker())
            for _ in range(min(self.max_workers, len(jobs)))
        ]
        await asyncio.gather(*workers)
        return results


class RegenerationPolicy(ABC):
    """Decides how single-scene regenerations on the same id interact."""

    @abstractmethod
    async def submit(self, scene_id: str, job: Job) -> Any:
        ...


class LastWriteWins(RegenerationPolicy):
    """Every call runs its own request; whichever settles last owns the scene."""

    async def submit(self, scene_id: str, job: Job) -> Any:
        return await job()


class CoalesceInFlight(RegenerationPolicy):
    """Calls arriving while a request for the same id is in flight share its result."""

    def __init__(self) -> None:
        self._in_flight: dict[str, asyncio.Future] = {}

    async def submit(self, scene_id: str, job: Job) -> Any:
        task = self._in_flight.get(scene_id)
        if task is None:
            task = asyncio.ensure_future(job())
            self._in_flight[scene_id] = task

            def _done(t: asyncio.Future) -> None:
                if self._in_flight.get(scene_id) is t:
                    del self._in_flight[scene_id]

            task.add_done_callback(_done)
        else:
            log.debug("Joining in-flight regeneration for scene %s", scene_id)
        return await asyncio.shield(task)
