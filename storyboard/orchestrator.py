"""Turns a script into scenes and drives image generation for them."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Protocol

from pydantic import ValidationError

from .access import AccessGate
from .errors import AccessError, ParseError
from .jobs import ImageGenerator, Job, JobQueue, JobRunner, LastWriteWins, RegenerationPolicy
from .models import GenerationSettings, Scene, SceneDraft
from .store import SceneStore

log = logging.getLogger(__name__)


class ScriptSegmenter(Protocol):
    async def segment_script(self, script: str) -> list[SceneDraft]: ...


class StoryboardService(ScriptSegmenter, ImageGenerator, Protocol):
    pass


@dataclass
class BatchSummary:
    """Outcome of one ``generate_all`` pass, by scene id."""
    succeeded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.succeeded) + len(self.failed)


class GenerationOrchestrator:
    """Script segmentation plus batch and single-scene image generation.

    Batches go through a :class:`JobQueue`; with the default single worker
    each scene's request is issued only after the previous one settled, which
    keeps the image API from seeing bursts. ``regenerate`` bypasses the queue
    and may run alongside a batch.
    """

    def __init__(
        self,
        store: SceneStore,
        service: StoryboardService,
        gate: AccessGate,
        settings: GenerationSettings | None = None,
        max_workers: int = 1,
        regeneration_policy: RegenerationPolicy | None = None,
        progress_cb: Callable[[str], None] | None = None,
    ) -> None:
        self.store = store
        self.service = service
        self.gate = gate
        self.settings = settings or GenerationSettings()
        self.runner = JobRunner(store, service)
        self.queue = JobQueue(max_workers)
        self.regeneration_policy = regeneration_policy or LastWriteWins()
        self.progress_cb = progress_cb or (lambda msg: None)

    async def parse(self, script: str) -> tuple[Scene, ...]:
        """Segment ``script`` and install the result as the whole scene collection.

        Raises:
            ParseError: Empty script, remote failure or undecodable reply. The
                store is left empty in every failure case after the call-out.
            AccessError: The gate is not unlocked.
        """
        if not script or not script.strip():
            raise ParseError("Script is empty.")
        self.gate.require()

        self.store.clear()
        self.progress_cb("📝 Analyzing script...")
        try:
            raw = await self.service.segment_script(script)
            drafts = [
                d if isinstance(d, SceneDraft) else SceneDraft.model_validate(d)
                for d in raw
            ]
        except (ParseError, AccessError):
            raise
        except ValidationError as e:
            raise ParseError(f"Could not decode scenes from response: {e.error_count()} error(s)") from e
        except Exception as e:
            log.error("Parsing failed: %s", e)
            raise ParseError(f"Failed to parse script: {e}") from e

        scenes = [Scene.from_draft(d) for d in drafts]
        self.store.replace_all(scenes)
        if not scenes:
            log.warning("Script produced no scenes")
        self.progress_cb(f"  Detected {len(scenes)} scenes")
        return self.store.scenes

    async def generate_all(self) -> BatchSummary:
        """Generate images for every scene that does not have one yet.

        Per-scene failures are recorded on the scene and counted in the
        summary; they never abort the batch or propagate.
        """
        summary = BatchSummary()
        if not len(self.store):
            return summary
        self.gate.require()

        self.store.update_where(lambda s: s.image_url is None, is_loading=True, error=None)

        order = [s.id for s in self.store.scenes]
        self.progress_cb(f"🎨 Generating images for {len(order)} scenes...")
        jobs = [self._batch_job(scene_id, i, len(order), summary) for i, scene_id in enumerate(order, 1)]
        await self.queue.run_all(jobs)

        self.progress_cb(
            f"  Done: {len(summary.succeeded)} generated, {len(summary.failed)} failed, "
            f"{len(summary.skipped)} skipped"
        )
        return summary

    async def regenerate(self, scene_id: str) -> bool | None:
        """Run one image job for ``scene_id``. Unknown ids are ignored (returns None)."""
        scene = self.store.get(scene_id)
        if scene is None:
            log.debug("Regenerate ignored for unknown scene %s", scene_id)
            return None
        self.gate.require()

        async def _job() -> bool:
            return await self.runner.run(scene_id, scene.visual_prompt, self.settings)

        return await self.regeneration_policy.submit(scene_id, _job)

    def clear(self) -> None:
        self.store.clear()

    def _batch_job(self, scene_id: str, position: int, total: int, summary: BatchSummary) -> Job:
        async def _job() -> bool | None:
            scene = self.store.get(scene_id)
            if scene is None or scene.image_url:
                summary.skipped.append(scene_id)
                return None
            self.progress_cb(f"  Scene {position}/{total}...")
            # Settings are read when the request is issued, not when the batch started.
            ok = await self.runner.run(scene_id, scene.visual_prompt, self.settings)
            if ok:
                summary.succeeded.append(scene_id)
                self.progress_cb(f"  ✓ Scene {position}")
            else:
                summary.failed.append(scene_id)
                failed = self.store.get(scene_id)
                self.progress_cb(f"  ✗ Scene {position} failed: {failed.error if failed else 'removed'}")
            return ok

        return _job
