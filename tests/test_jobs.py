import asyncio

import pytest

from storyboard.jobs import JobQueue, JobRunner
from storyboard.models import GenerationSettings, ImageResource, Scene
from storyboard.store import SceneStore


def _job(log, name, delay=0, error=None):
    async def _run():
        log.append(f"start {name}")
        await asyncio.sleep(delay)
        log.append(f"end {name}")
        if error:
            raise error
        return name
    return _run


@pytest.mark.asyncio
async def test_single_worker_runs_jobs_one_after_another():
    log = []
    results = await JobQueue(1).run_all([_job(log, "a", 0.01), _job(log, "b"), _job(log, "c")])
    assert results == ["a", "b", "c"]
    assert log == ["start a", "end a", "start b", "end b", "start c", "end c"]


@pytest.mark.asyncio
async def test_failing_job_does_not_stop_queue():
    log = []
    boom = ValueError("boom")
    results = await JobQueue(1).run_all([_job(log, "a", error=boom), _job(log, "b")])
    assert results == [boom, "b"]


@pytest.mark.asyncio
async def test_wider_pool_overlaps_jobs():
    log = []
    await JobQueue(2).run_all([_job(log, "a", 0.01), _job(log, "b", 0.01)])
    assert log[:2] == ["start a", "start b"]


@pytest.mark.asyncio
async def test_empty_queue():
    assert await JobQueue(1).run_all([]) == []


def test_pool_size_must_be_positive():
    with pytest.raises(ValueError):
        JobQueue(0)


class _Generator:
    def __init__(self, error=None):
        self.error = error

    async def generate_image(self, prompt, size, aspect_ratio):
        if self.error:
            raise self.error
        return ImageResource(b"img", "image/jpeg")


@pytest.mark.asyncio
async def test_runner_success_records_image():
    store = SceneStore()
    store.replace_all([Scene(id="s1", script_text="t", visual_prompt="p", error="old")])
    ok = await JobRunner(store, _Generator()).run("s1", "p", GenerationSettings())
    scene = store.get("s1")
    assert ok is True
    assert scene.image_url.startswith("data:image/jpeg;base64,")
    assert scene.error is None and scene.is_loading is False


@pytest.mark.asyncio
async def test_runner_uses_fallback_message_for_blank_errors():
    store = SceneStore()
    store.replace_all([Scene(id="s1", script_text="t", visual_prompt="p")])
    ok = await JobRunner(store, _Generator(error=RuntimeError())).run("s1", "p", GenerationSettings())
    assert ok is False
    assert store.get("s1").error == "Failed"


@pytest.mark.asyncio
async def test_runner_on_removed_scene_leaves_store_alone():
    store = SceneStore()
    ok = await JobRunner(store, _Generator()).run("gone", "p", GenerationSettings())
    assert ok is True
    assert store.scenes == ()
