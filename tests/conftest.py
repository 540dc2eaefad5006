import asyncio

import pytest
import pytest_asyncio

from storyboard.access import AccessGate
from storyboard.errors import GenerationError
from storyboard.models import ImageResource, SceneDraft
from storyboard.orchestrator import GenerationOrchestrator
from storyboard.store import SceneStore


class StaticCredentials:
    def __init__(self, has_key: bool = True, probe_error: Exception | None = None):
        self.has_key = has_key
        self.probe_error = probe_error
        self.requests = 0

    async def has_credential(self) -> bool:
        if self.probe_error:
            raise self.probe_error
        return self.has_key

    async def request_credential(self) -> None:
        self.requests += 1


class FakeService:
    """In-process stand-in for GeminiService."""

    def __init__(self, drafts=None, fail_prompts=(), parse_error=None):
        self.drafts = drafts or []
        self.fail_prompts = set(fail_prompts)
        self.parse_error = parse_error
        self.segment_calls = []
        self.image_calls = []
        self.events = []
        self.chat_calls = []
        self.chat_reply = "Try a low angle."
        self.chat_error = None

    async def segment_script(self, script):
        self.segment_calls.append(script)
        if self.parse_error:
            raise self.parse_error
        return list(self.drafts)

    async def generate_image(self, prompt, size, aspect_ratio):
        self.image_calls.append((prompt, size, aspect_ratio))
        self.events.append(("start", prompt))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        self.events.append(("end", prompt))
        if prompt in self.fail_prompts:
            raise GenerationError(f"No image for {prompt}")
        return ImageResource(data=prompt.encode(), mime_type="image/png")

    async def chat(self, history, message):
        self.chat_calls.append((history, message))
        if self.chat_error:
            raise self.chat_error
        return self.chat_reply


def drafts(*prompts):
    return [SceneDraft(scriptText=f"Line for {p}", visualPrompt=p) for p in prompts]


@pytest.fixture
def store():
    return SceneStore()


@pytest.fixture
def service():
    return FakeService(drafts=drafts("shot one", "shot two", "shot three"))


@pytest_asyncio.fixture
async def gate():
    gate = AccessGate(StaticCredentials(has_key=True))
    await gate.check()
    return gate


@pytest.fixture
def orchestrator(store, service, gate):
    return GenerationOrchestrator(store, service, gate)
