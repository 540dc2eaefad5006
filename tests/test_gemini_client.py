import json
from types import SimpleNamespace

import pytest

from storyboard.config import Config
from storyboard.errors import AccessError, GenerationError, ParseError
from storyboard.models import AspectRatio, ImageSize
from storyboard.utils import gemini_client
from storyboard.utils.gemini_client import CHAT_SYSTEM_INSTRUCTION, GeminiService, decode_scene_drafts


class _Models:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    async def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        return self.response


class _Chat:
    def __init__(self, reply):
        self.reply = reply
        self.sent = []

    async def send_message(self, message):
        self.sent.append(message)
        return SimpleNamespace(text=self.reply)


class _Chats:
    def __init__(self, reply):
        self.reply = reply
        self.created = []

    def create(self, **kwargs):
        chat = _Chat(self.reply)
        self.created.append((kwargs, chat))
        return chat


@pytest.fixture
def fake_genai(monkeypatch):
    state = SimpleNamespace(models=_Models(), chats=_Chats("Use a dolly zoom."), keys=[])

    class _Client:
        def __init__(self, api_key):
            state.keys.append(api_key)
            self.aio = SimpleNamespace(models=state.models, chats=state.chats)

    monkeypatch.setattr(gemini_client.genai, "Client", _Client)
    return state


def _image_response(*parts):
    content = SimpleNamespace(parts=list(parts))
    return SimpleNamespace(candidates=[SimpleNamespace(content=content)])


def _inline(data, mime="image/png"):
    return SimpleNamespace(inline_data=SimpleNamespace(data=data, mime_type=mime), text=None)


def _text_part(text):
    return SimpleNamespace(inline_data=None, text=text)


# ---------------------------------------------------------------------------
# segmentation
# ---------------------------------------------------------------------------

def test_decode_scene_drafts():
    text = json.dumps([
        {"scriptText": "JANE checks her watch.", "visualPrompt": "Close-up of a wristwatch"},
        {"scriptText": "The door chime rings.", "visualPrompt": "Wide shot of the door"},
    ])
    drafts = decode_scene_drafts(text)
    assert [d.visualPrompt for d in drafts] == ["Close-up of a wristwatch", "Wide shot of the door"]


@pytest.mark.parametrize("text", [None, "", "not json", '{"scenes": []}', '[{"scriptText": "x"}]'])
def test_decode_scene_drafts_rejects_bad_shapes(text):
    with pytest.raises(ParseError):
        decode_scene_drafts(text)


@pytest.mark.asyncio
async def test_segment_script_requests_json(fake_genai):
    fake_genai.models.response = SimpleNamespace(
        text='[{"scriptText": "JOE enters.", "visualPrompt": "Man in doorway"}]'
    )
    service = GeminiService(Config(gemini_api_key="k1"))

    drafts = await service.segment_script("INT. ROOM — JOE enters.")

    assert drafts[0].scriptText == "JOE enters."
    call = fake_genai.models.calls[0]
    assert call["model"] == "gemini-3-pro-preview"
    assert "JOE enters." in call["contents"]
    assert call["config"].response_mime_type == "application/json"


@pytest.mark.asyncio
async def test_segment_script_transport_error(fake_genai):
    fake_genai.models.error = ConnectionError("unreachable")
    with pytest.raises(ParseError):
        await GeminiService(Config(gemini_api_key="k1")).segment_script("script")


@pytest.mark.asyncio
async def test_missing_key_raises_access_error(fake_genai):
    with pytest.raises(AccessError):
        await GeminiService(Config(gemini_api_key="")).segment_script("script")
    assert fake_genai.keys == []


# ---------------------------------------------------------------------------
# images
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_generate_image_returns_first_inline_part(fake_genai):
    fake_genai.models.response = _image_response(
        _text_part("Here is your image"), _inline(b"jpegbytes", "image/jpeg")
    )
    service = GeminiService(Config(gemini_api_key="k1"))

    image = await service.generate_image("a rainy window", ImageSize.SIZE_2K, AspectRatio.SQUARE)

    assert image.data == b"jpegbytes"
    assert image.mime_type == "image/jpeg"
    assert image.data_uri.startswith("data:image/jpeg;base64,")
    config = fake_genai.models.calls[0]["config"]
    assert config.image_config.image_size == "2K"
    assert config.image_config.aspect_ratio == "1:1"
    assert fake_genai.models.calls[0]["model"] == "gemini-3-pro-image-preview"


@pytest.mark.asyncio
async def test_generate_image_without_image_part(fake_genai):
    fake_genai.models.response = _image_response(_text_part("I can't draw that"))
    with pytest.raises(GenerationError, match="No image generated"):
        await GeminiService(Config(gemini_api_key="k1")).generate_image(
            "x", ImageSize.SIZE_1K, AspectRatio.WIDE
        )


@pytest.mark.asyncio
async def test_generate_image_with_no_candidates(fake_genai):
    fake_genai.models.response = SimpleNamespace(candidates=None)
    with pytest.raises(GenerationError):
        await GeminiService(Config(gemini_api_key="k1")).generate_image(
            "x", ImageSize.SIZE_1K, AspectRatio.WIDE
        )


@pytest.mark.asyncio
async def test_generate_image_transport_error(fake_genai):
    fake_genai.models.error = RuntimeError("429 RESOURCE_EXHAUSTED")
    with pytest.raises(GenerationError, match="429"):
        await GeminiService(Config(gemini_api_key="k1")).generate_image(
            "x", ImageSize.SIZE_1K, AspectRatio.WIDE
        )


@pytest.mark.asyncio
async def test_fresh_client_picks_up_new_key(fake_genai):
    fake_genai.models.response = _image_response(_inline(b"png"))
    config = Config(gemini_api_key="first")
    service = GeminiService(config)

    await service.generate_image("x", ImageSize.SIZE_1K, AspectRatio.WIDE)
    config.gemini_api_key = "second"
    await service.generate_image("x", ImageSize.SIZE_1K, AspectRatio.WIDE)

    assert fake_genai.keys == ["first", "second"]


# ---------------------------------------------------------------------------
# chat
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_chat_replays_history(fake_genai):
    service = GeminiService(Config(gemini_api_key="k1"))
    history = [{"role": "model", "text": "Hi!"}, {"role": "user", "text": "Idea for act two?"}]

    reply = await service.chat(history, "Make it darker")

    assert reply == "Use a dolly zoom."
    kwargs, chat = fake_genai.chats.created[0]
    assert [c.role for c in kwargs["history"]] == ["model", "user"]
    assert kwargs["history"][1].parts[0].text == "Idea for act two?"
    assert kwargs["config"].system_instruction == CHAT_SYSTEM_INSTRUCTION
    assert chat.sent == ["Make it darker"]
