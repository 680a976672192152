from types import SimpleNamespace

import pytest

from conftest import FakeDetector, FakeOCR
from learning_companion import cloud
from learning_companion.cloud import DESCRIBE_PROMPT, GeminiClient
from learning_companion.vision import LOCAL, ImageAnalyzer


class FakeModels:
    def __init__(self, text):
        self.text = text
        self.calls = []

    async def generate_content(self, model, contents):
        self.calls.append((model, contents))
        return SimpleNamespace(text=self.text)


@pytest.fixture
def models():
    return FakeModels("A red square.")


@pytest.fixture
def gemini(monkeypatch, models):
    def client(api_key):
        return SimpleNamespace(aio=SimpleNamespace(models=models))
    monkeypatch.setattr(cloud.genai, "Client", client)
    return GeminiClient("test-key", model="gemini-test")


async def test_describe_image_sends_prompt_and_inline_bytes(gemini, models, png_bytes):
    assert await gemini.describe_image(png_bytes, "image/png") == "A red square."

    model, contents = models.calls[0]
    assert model == "gemini-test"
    assert contents[0] == DESCRIBE_PROMPT
    assert contents[1].inline_data.data == png_bytes
    assert contents[1].inline_data.mime_type == "image/png"


async def test_simplify_quotes_the_text(gemini, models):
    models.text = "Plants eat light."

    assert await gemini.simplify("Photosynthesis converts light energy.") == "Plants eat light."
    prompt = models.calls[0][1]
    assert prompt.startswith("Simplify the following text")
    assert prompt.endswith('Text to simplify:\n"Photosynthesis converts light energy."')


@pytest.mark.parametrize("text", ["", "   ", None])
async def test_empty_reply_is_an_error(gemini, models, text):
    models.text = text
    with pytest.raises(ValueError):
        await gemini.simplify("anything")


async def test_empty_description_falls_back_to_local(gemini, models, tmp_path, png_bytes):
    models.text = ""
    analyzer = ImageAnalyzer(FakeDetector(["cup"]), tmp_path / "uploads", cloud=gemini,
                             ocr=FakeOCR(), demo_delay=0)

    result = await analyzer.analyze_upload(png_bytes, "desk.png", "image/png", use_cloud=True)

    assert result.source == LOCAL
    assert result.description == "This image contains: cup. No text found."
    assert len(models.calls) == 1
