"""Gemini calls: image description and text simplification."""

import logging

from google import genai
from google.genai import types

log = logging.getLogger(__name__)

DESCRIBE_PROMPT = ("Describe this image in detail for a visually impaired user. "
                   "Focus on the main subjects, layout, colors, and any text present. "
                   "Keep it concise but descriptive.")

SIMPLIFY_PROMPT = """Simplify the following text for someone with cognitive learning difficulties (like Dyslexia or ADHD).
Make it easier to read, use simpler vocabulary, and break long sentences.
Keep the core meaning intact.

Text to simplify:
"{text}\""""


class GeminiClient:
    def __init__(self, api_key: str, model: str = "gemini-2.0-flash"):
        self.model = model
        self._client = genai.Client(api_key=api_key)
        log.info("Gemini AI initialized (%s).", model)

    @staticmethod
    def _text(response) -> str:
        text = response.text
        if not text or not text.strip():
            raise ValueError("Gemini returned an empty response")
        return text

    async def describe_image(self, data: bytes, mime_type: str) -> str:
        response = await self._client.aio.models.generate_content(
            model=self.model,
            contents=[DESCRIBE_PROMPT, types.Part.from_bytes(data=data, mime_type=mime_type)],
        )
        return self._text(response)

    async def simplify(self, text: str) -> str:
        response = await self._client.aio.models.generate_content(
            model=self.model, contents=SIMPLIFY_PROMPT.format(text=text))
        return self._text(response)
