"""Gemini client that maps a prompt to a JSON-shaped emoji reply.

:class:`GeminiEmojiModel` is built once by the application lifespan and
injected into :class:`~memoji.core.resolver.EmojiResolver`.  It returns the
raw response text; parsing and schema validation belong to the resolver so
that a test double only has to produce a string.
"""

from __future__ import annotations

import logging
from typing import Protocol

from google import genai
from google.genai import types

logger = logging.getLogger(__name__)

JSON_MIME_TYPE = "application/json"


class EmojiModel(Protocol):
    """Anything that can turn a prompt into raw JSON text."""

    async def generate(self, prompt: str) -> str: ...


class GeminiEmojiModel:
    """Thin async wrapper over a ``google.genai.Client``.

    Every request asks for ``response_mime_type="application/json"`` so
    Gemini answers with a bare JSON document rather than Markdown.

    Attributes:
        model_name (str): Gemini model identifier.
        client: The ``genai.Client`` owned by this instance.
    """

    def __init__(
        self,
        api_key: str | None,
        model_name: str,
        client: genai.Client | None = None,
    ) -> None:
        if client is None:
            if not api_key:
                # Uncached queries fail at call time with an auth error.
                logger.warning("No Gemini API key configured; uncached queries will fail.")
            client = genai.Client(api_key=api_key)
        self.model_name = model_name
        self.client = client

    async def generate(self, prompt: str) -> str:
        """Send *prompt* to Gemini and return the response text.

        Raises:
            google.genai.errors.APIError: On API failures; these propagate to
                the request handler.
        """
        logger.debug("Calling %s (%d prompt chars).", self.model_name, len(prompt))
        response = await self.client.aio.models.generate_content(
            model=self.model_name,
            contents=prompt,
            config=types.GenerateContentConfig(response_mime_type=JSON_MIME_TYPE),
        )
        return response.text
