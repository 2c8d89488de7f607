"""Cache-or-fetch resolution of a query to an emoji.

:class:`EmojiResolver` is the only place that decides whether the model is
called:

- **Hit** -- the cached payload is decoded and validated against
  :class:`~memoji.core.models.EmojiResult` and returned without a model call.
  A payload that no longer decodes or validates is logged and treated as a
  miss, so a bad entry is overwritten by the next successful resolution.
- **Miss** -- one model call; the reply is parsed as JSON, validated, written
  to the cache and returned.  A reply that fails either step raises
  :class:`InvalidModelResponseError` and nothing is cached.

Concurrent misses for the same query are not coalesced; each one calls the
model and the last write wins.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from memoji.core.cache import MemeCache
from memoji.core.llm import EmojiModel
from memoji.core.models import EmojiResult
from memoji.core.prompt_builder import build_prompt

logger = logging.getLogger(__name__)


class InvalidModelResponseError(RuntimeError):
    """The model reply was not JSON of the shape ``{"output": str}``."""

    def __init__(self, message: str = "Invalid response from AI model") -> None:
        super().__init__(message)


class EmojiResolver:
    """Resolve queries through :class:`MemeCache` and an :class:`EmojiModel`.

    Args:
        cache: Query -> result cache.
        model: Generative model client.
    """

    def __init__(self, cache: MemeCache, model: EmojiModel) -> None:
        self._cache = cache
        self._model = model

    async def resolve(self, query: str) -> EmojiResult:
        """Return the emoji for *query*, calling the model only on a miss.

        Raises:
            InvalidModelResponseError: The model reply failed parsing or
                schema validation.
        """
        cached = await self._cached(query)
        if cached is not None:
            return cached

        raw = await self._model.generate(build_prompt(query))

        try:
            result = EmojiResult.model_validate_json(raw)
        except ValidationError as exc:
            logger.error("Error parsing or validating model result %r: %s", raw, exc)
            raise InvalidModelResponseError() from exc

        await self._cache.set(query, result)
        logger.info("Resolved %r -> %r via model.", query, result.output)
        return result

    async def _cached(self, query: str) -> EmojiResult | None:
        raw = await self._cache.get(query)
        if not raw:
            return None
        try:
            result = EmojiResult.model_validate_json(raw)
        except ValidationError as exc:
            logger.error("Error parsing cached result for %r: %s", query, exc)
            return None
        logger.info("Resolved %r -> %r from cache.", query, result.output)
        return result
