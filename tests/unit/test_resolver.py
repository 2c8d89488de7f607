"""Tests for memoji.core.resolver -- cache-or-fetch resolution.

Tests cover:
- Cache hits return the stored emoji without calling the model.
- Misses call the model exactly once and cache the validated result.
- Invalid model replies raise InvalidModelResponseError and cache nothing.
- Corrupt cache entries are ignored and regenerated.
- The prompt sent to the model embeds the query.
"""

from __future__ import annotations

import asyncio
import json

import pytest

from memoji.core.cache import MemeCache
from memoji.core.models import EmojiResult
from memoji.core.resolver import EmojiResolver, InvalidModelResponseError


@pytest.fixture
def resolver(fake_redis, fake_model) -> EmojiResolver:
    return EmojiResolver(MemeCache(fake_redis), fake_model)


class TestCacheHit:
    async def test_hit_skips_model(self, resolver, fake_redis, fake_model):
        fake_redis.data["meme:tea"] = '{"output": "\U0001f375"}'

        result = await resolver.resolve("tea")

        assert result == EmojiResult(output="\U0001f375")
        fake_model.generate.assert_not_awaited()

    async def test_repeated_requests_return_same_output(self, resolver, fake_model):
        first = await resolver.resolve("coffee")
        second = await resolver.resolve("coffee")
        third = await resolver.resolve("coffee")

        assert first.output == second.output == third.output == "☕"
        assert fake_model.generate.await_count == 1

    @pytest.mark.parametrize("payload", ["not json", '{"output": 7}', '{"nope": "x"}'])
    async def test_corrupt_entry_is_regenerated(self, resolver, fake_redis, fake_model, payload):
        fake_redis.data["meme:coffee"] = payload

        result = await resolver.resolve("coffee")

        assert result.output == "☕"
        fake_model.generate.assert_awaited_once()
        assert json.loads(fake_redis.data["meme:coffee"]) == {"output": "☕"}


class TestCacheMiss:
    async def test_miss_calls_model_once_and_caches(self, resolver, fake_redis, fake_model):
        result = await resolver.resolve("coffee")

        assert result.output == "☕"
        fake_model.generate.assert_awaited_once()
        assert json.loads(fake_redis.data["meme:coffee"]) == {"output": "☕"}
        assert fake_redis.expiries["meme:coffee"] == 10_800_000

    async def test_prompt_embeds_query(self, resolver, fake_model):
        await resolver.resolve("laptop")

        (prompt,), _ = fake_model.generate.call_args
        assert "Here's the query: laptop" in prompt

    async def test_concurrent_misses_are_not_deduplicated(self, resolver, fake_model):
        async def slow_generate(prompt):
            await asyncio.sleep(0.01)
            return '{"output": "☕"}'

        fake_model.generate.side_effect = slow_generate

        results = await asyncio.gather(resolver.resolve("coffee"), resolver.resolve("coffee"))

        assert [r.output for r in results] == ["☕", "☕"]
        assert fake_model.generate.await_count == 2


class TestInvalidModelResponse:
    @pytest.mark.parametrize(
        "reply",
        [
            "☕",
            '{"output": 1}',
            '{"output": null}',
            '{"emoji": "☕"}',
            "[]",
        ],
    )
    async def test_invalid_reply_raises_and_caches_nothing(self, resolver, fake_redis, fake_model, reply):
        fake_model.generate.return_value = reply

        with pytest.raises(InvalidModelResponseError, match="Invalid response from AI model"):
            await resolver.resolve("coffee")

        assert "meme:coffee" not in fake_redis.data

    async def test_model_errors_propagate(self, resolver, fake_redis, fake_model):
        fake_model.generate.side_effect = RuntimeError("quota exceeded")

        with pytest.raises(RuntimeError, match="quota exceeded"):
            await resolver.resolve("coffee")

        assert fake_redis.data == {}
