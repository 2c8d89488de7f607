"""Shared pytest fixtures for Memoji tests.

No test talks to a real Redis server or to Gemini.  :class:`FakeRedis`
implements the handful of async commands the services use, and the model is
an ``AsyncMock`` whose ``generate`` returns canned JSON text.  Emoji images
are served by an ``httpx.MockTransport`` with one solid colour per emoji.
"""

from __future__ import annotations

import io
import shutil
import tempfile
from pathlib import Path
from typing import Generator
from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from memoji.api import main as api_main
from memoji.api.main import Services
from memoji.core.analytics import UsageRecorder
from memoji.core.cache import MemeCache
from memoji.core.config import MemojiConfig
from memoji.core.renderer import MemeRenderer
from memoji.core.resolver import EmojiResolver

# Small canvas keeps rendering fast while preserving the layout fractions.
TEST_CANVAS = (112, 124)
TEST_FONT_SIZE = 20

# Twemoji file stem -> fill colour of the served image.
EMOJI_COLORS = {
    "2615": (111, 78, 55),  # coffee
    "1f375": (120, 177, 89),  # tea
    "1f4bb": (60, 90, 200),  # laptop
}


class FakeRedis:
    """In-memory stand-in for the ``redis.asyncio`` commands Memoji uses.

    Attributes:
        data: String keys -> values.
        lists: List keys -> values.
        expiries: Keys -> ``px`` passed to the last ``set``.
    """

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.lists: dict[str, list[str]] = {}
        self.expiries: dict[str, int | None] = {}
        self.closed = False

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: str, px: int | None = None) -> bool:
        self.data[key] = value
        self.expiries[key] = px
        return True

    async def incr(self, key: str) -> int:
        value = int(self.data.get(key, "0")) + 1
        self.data[key] = str(value)
        return value

    async def rpush(self, key: str, *values: str) -> int:
        self.lists.setdefault(key, []).extend(values)
        return len(self.lists[key])

    async def lrange(self, key: str, start: int, end: int) -> list[str]:
        items = self.lists.get(key, [])
        return items[start:] if end == -1 else items[start : end + 1]

    async def aclose(self) -> None:
        self.closed = True


def png_bytes(size: tuple[int, int] = (8, 8), color=(255, 255, 255)) -> bytes:
    """Encode a solid-colour PNG."""
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def emoji_png(color) -> bytes:
    """A 72x72 emoji-like PNG: transparent margin around a solid square."""
    image = Image.new("RGBA", (72, 72), (0, 0, 0, 0))
    image.paste(color + (255,), (8, 8, 64, 64))
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def serve_emoji(request: httpx.Request) -> httpx.Response:
    """MockTransport handler for the emoji image URL template."""
    stem = request.url.path.rsplit("/", 1)[-1].removesuffix(".png")
    color = EMOJI_COLORS.get(stem)
    if color is None:
        return httpx.Response(404)
    return httpx.Response(200, content=emoji_png(color), headers={"Content-Type": "image/png"})


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def static_dir(temp_dir: Path) -> Path:
    """Static directory with a white background and a red placeholder."""
    path = temp_dir / "static"
    path.mkdir()
    (path / "base.png").write_bytes(png_bytes((16, 16), (255, 255, 255)))
    (path / "og.png").write_bytes(png_bytes((4, 4), (255, 0, 0)))
    return path


@pytest.fixture
def test_config(static_dir: Path) -> MemojiConfig:
    """Configuration pointing at the temporary assets, with a small canvas.

    Returns:
        MemojiConfig instance for testing
    """
    return MemojiConfig(
        _env_file=None,
        static_dir=static_dir,
        canvas_width=TEST_CANVAS[0],
        canvas_height=TEST_CANVAS[1],
        emoji_font_size=TEST_FONT_SIZE,
        max_duration_seconds=5,
    )


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def fake_model() -> AsyncMock:
    """Model double that always answers with a coffee emoji."""
    model = AsyncMock()
    model.generate.return_value = '{"output": "☕"}'
    return model


@pytest.fixture
def emoji_colors() -> dict[str, tuple[int, int, int]]:
    return EMOJI_COLORS


@pytest.fixture
def services(test_config: MemojiConfig, fake_redis: FakeRedis, fake_model: AsyncMock) -> Services:
    """Fully wired services backed by the fakes."""
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(serve_emoji))
    return Services(
        config=test_config,
        redis=fake_redis,
        http=http_client,
        resolver=EmojiResolver(MemeCache(fake_redis, test_config.cache_ttl_ms), fake_model),
        recorder=UsageRecorder(fake_redis),
        renderer=MemeRenderer(test_config, http_client),
    )


@pytest.fixture
def test_client(monkeypatch, services: Services) -> Generator[TestClient, None, None]:
    """TestClient whose lifespan installs the fake-backed services."""
    monkeypatch.setattr(api_main, "build_services", lambda cfg: services)
    with TestClient(api_main.app) as client:
        yield client
