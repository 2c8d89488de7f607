"""Configuration management for Memoji.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the MEMOJI_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (MEMOJI_* prefix)
2. .env file in the project root
3. Default values defined in MemojiConfig

Example .env file:
    MEMOJI_REDIS_URL=rediss://default@eu1-example.upstash.io:6379
    MEMOJI_REDIS_TOKEN=...
    MEMOJI_GEMINI_API_KEY=...
    MEMOJI_BACKGROUND_URL=https://example.com/base.png

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
The FastAPI lifespan reads it once and builds every external client from it,
so handlers never touch the global directly.

Usage Example
-------------
    from memoji.core.config import config

    print(config.redis_url)
    print(config.background_path)

Rendering Constants
-------------------
The canvas (1120x1240), the emoji position (46% top, 23% left) and the emoji
font size (200) describe the one meme template the service renders.  They
are fixed per process; requests cannot change the layout.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Bundled assets ship inside the package next to this module's parent.
_PACKAGE_STATIC_DIR = Path(__file__).resolve().parent.parent / "static"

# Twemoji 72x72 PNGs, keyed by code points (see renderer.emoji_codepoints).
TWEMOJI_URL = "https://cdnjs.cloudflare.com/ajax/libs/twemoji/14.0.2/72x72/{codepoints}.png"

# Three hours, in milliseconds (written with Redis ``PX``).
CACHE_DURATION_MS = 3 * 60 * 60 * 1000


class MemojiConfig(BaseSettings):
    """Main configuration for Memoji.

    Attributes
    ----------
    Redis:
        redis_url : str
            Connection URL for the cache and analytics store.
        redis_token : str | None
            Password/token for hosted Redis.  Overrides any password in the URL.
        cache_ttl_ms : int
            Lifetime of a cached query -> emoji mapping, in milliseconds.

    Model:
        gemini_api_key : str | None
            API key for the Gemini generative model.
        gemini_model : str
            Gemini model name.

    Rendering:
        canvas_width, canvas_height : int
            Output image size in pixels.
        emoji_font_size : int
            Target emoji size in pixels.
        emoji_top, emoji_left : float
            Emoji position as a fraction of canvas height / width.
        emoji_image_url : str | None
            URL template for per-emoji PNGs, with a ``{codepoints}``
            placeholder.  Defaults to Twemoji; set to empty to draw text.
        emoji_font_path : Path | None
            TrueType font for text drawing.  Used when no emoji image is
            available; Pillow's default font when unset.
        emoji_font_native_size : int | None
            Fixed bitmap size of colour emoji fonts (109 for Noto Color Emoji).
            When set, glyphs are drawn at this size and scaled to
            ``emoji_font_size``.

    Assets:
        static_dir : Path
            Directory holding ``base.png`` (background) and ``og.png``
            (placeholder).
        background_url : str | None
            When set, the background is fetched over HTTP instead of read from
            ``static_dir``.

    Server:
        max_duration_seconds : float
            Upper bound on a single ``/api/og`` request.
        server_host, server_port : str, int
            uvicorn bind address.
        log_level : str
            Root logging level used by the ``memoji`` entry point.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="MEMOJI_",
        case_sensitive=False,
        extra="ignore",
    )

    # Redis
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )
    redis_token: str | None = Field(
        default=None,
        description="Password/token for hosted Redis",
    )
    cache_ttl_ms: int = Field(
        default=CACHE_DURATION_MS,
        description="Cache TTL in milliseconds (3 hours)",
        gt=0,
    )

    # Gemini
    gemini_api_key: str | None = Field(
        default=None,
        description="Gemini API key",
    )
    gemini_model: str = Field(
        default="gemini-1.5-flash-latest",
        description="Gemini model used to pick an emoji",
    )

    # Rendering
    canvas_width: int = Field(default=1120, ge=1, le=4096)
    canvas_height: int = Field(default=1240, ge=1, le=4096)
    emoji_font_size: int = Field(default=200, ge=1)
    emoji_top: float = Field(default=0.46, ge=0.0, le=1.0)
    emoji_left: float = Field(default=0.23, ge=0.0, le=1.0)
    emoji_image_url: str | None = Field(
        default=TWEMOJI_URL,
        description="Per-emoji PNG URL template with a {codepoints} placeholder",
    )
    emoji_font_path: Path | None = Field(
        default=None,
        description="Fallback TrueType font (Pillow default font when unset)",
    )
    emoji_font_native_size: int | None = Field(
        default=None,
        description="Bitmap size of colour emoji fonts (e.g. 109 for Noto Color Emoji)",
        ge=1,
    )

    # Assets
    static_dir: Path = Field(
        default=_PACKAGE_STATIC_DIR,
        description="Directory with base.png and og.png",
    )
    background_url: str | None = Field(
        default=None,
        description="Fetch the background from this URL instead of static_dir",
    )

    # Server
    max_duration_seconds: float = Field(
        default=60,
        description="Maximum handler duration for /api/og",
        gt=0,
    )
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address",
    )
    server_port: int = Field(
        default=7860,
        description="Server port",
        ge=1024,
        le=65535,
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level for the memoji entry point",
    )

    @property
    def background_path(self) -> Path:
        """Bundled background image composited under the emoji."""
        return self.static_dir / "base.png"

    @property
    def placeholder_path(self) -> Path:
        """Static image returned when no query is given."""
        return self.static_dir / "og.png"


# Global configuration instance, loaded from MEMOJI_* variables and .env.
config = MemojiConfig()
