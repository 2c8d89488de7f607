"""Pillow compositing of the emoji meme image.

The meme is a single fixed template:

- a white canvas of ``canvas_width`` x ``canvas_height`` (1120x1240),
- the background image stretched to fill it,
- the emoji drawn with its top-left corner at 23% of the width and 46% of
  the height, at ``emoji_font_size`` (200) pixels.

Emoji are drawn from Twemoji PNGs fetched with the shared ``httpx`` client,
the way ``next/og`` renders them.  When no image is available the text is
drawn with the configured font instead.

Colour emoji fonts such as Noto Color Emoji only exist at one bitmap size, so
when ``emoji_font_native_size`` is configured the glyph is drawn at that size
on its own layer and scaled to the target size before compositing.

Usage
-----
::

    renderer = MemeRenderer(config)
    background = await renderer.load_background()
    emoji = await renderer.load_emoji("☕")
    png = renderer.render("☕", background, emoji)
"""

from __future__ import annotations

import asyncio
import io
import logging

import httpx
from PIL import Image, ImageDraw, ImageFont

from memoji.core.config import MemojiConfig

logger = logging.getLogger(__name__)

EMOJI_FILL = (0, 0, 0, 255)
CANVAS_COLOR = (255, 255, 255, 255)

ZWJ = "\u200d"
VARIATION_SELECTOR = "\ufe0f"


def emoji_codepoints(text: str) -> str:
    """Twemoji file stem for *text*, e.g. ``"2615"`` or ``"1f468-200d-1f4bb"``.

    The emoji-presentation selector U+FE0F is dropped unless the sequence
    contains a zero-width joiner, matching Twemoji's asset names.
    """
    if ZWJ not in text:
        text = text.replace(VARIATION_SELECTOR, "")
    return "-".join(f"{ord(char):x}" for char in text)


class MemeRenderer:
    """Loads the background asset and renders emoji memes to PNG bytes.

    Attributes:
        _config (MemojiConfig): Canvas, font and asset settings.
        _http (httpx.AsyncClient | None): Client used for emoji images and a
            remote background.  Owned by the caller.
        _font: Lazily loaded fallback font.
        _emoji_images (dict): Fetched emoji images keyed by code points.
    """

    def __init__(self, config: MemojiConfig, http_client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._http = http_client
        self._font: ImageFont.FreeTypeFont | ImageFont.ImageFont | None = None
        self._emoji_images: dict[str, Image.Image] = {}

    # -- Assets -------------------------------------------------------------

    async def load_background(self) -> Image.Image:
        """Return the background image, fetched by URL or read from disk.

        Raises:
            httpx.HTTPError: The configured ``background_url`` could not be
                fetched.
            OSError: The bundled background file is missing or unreadable.
        """
        if self._config.background_url:
            data = await self._fetch(self._config.background_url)
        else:
            data = await asyncio.to_thread(self._config.background_path.read_bytes)
        return _decode(data)

    async def load_emoji(self, output: str) -> Image.Image | None:
        """Fetch the emoji image for *output*, or ``None`` to fall back to text.

        Successful fetches are kept for the lifetime of the renderer.  A
        missing asset (the model may answer with text that is not a single
        emoji) or a network error is logged and yields ``None``.
        """
        template = self._config.emoji_image_url
        if not template or not output:
            return None

        codepoints = emoji_codepoints(output)
        cached = self._emoji_images.get(codepoints)
        if cached is not None:
            return cached

        url = template.format(codepoints=codepoints)
        try:
            image = _decode(await self._fetch(url))
        except (httpx.HTTPError, OSError) as exc:
            logger.warning("No emoji image for %r at %s: %s", output, url, exc)
            return None

        self._emoji_images[codepoints] = image
        return image

    async def _fetch(self, url: str) -> bytes:
        if self._http is not None:
            response = await self._http.get(url)
        else:
            async with httpx.AsyncClient() as client:
                response = await client.get(url)
        response.raise_for_status()
        return response.content

    def placeholder(self) -> bytes:
        """PNG bytes of the static image served when no query is given."""
        return self._config.placeholder_path.read_bytes()

    # -- Rendering ----------------------------------------------------------

    def render(
        self,
        output: str,
        background: Image.Image,
        emoji_image: Image.Image | None = None,
    ) -> bytes:
        """Composite the emoji over *background* and encode the result as PNG.

        Args:
            output: Emoji text, drawn with the font when *emoji_image* is
                ``None``.
            background: Background image of any size or mode.
            emoji_image: Pre-rendered emoji, scaled to ``emoji_font_size``
                square.

        Returns:
            PNG-encoded bytes of the canvas.
        """
        cfg = self._config
        size = (cfg.canvas_width, cfg.canvas_height)

        canvas = Image.new("RGBA", size, CANVAS_COLOR)
        canvas.alpha_composite(background.convert("RGBA").resize(size))

        position = (round(cfg.canvas_width * cfg.emoji_left), round(cfg.canvas_height * cfg.emoji_top))
        if emoji_image is not None:
            side = cfg.emoji_font_size
            scaled = emoji_image.convert("RGBA").resize((side, side), Image.Resampling.LANCZOS)
            canvas.alpha_composite(scaled, dest=position)
        elif cfg.emoji_font_native_size:
            self._paste_scaled_glyph(canvas, output, position)
        else:
            draw = ImageDraw.Draw(canvas)
            draw.text(position, output, font=self._get_font(), fill=EMOJI_FILL, embedded_color=True)

        buffer = io.BytesIO()
        canvas.save(buffer, format="PNG")
        return buffer.getvalue()

    def _paste_scaled_glyph(self, canvas: Image.Image, text: str, position: tuple[int, int]) -> None:
        font = self._get_font()
        left, top, right, bottom = font.getbbox(text)
        width, height = max(right - left, 1), max(bottom - top, 1)

        layer = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        ImageDraw.Draw(layer).text((-left, -top), text, font=font, fill=EMOJI_FILL, embedded_color=True)

        scale = self._config.emoji_font_size / self._config.emoji_font_native_size
        scaled = layer.resize(
            (max(round(width * scale), 1), max(round(height * scale), 1)),
            Image.Resampling.LANCZOS,
        )
        canvas.alpha_composite(scaled, dest=position)

    def _get_font(self) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
        if self._font is None:
            cfg = self._config
            if cfg.emoji_font_path is not None:
                size = cfg.emoji_font_native_size or cfg.emoji_font_size
                self._font = ImageFont.truetype(str(cfg.emoji_font_path), size)
                logger.info("Loaded emoji font %s at %dpx.", cfg.emoji_font_path, size)
            else:
                self._font = ImageFont.load_default(size=cfg.emoji_font_size)
                logger.info("No emoji font configured; using Pillow's default font.")
        return self._font


def _decode(data: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(data))
    image.load()
    return image
