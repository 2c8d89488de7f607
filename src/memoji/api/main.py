"""Memoji -- FastAPI Application.

This module is the single entry point for the web service.  It defines the
FastAPI ``app`` instance, its routes, and the ``main()`` CLI function that
launches the uvicorn server.

Architecture
------------
- **Configuration** comes from :data:`memoji.core.config.config`.
- **Clients** (Redis, Gemini, HTTP) are built once in the lifespan by
  :func:`build_services` and stored on ``app.state.services``.  Route
  handlers only use that object; there are no module-level client handles.
- **Rendering** is done by Pillow in a worker thread.
- **Analytics** are queued with ``BackgroundTasks`` and run after the
  response has been sent.

Endpoints
---------
========  ============================  ====================================
Method    Path                          Purpose
========  ============================  ====================================
GET       ``/api/og``                   Render the emoji meme for ``query``
GET       ``/api/stats``                Global request counter
========  ============================  ====================================

Usage
-----
CLI (installed entry point)::

    memoji

Direct invocation::

    python -m memoji.api.main
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import httpx
import redis.asyncio as redis
from fastapi import BackgroundTasks, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse, Response
from PIL import Image

from memoji import __version__
from memoji.api.models import StatsResponse
from memoji.core.analytics import UsageRecorder
from memoji.core.cache import MemeCache
from memoji.core.config import MemojiConfig, config
from memoji.core.llm import GeminiEmojiModel
from memoji.core.renderer import MemeRenderer
from memoji.core.resolver import EmojiResolver

logger = logging.getLogger(__name__)

ERROR_BODY = "Error generating meme"

IMAGE_HEADERS = {"Cache-Control": "public, immutable, no-transform, max-age=31536000"}


# ---------------------------------------------------------------------------
# Service wiring.
# ---------------------------------------------------------------------------


@dataclass
class Services:
    """Every client and service a request handler needs.

    Attributes:
        config: Settings the services were built from.
        redis: Shared async Redis connection (cache and analytics).
        http: HTTP client for emoji images and a remote background.
        resolver: Cache-or-fetch query resolution.
        recorder: Analytics writer.
        renderer: Background loading and PNG rendering.
    """

    config: MemojiConfig
    redis: redis.Redis
    http: httpx.AsyncClient
    resolver: EmojiResolver
    recorder: UsageRecorder
    renderer: MemeRenderer

    async def aclose(self) -> None:
        try:
            await self.http.aclose()
        finally:
            await self.redis.aclose()


def build_services(cfg: MemojiConfig) -> Services:
    """Construct the Redis, Gemini and HTTP clients and the services on top.

    No connection is opened here; redis-py and httpx connect lazily on the
    first command or request.
    """
    redis_kwargs = {"decode_responses": True}
    if cfg.redis_token:
        redis_kwargs["password"] = cfg.redis_token
    redis_client = redis.from_url(cfg.redis_url, **redis_kwargs)

    http_client = httpx.AsyncClient(timeout=cfg.max_duration_seconds)
    model = GeminiEmojiModel(cfg.gemini_api_key, cfg.gemini_model)

    return Services(
        config=cfg,
        redis=redis_client,
        http=http_client,
        resolver=EmojiResolver(MemeCache(redis_client, cfg.cache_ttl_ms), model),
        recorder=UsageRecorder(redis_client),
        renderer=MemeRenderer(cfg, http_client),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the services on startup and close their connections on shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to the application for the duration of its lifetime.
    """
    # --- Startup -----------------------------------------------------------
    app.state.services = build_services(config)
    logger.info("Services initialised (model=%s).", config.gemini_model)

    yield  # Application runs here.

    # --- Shutdown ----------------------------------------------------------
    await app.state.services.aclose()
    logger.info("Redis and HTTP clients closed on shutdown.")


# ---------------------------------------------------------------------------
# FastAPI application instance.
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Memoji",
    description="Turns a short text query into a cached emoji meme image.",
    version=__version__,
    lifespan=lifespan,
)

# OG images are embedded by other sites, so allow any origin to GET them.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Request helpers.
# ---------------------------------------------------------------------------


def client_ip(request: Request) -> str | None:
    """Best guess at the caller's address.

    Behind a proxy the first ``X-Forwarded-For`` hop is the client; otherwise
    ``X-Real-IP`` and finally the socket peer are used.

    Returns:
        The address, or ``None`` when it cannot be determined.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client is not None:
        return request.client.host
    return None


async def _resolve_emoji(services: Services, query: str) -> tuple[str, Image.Image | None]:
    result = await services.resolver.resolve(query)
    return result.output, await services.renderer.load_emoji(result.output)


async def _render_meme(services: Services, query: str) -> tuple[bytes, str]:
    """Resolve and fetch the emoji while loading the background, then render.

    Returns:
        Tuple of ``(png_bytes, emoji)``.
    """
    (output, emoji_image), background = await asyncio.gather(
        _resolve_emoji(services, query),
        services.renderer.load_background(),
    )
    png = await asyncio.to_thread(services.renderer.render, output, background, emoji_image)
    return png, output


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@app.get("/api/og")
async def og_image(
    request: Request,
    background_tasks: BackgroundTasks,
    query: str | None = None,
    ref: str | None = None,
) -> Response:
    """Render the emoji meme for *query*.

    This endpoint:

    1. Returns the static placeholder image when ``query`` is missing.
    2. Resolves the emoji (cache, else model) and fetches its image while
       loading the background.
    3. Renders the PNG and returns it.
    4. Queues the analytics writes to run after the response is sent.

    The whole render is bounded by ``config.max_duration_seconds``.  Any
    failure, including the timeout, is logged and answered with a plain-text
    500; the cause is never exposed to the client.

    Args:
        request: Incoming request (used for the client address).
        background_tasks: Post-response task queue.
        query: Text to turn into an emoji.
        ref: Optional referrer tag, stored in the per-IP history only.

    Returns:
        ``image/png`` on success, ``text/plain`` 500 on failure.
    """
    services: Services = request.app.state.services

    try:
        if not query:
            placeholder = await asyncio.to_thread(services.renderer.placeholder)
            return Response(content=placeholder, media_type="image/png")

        png, output = await asyncio.wait_for(
            _render_meme(services, query),
            timeout=services.config.max_duration_seconds,
        )
    except Exception:
        logger.exception("Error generating meme for query %r.", query)
        return PlainTextResponse(ERROR_BODY, status_code=500)

    background_tasks.add_task(services.recorder.record, client_ip(request), ref, query, output)
    return Response(content=png, media_type="image/png", headers=IMAGE_HEADERS)


@app.get("/api/stats", response_model=StatsResponse)
async def get_stats(request: Request) -> StatsResponse:
    """Return the global request counter.

    Raises:
        HTTPException: 503 if Redis cannot be reached.
    """
    services: Services = request.app.state.services
    try:
        total = await services.recorder.total_requests()
    except redis.RedisError as exc:
        logger.error("Could not read request counter: %s", exc)
        raise HTTPException(status_code=503, detail="Analytics store unavailable") from exc
    return StatsResponse(total_requests=total)


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Configure logging and launch the uvicorn ASGI server.

    Host, port and log level come from :data:`~memoji.core.config.config`
    (``MEMOJI_SERVER_HOST``, ``MEMOJI_SERVER_PORT``, ``MEMOJI_LOG_LEVEL``).

    This function is registered as the ``memoji`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(
        "memoji.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
