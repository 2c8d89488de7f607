"""Core services behind the meme endpoint.

- **config.py**: Pydantic Settings configuration (``MEMOJI_`` prefix).
- **prompt_builder.py**: the query -> emoji prompt template.
- **llm.py**: Gemini client returning raw JSON text.
- **cache.py**: Redis cache of query -> emoji results.
- **resolver.py**: cache-or-fetch resolution with schema validation.
- **renderer.py**: Pillow compositing of the meme image.
- **analytics.py**: request counter and per-IP history.

Every service takes its clients as constructor arguments; the FastAPI
lifespan in :mod:`memoji.api.main` wires them together.
"""

from memoji.core.config import MemojiConfig, config
from memoji.core.models import EmojiResult, IpLogEntry
from memoji.core.resolver import EmojiResolver, InvalidModelResponseError

__all__ = [
    "EmojiResolver",
    "EmojiResult",
    "InvalidModelResponseError",
    "IpLogEntry",
    "MemojiConfig",
    "config",
]
