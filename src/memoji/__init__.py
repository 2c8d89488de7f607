"""Memoji - turns a short text query into a cached emoji meme image."""

__version__ = "0.1.0"

from memoji.core.config import MemojiConfig, config

__all__ = [
    "MemojiConfig",
    "config",
]
