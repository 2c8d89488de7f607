"""Pydantic models for cached results and analytics entries.

Models
------
EmojiResult
    The ``{output: string}`` schema every model reply must satisfy.  The same
    model encodes cache entries and validates them on read.
IpLogEntry
    One element of the per-IP request history list.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, StrictStr


class EmojiResult(BaseModel):
    """Structured reply from the generative model.

    Attributes:
        output: The emoji (or short emoji sequence) chosen for the query.
            Strict: numbers, lists and nulls are rejected rather than coerced.
    """

    output: StrictStr = Field(
        ...,
        description="Emoji representing the query.",
    )


class IpLogEntry(BaseModel):
    """Entry appended to ``ip:<address>`` for every rendered meme.

    Attributes:
        ref: Referrer tag passed by the client, ``""`` when absent.
        query: The query that was rendered.
        output: The emoji that was rendered.
    """

    ref: str = Field(default="", description="Client-supplied referrer tag.")
    query: str = Field(..., description="Rendered query.")
    output: str = Field(..., description="Rendered emoji.")
