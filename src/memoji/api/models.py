"""Pydantic response models for the Memoji API.

Only JSON endpoints need a model here; ``GET /api/og`` answers with raw PNG
bytes or a plain-text error.

Models
------
StatsResponse
    Payload for ``GET /api/stats``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class StatsResponse(BaseModel):
    """Response body for ``GET /api/stats``.

    Attributes:
        total_requests: Value of the global ``total_requests`` counter.
    """

    total_requests: int = Field(
        ...,
        description="Number of memes rendered since the counter was created.",
    )
