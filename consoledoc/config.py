"""Codec options shared by the loader and the container writers."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CodecOptions(BaseModel):
    """Tunables for encoding and decoding.

    Defaults match what existing renderers write: a keyframe every 30
    frames, deltas kept only while they stay under 60% of a full keyframe.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    keyframe_interval: int = Field(default=30, ge=1)
    delta_threshold: float = Field(default=0.6, gt=0.0)
    gzip_level: int = Field(default=6, ge=0, le=9)
    brotli_quality: int = Field(default=4, ge=0, le=11)
    # validate PlainJson input against the packaged JSON Schema first
    strict_contract: bool = False
    loop_count_override: Optional[int] = Field(default=None, ge=0)


DEFAULT_OPTIONS = CodecOptions()
