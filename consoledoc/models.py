"""Document data models — the canonical data contracts of the codec.

Property names on the wire are PascalCase (``Frames``, ``DelayMs`` …) apart
from the JSON-LD markers ``@context`` / ``@type``; python attributes stay
snake_case.  extra="ignore" on every model gives forward-compatibility:
unknown fields written by newer renderers are dropped rather than rejected.
Absent or null collections always come back as empty lists, never None.
"""
from __future__ import annotations

import re
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel, to_pascal

DEFAULT_CONTEXT = "https://schema.org/"
DOCUMENT_TYPE = "ConsoleImageDocument"
OPTIMIZED_DOCUMENT_TYPE = "OptimizedConsoleImageDocument"
HEADER_TYPE = "ConsoleImageDocumentHeader"
FRAME_TYPE = "Frame"
FOOTER_TYPE = "ConsoleImageDocumentFooter"

DOCUMENT_VERSION = "2.0"
OPTIMIZED_DOCUMENT_VERSION = "3.1"

_PASCAL = ConfigDict(extra="ignore", populate_by_name=True, alias_generator=to_pascal)
_CAMEL = ConfigDict(extra="ignore", populate_by_name=True, alias_generator=to_camel)

_SGR_RE = re.compile(r"\x1b\[[0-9;]*m")
_HEX6_RE = re.compile(r"^[0-9A-Fa-f]{6}$")


def content_dimensions(content: str) -> Tuple[int, int]:
    """Return (width, height) of rendered text: first visible line length, line count."""
    if not content:
        return 0, 1
    lines = content.split("\n")
    return len(_SGR_RE.sub("", lines[0])), len(lines)


# ── Side-channel subtitle data ────────────────────────────────────────────────


class SubtitleEntryData(BaseModel):
    """A single timed caption."""

    model_config = _CAMEL

    index: int = 0
    start_ms: int = 0
    end_ms: int = 0
    text: str = ""


class SubtitleTrackData(BaseModel):
    """Caption track transported next to (never inside) the frames."""

    model_config = _CAMEL

    language: Optional[str] = None
    source_file: Optional[str] = None
    entries: List[SubtitleEntryData] = []

    @field_validator("entries", mode="before")
    @classmethod
    def _null_entries(cls, value):
        return [] if value is None else value

    @property
    def has_entries(self) -> bool:
        return len(self.entries) > 0


# ── Canonical document ────────────────────────────────────────────────────────


class Settings(BaseModel):
    """Render parameters that produced the frames."""

    model_config = _PASCAL

    width: Optional[int] = None
    height: Optional[int] = None
    max_width: int = 120
    max_height: int = 60
    character_aspect_ratio: float = 0.5
    contrast_power: float = 2.5
    gamma: float = 0.85
    use_color: bool = True
    invert: bool = True
    character_set_preset: Optional[str] = None
    animation_speed_multiplier: float = 1.0
    loop_count: int = 0  # 0 = loop forever
    enable_temporal_stability: bool = False
    color_stability_threshold: int = 15
    color_count: Optional[int] = None
    subtitles_enabled: bool = False
    subtitle_source: Optional[str] = None
    subtitle_language: Optional[str] = None
    subtitle_file: Optional[str] = None


class Frame(BaseModel):
    """One fully materialized frame of terminal text."""

    model_config = _PASCAL

    content: str = ""
    delay_ms: int = Field(default=0, ge=0)
    width: int = 0
    height: int = 0
    subtitle_text: Optional[str] = None

    @field_validator("content", mode="before")
    @classmethod
    def _null_content(cls, value):
        return "" if value is None else value


class _FrameSequence:
    """Derived, never-serialized properties over ``self.frames``."""

    @property
    def frame_count(self) -> int:
        return len(self.frames)

    @property
    def is_animated(self) -> bool:
        return self.frame_count > 1

    @property
    def total_duration_ms(self) -> int:
        return sum(frame.delay_ms for frame in self.frames)


class Document(_FrameSequence, BaseModel):
    """Player-facing document: settings plus self-contained frames."""

    model_config = _PASCAL

    context: str = Field(default=DEFAULT_CONTEXT, alias="@context")
    type: str = Field(default=DOCUMENT_TYPE, alias="@type")
    version: str = DOCUMENT_VERSION
    created: Optional[str] = None  # ISO 8601
    source_file: Optional[str] = None
    render_mode: str = "ASCII"
    settings: Settings = Field(default_factory=Settings)
    frames: List[Frame] = []
    subtitles: Optional[SubtitleTrackData] = None

    @field_validator("settings", mode="before")
    @classmethod
    def _null_settings(cls, value):
        return Settings() if value is None else value

    @field_validator("frames", mode="before")
    @classmethod
    def _null_frames(cls, value):
        return [] if value is None else value

    def add_frame(self, content: str, delay_ms: int = 0, width: int = 0, height: int = 0) -> Frame:
        """Append a frame, deriving missing dimensions from the content."""
        if width <= 0 or height <= 0:
            w, h = content_dimensions(content)
            width = width if width > 0 else w
            height = height if height > 0 else h
        frame = Frame(content=content, delay_ms=delay_ms, width=width, height=height)
        self.frames.append(frame)
        return frame


# ── Compact (palette + keyframe/delta) document ───────────────────────────────


class OptimizedFrame(BaseModel):
    """Keyframe (full grid) or delta (sparse edits against the previous grid).

    ``ref_frame`` marks a duplicate: the frame reuses the materialized content
    of an earlier frame and leaves the rolling grid untouched.
    """

    model_config = _PASCAL

    is_keyframe: bool = True
    characters: Optional[str] = None
    color_indices: Optional[str] = None
    delta: Optional[str] = None
    ref_frame: Optional[int] = Field(default=None, ge=0)
    width: int = Field(default=0, ge=0)
    height: int = Field(default=0, ge=0)
    delay_ms: int = Field(default=0, ge=0)


class OptimizedDocument(_FrameSequence, BaseModel):
    """Intermediate compact form; expanded into a Document before playback.

    Palette index 0 is reserved for "no colour"; entries 1..N are ``RRGGBB``.
    """

    model_config = _PASCAL

    type: str = Field(default=OPTIMIZED_DOCUMENT_TYPE, alias="@type")
    version: str = OPTIMIZED_DOCUMENT_VERSION
    created: Optional[str] = None
    source_file: Optional[str] = None
    render_mode: str = "ASCII"
    settings: Settings = Field(default_factory=Settings)
    palette: List[str] = []
    keyframe_interval: int = 30  # advisory only
    frames: List[OptimizedFrame] = []

    @field_validator("settings", mode="before")
    @classmethod
    def _null_settings(cls, value):
        return Settings() if value is None else value

    @field_validator("palette", "frames", mode="before")
    @classmethod
    def _null_lists(cls, value):
        return [] if value is None else value

    @field_validator("palette")
    @classmethod
    def _check_palette(cls, palette: List[str]) -> List[str]:
        for i, entry in enumerate(palette[1:], start=1):
            if not _HEX6_RE.match(entry):
                raise ValueError(f"palette[{i}] must be 6 hex digits, got {entry!r}")
        return palette


# ── NDJSON stream records ─────────────────────────────────────────────────────


class StreamHeader(BaseModel):
    """Header record of a streaming document: metadata and settings."""

    model_config = _PASCAL

    context: str = Field(default=DEFAULT_CONTEXT, alias="@context")
    type: Literal["ConsoleImageDocumentHeader"] = Field(default=HEADER_TYPE, alias="@type")
    version: str = DOCUMENT_VERSION
    created: Optional[str] = None
    source_file: Optional[str] = None
    render_mode: str = "ASCII"
    settings: Settings = Field(default_factory=Settings)
    subtitles: Optional[SubtitleTrackData] = None

    @field_validator("settings", mode="before")
    @classmethod
    def _null_settings(cls, value):
        return Settings() if value is None else value


class StreamFrame(BaseModel):
    """One frame record; ``index`` fixes its position regardless of line order."""

    model_config = _PASCAL

    type: Literal["Frame"] = Field(default=FRAME_TYPE, alias="@type")
    index: int = Field(ge=0)
    content: str = ""
    delay_ms: int = Field(default=0, ge=0)
    width: int = 0
    height: int = 0

    def to_frame(self) -> Frame:
        return Frame(content=self.content, delay_ms=self.delay_ms, width=self.width, height=self.height)


class StreamFooter(BaseModel):
    """Trailing summary record, written when the stream is finalized."""

    model_config = _PASCAL

    type: Literal["ConsoleImageDocumentFooter"] = Field(default=FOOTER_TYPE, alias="@type")
    frame_count: int = 0
    total_duration_ms: int = 0
    completed: Optional[str] = None
    is_complete: bool = True


STREAM_RECORD_TYPES = (HEADER_TYPE, FRAME_TYPE, FOOTER_TYPE)
