"""Document → OptimizedDocument (the encoding mirror of the expander).

Frame content is parsed back into a character grid plus per-cell colours,
colours are pooled into one global palette, and each frame is stored either
as a keyframe or as a delta against the previous frame.  Only 24-bit
foreground colour survives the round trip; other SGR attributes are dropped.
"""
from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple

from consoledoc.config import DEFAULT_OPTIONS, CodecOptions
from consoledoc.grammar import format_color_indices, format_delta
from consoledoc.log import get_logger
from consoledoc.models import Document, OptimizedDocument, OptimizedFrame

logger = get_logger(__name__)

_CSI_RE = re.compile(r"\x1b\[([0-9;]*)([@-~])")

# (width, height, chars, hex colours); "" means no colour
ParsedFrame = Tuple[int, int, List[str], List[str]]


def _apply_sgr(params: str, current: str) -> str:
    codes = params.split(";") if params else ["0"]
    i = 0
    while i < len(codes):
        code = codes[i]
        if code in ("", "0", "39"):
            current = ""
        elif code in ("38", "48") and i + 1 < len(codes):
            if codes[i + 1] == "2" and i + 4 < len(codes):
                if code == "38":
                    r, g, b = (min(int(c or 0), 255) for c in codes[i + 2:i + 5])
                    current = f"{r:02X}{g:02X}{b:02X}"
                i += 4
            elif codes[i + 1] == "5":
                i += 2
        i += 1
    return current


def parse_ansi_content(content: str) -> ParsedFrame:
    """Split rendered text into a rectangular grid of glyphs and colours.

    Colour state carries across line-feeds the way a terminal would render
    it.  Short rows are padded with uncoloured spaces.
    """
    rows_chars: List[List[str]] = []
    rows_colors: List[List[str]] = []
    current = ""
    for line in content.split("\n"):
        chars: List[str] = []
        colors: List[str] = []
        pos = 0
        for match in _CSI_RE.finditer(line):
            for ch in line[pos:match.start()]:
                chars.append(ch)
                colors.append(current)
            if match.group(2) == "m":
                current = _apply_sgr(match.group(1), current)
            pos = match.end()
        for ch in line[pos:]:
            chars.append(ch)
            colors.append(current)
        rows_chars.append(chars)
        rows_colors.append(colors)

    width = max((len(row) for row in rows_chars), default=0)
    flat_chars: List[str] = []
    flat_colors: List[str] = []
    for chars, colors in zip(rows_chars, rows_colors):
        pad = width - len(chars)
        flat_chars.extend(chars + [" "] * pad)
        flat_colors.extend(colors + [""] * pad)
    return width, len(rows_chars), flat_chars, flat_colors


def _colors_similar(a: str, b: str, threshold: int) -> bool:
    for offset in (0, 2, 4):
        if abs(int(a[offset:offset + 2], 16) - int(b[offset:offset + 2], 16)) > threshold:
            return False
    return True


def stabilize_colors(colors: List[str], previous: List[str], threshold: int) -> None:
    """Snap near-identical colours to the previous frame's colour, in place."""
    for i, (curr, prev) in enumerate(zip(colors, previous)):
        if curr == prev or not curr or not prev:
            continue
        if _colors_similar(curr, prev, threshold):
            colors[i] = prev


def optimize(document: Document, options: CodecOptions = DEFAULT_OPTIONS) -> OptimizedDocument:
    """Convert a Document into palette + keyframe/delta form."""
    optimized = OptimizedDocument(
        created=document.created,
        source_file=document.source_file,
        render_mode=document.render_mode,
        settings=document.settings.model_copy(deep=True),
        keyframe_interval=options.keyframe_interval,
    )
    palette: List[str] = [""]
    lookup: Dict[str, int] = {"": 0}
    stability = document.settings.enable_temporal_stability
    threshold = document.settings.color_stability_threshold

    prev: Optional[ParsedFrame] = None
    prev_indices: List[int] = []
    keyframes = 0
    for index, frame in enumerate(document.frames):
        width, height, chars, colors = parse_ansi_content(frame.content)
        same_size = prev is not None and (prev[0], prev[1]) == (width, height)
        if stability and same_size:
            stabilize_colors(colors, prev[3], threshold)

        indices: List[int] = []
        for color in colors:
            slot = lookup.get(color)
            if slot is None:
                slot = lookup[color] = len(palette)
                palette.append(color)
            indices.append(slot)

        characters = "\n".join("".join(chars[row * width:(row + 1) * width]) for row in range(height))
        color_indices = format_color_indices(indices)

        is_keyframe = not same_size or index % options.keyframe_interval == 0
        if not is_keyframe:
            delta = format_delta(prev[2], prev_indices, chars, indices)
            if len(delta) > (len(characters) + len(color_indices)) * options.delta_threshold:
                is_keyframe = True
            else:
                optimized.frames.append(
                    OptimizedFrame(
                        is_keyframe=False,
                        delta=delta,
                        width=width,
                        height=height,
                        delay_ms=frame.delay_ms,
                    )
                )

        if is_keyframe:
            keyframes += 1
            optimized.frames.append(
                OptimizedFrame(
                    is_keyframe=True,
                    characters=characters,
                    color_indices=color_indices,
                    width=width,
                    height=height,
                    delay_ms=frame.delay_ms,
                )
            )

        prev = (width, height, chars, colors)
        prev_indices = indices

    optimized.palette = palette
    logger.debug(
        "optimized %d frames: %d keyframes, palette of %d colours",
        len(optimized.frames), keyframes, len(palette) - 1,
    )
    return optimized
