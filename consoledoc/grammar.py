"""Text grammars used inside optimized frames.

colorIndices (keyframes)
    Canonical: comma-separated palette index per cell, row-major, exactly
    ``width * height`` entries, e.g. ``"1,1,0,2"``.  Files written by older
    encoders use a run-length form instead: semicolon-separated runs
    ``index[,count]`` (``"1,4"`` on a four-cell grid is four cells of index 1).
    The per-cell reading wins whenever its length matches the grid.

delta (delta frames)
    Semicolon-separated edits ``position:glyph[,colorIndex[,count]]``.
    ``position`` is a 0-based row-major cell index.  An omitted colorIndex keeps
    the cell's previous colour.  Grammar characters inside the glyph are
    escaped: ``\\c`` → ``:``, ``\\m`` → ``,``, ``\\s`` → ``;``, ``\\\\`` → ``\\``.
    ``count`` repeats the edit over consecutive cells, one glyph each, padding
    with spaces once the glyphs run out.
"""
from __future__ import annotations

from typing import List, NamedTuple, Optional, Sequence

from consoledoc.errors import FrameDimensionMismatchError, MalformedDocumentError

ESC = "\x1b"
RESET = f"{ESC}[0m"

_ESCAPES = {":": "\\c", ",": "\\m", ";": "\\s", "\\": "\\\\", "\n": "\\n", "\r": "\\r"}
_UNESCAPES = {"c": ":", "m": ",", "s": ";", "\\": "\\", "n": "\n", "r": "\r"}


class DeltaEdit(NamedTuple):
    """One parsed delta edit."""

    position: int
    glyphs: str
    color: Optional[int]  # None = keep previous colour
    count: int


def _parse_int(text: str, what: str) -> int:
    if not (text.isascii() and text.isdigit()):
        raise MalformedDocumentError(f"{what} must be a non-negative integer, got {text!r}", source="frame")
    return int(text)


# ── Palette ───────────────────────────────────────────────────────────────────


def foreground_escape(hex_color: str) -> str:
    """24-bit foreground SGR sequence for an ``RRGGBB`` palette entry."""
    r = int(hex_color[0:2], 16)
    g = int(hex_color[2:4], 16)
    b = int(hex_color[4:6], 16)
    return f"{ESC}[38;2;{r};{g};{b}m"


def palette_escapes(palette: Sequence[str]) -> List[str]:
    """Pre-build the escape for every palette index (index 0 maps to RESET)."""
    return [RESET] + [foreground_escape(entry) for entry in palette[1:]]


# ── colorIndices ──────────────────────────────────────────────────────────────


def parse_color_indices(text: Optional[str], cell_count: int, frame_index: int = 0) -> List[int]:
    """Decode a keyframe's colorIndices into exactly ``cell_count`` integers.

    A missing or empty value means an uncoloured grid.

    Raises:
        FrameDimensionMismatchError: the decoded length is not ``cell_count``.
        MalformedDocumentError: an entry is not a non-negative integer.
    """
    if not text:
        return [0] * cell_count

    if ";" not in text:
        parts = text.split(",")
        if len(parts) == cell_count:
            return [_parse_int(p.strip(), "colour index") for p in parts]
        if len(parts) > 2:
            raise FrameDimensionMismatchError(
                frame_index,
                f"colorIndices has {len(parts)} entries for {cell_count} cells",
                expected=cell_count,
                actual=len(parts),
            )

    indices: List[int] = []
    for run in text.split(";"):
        if not run:
            continue
        fields = run.split(",")
        if len(fields) > 2:
            raise MalformedDocumentError(f"bad colour run {run!r}", source="frame")
        index = _parse_int(fields[0].strip(), "colour index")
        count = _parse_int(fields[1].strip(), "run length") if len(fields) == 2 else 1
        indices.extend([index] * count)
    if len(indices) != cell_count:
        raise FrameDimensionMismatchError(
            frame_index,
            f"colorIndices covers {len(indices)} cells, grid has {cell_count}",
            expected=cell_count,
            actual=len(indices),
        )
    return indices


def format_color_indices(indices: Sequence[int]) -> str:
    """Encode colour indices in the canonical per-cell form."""
    return ",".join(str(i) for i in indices)


# ── delta ─────────────────────────────────────────────────────────────────────


def escape_glyph(glyph: str) -> str:
    return "".join(_ESCAPES.get(ch, ch) for ch in glyph)


def unescape_glyphs(text: str) -> str:
    out: List[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            if i + 1 >= len(text):
                raise MalformedDocumentError(f"dangling escape in glyph {text!r}", source="frame")
            nxt = text[i + 1]
            out.append(_UNESCAPES.get(nxt, nxt))
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def _split_unescaped_comma(text: str):
    i = 0
    while i < len(text):
        if text[i] == "\\":
            i += 2
            continue
        if text[i] == ",":
            return text[:i], text[i + 1:]
        i += 1
    return text, None


def parse_delta(text: Optional[str]) -> List[DeltaEdit]:
    """Parse a delta string into edits; an empty delta means "no change"."""
    edits: List[DeltaEdit] = []
    if not text:
        return edits
    for entry in text.split(";"):
        if not entry:
            continue
        pos_text, sep, rest = entry.partition(":")
        if not sep:
            raise MalformedDocumentError(f"delta edit {entry!r} lacks ':'", source="frame")
        position = _parse_int(pos_text, "delta position")
        glyph_text, tail = _split_unescaped_comma(rest)
        glyphs = unescape_glyphs(glyph_text)

        color: Optional[int] = None
        count = 1
        explicit_count = False
        if tail is not None:
            fields = tail.split(",")
            if len(fields) > 2:
                raise MalformedDocumentError(f"delta edit {entry!r} has too many fields", source="frame")
            color = _parse_int(fields[0], "delta colour index")
            if len(fields) == 2:
                count = _parse_int(fields[1], "delta run length")
                explicit_count = True

        if "\n" in glyphs:
            raise MalformedDocumentError(f"delta edit {entry!r} places a line-feed", source="frame")
        if explicit_count:
            if len(glyphs) > count:
                raise MalformedDocumentError(f"delta edit {entry!r} has more glyphs than cells", source="frame")
        elif len(glyphs) != 1:
            raise MalformedDocumentError(f"delta edit {entry!r} must carry exactly one glyph", source="frame")
        edits.append(DeltaEdit(position, glyphs, color, count))
    return edits


def apply_delta(
    edits: Sequence[DeltaEdit],
    chars: List[str],
    colors: List[int],
    frame_index: int = 0,
) -> None:
    """Apply parsed edits to the parallel grids in place."""
    cell_count = len(chars)
    for edit in edits:
        end = edit.position + edit.count
        if end > cell_count:
            raise FrameDimensionMismatchError(
                frame_index,
                f"delta edit at {edit.position} (x{edit.count}) exceeds {cell_count} cells",
                expected=cell_count,
                actual=end,
            )
        for k in range(edit.count):
            cell = edit.position + k
            chars[cell] = edit.glyphs[k] if k < len(edit.glyphs) else " "
            if edit.color is not None:
                colors[cell] = edit.color


def format_delta(
    prev_chars: Sequence[str],
    prev_colors: Sequence[int],
    chars: Sequence[str],
    colors: Sequence[int],
) -> str:
    """Encode the cells that changed between two equally sized grids."""
    edits: List[str] = []
    for cell, (old_ch, old_color, ch, color) in enumerate(zip(prev_chars, prev_colors, chars, colors)):
        if old_ch == ch and old_color == color:
            continue
        if old_color == color:
            edits.append(f"{cell}:{escape_glyph(ch)}")
        else:
            edits.append(f"{cell}:{escape_glyph(ch)},{color}")
    return ";".join(edits)
