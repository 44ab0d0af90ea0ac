"""Frame expansion: OptimizedDocument → Document.

A single pass over the optimized frames keeps one rolling grid (characters and
colour indices, row-major).  Keyframes replace it wholesale, delta frames
patch it in place, and every frame is rendered to an immutable string before
the next descriptor is looked at, so later edits never leak into frames that
were already produced.  The grid lives only on this module's call stack.
"""
from __future__ import annotations

from typing import List, Optional, Sequence

from consoledoc.errors import (
    DeltaWithoutBaselineError,
    FrameDimensionMismatchError,
    MalformedDocumentError,
)
from consoledoc.grammar import RESET, apply_delta, palette_escapes, parse_color_indices, parse_delta
from consoledoc.models import Document, Frame, OptimizedDocument, OptimizedFrame


class Grid:
    """Mutable character + colour-index grid for one frame size."""

    __slots__ = ("width", "height", "chars", "colors")

    def __init__(self, width: int, height: int, chars: List[str], colors: List[int]) -> None:
        self.width = width
        self.height = height
        self.chars = chars
        self.colors = colors

    @property
    def cell_count(self) -> int:
        return self.width * self.height


def keyframe_grid(frame: OptimizedFrame, frame_index: int = 0) -> Grid:
    """Build a fresh grid from a keyframe's ``characters`` and ``colorIndices``.

    Raises:
        FrameDimensionMismatchError: row count or a row length disagrees with
            the declared size, or colorIndices does not cover every cell.
    """
    width, height = frame.width, frame.height
    characters = frame.characters or ""

    rows = characters.split("\n") if height > 0 else ([] if not characters else [characters])
    if len(rows) != height:
        raise FrameDimensionMismatchError(
            frame_index,
            f"keyframe has {len(rows)} rows, declared height is {height}",
            expected=height,
            actual=len(rows),
        )
    chars: List[str] = []
    for row_number, row in enumerate(rows):
        if len(row) != width:
            raise FrameDimensionMismatchError(
                frame_index,
                f"row {row_number} has {len(row)} characters, declared width is {width}",
                expected=width,
                actual=len(row),
            )
        chars.extend(row)

    colors = parse_color_indices(frame.color_indices, width * height, frame_index)
    return Grid(width, height, chars, colors)


def materialize(grid: Grid, escapes: Sequence[str]) -> str:
    """Render a grid to terminal text.

    A colour escape is emitted only when the index changes along a row; colour
    state never crosses a line-feed, and any colour still open at the end of a
    row is closed with a reset.
    """
    width = grid.width
    chars = grid.chars
    colors = grid.colors
    out: List[str] = []
    for row in range(grid.height):
        if row:
            out.append("\n")
        current = 0
        base = row * width
        for cell in range(base, base + width):
            index = colors[cell]
            if index != current:
                out.append(escapes[index])
                current = index
            out.append(chars[cell])
        if current != 0:
            out.append(RESET)
    return "".join(out)


def _check_palette_range(colors, palette_size: int, frame_index: int) -> None:
    highest = max(colors, default=0)
    if highest >= palette_size:
        raise MalformedDocumentError(
            f"frame {frame_index} uses colour index {highest}, palette has {palette_size} entries",
            source="frame",
        )


def expand(optimized: OptimizedDocument, *, loop_count_override: Optional[int] = None) -> Document:
    """Reconstruct every frame of *optimized* into a self-contained Document.

    Raises:
        DeltaWithoutBaselineError: a delta frame precedes every keyframe.
        FrameDimensionMismatchError: grid data disagrees with declared sizes.
        MalformedDocumentError: a delta, colour index or frame reference is invalid.
    """
    escapes = palette_escapes(optimized.palette)
    palette_size = len(escapes)

    settings = optimized.settings.model_copy(deep=True)
    if loop_count_override is not None:
        settings.loop_count = loop_count_override

    document = Document(
        created=optimized.created,
        source_file=optimized.source_file,
        render_mode=optimized.render_mode,
        settings=settings,
    )

    grid: Optional[Grid] = None
    contents: List[str] = []
    for index, descriptor in enumerate(optimized.frames):
        if descriptor.ref_frame is not None:
            if descriptor.ref_frame >= index:
                raise MalformedDocumentError(
                    f"frame {index} references frame {descriptor.ref_frame}, which is not earlier",
                    source="frame",
                )
            content = contents[descriptor.ref_frame]
        elif descriptor.is_keyframe:
            grid = keyframe_grid(descriptor, index)
            _check_palette_range(grid.colors, palette_size, index)
            content = materialize(grid, escapes)
        else:
            if grid is None:
                raise DeltaWithoutBaselineError(index)
            if (descriptor.width, descriptor.height) != (grid.width, grid.height):
                raise FrameDimensionMismatchError(
                    index,
                    f"delta declares {descriptor.width}x{descriptor.height}, "
                    f"previous grid is {grid.width}x{grid.height}",
                    expected=(grid.width, grid.height),
                    actual=(descriptor.width, descriptor.height),
                )
            edits = parse_delta(descriptor.delta)
            _check_palette_range(
                [e.color for e in edits if e.color is not None], palette_size, index
            )
            apply_delta(edits, grid.chars, grid.colors, index)
            content = materialize(grid, escapes)

        contents.append(content)
        document.frames.append(
            Frame(
                content=content,
                delay_ms=descriptor.delay_ms,
                width=descriptor.width,
                height=descriptor.height,
            )
        )
    return document
