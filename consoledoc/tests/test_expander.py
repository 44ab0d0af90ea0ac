"""Tests for OptimizedDocument → Document expansion.

Covers: keyframe materialization, colour escapes, delta application against
the rolling grid, frame references, and every structural failure.
"""
from __future__ import annotations

import pytest

from consoledoc.errors import (
    DeltaWithoutBaselineError,
    FrameDimensionMismatchError,
    MalformedDocumentError,
)
from consoledoc.expander import Grid, expand, keyframe_grid, materialize
from consoledoc.grammar import RESET, palette_escapes
from consoledoc.models import OptimizedDocument, OptimizedFrame, Settings

RED = "\x1b[38;2;255;0;0m"
GREEN = "\x1b[38;2;0;255;0m"


# ── Fixtures ──────────────────────────────────────────────────────────────────


def _keyframe(characters: str, width: int, height: int, color_indices=None, delay_ms: int = 100) -> OptimizedFrame:
    return OptimizedFrame(
        is_keyframe=True,
        characters=characters,
        color_indices=color_indices,
        width=width,
        height=height,
        delay_ms=delay_ms,
    )


def _delta(delta: str, width: int, height: int, delay_ms: int = 100) -> OptimizedFrame:
    return OptimizedFrame(is_keyframe=False, delta=delta, width=width, height=height, delay_ms=delay_ms)


def _minimal_optimized(*frames: OptimizedFrame, palette=None) -> OptimizedDocument:
    return OptimizedDocument(
        palette=palette if palette is not None else ["", "FF0000", "00FF00"],
        frames=list(frames),
    )


# ── Keyframes ─────────────────────────────────────────────────────────────────


class TestKeyframes:
    def test_red_escape_precedes_glyph(self):
        doc = expand(_minimal_optimized(_keyframe("X", 1, 1, "1"), palette=["", "FF0000"]))
        content = doc.frames[0].content
        assert RED + "X" in content
        assert content == RED + "X" + RESET

    def test_uncoloured_keyframe_is_plain_text(self):
        doc = expand(_minimal_optimized(_keyframe("AB\nCD", 2, 2)))
        assert doc.frames[0].content == "AB\nCD"

    def test_escape_only_on_colour_change(self):
        doc = expand(_minimal_optimized(_keyframe("ABCD", 4, 1, "1,1,0,2")))
        assert doc.frames[0].content == f"{RED}AB{RESET}C{GREEN}D{RESET}"

    def test_colour_never_crosses_line_feed(self):
        doc = expand(_minimal_optimized(_keyframe("AB\nCD", 2, 2, "1,1,1,1")))
        assert doc.frames[0].content == f"{RED}AB{RESET}\n{RED}CD{RESET}"

    def test_run_length_colour_indices(self):
        doc = expand(_minimal_optimized(_keyframe("ABCD", 4, 1, "1,4")))
        assert doc.frames[0].content == f"{RED}ABCD{RESET}"

    def test_frame_metadata_copied(self):
        doc = expand(_minimal_optimized(_keyframe("AB", 2, 1, delay_ms=40)))
        frame = doc.frames[0]
        assert (frame.width, frame.height, frame.delay_ms) == (2, 1, 40)

    def test_row_length_mismatch(self):
        with pytest.raises(FrameDimensionMismatchError) as exc_info:
            expand(_minimal_optimized(_keyframe("ABC\nD", 2, 2)))
        assert exc_info.value.frame_index == 0

    def test_row_count_mismatch(self):
        with pytest.raises(FrameDimensionMismatchError):
            expand(_minimal_optimized(_keyframe("AB", 2, 2)))

    def test_palette_index_out_of_range(self):
        with pytest.raises(MalformedDocumentError):
            expand(_minimal_optimized(_keyframe("A", 1, 1, "5")))


# ── Deltas ────────────────────────────────────────────────────────────────────


class TestDeltas:
    def test_delta_recolours_one_cell(self):
        doc = expand(_minimal_optimized(_keyframe("ABCD", 4, 1), _delta("1:X,2", 4, 1)))
        assert doc.frames[0].content == "ABCD"
        assert doc.frames[1].content == f"A{GREEN}X{RESET}CD"

    def test_delta_keeps_keyframe_colour_around_edit(self):
        doc = expand(_minimal_optimized(_keyframe("ABCD", 4, 1, "1,4"), _delta("1:X,2", 4, 1)))
        assert doc.frames[0].content == f"{RED}ABCD{RESET}"
        assert doc.frames[1].content == f"{RED}A{GREEN}X{RED}CD{RESET}"

    def test_delta_without_colour_keeps_previous(self):
        doc = expand(_minimal_optimized(_keyframe("ABCD", 4, 1, "1,1,1,1"), _delta("3:Z", 4, 1)))
        assert doc.frames[1].content == f"{RED}ABCZ{RESET}"

    def test_deltas_accumulate(self):
        doc = expand(
            _minimal_optimized(
                _keyframe("....", 4, 1),
                _delta("0:a", 4, 1),
                _delta("1:b", 4, 1),
                _delta("", 4, 1),
            )
        )
        assert [f.content for f in doc.frames] == ["....", "a...", "ab..", "ab.."]

    def test_earlier_frames_unaffected_by_later_edits(self):
        doc = expand(_minimal_optimized(_keyframe("AA", 2, 1), _delta("0:B", 2, 1)))
        assert doc.frames[0].content == "AA"

    def test_delta_before_keyframe(self):
        with pytest.raises(DeltaWithoutBaselineError) as exc_info:
            expand(_minimal_optimized(_delta("0:A", 2, 1)))
        assert exc_info.value.frame_index == 0

    def test_delta_dimension_change(self):
        with pytest.raises(FrameDimensionMismatchError) as exc_info:
            expand(_minimal_optimized(_keyframe("AB", 2, 1), _delta("0:A", 3, 1)))
        assert exc_info.value.frame_index == 1

    def test_delta_position_out_of_range(self):
        with pytest.raises(FrameDimensionMismatchError):
            expand(_minimal_optimized(_keyframe("AB", 2, 1), _delta("2:C", 2, 1)))

    def test_malformed_delta(self):
        with pytest.raises(MalformedDocumentError):
            expand(_minimal_optimized(_keyframe("AB", 2, 1), _delta("x:C", 2, 1)))

    def test_keyframe_resets_grid(self):
        doc = expand(
            _minimal_optimized(
                _keyframe("AB", 2, 1),
                _delta("0:Z", 2, 1),
                _keyframe("CDE", 3, 1),
                _delta("2:F", 3, 1),
            )
        )
        assert [f.content for f in doc.frames] == ["AB", "ZB", "CDE", "CDF"]


# ── Frame references ──────────────────────────────────────────────────────────


class TestRefFrames:
    def test_ref_reuses_content(self):
        doc = expand(
            _minimal_optimized(
                _keyframe("AB", 2, 1),
                _delta("0:Z", 2, 1),
                OptimizedFrame(ref_frame=0, width=2, height=1, delay_ms=10),
            )
        )
        assert doc.frames[2].content == "AB"
        assert doc.frames[2].delay_ms == 10

    def test_ref_leaves_grid_untouched(self):
        doc = expand(
            _minimal_optimized(
                _keyframe("AB", 2, 1),
                _delta("0:Z", 2, 1),
                OptimizedFrame(ref_frame=0, width=2, height=1),
                _delta("1:Y", 2, 1),
            )
        )
        assert doc.frames[3].content == "ZY"

    def test_forward_ref_is_malformed(self):
        with pytest.raises(MalformedDocumentError):
            expand(_minimal_optimized(OptimizedFrame(ref_frame=0, width=1, height=1)))


# ── Document-level behaviour ──────────────────────────────────────────────────


class TestExpandDocument:
    def test_frame_count_matches_descriptors(self):
        optimized = _minimal_optimized(_keyframe("A", 1, 1), _delta("0:B", 1, 1), _delta("0:C", 1, 1))
        doc = expand(optimized)
        assert doc.frame_count == optimized.frame_count == 3
        assert doc.is_animated

    def test_total_duration_is_sum_of_delays(self):
        doc = expand(_minimal_optimized(_keyframe("A", 1, 1, delay_ms=30), _delta("0:B", 1, 1, delay_ms=70)))
        assert doc.total_duration_ms == 100

    def test_settings_and_metadata_carried(self):
        optimized = _minimal_optimized(_keyframe("A", 1, 1))
        optimized.settings = Settings(loop_count=3, max_width=80)
        optimized.source_file = "clip.gif"
        doc = expand(optimized)
        assert doc.settings.loop_count == 3
        assert doc.settings.max_width == 80
        assert doc.source_file == "clip.gif"

    def test_loop_count_override(self):
        optimized = _minimal_optimized(_keyframe("A", 1, 1))
        optimized.settings = Settings(loop_count=3)
        doc = expand(optimized, loop_count_override=1)
        assert doc.settings.loop_count == 1
        assert optimized.settings.loop_count == 3

    def test_empty_document(self):
        doc = expand(OptimizedDocument())
        assert doc.frames == []
        assert doc.frame_count == 0


class TestGrid:
    def test_keyframe_grid_is_row_major(self):
        grid = keyframe_grid(_keyframe("AB\nCD", 2, 2, "0,1,2,0"))
        assert grid.chars == ["A", "B", "C", "D"]
        assert grid.colors == [0, 1, 2, 0]
        assert grid.cell_count == 4

    def test_materialize_closes_open_colour(self):
        grid = Grid(2, 1, ["a", "b"], [0, 1])
        assert materialize(grid, palette_escapes(["", "0000FF"])) == "a\x1b[38;2;0;0;255mb" + RESET
