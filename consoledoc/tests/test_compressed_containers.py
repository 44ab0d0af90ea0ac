"""Tests for the legacy gzip and CIDZ v2 containers."""
from __future__ import annotations

import gzip
import json

import brotli
import pytest

from consoledoc.config import CodecOptions
from consoledoc.containers.cidz import CIDZ_VERSION, FLAG_SIDE_CHANNEL, HEADER_SIZE, decode_cidz, encode_cidz
from consoledoc.containers.gzip_legacy import decode_gzip, encode_gzip
from consoledoc.errors import (
    CorruptCompressedPayloadError,
    MalformedDocumentError,
    UnsupportedContainerVersionError,
)
from consoledoc.expander import expand
from consoledoc.models import OptimizedDocument, OptimizedFrame, SubtitleEntryData, SubtitleTrackData

RED = "\x1b[38;2;255;0;0m"


# ── Fixtures ──────────────────────────────────────────────────────────────────


def _minimal_optimized() -> OptimizedDocument:
    return OptimizedDocument(
        palette=["", "FF0000"],
        frames=[
            OptimizedFrame(is_keyframe=True, characters="X", color_indices="1", width=1, height=1, delay_ms=80),
        ],
    )


def _cidz(payload: bytes, *, flags: int = 0, version: int = CIDZ_VERSION) -> bytes:
    return b"CIDZ" + bytes((version, flags)) + brotli.compress(payload)


def _optimized_json() -> bytes:
    return json.dumps(
        {
            "@type": "OptimizedConsoleImageDocument",
            "Palette": ["", "FF0000"],
            "Frames": [{"IsKeyframe": True, "Characters": "X", "ColorIndices": "1", "Width": 1, "Height": 1}],
        }
    ).encode("utf-8")


# ── gzip ──────────────────────────────────────────────────────────────────────


class TestGzipLegacy:
    @pytest.mark.parametrize("level", [1, 6, 9])
    def test_decodes_regardless_of_level(self, level):
        data = gzip.compress(json.dumps({"Frames": [{"Content": "AB\nCD", "DelayMs": 10}]}).encode(), compresslevel=level)
        back = decode_gzip(data)
        assert back.frames[0].content == "AB\nCD"

    def test_optimized_payload_returned_unexpanded(self):
        back = decode_gzip(gzip.compress(_optimized_json()))
        assert isinstance(back, OptimizedDocument)
        assert expand(back).frames[0].content == RED + "X" + "\x1b[0m"

    def test_encode_round_trip(self):
        optimized = _minimal_optimized()
        back = decode_gzip(encode_gzip(optimized, CodecOptions(gzip_level=9)))
        assert back == optimized

    def test_encode_is_deterministic(self):
        assert encode_gzip(_minimal_optimized()) == encode_gzip(_minimal_optimized())

    def test_truncated_stream(self):
        data = gzip.compress(_optimized_json())
        with pytest.raises(CorruptCompressedPayloadError) as exc_info:
            decode_gzip(data[: len(data) // 2])
        assert exc_info.value.container == "gzip"

    def test_damaged_stream(self):
        with pytest.raises(CorruptCompressedPayloadError):
            decode_gzip(b"\x1f\x8b\x08\x00garbage-garbage-garbage")

    def test_non_utf8_payload(self):
        with pytest.raises(CorruptCompressedPayloadError):
            decode_gzip(gzip.compress(b"\xff\xfe{}"))

    def test_bad_json_inside(self):
        with pytest.raises(MalformedDocumentError) as exc_info:
            decode_gzip(gzip.compress(b'{"Frames": [}'))
        assert exc_info.value.source == "gzip"


# ── CIDZ v2 ───────────────────────────────────────────────────────────────────


class TestCidzDecode:
    def test_plain_payload(self):
        payload = decode_cidz(_cidz(_optimized_json()))
        assert payload.side_channel is None
        assert expand(payload.document).frames[0].content.startswith(RED + "X")

    def test_side_channel_split_off(self):
        vtt = "WEBVTT\n\n1\n00:00:00.000 --> 00:00:01.000\nHello\n"
        payload = decode_cidz(_cidz(_optimized_json() + b"\x00" + vtt.encode(), flags=FLAG_SIDE_CHANNEL))
        assert payload.side_channel == vtt
        doc = expand(payload.document)
        assert all("Hello" not in f.content for f in doc.frames)

    def test_flag_without_separator_means_no_side_channel(self):
        payload = decode_cidz(_cidz(_optimized_json(), flags=FLAG_SIDE_CHANNEL))
        assert payload.side_channel is None
        assert payload.document.frame_count == 1

    def test_trailing_bytes_without_flag_are_malformed(self):
        with pytest.raises(MalformedDocumentError):
            decode_cidz(_cidz(_optimized_json() + b"\x00WEBVTT"))

    def test_unsupported_version(self):
        with pytest.raises(UnsupportedContainerVersionError) as exc_info:
            decode_cidz(_cidz(_optimized_json(), version=3))
        assert exc_info.value.version == 3
        assert exc_info.value.supported == 2

    def test_short_header(self):
        with pytest.raises(CorruptCompressedPayloadError):
            decode_cidz(b"CIDZ\x02")

    def test_truncated_brotli(self):
        data = _cidz(_optimized_json())
        with pytest.raises(CorruptCompressedPayloadError) as exc_info:
            decode_cidz(data[: HEADER_SIZE + 4])
        assert exc_info.value.container == "cidz"

    def test_bad_json(self):
        with pytest.raises(MalformedDocumentError):
            decode_cidz(_cidz(b'{"@type": "OptimizedConsoleImageDocument", "Frames": ['))


class TestCidzEncode:
    def test_header_layout(self):
        data = encode_cidz(_minimal_optimized())
        assert data[:4] == b"CIDZ"
        assert data[4] == 2
        assert data[5] == 0
        assert len(data) > HEADER_SIZE

    def test_round_trip(self):
        optimized = _minimal_optimized()
        payload = decode_cidz(encode_cidz(optimized, options=CodecOptions(brotli_quality=11)))
        assert payload.document == optimized
        assert payload.side_channel is None

    def test_subtitle_text_side_channel(self):
        data = encode_cidz(_minimal_optimized(), subtitles="WEBVTT\n")
        assert data[5] & FLAG_SIDE_CHANNEL
        assert decode_cidz(data).side_channel == "WEBVTT\n"

    def test_subtitle_track_written_as_vtt(self):
        track = SubtitleTrackData(entries=[SubtitleEntryData(index=1, start_ms=0, end_ms=1500, text="Hi")])
        side = decode_cidz(encode_cidz(_minimal_optimized(), subtitles=track)).side_channel
        assert side.startswith("WEBVTT")
        assert "00:00:00.000 --> 00:00:01.500" in side

    def test_empty_track_sets_no_flag(self):
        data = encode_cidz(_minimal_optimized(), subtitles=SubtitleTrackData())
        assert data[5] == 0
