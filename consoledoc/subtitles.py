"""WebVTT text track carried in the CIDZ side channel.

Only what the side channel needs: cue timings and cue text.  Styling blocks,
regions and cue settings are skipped on read and never written.
"""
from __future__ import annotations

import re
from typing import List, Optional

from consoledoc.models import SubtitleEntryData, SubtitleTrackData

# 00:00:01.000 --> 00:00:04.000, hours optional; cue settings may follow
_TIMING_RE = re.compile(
    r"^(?:(\d+):)?(\d{2}):(\d{2})\.(\d{3})\s*-->\s*(?:(\d+):)?(\d{2}):(\d{2})\.(\d{3})"
)
_SKIPPED_BLOCKS = ("WEBVTT", "NOTE", "STYLE", "REGION")


def _to_ms(hours: Optional[str], minutes: str, seconds: str, millis: str) -> int:
    return ((int(hours or 0) * 60 + int(minutes)) * 60 + int(seconds)) * 1000 + int(millis)


def format_timestamp(ms: int) -> str:
    """Milliseconds as ``HH:MM:SS.mmm``."""
    seconds, millis = divmod(max(ms, 0), 1000)
    minutes, seconds = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}.{millis:03d}"


def _blocks(text: str) -> List[List[str]]:
    blocks: List[List[str]] = []
    current: List[str] = []
    for line in text.replace("\r\n", "\n").replace("\r", "\n").split("\n"):
        if line.strip():
            current.append(line)
        elif current:
            blocks.append(current)
            current = []
    if current:
        blocks.append(current)
    return blocks


def parse_vtt(text: str, *, language: Optional[str] = None) -> SubtitleTrackData:
    """Parse WebVTT text into a track.

    Blocks without a timing line are ignored rather than rejected; a side
    channel is advisory and must never stop a document from loading.
    """
    entries: List[SubtitleEntryData] = []
    for block in _blocks(text.lstrip("\ufeff")):
        if block[0].lstrip().upper().startswith(_SKIPPED_BLOCKS):
            continue
        # first or second line holds the timing; a line before it is a cue id
        for offset, line in enumerate(block[:2]):
            match = _TIMING_RE.match(line.strip())
            if match:
                break
        else:
            continue
        cue_text = "\n".join(block[offset + 1:])
        if not cue_text:
            continue
        entries.append(
            SubtitleEntryData(
                index=len(entries) + 1,
                start_ms=_to_ms(*match.group(1, 2, 3, 4)),
                end_ms=_to_ms(*match.group(5, 6, 7, 8)),
                text=cue_text,
            )
        )
    return SubtitleTrackData(language=language, entries=entries)


def format_vtt(track: SubtitleTrackData) -> str:
    """Serialize a track as WebVTT, numbering cues from 1."""
    parts = ["WEBVTT", ""]
    for number, entry in enumerate(track.entries, start=1):
        parts.append(str(number))
        parts.append(f"{format_timestamp(entry.start_ms)} --> {format_timestamp(entry.end_ms)}")
        parts.append(entry.text)
        parts.append("")
    return "\n".join(parts) + "\n"
