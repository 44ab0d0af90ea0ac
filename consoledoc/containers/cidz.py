"""CIDZ v2 container.

Layout::

    offset 0  "CIDZ"            magic
    offset 4  0x02              container version
    offset 5  flags             bit 0: side-channel text track follows
    offset 6  brotli stream     compact OptimizedDocument JSON
                                [ + 0x00 + side-channel text ]

JSON never contains a raw NUL byte, so the first NUL in the decompressed
payload ends the document.  The side channel is handed back untouched; it is
never merged into the frames.
"""
from __future__ import annotations

from typing import NamedTuple, Optional, Union

import brotli

from consoledoc.config import DEFAULT_OPTIONS, CodecOptions
from consoledoc.containers.plain_json import AnyDocument, decode_plain_json, dump_document
from consoledoc.errors import CorruptCompressedPayloadError, UnsupportedContainerVersionError
from consoledoc.log import get_logger
from consoledoc.models import SubtitleTrackData
from consoledoc.sniffer import CIDZ_MAGIC, decode_text
from consoledoc.subtitles import format_vtt

logger = get_logger(__name__)

CIDZ_VERSION = 2
FLAG_SIDE_CHANNEL = 0x01
HEADER_SIZE = len(CIDZ_MAGIC) + 2
_SEPARATOR = b"\x00"


class CidzPayload(NamedTuple):
    """Decoded document plus the raw side-channel text, if any."""

    document: AnyDocument
    side_channel: Optional[str]


def _text(raw: bytes, what: str) -> str:
    try:
        return decode_text(raw)
    except UnicodeDecodeError as exc:
        raise CorruptCompressedPayloadError("cidz", f"{what} is not UTF-8: {exc}") from exc


def decode_cidz(data: bytes, options: CodecOptions = DEFAULT_OPTIONS) -> CidzPayload:
    """Decode a CIDZ v2 buffer.

    Raises:
        CorruptCompressedPayloadError: truncated header, a damaged Brotli
            stream, or a payload that is not UTF-8.
        UnsupportedContainerVersionError: version byte other than 2.
        MalformedDocumentError: the JSON part is not a valid document.
    """
    if len(data) < HEADER_SIZE or data[:4] != CIDZ_MAGIC:
        raise CorruptCompressedPayloadError("cidz", f"header needs {HEADER_SIZE} bytes, got {len(data)}")
    version, flags = data[4], data[5]
    if version != CIDZ_VERSION:
        raise UnsupportedContainerVersionError(version, CIDZ_VERSION)

    try:
        payload = brotli.decompress(data[HEADER_SIZE:])
    except brotli.error as exc:
        raise CorruptCompressedPayloadError("cidz", str(exc) or "brotli stream is damaged") from exc

    side_channel: Optional[str] = None
    if flags & FLAG_SIDE_CHANNEL:
        json_part, sep, rest = payload.partition(_SEPARATOR)
        if sep:
            payload = json_part
            side_channel = _text(rest, "side channel")
            logger.debug("cidz side channel: %d bytes", len(rest))

    document = decode_plain_json(_text(payload, "document"), options, source="cidz")
    return CidzPayload(document, side_channel)


def encode_cidz(
    document: AnyDocument,
    *,
    subtitles: Union[str, SubtitleTrackData, None] = None,
    options: CodecOptions = DEFAULT_OPTIONS,
) -> bytes:
    """Write a CIDZ v2 buffer.

    ``subtitles`` is either ready-made side-channel text or a track, which is
    written as WebVTT.  An empty track sets no flag and writes no separator.
    """
    if isinstance(subtitles, SubtitleTrackData):
        subtitles = format_vtt(subtitles) if subtitles.has_entries else None

    payload = dump_document(document, indent=None).encode("utf-8")
    flags = 0
    if subtitles:
        flags |= FLAG_SIDE_CHANNEL
        payload += _SEPARATOR + subtitles.encode("utf-8")

    body = brotli.compress(payload, quality=options.brotli_quality)
    return CIDZ_MAGIC + bytes((CIDZ_VERSION, flags)) + body
