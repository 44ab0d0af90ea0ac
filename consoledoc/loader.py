"""Document loading and saving.

Bytes → sniff → container decoder → (expand, if optimized) → Document.

The loader is the only place that touches the filesystem; the containers and
the expander work on in-memory values and can be called directly.
"""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple, Union

from pydantic import BaseModel

from consoledoc.config import DEFAULT_OPTIONS, CodecOptions
from consoledoc.containers.cidz import decode_cidz, encode_cidz
from consoledoc.containers.gzip_legacy import decode_gzip, encode_gzip
from consoledoc.containers.ndjson import decode_ndjson, dump_ndjson
from consoledoc.containers.plain_json import AnyDocument, document_from_dict, dump_document
from consoledoc.expander import expand
from consoledoc.log import get_logger
from consoledoc.models import Document, OptimizedDocument, SubtitleTrackData
from consoledoc.optimizer import optimize
from consoledoc.sniffer import ContainerFormat, decode_text, sniff

logger = get_logger(__name__)

Source = Union[bytes, bytearray, memoryview, str, Path]

# (document, side channel, partial) as produced by one container decoder
_Decoded = Tuple[AnyDocument, Optional[str], bool]


class LoadResult(BaseModel):
    """A decoded document plus what the container said about it."""

    document: Document
    format: ContainerFormat
    side_channel: Optional[str] = None  # raw trailing text track, never in frames
    partial: bool = False  # NDJSON stream without a complete footer


# ── Decoding ──────────────────────────────────────────────────────────────────


def _decode_ndjson(data: bytes, options: CodecOptions) -> _Decoded:
    document, partial = decode_ndjson(decode_text(data))
    return document, None, partial


def _decode_gzip(data: bytes, options: CodecOptions) -> _Decoded:
    return decode_gzip(data, options), None, False


def _decode_cidz(data: bytes, options: CodecOptions) -> _Decoded:
    payload = decode_cidz(data, options)
    return payload.document, payload.side_channel, False


# PlainJson is built from the object the sniffer already parsed
_DECODERS: Dict[ContainerFormat, Callable[[bytes, CodecOptions], _Decoded]] = {
    ContainerFormat.NDJSON: _decode_ndjson,
    ContainerFormat.GZIP_LEGACY: _decode_gzip,
    ContainerFormat.CIDZ_V2: _decode_cidz,
}


def decode_bytes(data: bytes, options: CodecOptions = DEFAULT_OPTIONS) -> LoadResult:
    """Sniff, decode and (if needed) expand an in-memory buffer.

    Raises:
        DocumentError: any subclass, see consoledoc.errors.
    """
    data = bytes(data)
    container, parsed = sniff(data)
    logger.debug("detected %s container (%d bytes)", container.value, len(data))

    if parsed is not None:
        decoded, side_channel, partial = document_from_dict(parsed, options), None, False
    else:
        decoded, side_channel, partial = _DECODERS[container](data, options)
    if isinstance(decoded, OptimizedDocument):
        document = expand(decoded, loop_count_override=options.loop_count_override)
    else:
        document = decoded
        if options.loop_count_override is not None:
            document.settings.loop_count = options.loop_count_override

    if partial:
        logger.info("returning partial %s stream with %d frames", container.value, document.frame_count)
    return LoadResult(document=document, format=container, side_channel=side_channel, partial=partial)


def _read_source(source: Source) -> bytes:
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes(source)
    return Path(source).read_bytes()


def read_document(source: Source, options: CodecOptions = DEFAULT_OPTIONS) -> LoadResult:
    """Load from a byte buffer or a file path (``str`` is always a path).

    Raises:
        FileNotFoundError: the path does not exist.
        DocumentError: the bytes could not be decoded.
    """
    return decode_bytes(_read_source(source), options)


def load_document(source: Source, options: CodecOptions = DEFAULT_OPTIONS) -> Document:
    """Like read_document() but returns only the Document."""
    return read_document(source, options).document


async def read_document_async(source: Source, options: CodecOptions = DEFAULT_OPTIONS) -> LoadResult:
    """Async read_document(): file I/O runs in a worker thread."""
    data = await asyncio.to_thread(_read_source, source)
    return decode_bytes(data, options)


async def load_document_async(source: Source, options: CodecOptions = DEFAULT_OPTIONS) -> Document:
    return (await read_document_async(source, options)).document


# ── Encoding ──────────────────────────────────────────────────────────────────


def format_for_path(path: Union[str, Path]) -> ContainerFormat:
    """Container implied by a file name's suffix."""
    suffix = Path(path).suffix.lower()
    if suffix == ".cidz":
        return ContainerFormat.CIDZ_V2
    if suffix in (".ndjson", ".jsonl"):
        return ContainerFormat.NDJSON
    if suffix == ".gz":
        return ContainerFormat.GZIP_LEGACY
    return ContainerFormat.PLAIN_JSON


def encode_document(
    document: Document,
    container: ContainerFormat,
    options: CodecOptions = DEFAULT_OPTIONS,
    *,
    subtitles: Union[str, SubtitleTrackData, None] = None,
) -> bytes:
    """Serialize a Document into the given container.

    The compressed containers store the optimized form; PlainJson and NDJSON
    store frames as-is.  ``subtitles`` is only meaningful for CIDZ and is
    written as its side channel.
    """
    if container is ContainerFormat.PLAIN_JSON:
        return (dump_document(document) + "\n").encode("utf-8")
    if container is ContainerFormat.NDJSON:
        return dump_ndjson(document).encode("utf-8")

    optimized = optimize(document, options)
    if container is ContainerFormat.GZIP_LEGACY:
        return encode_gzip(optimized, options)
    if subtitles is None and document.subtitles is not None:
        subtitles = document.subtitles
    return encode_cidz(optimized, subtitles=subtitles, options=options)


def save_document(
    document: Document,
    path: Union[str, Path],
    container: Optional[ContainerFormat] = None,
    options: CodecOptions = DEFAULT_OPTIONS,
    *,
    subtitles: Union[str, SubtitleTrackData, None] = None,
) -> ContainerFormat:
    """Write *document* to *path*; returns the container that was used."""
    container = container or format_for_path(path)
    data = encode_document(document, container, options, subtitles=subtitles)
    Path(path).write_bytes(data)
    logger.debug("wrote %s container to %s (%d bytes)", container.value, path, len(data))
    return container
