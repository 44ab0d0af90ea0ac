"""Legacy gzip container: a gzip stream wrapping PlainJson text.

The wrapped JSON may be either document shape; optimized documents are
returned as-is and expanded by the loader.
"""
from __future__ import annotations

import gzip
import zlib

from consoledoc.config import DEFAULT_OPTIONS, CodecOptions
from consoledoc.containers.plain_json import AnyDocument, decode_plain_json, dump_document
from consoledoc.errors import CorruptCompressedPayloadError
from consoledoc.sniffer import decode_text


def decode_gzip(data: bytes, options: CodecOptions = DEFAULT_OPTIONS) -> AnyDocument:
    """Decompress and parse a gzip-wrapped document.

    Raises:
        CorruptCompressedPayloadError: the stream is truncated or damaged, or
            does not inflate to UTF-8 text.
        MalformedDocumentError: the inflated text is not a valid document.
    """
    try:
        raw = gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as exc:
        raise CorruptCompressedPayloadError("gzip", str(exc) or type(exc).__name__) from exc
    try:
        text = decode_text(raw)
    except UnicodeDecodeError as exc:
        raise CorruptCompressedPayloadError("gzip", f"payload is not UTF-8: {exc}") from exc
    return decode_plain_json(text, options, source="gzip")


def encode_gzip(document: AnyDocument, options: CodecOptions = DEFAULT_OPTIONS) -> bytes:
    """Compact PlainJson, gzip-compressed at ``options.gzip_level``.

    The gzip header timestamp is fixed at zero so equal documents give equal
    bytes.
    """
    payload = dump_document(document, indent=None).encode("utf-8")
    return gzip.compress(payload, compresslevel=options.gzip_level, mtime=0)
