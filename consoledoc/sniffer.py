"""Container format detection from raw bytes.

Decision order (first match wins):
  1. gzip magic ``1F 8B``                    → GZIP_LEGACY
  2. ASCII ``CIDZ``                          → CIDZ_V2
  3. UTF-8 text holding one JSON object that is not a stream record
                                             → PLAIN_JSON
  4. first non-blank line is a JSON object whose ``@type`` names a header,
     frame or footer record                  → NDJSON
Anything else is UnrecognizedFormatError; text that starts like JSON but
parses as neither is MalformedDocumentError.
"""
from __future__ import annotations

import json
from enum import Enum
from typing import Optional, Tuple

from consoledoc.errors import MalformedDocumentError, UnrecognizedFormatError
from consoledoc.models import STREAM_RECORD_TYPES

GZIP_MAGIC = b"\x1f\x8b"
CIDZ_MAGIC = b"CIDZ"


class ContainerFormat(str, Enum):
    """The closed set of supported physical encodings."""

    PLAIN_JSON = "plain_json"
    NDJSON = "ndjson"
    GZIP_LEGACY = "gzip_legacy"
    CIDZ_V2 = "cidz_v2"


def decode_text(data: bytes) -> str:
    """UTF-8 decode, dropping a leading byte-order mark."""
    return data.decode("utf-8-sig")


def _is_stream_record(value) -> bool:
    return isinstance(value, dict) and value.get("@type") in STREAM_RECORD_TYPES


def _first_line(text: str) -> str:
    for line in text.splitlines():
        if line.strip():
            return line
    return ""


def sniff(data: bytes) -> Tuple[ContainerFormat, Optional[dict]]:
    """Classify *data* without decoding frames.

    For PLAIN_JSON the parsed object is returned alongside the format so the
    decoder does not parse the buffer a second time; it is None otherwise.

    Raises:
        UnrecognizedFormatError: no container matches.
        MalformedDocumentError: looks like JSON but is not parseable.
    """
    if data[:2] == GZIP_MAGIC:
        return ContainerFormat.GZIP_LEGACY, None
    if data[:4] == CIDZ_MAGIC:
        return ContainerFormat.CIDZ_V2, None

    try:
        text = decode_text(data)
    except UnicodeDecodeError as exc:
        raise UnrecognizedFormatError(f"not a known binary container and not UTF-8 text: {exc}") from exc

    if not text.lstrip().startswith("{"):
        raise UnrecognizedFormatError("text does not start with a JSON object")

    try:
        whole = json.loads(text)
    except json.JSONDecodeError as exc:
        whole_error = exc
    else:
        if isinstance(whole, dict) and not _is_stream_record(whole):
            return ContainerFormat.PLAIN_JSON, whole
        whole_error = None

    try:
        first = json.loads(_first_line(text))
    except json.JSONDecodeError:
        first = None
    if _is_stream_record(first):
        return ContainerFormat.NDJSON, None

    if whole_error is not None:
        raise MalformedDocumentError(
            whole_error.msg, source="json", line=whole_error.lineno, column=whole_error.colno
        ) from whole_error
    raise UnrecognizedFormatError("JSON text is neither a document nor a record stream")


def sniff_format(data: bytes) -> ContainerFormat:
    """Like sniff() but returns only the format."""
    return sniff(data)[0]
