"""Ndjson container — one JSON record per line, for progressive writing.

Line kinds are told apart by ``@type``:

    {"@type":"ConsoleImageDocumentHeader", "Version":…, "Settings":{…}}
    {"@type":"Frame", "Index":0, "Content":"…", "DelayMs":…}
    {"@type":"ConsoleImageDocumentFooter", "FrameCount":…, "IsComplete":true}

Frames are placed by ``Index``, never by line order.  A stream that was cut
off (no footer, or a footer with ``IsComplete`` false) is still readable but
is reported as partial so callers never mistake it for a whole recording.
"""
from __future__ import annotations

import io
import json
from datetime import datetime, timezone
from typing import Dict, Iterable, Iterator, List, Optional, TextIO, Tuple, Union

from pydantic import BaseModel

from consoledoc.containers.plain_json import parse_json_object, validate_model
from consoledoc.errors import MalformedDocumentError
from consoledoc.log import get_logger
from consoledoc.models import (
    DEFAULT_CONTEXT,
    DOCUMENT_VERSION,
    FOOTER_TYPE,
    FRAME_TYPE,
    HEADER_TYPE,
    Document,
    Settings,
    StreamFooter,
    StreamFrame,
    StreamHeader,
    SubtitleTrackData,
    content_dimensions,
)

logger = get_logger(__name__)

StreamRecord = Union[StreamHeader, StreamFrame, StreamFooter]

_RECORD_MODELS = {
    HEADER_TYPE: StreamHeader,
    FRAME_TYPE: StreamFrame,
    FOOTER_TYPE: StreamFooter,
}


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _record_line(record: BaseModel) -> str:
    raw = record.model_dump(mode="json", by_alias=True, exclude_none=True)
    return json.dumps(raw, ensure_ascii=False, separators=(",", ":"))


# ── Reading ───────────────────────────────────────────────────────────────────


def iter_records(lines: Iterable[str]) -> Iterator[StreamRecord]:
    """Yield typed records from NDJSON lines, lazily.

    Blank lines are skipped; objects with an unknown ``@type`` are ignored so
    newer writers can add record kinds.

    Raises:
        MalformedDocumentError: a line is not a JSON object, or a known record
            violates its model.  ``line`` is the 1-based line number.
    """
    for line_number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        data = parse_json_object(line, source="ndjson", line=line_number)
        model = _RECORD_MODELS.get(data.get("@type"))
        if model is None:
            logger.debug("skipping record of type %r at line %d", data.get("@type"), line_number)
            continue
        yield validate_model(model, data, source="ndjson", line=line_number)


class StreamAssembler:
    """Collects records in any order and builds the Document.

    Feed records with add(); finish() returns ``(document, partial)``.
    """

    def __init__(self) -> None:
        self.header: Optional[StreamHeader] = None
        self.footer: Optional[StreamFooter] = None
        self._frames: Dict[int, StreamFrame] = {}

    @property
    def frames_seen(self) -> int:
        return len(self._frames)

    def add(self, record: StreamRecord) -> None:
        if isinstance(record, StreamHeader):
            if self.header is not None:
                raise MalformedDocumentError("stream has more than one header", source="ndjson")
            self.header = record
        elif isinstance(record, StreamFrame):
            if record.index in self._frames:
                raise MalformedDocumentError(f"duplicate frame index {record.index}", source="ndjson")
            self._frames[record.index] = record
        else:
            if self.footer is not None:
                raise MalformedDocumentError("stream has more than one footer", source="ndjson")
            self.footer = record

    def finish(self) -> Tuple[Document, bool]:
        """Build the Document from everything added so far.

        Raises:
            MalformedDocumentError: the footer disagrees with the frames seen,
                or a stream marked complete is missing frame indices.
        """
        ordered = sorted(self._frames)
        partial = self.footer is None or not self.footer.is_complete
        if self.footer is not None and self.footer.frame_count != len(ordered):
            raise MalformedDocumentError(
                f"footer announces {self.footer.frame_count} frames, stream holds {len(ordered)}",
                source="ndjson",
            )
        if not partial and ordered != list(range(len(ordered))):
            raise MalformedDocumentError("complete stream has gaps in frame indices", source="ndjson")

        header = self.header or StreamHeader()
        document = Document(
            context=header.context,
            version=header.version,
            created=header.created,
            source_file=header.source_file,
            render_mode=header.render_mode,
            settings=header.settings,
            subtitles=header.subtitles,
            frames=[self._frames[i].to_frame() for i in ordered],
        )
        return document, partial


def decode_ndjson(source: Union[str, Iterable[str]]) -> Tuple[Document, bool]:
    """Decode NDJSON text (or any iterable of lines) into ``(document, partial)``."""
    lines = source.splitlines() if isinstance(source, str) else source
    assembler = StreamAssembler()
    for record in iter_records(lines):
        assembler.add(record)
    document, partial = assembler.finish()
    logger.debug("ndjson stream: %d frames, partial=%s", document.frame_count, partial)
    return document, partial


# ── Writing ───────────────────────────────────────────────────────────────────


class NdjsonWriter:
    """Write a document incrementally, one record per line.

    The header is written before the first frame.  Leaving the context
    without calling finalize() writes a footer with ``IsComplete`` false,
    so an interrupted recording stays loadable and is flagged as partial.
    """

    def __init__(
        self,
        stream: TextIO,
        *,
        version: str = DOCUMENT_VERSION,
        context: str = DEFAULT_CONTEXT,
        render_mode: str = "ASCII",
        settings: Optional[Settings] = None,
        source_file: Optional[str] = None,
        created: Optional[str] = None,
        subtitles: Optional[SubtitleTrackData] = None,
    ) -> None:
        self._stream = stream
        self._header = StreamHeader(
            context=context,
            version=version,
            render_mode=render_mode,
            settings=settings or Settings(),
            source_file=source_file,
            created=created or _utc_now(),
            subtitles=subtitles,
        )
        self._header_written = False
        self._finalized = False
        self.frame_count = 0
        self.total_duration_ms = 0

    def __enter__(self) -> "NdjsonWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._header_written and not self._finalized:
            self.finalize(is_complete=False)

    def _write(self, record: BaseModel) -> None:
        self._stream.write(_record_line(record))
        self._stream.write("\n")

    def write_header(self) -> None:
        if self._header_written:
            return
        self._write(self._header)
        self._header_written = True

    def write_frame(self, content: str, delay_ms: int = 0, width: int = 0, height: int = 0) -> None:
        if self._finalized:
            raise ValueError("cannot write frames after finalize()")
        self.write_header()
        if width <= 0 or height <= 0:
            derived_width, derived_height = content_dimensions(content)
            width = width if width > 0 else derived_width
            height = height if height > 0 else derived_height
        frame = StreamFrame(
            index=self.frame_count,
            content=content,
            delay_ms=delay_ms,
            width=width,
            height=height,
        )
        self._write(frame)
        self.frame_count += 1
        self.total_duration_ms += delay_ms

    def finalize(self, is_complete: bool = True) -> None:
        if self._finalized:
            return
        self.write_header()
        self._write(
            StreamFooter(
                frame_count=self.frame_count,
                total_duration_ms=self.total_duration_ms,
                completed=_utc_now(),
                is_complete=is_complete,
            )
        )
        self._stream.flush()
        self._finalized = True


def dump_ndjson(document: Document) -> str:
    """Serialize a whole Document as a finalized NDJSON stream."""
    buffer = io.StringIO()
    writer = NdjsonWriter(
        buffer,
        version=document.version,
        context=document.context,
        render_mode=document.render_mode,
        settings=document.settings,
        source_file=document.source_file,
        created=document.created,
        subtitles=document.subtitles,
    )
    for frame in document.frames:
        writer.write_frame(frame.content, frame.delay_ms, frame.width, frame.height)
    writer.finalize()
    return buffer.getvalue()


def read_frames(lines: Iterable[str]) -> Iterator[StreamFrame]:
    """Yield frame records as they arrive, for players that start early.

    Arrival order is not index order; callers that need ordering must use
    decode_ndjson().
    """
    for record in iter_records(lines):
        if isinstance(record, StreamFrame):
            yield record


__all__: List[str] = [
    "NdjsonWriter",
    "StreamAssembler",
    "decode_ndjson",
    "dump_ndjson",
    "iter_records",
    "read_frames",
]
