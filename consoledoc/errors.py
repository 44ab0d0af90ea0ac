"""Codec error taxonomy.

Every failure raised while sniffing, decoding or expanding a document derives
from DocumentError.  None of them is retried inside the codec: they describe
structural problems with the input bytes, so the caller decides whether to
re-fetch or abort.  Missing files are NOT part of this hierarchy; they surface
as the built-in FileNotFoundError.
"""
from __future__ import annotations

from typing import Optional


class DocumentError(Exception):
    """Base class for all document codec failures."""


class UnrecognizedFormatError(DocumentError):
    """The byte buffer matches none of the supported container formats."""


class MalformedDocumentError(DocumentError):
    """JSON or text payload is structurally invalid.

    ``line`` and ``column`` are 1-based and point into the offending text when
    the parser reported a location.
    """

    def __init__(
        self,
        detail: str,
        *,
        source: str = "json",
        line: Optional[int] = None,
        column: Optional[int] = None,
    ) -> None:
        self.detail = detail
        self.source = source
        self.line = line
        self.column = column
        where = ""
        if line is not None:
            where = f" at line {line}" + (f", column {column}" if column is not None else "")
        super().__init__(f"malformed {source} document{where}: {detail}")


class UnsupportedContainerVersionError(DocumentError):
    """Recognized container magic with an unknown version byte."""

    def __init__(self, version: int, supported: int) -> None:
        self.version = version
        self.supported = supported
        super().__init__(
            f"unsupported container version {version} (supported: {supported})"
        )


class CorruptCompressedPayloadError(DocumentError):
    """Decompression failed or produced bytes that are not UTF-8 text."""

    def __init__(self, container: str, detail: str) -> None:
        self.container = container
        self.detail = detail
        super().__init__(f"corrupt {container} payload: {detail}")


class FrameDimensionMismatchError(DocumentError):
    """Grid data disagrees with the frame's declared width x height."""

    def __init__(self, frame_index: int, detail: str, *, expected=None, actual=None) -> None:
        self.frame_index = frame_index
        self.expected = expected
        self.actual = actual
        super().__init__(f"frame {frame_index}: {detail}")


class DeltaWithoutBaselineError(DocumentError):
    """A delta frame appeared before any keyframe established a grid."""

    def __init__(self, frame_index: int) -> None:
        self.frame_index = frame_index
        super().__init__(f"frame {frame_index}: delta frame has no preceding keyframe")
