"""consoledoc — load and save console animation documents.

Public API::

    from consoledoc import load_document, save_document

    doc = load_document("clip.cidz")
    for frame in doc.frames:
        ...
"""
from .config import CodecOptions
from .errors import (
    CorruptCompressedPayloadError,
    DeltaWithoutBaselineError,
    DocumentError,
    FrameDimensionMismatchError,
    MalformedDocumentError,
    UnrecognizedFormatError,
    UnsupportedContainerVersionError,
)
from .expander import expand
from .loader import (
    LoadResult,
    decode_bytes,
    encode_document,
    load_document,
    load_document_async,
    read_document,
    read_document_async,
    save_document,
)
from .models import (
    Document,
    Frame,
    OptimizedDocument,
    OptimizedFrame,
    Settings,
    SubtitleEntryData,
    SubtitleTrackData,
)
from .optimizer import optimize
from .sniffer import ContainerFormat, sniff, sniff_format

__all__ = [
    "CodecOptions",
    "ContainerFormat",
    "CorruptCompressedPayloadError",
    "DeltaWithoutBaselineError",
    "Document",
    "DocumentError",
    "Frame",
    "FrameDimensionMismatchError",
    "LoadResult",
    "MalformedDocumentError",
    "OptimizedDocument",
    "OptimizedFrame",
    "Settings",
    "SubtitleEntryData",
    "SubtitleTrackData",
    "UnrecognizedFormatError",
    "UnsupportedContainerVersionError",
    "decode_bytes",
    "encode_document",
    "expand",
    "load_document",
    "load_document_async",
    "optimize",
    "read_document",
    "read_document_async",
    "save_document",
    "sniff",
    "sniff_format",
]
