"""PlainJson container — one JSON object per file, load, dump, validate.

The object is either a full ConsoleImageDocument or, when ``@type`` says
``OptimizedConsoleImageDocument``, the palette + keyframe/delta form that the
expander turns into a Document.
"""
from __future__ import annotations

import json
from typing import List, Optional, Type, TypeVar, Union

import jsonschema
from pydantic import BaseModel, ValidationError

from consoledoc.config import DEFAULT_OPTIONS, CodecOptions
from consoledoc.contract_validate import validate_document_contract
from consoledoc.errors import MalformedDocumentError
from consoledoc.models import OPTIMIZED_DOCUMENT_TYPE, Document, OptimizedDocument

ModelT = TypeVar("ModelT", bound=BaseModel)

AnyDocument = Union[Document, OptimizedDocument]


def parse_json_object(text: str, *, source: str = "json", line: Optional[int] = None) -> dict:
    """json.loads that reports failures as MalformedDocumentError with a location."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedDocumentError(
            exc.msg,
            source=source,
            line=line if line is not None else exc.lineno,
            column=exc.colno,
        ) from exc
    if not isinstance(data, dict):
        raise MalformedDocumentError(
            f"expected a JSON object, got {type(data).__name__}", source=source, line=line
        )
    return data


def validate_model(model: Type[ModelT], data: dict, *, source: str = "json", line: Optional[int] = None) -> ModelT:
    """model_validate that reports failures as MalformedDocumentError."""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        first = exc.errors()[0]
        detail = f"{'.'.join(str(p) for p in first['loc']) or '<root>'}: {first['msg']}"
        raise MalformedDocumentError(detail, source=source, line=line) from exc


def is_optimized(data: dict) -> bool:
    return data.get("@type") == OPTIMIZED_DOCUMENT_TYPE


def document_from_dict(data: dict, options: CodecOptions = DEFAULT_OPTIONS, *, source: str = "json") -> AnyDocument:
    """Build the matching model from an already parsed JSON object."""
    if options.strict_contract:
        try:
            validate_document_contract(data)
        except jsonschema.ValidationError as exc:
            path = "/".join(str(p) for p in exc.absolute_path) or "<root>"
            raise MalformedDocumentError(f"{path}: {exc.message}", source=source) from exc
    model = OptimizedDocument if is_optimized(data) else Document
    return validate_model(model, data, source=source)


def decode_plain_json(text: str, options: CodecOptions = DEFAULT_OPTIONS, *, source: str = "json") -> AnyDocument:
    """Parse PlainJson text into a Document or an OptimizedDocument.

    Raises:
        MalformedDocumentError: invalid JSON, or data that violates the model
            (or the packaged contract when ``options.strict_contract`` is set).
    """
    return document_from_dict(parse_json_object(text, source=source), options, source=source)


def dump_document(document: AnyDocument, *, indent: Optional[int] = 2) -> str:
    """Serialize either document shape to PlainJson text.

    ``indent=None`` produces compact output (no whitespace), which is what the
    compressed containers embed.
    """
    raw = document.model_dump(mode="json", by_alias=True, exclude_none=True)
    if indent is None:
        return json.dumps(raw, ensure_ascii=False, separators=(",", ":"))
    return json.dumps(raw, ensure_ascii=False, indent=indent)


def validate_document(data: dict) -> List[str]:
    """Validate a raw dict against the document models.

    Returns a list of human-readable error strings (empty list = valid).
    Does not raise.
    """
    model = OptimizedDocument if is_optimized(data) else Document
    try:
        model.model_validate(data)
        return []
    except ValidationError as exc:
        return [f"{e['loc']}: {e['msg']}" for e in exc.errors()]
