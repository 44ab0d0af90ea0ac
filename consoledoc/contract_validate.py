from typing import List

import jsonschema

from .models import OPTIMIZED_DOCUMENT_TYPE
from .schema_loader import load_schema

DOCUMENT_CONTRACT = "ConsoleImageDocument.v2.json"
OPTIMIZED_CONTRACT = "OptimizedConsoleImageDocument.v3.json"


def contract_for(data: dict) -> str:
    """Name of the packaged contract that governs *data*."""
    if data.get("@type") == OPTIMIZED_DOCUMENT_TYPE:
        return OPTIMIZED_CONTRACT
    return DOCUMENT_CONTRACT


def validate_document_contract(data: dict) -> None:
    """Validate a raw document dict against its packaged JSON Schema.

    Raises jsonschema.ValidationError if non-conformant.
    """
    jsonschema.validate(data, load_schema(contract_for(data)))


def contract_errors(data: dict) -> List[str]:
    """Return every contract violation as "path: message" (empty list = valid).

    Does not raise.
    """
    schema = load_schema(contract_for(data))
    validator = jsonschema.Draft202012Validator(schema)
    return [
        f"{'/'.join(str(p) for p in err.absolute_path) or '<root>'}: {err.message}"
        for err in sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.absolute_path])
    ]
