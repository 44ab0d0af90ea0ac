"""Tests for the packaged JSON Schema contracts."""
from __future__ import annotations

import json

import jsonschema
import pytest

from consoledoc.containers.plain_json import dump_document
from consoledoc.contract_validate import (
    DOCUMENT_CONTRACT,
    OPTIMIZED_CONTRACT,
    contract_errors,
    contract_for,
    validate_document_contract,
)
from consoledoc.models import Document
from consoledoc.optimizer import optimize
from consoledoc.schema_loader import contract_names, load_schema


def _minimal_document() -> Document:
    doc = Document(created="2026-01-01T00:00:00Z")
    doc.add_frame("\x1b[38;2;255;0;0mA\x1b[0mB", delay_ms=40)
    doc.add_frame("AB", delay_ms=40)
    return doc


class TestLoadSchema:
    def test_both_contracts_packaged(self):
        assert contract_names() == [DOCUMENT_CONTRACT, OPTIMIZED_CONTRACT]
        for name in (DOCUMENT_CONTRACT, OPTIMIZED_CONTRACT):
            schema = load_schema(name)
            assert schema["$schema"].endswith("2020-12/schema")
            jsonschema.Draft202012Validator.check_schema(schema)

    def test_missing_contract(self):
        with pytest.raises(FileNotFoundError):
            load_schema("Nope.v0.json")


class TestValidateContract:
    def test_contract_selected_by_type(self):
        assert contract_for({"@type": "OptimizedConsoleImageDocument"}) == OPTIMIZED_CONTRACT
        assert contract_for({"@type": "ConsoleImageDocument"}) == DOCUMENT_CONTRACT
        assert contract_for({}) == DOCUMENT_CONTRACT

    def test_written_documents_conform(self):
        doc = _minimal_document()
        validate_document_contract(json.loads(dump_document(doc)))
        validate_document_contract(json.loads(dump_document(optimize(doc))))

    def test_negative_delay_rejected(self):
        with pytest.raises(jsonschema.ValidationError):
            validate_document_contract({"Frames": [{"Content": "A", "DelayMs": -1}]})

    def test_bad_palette_rejected(self):
        with pytest.raises(jsonschema.ValidationError):
            validate_document_contract({"@type": "OptimizedConsoleImageDocument", "Palette": ["", "#FF0000"]})

    def test_contract_errors_lists_every_violation(self):
        errors = contract_errors({"Frames": [{"DelayMs": -1}, {"Width": "wide"}], "Version": 2})
        assert len(errors) == 3
        assert any(e.startswith("Frames/0/DelayMs") for e in errors)
        assert any(e.startswith("Version") for e in errors)

    def test_contract_errors_empty_for_valid(self):
        assert contract_errors(json.loads(dump_document(_minimal_document()))) == []
