"""Shared fixtures for the bnfc test suite."""

from __future__ import annotations

import copy
import importlib
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import pytest

from bnfc import validate
from bnfc.grammar.ast import Model

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def load_fixture(name: str) -> Dict[str, Any]:
    """Decode a JSON grammar fixture from tests/fixtures/."""
    with open(FIXTURES_DIR / name, encoding="utf-8") as f:
        return json.load(f)


def validated(raw: Dict[str, Any]) -> Model:
    """Validate *raw* and fail the test if it is rejected."""
    result = validate(raw)
    assert result.ok, result.errors
    return result.model


# Small grammar without left recursion: Program = left:Factor Plus right:Factor
PROGRAM_RAW: Dict[str, Any] = {
    "name": "SimpleProgram",
    "version": "1.0.0",
    "start": "Program",
    "nodes": {
        "Number": {"type": "token", "description": "A numeric literal", "pattern": {"regex": "\\d+"}},
        "Identifier": {
            "type": "token",
            "description": "A variable identifier",
            "pattern": {"regex": "[a-zA-Z_][a-zA-Z0-9_]*"},
        },
        "Plus": {"type": "token", "description": "Addition operator", "pattern": "+"},
        "Factor": {"type": "union", "description": "A basic factor", "members": ["Number", "Identifier"]},
        "Program": {
            "type": "deduction",
            "description": "A simple program",
            "sequence": [
                {"node": "Factor", "prop": "left"},
                "Plus",
                {"node": "Factor", "prop": "right"},
            ],
        },
    },
}

# Directly left-recursive rule A = left:A Plus right:B
LEFT_RECURSIVE_RAW: Dict[str, Any] = {
    "name": "LeftRecursive",
    "version": "1.0.0",
    "start": "A",
    "nodes": {
        "A": {
            "type": "deduction",
            "description": "Left recursive rule",
            "sequence": [{"node": "A", "prop": "left"}, "Plus", {"node": "B", "prop": "right"}],
        },
        "B": {"type": "token", "description": "Terminal", "pattern": "b"},
        "Plus": {"type": "token", "description": "Plus", "pattern": "+"},
    },
}


@pytest.fixture
def simple_math_raw() -> Dict[str, Any]:
    return load_fixture("simple-math.bnf.json")


@pytest.fixture
def simple_math(simple_math_raw) -> Model:
    return validated(simple_math_raw)


@pytest.fixture
def program_raw() -> Dict[str, Any]:
    return copy.deepcopy(PROGRAM_RAW)


@pytest.fixture
def program_model(program_raw) -> Model:
    return validated(program_raw)


@pytest.fixture
def left_recursive_model() -> Model:
    return validated(copy.deepcopy(LEFT_RECURSIVE_RAW))


@pytest.fixture
def load_package(tmp_path, monkeypatch):
    """Write generated schema files under tmp_path/<name>/ and import the package."""
    loaded = []

    def _load(files: Dict[str, str], name: str = "generated_ast"):
        root = tmp_path / name
        for rel, src in files.items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(src, encoding="utf-8")
        monkeypatch.syspath_prepend(str(tmp_path))
        loaded.append(name)
        return importlib.import_module(name)

    yield _load

    for name in loaded:
        for key in [k for k in sys.modules if k == name or k.startswith(name + ".")]:
            del sys.modules[key]


@pytest.fixture
def load_module(tmp_path, monkeypatch):
    """Write one generated module to tmp_path/<name>.py and import it."""
    loaded = []

    def _load(code: str, name: Optional[str] = None):
        name = name or f"generated_module_{len(loaded)}"
        (tmp_path / f"{name}.py").write_text(code, encoding="utf-8")
        monkeypatch.syspath_prepend(str(tmp_path))
        loaded.append(name)
        return importlib.import_module(name)

    yield _load

    for name in loaded:
        sys.modules.pop(name, None)
