"""
Unit tests for the BNF model validator.

Covers top-level shape checks, per-kind node parsing, cross-node reference
checks and orphan warnings.
"""

import copy

import pytest

from bnfc import validate
from bnfc.grammar.ast import (
    DeductionNode,
    PropertyElement,
    RegexPattern,
    TokenNode,
    UnionNode,
)
from conftest import load_fixture


def _model(nodes, start="Start", **extra):
    raw = {"name": "Test", "version": "1.0.0", "start": start, "nodes": nodes}
    raw.update(extra)
    return raw


def _token(pattern, description="A token"):
    return {"type": "token", "description": description, "pattern": pattern}


class TestTopLevelShape:
    """Tests for the model envelope."""

    def test_rejects_non_object_input(self):
        for raw in ("grammar", 42, None, ["a"]):
            result = validate(raw)
            assert result.ok is False
            assert result.errors == ["Input must be an object"]
            assert result.model is None

    def test_reports_every_missing_field(self):
        result = validate({})
        assert result.ok is False
        assert "Model must have a valid name (non-empty string)" in result.errors
        assert "Model must have a valid version (non-empty string)" in result.errors
        assert "Model must have a valid start node name (non-empty string)" in result.errors
        assert "Model must have a nodes object" in result.errors

    def test_empty_name_is_rejected(self):
        result = validate(_model({"Start": _token("a")}, name=""))
        assert result.ok is False
        assert "Model must have a valid name (non-empty string)" in result.errors

    def test_nodes_must_be_mapping(self):
        result = validate({"name": "T", "version": "1", "start": "S", "nodes": ["S"]})
        assert result.ok is False
        assert result.errors == ["Model must have a nodes object"]

    def test_undefined_start(self):
        result = validate(_model({"A": _token("a")}, start="Missing"))
        assert result.ok is False
        assert 'Start node "Missing" is not defined in nodes' in result.errors


class TestSimpleMathFixture:
    """End-to-end validation of the SimpleMath grammar."""

    def test_fixture_validates(self, simple_math_raw):
        result = validate(simple_math_raw)
        assert result.ok is True
        assert result.errors == []
        assert result.warnings == []

    def test_model_fields(self, simple_math):
        assert simple_math.name == "SimpleMath"
        assert simple_math.version == "1.0.0"
        assert simple_math.start == "Expression"
        assert len(simple_math.nodes) == 11
        assert simple_math.metadata["language"] == "SimpleMath"

    def test_node_kinds(self, simple_math):
        assert simple_math.nodes["BinaryExpression"].type == "deduction"
        assert simple_math.nodes["Term"].type == "union"
        assert simple_math.nodes["Identifier"].type == "token"
        assert simple_math.count_by_kind() == {"token": 6, "deduction": 2, "union": 3}

    def test_typed_ir(self, simple_math):
        number = simple_math.nodes["Number"]
        assert isinstance(number, TokenNode)
        assert number.pattern == RegexPattern(regex="\\d+", flags="")
        assert number.is_literal is False
        assert simple_math.nodes["Plus"].pattern == "+"

        binary = simple_math.nodes["BinaryExpression"]
        assert isinstance(binary, DeductionNode)
        assert binary.sequence[0] == PropertyElement(node="Expression", prop="left")
        assert binary.precedence == 1
        assert binary.associativity == "left"
        assert [p.prop for p in binary.properties()] == ["left", "operator", "right"]

        paren = simple_math.nodes["ParenExpression"]
        assert paren.sequence[0] == "LeftParen"

        term = simple_math.nodes["Term"]
        assert isinstance(term, UnionNode)
        assert term.members == ("Number", "Identifier", "ParenExpression")

    def test_declaration_order_preserved(self, simple_math, simple_math_raw):
        assert list(simple_math.nodes) == list(simple_math_raw["nodes"])

    def test_model_is_read_only(self, simple_math):
        with pytest.raises(TypeError):
            simple_math.nodes["Extra"] = simple_math.nodes["Plus"]

    def test_validation_is_idempotent(self, simple_math_raw):
        first = validate(simple_math_raw)
        second = validate(copy.deepcopy(simple_math_raw))
        assert first.errors == second.errors
        assert first.warnings == second.warnings
        assert dict(first.model.nodes) == dict(second.model.nodes)


class TestTokenNodes:
    """Tests for token pattern validation."""

    def test_invalid_regex_fixture(self):
        result = validate(load_fixture("invalid-regex.bnf.json"))
        assert result.ok is False
        assert "invalid regex pattern" in result.errors[0]
        assert 'Token node "Broken"' in result.errors[0]

    def test_unknown_regex_flag(self):
        result = validate(_model({"Start": _token({"regex": "abc", "flags": "q"})}))
        assert result.ok is False
        assert "invalid regex pattern" in result.errors[0]

    def test_regex_flags_are_kept(self):
        result = validate(_model({"Start": _token({"regex": "select", "flags": "i"})}))
        assert result.ok is True
        assert result.model.nodes["Start"].pattern == RegexPattern(regex="select", flags="i")

    def test_empty_string_pattern(self):
        result = validate(_model({"Start": _token("")}))
        assert result.ok is False
        assert 'Token node "Start" pattern cannot be empty string' in result.errors

    def test_missing_pattern(self):
        result = validate(_model({"Start": {"type": "token", "description": "No pattern"}}))
        assert result.ok is False
        assert 'Token node "Start" must have a pattern' in result.errors

    def test_whitespace_in_string_pattern(self):
        result = validate(_model({"Start": _token("a b")}))
        assert result.ok is False
        assert 'Token node "Start" string pattern cannot contain whitespace' in result.errors

    def test_pattern_of_wrong_shape(self):
        result = validate(_model({"Start": _token(42)}))
        assert result.ok is False
        assert "pattern must be string or" in result.errors[0]


class TestNodeShape:
    """Tests for common node fields."""

    def test_node_must_be_object(self):
        result = validate(_model({"Start": "token"}))
        assert result.errors == ['Node "Start" must be an object']

    def test_missing_type_and_description(self):
        result = validate(_model({"Start": {"pattern": "a"}}))
        assert 'Node "Start" must have a type' in result.errors
        assert 'Node "Start" must have a description (non-empty string)' in result.errors

    def test_invalid_type(self):
        result = validate(_model({"Start": {"type": "rule", "description": "x"}}))
        assert result.ok is False
        assert 'Node "Start" has invalid type: rule' in result.errors

    def test_errors_from_all_nodes_are_collected(self):
        result = validate(_model({
            "Start": _token({"regex": "[oops"}),
            "Other": _token("a b"),
        }))
        assert result.ok is False
        assert len(result.errors) == 2


class TestDeductionNodes:
    """Tests for sequence element validation."""

    def test_missing_reference(self):
        result = validate(_model({
            "Start": {
                "type": "deduction",
                "description": "Refers to nothing",
                "sequence": [{"node": "NonExistent", "prop": "value"}],
            },
        }))
        assert result.ok is False
        assert 'referenced node "NonExistent" does not exist' in result.errors[0]

    def test_empty_sequence(self):
        result = validate(_model({"Start": {"type": "deduction", "description": "Empty", "sequence": []}}))
        assert 'Deduction node "Start" sequence cannot be empty' in result.errors

    def test_sequence_must_be_list(self):
        result = validate(_model({"Start": {"type": "deduction", "description": "Bad", "sequence": "A"}}))
        assert 'Deduction node "Start" must have a sequence array' in result.errors

    def test_invalid_property_fixture(self):
        result = validate(load_fixture("invalid-property.bnf.json"))
        assert result.ok is False
        assert 'property name "Invalid_Name" is not valid camelCase' in result.errors[0]

    def test_duplicate_property_names(self):
        result = validate(_model({
            "A": _token("a"),
            "Start": {
                "type": "deduction",
                "description": "Binds twice",
                "sequence": [{"node": "A", "prop": "value"}, {"node": "A", "prop": "value"}],
            },
        }))
        assert result.ok is False
        assert 'Deduction node "Start" sequence[1]: property name "value" is already bound at sequence[0]' \
            in result.errors

    def test_string_reference_to_regex_token(self):
        result = validate(_model({
            "RegexToken": _token({"regex": "[a-z]+"}),
            "Start": {
                "type": "deduction",
                "description": "Anonymous regex reference",
                "sequence": [{"node": "RegexToken", "prop": "name"}, "RegexToken"],
            },
        }))
        assert result.ok is False
        assert result.errors == [
            'Deduction node "Start" sequence[1]: string reference "RegexToken" '
            'must point to a TokenNode with string pattern'
        ]

    def test_string_reference_to_non_token(self):
        result = validate(_model({
            "A": _token("a"),
            "Group": {"type": "union", "description": "Group", "members": ["A"]},
            "Start": {"type": "deduction", "description": "Bad reference", "sequence": ["Group"]},
        }))
        assert result.ok is False
        assert 'Deduction node "Start" sequence[0]: string reference "Group" must point to a TokenNode' \
            in result.errors

    @pytest.mark.parametrize("precedence", [-1, 1.5, "high", True])
    def test_invalid_precedence(self, precedence):
        result = validate(_model({
            "A": _token("a"),
            "Start": {"type": "deduction", "description": "x", "sequence": ["A"], "precedence": precedence},
        }))
        assert 'Deduction node "Start" precedence must be a non-negative integer' in result.errors

    def test_invalid_associativity(self):
        result = validate(_model({
            "A": _token("a"),
            "Start": {"type": "deduction", "description": "x", "sequence": ["A"], "associativity": "up"},
        }))
        assert result.ok is False
        assert "associativity must be one of: left, right, non-associative" in result.errors[0]


class TestUnionNodes:
    """Tests for union member validation."""

    def test_missing_member(self):
        result = validate(_model({
            "A": _token("a"),
            "Start": {"type": "union", "description": "x", "members": ["A", "Missing"]},
        }))
        assert result.ok is False
        assert 'Union node "Start" member "Missing" does not exist' in result.errors

    def test_duplicate_members(self):
        result = validate(_model({
            "A": _token("a"),
            "Start": {"type": "union", "description": "x", "members": ["A", "A"]},
        }))
        assert result.ok is False
        assert 'Union node "Start" has duplicate members' in result.errors

    def test_empty_members(self):
        result = validate(_model({"Start": {"type": "union", "description": "x", "members": []}}))
        assert 'Union node "Start" members cannot be empty' in result.errors


class TestOrphanWarnings:
    """Tests for unreachable-node warnings."""

    def test_unreachable_token(self):
        result = validate(_model({
            "A": _token("a", "Start node"),
            "B": _token("b", "Unreachable node"),
        }, start="A"))
        assert result.ok is True
        assert result.warnings == [
            "Orphan node (unreachable from start): B",
            "Found 1 orphan node(s) total. Consider removing if not needed, or check if references are missing.",
        ]

    def test_all_reachable_through_union(self):
        result = validate(_model({
            "A": _token("a"),
            "B": _token("b"),
            "Union": {"type": "union", "description": "Union of A and B", "members": ["A", "B"]},
        }, start="Union"))
        assert result.ok is True
        assert result.warnings == []

    def test_warnings_do_not_block(self, program_raw):
        program_raw["nodes"]["Unused"] = _token("u")
        result = validate(program_raw)
        assert result.ok is True
        assert result.model is not None
        assert "Orphan node (unreachable from start): Unused" in result.warnings
