"""Tests for the generated stringifier module."""

from types import SimpleNamespace

import pytest

from bnfc import SchemaConfig, StringifierConfig, generate_schema, generate_stringifier
from conftest import validated


@pytest.fixture
def simple_math_stringifier(simple_math, load_module):
    result = generate_stringifier(simple_math)
    assert result.ok, result.errors
    return load_module(result.code, "simple_math_stringifier")


def _binary(left, op, right):
    return {"type": "BinaryExpression", "left": left, "operator": op, "right": right}


NUMBER_1 = {"type": "Number", "value": "1"}
IDENT_X = {"type": "Identifier", "value": "x"}
PLUS = {"type": "Plus", "value": "+"}


class TestGeneratedCode:
    def test_result(self, simple_math):
        result = generate_stringifier(simple_math)
        assert result.ok is True
        assert result.errors == []
        assert result.warnings == []
        assert result.code.startswith("# Generated by bnfc from SimpleMath v1.0.0. Do not edit.\n")

    def test_function_names(self, simple_math):
        code = generate_stringifier(simple_math).code
        assert "def stringify_binary_expression(node: Any, options: StringifierOptions) -> str:" in code
        assert "def stringify_node(node: Any, options: StringifierOptions) -> str:" in code
        assert "def stringify_simple_math(" in code

    def test_custom_prefix(self, simple_math):
        code = generate_stringifier(simple_math, StringifierConfig(function_prefix="render")).code
        assert "def render_plus(" in code
        assert "def render_simple_math(" in code

    def test_deterministic(self, simple_math):
        assert generate_stringifier(simple_math).code == generate_stringifier(simple_math).code

    def test_header_stays_on_one_line(self, simple_math_raw):
        simple_math_raw["name"] = "Simple\nMath"
        simple_math_raw["version"] = "1.0\nimport os"
        result = generate_stringifier(validated(simple_math_raw))
        assert result.ok is True, result.errors
        assert result.code.splitlines()[0] == "# Generated by bnfc from Simple Math v1.0 import os. Do not edit."
        assert "def stringify_simple_math(" in result.code


class TestRendering:
    def test_token(self, simple_math_stringifier):
        assert simple_math_stringifier.stringify_simple_math(NUMBER_1) == "1"

    def test_binary_expression(self, simple_math_stringifier):
        node = _binary(NUMBER_1, PLUS, IDENT_X)
        assert simple_math_stringifier.stringify_simple_math(node) == "1 + x"

    def test_anonymous_tokens_render_their_literal(self, simple_math_stringifier):
        node = {"type": "ParenExpression", "expression": _binary(NUMBER_1, PLUS, IDENT_X)}
        assert simple_math_stringifier.stringify_simple_math(node) == "( 1 + x )"

    def test_compact(self, simple_math_stringifier):
        node = {"type": "ParenExpression", "expression": _binary(NUMBER_1, PLUS, IDENT_X)}
        assert simple_math_stringifier.stringify_simple_math(node, compact=True) == "(1+x)"

    def test_attribute_objects(self, simple_math_stringifier):
        node = SimpleNamespace(
            type="BinaryExpression",
            left=SimpleNamespace(type="Number", value=2),
            operator=SimpleNamespace(type="Minus", value="-"),
            right=SimpleNamespace(type="Identifier", value="y"),
        )
        assert simple_math_stringifier.stringify_simple_math(node) == "2 - y"

    def test_nested(self, simple_math_stringifier):
        inner = {"type": "ParenExpression", "expression": _binary(NUMBER_1, PLUS, IDENT_X)}
        node = _binary(inner, {"type": "Minus", "value": "-"}, {"type": "Number", "value": "3"})
        assert simple_math_stringifier.stringify_simple_math(node, compact=True) == "(1+x)-3"

    def test_missing_property_is_skipped(self, simple_math_stringifier):
        node = {"type": "BinaryExpression", "left": NUMBER_1, "operator": PLUS}
        assert simple_math_stringifier.stringify_simple_math(node, compact=True) == "1+"

    def test_union_function_dispatches(self, simple_math_stringifier):
        opts = simple_math_stringifier.StringifierOptions()
        assert simple_math_stringifier.stringify_term(IDENT_X, opts) == "x"
        assert simple_math_stringifier.stringify_expression(_binary(NUMBER_1, PLUS, IDENT_X), opts) == "1 + x"

    def test_overrides_do_not_mutate_options(self, simple_math_stringifier):
        opts = simple_math_stringifier.StringifierOptions()
        simple_math_stringifier.stringify_simple_math(NUMBER_1, opts, compact=True)
        assert opts.compact is False

    def test_space_around_without_default_formatting(self, simple_math, load_module):
        code = generate_stringifier(simple_math, StringifierConfig(include_formatting=False)).code
        mod = load_module(code)
        node = {"type": "ParenExpression", "expression": _binary(NUMBER_1, PLUS, IDENT_X)}
        assert mod.stringify_simple_math(node) == "(1+x)"
        assert mod.stringify_simple_math(node, format=True, space_around=("(",)) == " ( 1+x)"

    def test_bound_token_is_verbatim(self, simple_math_stringifier):
        node = _binary(NUMBER_1, PLUS, {"type": "Number", "value": "2"})
        assert simple_math_stringifier.stringify_simple_math(node, space_around=("+",)) == "1 + 2"
        assert simple_math_stringifier.stringify_simple_math(PLUS, newline_after=("+",)) == "+"

    def test_anonymous_literal_is_formatted(self, simple_math_stringifier):
        node = {"type": "ParenExpression", "expression": NUMBER_1}
        assert simple_math_stringifier.stringify_simple_math(node, newline_after=("(",)) == "(\n 1 )"

    def test_generated_schema_nodes(self, simple_math, simple_math_stringifier, load_package):
        pkg = load_package(generate_schema(simple_math).files, "simple_math_roundtrip")
        node = pkg.BinaryExpressionNode(
            left=pkg.NumberToken(value="4"),
            operator=pkg.PlusToken(value="+"),
            right=pkg.IdentifierToken(value="z"),
        )
        assert simple_math_stringifier.stringify_simple_math(node) == "4 + z"

    def test_custom_discriminant(self, simple_math, load_package, load_module):
        pkg = load_package(
            generate_schema(simple_math, SchemaConfig(discriminant_field="kind")).files, "simple_math_kind"
        )
        result = generate_stringifier(simple_math, StringifierConfig(discriminant_field="kind"))
        assert result.ok, result.errors
        mod = load_module(result.code)
        node = pkg.BinaryExpressionNode(
            left=pkg.NumberToken(value="4"),
            operator=pkg.PlusToken(value="+"),
            right=pkg.IdentifierToken(value="z"),
        )
        assert mod.stringify_simple_math(node) == "4 + z"
        with pytest.raises(ValueError, match="Invalid node: must have a kind property"):
            mod.stringify_simple_math(NUMBER_1)


class TestHelpers:
    def test_indentation(self, simple_math_stringifier):
        opts = simple_math_stringifier.StringifierOptions(indent=2)
        assert simple_math_stringifier.get_indentation(opts) == "    "

    def test_custom_indent_style(self, simple_math, load_module):
        mod = load_module(generate_stringifier(simple_math, StringifierConfig(indent_style="\t")).code)
        assert mod.get_indentation(mod.StringifierOptions(indent=1)) == "\t"

    def test_add_whitespace(self, simple_math_stringifier):
        opts = simple_math_stringifier.StringifierOptions(indent=1)
        parts = []
        simple_math_stringifier.add_whitespace(parts, opts)
        simple_math_stringifier.add_whitespace(parts, opts, "newline")
        assert parts == [" ", "\n  "]

    def test_add_whitespace_compact(self, simple_math_stringifier):
        parts = []
        simple_math_stringifier.add_whitespace(parts, simple_math_stringifier.StringifierOptions(compact=True))
        assert parts == []

    def test_format_token(self, simple_math_stringifier):
        opts = simple_math_stringifier.StringifierOptions(space_around=("=",), newline_after=(";",))
        assert simple_math_stringifier.format_token("=", opts) == " = "
        assert simple_math_stringifier.format_token(";", opts) == ";\n"
        assert simple_math_stringifier.format_token("x", opts) == "x"


class TestRuntimeErrors:
    @pytest.mark.parametrize("node", [None, {}, {"value": "1"}, {"type": ""}])
    def test_missing_type(self, simple_math_stringifier, node):
        with pytest.raises(ValueError, match="Invalid node: must have a type property"):
            simple_math_stringifier.stringify_simple_math(node)

    def test_unknown_type(self, simple_math_stringifier):
        with pytest.raises(ValueError, match="Unknown node type: Nope"):
            simple_math_stringifier.stringify_simple_math({"type": "Nope"})

    def test_union_kind_is_not_a_node_type(self, simple_math_stringifier):
        with pytest.raises(ValueError, match="Unknown node type: Expression"):
            simple_math_stringifier.stringify_simple_math({"type": "Expression"})


class TestGenerationErrors:
    def test_dispatcher_collision(self):
        model = validated({
            "name": "Coll",
            "version": "1.0.0",
            "start": "Node",
            "nodes": {"Node": {"type": "token", "description": "x", "pattern": "n"}},
        })
        result = generate_stringifier(model)
        assert result.ok is False
        assert result.code is None
        assert result.errors == ['Node "Node" function name "stringify_node" collides with the dispatcher']

    def test_entry_point_collision(self):
        model = validated({
            "name": "Calc",
            "version": "1.0.0",
            "start": "Calc",
            "nodes": {"Calc": {"type": "token", "description": "x", "pattern": "c"}},
        })
        result = generate_stringifier(model)
        assert result.ok is False
        assert result.errors == ['Node "Calc" function name "stringify_calc" collides with the entry point']

    def test_invalid_prefix(self, simple_math):
        result = generate_stringifier(simple_math, StringifierConfig(function_prefix="2bad"))
        assert result.ok is False
        assert result.errors == ['Function prefix "2bad" is not a valid Python identifier']

    def test_empty_discriminant(self, simple_math):
        result = generate_stringifier(simple_math, StringifierConfig(discriminant_field=""))
        assert result.ok is False
        assert result.errors == ["Discriminant field must be a non-empty string"]

    def test_keyword_property_is_fine(self, load_module):
        model = validated({
            "name": "Kw",
            "version": "1.0.0",
            "start": "Start",
            "nodes": {
                "A": {"type": "token", "description": "a", "pattern": "a"},
                "Start": {"type": "deduction", "description": "x", "sequence": [{"node": "A", "prop": "class"}]},
            },
        })
        result = generate_stringifier(model)
        assert result.ok is True, result.errors
        mod = load_module(result.code)
        assert mod.stringify_kw({"type": "Start", "class": {"type": "A", "value": "a"}}) == "a"

    def test_union_without_concrete_members_warns(self):
        model = validated({
            "name": "Loop",
            "version": "1.0.0",
            "start": "A",
            "nodes": {
                "A": {"type": "union", "description": "a", "members": ["B"]},
                "B": {"type": "union", "description": "b", "members": ["A"]},
            },
        })
        result = generate_stringifier(model)
        assert result.ok is True
        assert result.warnings == [
            'Union node "A" has no token or deduction members; stringify_a always raises',
            'Union node "B" has no token or deduction members; stringify_b always raises',
        ]
