# bnfc/peg/emit.py
"""PEG AST → PEG.js/Peggy 문법 텍스트.

우선순위(낮음 → 높음)
--------------------
  0 choice    a / b
  1 action    a b { code }
  2 sequence  a b
  3 labeled   label:a
  4 prefixed  &a  !a
  5 suffixed  a?  a*  a+
  6 primary   "lit"  [cls]  .  Ref  ( ... )

하위 식이 요구 레벨보다 낮으면 괄호로 감싼다. 따옴표/이스케이프 처리는 이 모듈에만 있다.
"""

from __future__ import annotations
from typing import List, Sequence, Tuple
from .ast import (
    Literal, CharClass, Any, Ref, Labeled, And, Not, Repeat, Seq, Choice,
    Action, Comment, RuleDef, PegGrammar, Node,
)

_CHOICE, _ACTION, _SEQ, _LABELED, _PREFIX, _SUFFIX, _PRIMARY = range(7)

_SIMPLE_ESCAPES = {
    "\\": "\\\\",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\0": "\\0",
    "\b": "\\b",
    "\f": "\\f",
    "\v": "\\v",
}

# ---------- 유틸 ----------

def _escape_char(ch: str, specials: str) -> str:
    if ch in _SIMPLE_ESCAPES:
        return _SIMPLE_ESCAPES[ch]
    if ch in specials:
        return "\\" + ch
    cp = ord(ch)
    if cp < 0x20 or cp == 0x7F:
        return f"\\x{cp:02X}"
    # ASCII 밖은 \uXXXX. U+2028/2029는 PEG.js 줄바꿈 문자
    if cp > 0xFFFF:
        cp -= 0x10000
        return f"\\u{0xD800 + (cp >> 10):04X}\\u{0xDC00 + (cp & 0x3FF):04X}"
    if cp > 0x7E:
        return f"\\u{cp:04X}"
    return ch

def quote_string(text: str) -> str:
    """PEG.js 큰따옴표 문자열 리터럴."""
    return '"' + "".join(_escape_char(c, '"') for c in text) + '"'

def _class_body(cc: CharClass) -> str:
    out: List[str] = []
    for lo, hi in cc.ranges:
        a = _escape_char(chr(lo), "]^-")
        if lo == hi:
            out.append(a)
        else:
            out.append(f"{a}-{_escape_char(chr(hi), ']^-')}")
    for s in cc.singles:
        out.append(_escape_char(s, "]^-"))
    return "".join(out)

def _comment_text(text: str) -> str:
    return text.replace("*/", "*\\/")

# ---------- 식 방출 ----------

def _render(node: Node) -> Tuple[str, int]:
    if isinstance(node, Literal):
        return quote_string(node.text) + ("i" if node.ignore_case else ""), _PRIMARY

    if isinstance(node, CharClass):
        neg = "^" if node.negated else ""
        return f"[{neg}{_class_body(node)}]" + ("i" if node.ignore_case else ""), _PRIMARY

    if isinstance(node, Any):
        return ".", _PRIMARY

    if isinstance(node, Ref):
        return node.name, _PRIMARY

    if isinstance(node, Labeled):
        return f"{node.label}:{render_expr(node.node, _PREFIX)}", _LABELED

    if isinstance(node, And):
        return "&" + render_expr(node.node, _SUFFIX), _PREFIX

    if isinstance(node, Not):
        return "!" + render_expr(node.node, _SUFFIX), _PREFIX

    if isinstance(node, Repeat):
        if node.kind not in ("?", "*", "+"):
            raise AssertionError(f"unknown repeat kind {node.kind!r}")
        return render_expr(node.node, _PRIMARY) + node.kind, _SUFFIX

    if isinstance(node, Seq):
        if not node.items:
            return '""', _PRIMARY  # epsilon
        if len(node.items) == 1:
            return _render(node.items[0])
        return " ".join(render_expr(it, _LABELED) for it in node.items), _SEQ

    if isinstance(node, Choice):
        if len(node.alts) == 1:
            return _render(node.alts[0])
        return " / ".join(render_expr(it, _ACTION) for it in node.alts), _CHOICE

    if isinstance(node, Action):
        return f"{render_expr(node.node, _SEQ)} {{ {node.code} }}", _ACTION

    if isinstance(node, Comment):
        text, level = _render(node.node)
        return f"/* {_comment_text(node.text)} */ {text}", level

    raise AssertionError(f"unknown node: {node!r}")


def render_expr(node: Node, min_level: int = _CHOICE) -> str:
    text, level = _render(node)
    if level < min_level:
        return f"({text})"
    return text


def render_rule(rule: RuleDef) -> str:
    lines = [f"// {c}" for c in rule.comments]
    display = f" {quote_string(rule.display_name)}" if rule.display_name else ""
    lines.append(f"{rule.name}{display} = {render_expr(rule.expr)}")
    return "\n".join(lines)


def emit_grammar(g: PegGrammar, preamble: Sequence[str] = ()) -> str:
    """
    emit_grammar(g[, preamble]) -> str
    ----------------------------------
    - header  : `// ...` 주석 줄
    - start   : `start = <g.start>`
    - preamble: 공용 규칙 줄(공백 규칙 등), 그대로 삽입
    - rules   : g.rules의 삽입 순서대로
    """
    g.require_rule(g.start)
    parts: List[str] = [f"// {h}" for h in g.header]
    if parts:
        parts.append("")
    parts.append(f"start = {g.start}")
    parts.append("")
    if preamble:
        parts.extend(preamble)
        parts.append("")
    parts.extend(render_rule(r) for r in g.rules.values())
    return "\n".join(parts)
