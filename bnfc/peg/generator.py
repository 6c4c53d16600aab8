# bnfc/peg/generator.py
"""Model IR → PEG.js/Peggy 문법 생성기.

생성 결과 레이아웃
-----------------
    // Generated PEG.js grammar for <name>
    // Version: <version>

    start = <start rule>

    _ "whitespace" = [ \\t\\n\\r]*             (include_whitespace)
    __ "required whitespace" = [ \\t\\n\\r]+

    <Rule> "<description>" = <expr>          (의존성 우선 순서, start 트리가 맨 앞)

노드 종류별 규칙
- token    : 문자열 패턴 → 리터럴, 정규식 → regex_lower로 PEG 식
- deduction: prop:Rule / Rule 시퀀스, 공백 규칙 `_`로 연결
- union    : 순서 있는 선택 A / B / C

좌재귀는 탐지해서 경고/통계로만 보고하고 문법은 그대로 방출한다.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional
import logging

import regex as re

from ..grammar.ast import Model, Node, TokenNode, DeductionNode, UnionNode, PropertyElement
from ..analysis.deps import rule_order, find_left_recursion, LeftRecursionInfo
from .ast import Ref, Labeled, Seq, Choice, Action, Comment, RuleDef, PegGrammar, NEVER, Literal
from .ast import Node as PegNode
from .emit import emit_grammar
from .regex_lower import lower_regex, RegexLoweringError

logger = logging.getLogger(__name__)

# 이보다 긴 정규식은 경고만 남긴다
LONG_REGEX_THRESHOLD = 200

WS_RULE = "_"
REQUIRED_WS_RULE = "__"


class PegGenerationError(ValueError):
    """생성 불가. errors에 전체 목록을 담는다."""

    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = list(errors)


@dataclass
class PegOptions:
    start_rule: Optional[str] = None            # None이면 model.start
    include_whitespace: bool = True
    whitespace_pattern: str = "[ \\t\\n\\r]*"
    include_location: bool = True               # 액션 객체에 location() 포함
    include_debug_info: bool = False            # 규칙 위 // 주석
    include_actions: bool = True                # { return {...} } 액션 블록


@dataclass
class PegStats:
    total_rules: int = 0
    token_rules: int = 0
    deduction_rules: int = 0
    union_rules: int = 0
    left_recursive_rules: List[str] = field(default_factory=list)


@dataclass
class PegResult:
    grammar: str
    stats: PegStats
    warnings: List[str] = field(default_factory=list)


# ---------- 이름 검사 ----------

_JS_IDENT = re.compile(r"^[\p{ID_Start}_$][\p{ID_Continue}$\u200c\u200d]*$")

# 규칙 이름/라벨로 쓸 수 없는 JS 예약어
JS_RESERVED = frozenset("""
    arguments await break case catch class const continue debugger default delete do
    else enum eval export extends false finally for function if implements import in
    instanceof interface let new null package private protected public return static
    super switch this throw true try typeof var void while with yield
""".split())

# 액션 안에서 보이는 PEG.js 헬퍼
ACTION_HELPERS = frozenset({"text", "location", "offset", "range", "error", "expected", "options", "input"})

_GENERATED_RULES = ("start", WS_RULE, REQUIRED_WS_RULE)


def label_for(prop: str) -> str:
    """prop → PEG.js 라벨. 예약어/헬퍼 이름이면 뒤에 '_'를 붙인다(prop은 밑줄을 쓰지 않음)."""
    if prop in JS_RESERVED or prop in ACTION_HELPERS:
        return prop + "_"
    return prop


def _preflight_check(model: Model, start: str, opts: PegOptions) -> None:
    if not model.nodes:
        raise PegGenerationError([f'Model "{model.name}" has no nodes'])
    if model.start not in model.nodes:
        raise PegGenerationError([f'Start node "{model.start}" is not defined in nodes'])
    if start not in model.nodes:
        raise PegGenerationError([f'Start rule "{start}" not found in model'])

    errors: List[str] = []
    for name, node in model.nodes.items():
        if name in _GENERATED_RULES:
            errors.append(f'Rule name "{name}" collides with the generated "{name}" rule')
        elif not _JS_IDENT.match(name):
            errors.append(f'Rule name "{name}" is not a valid PEG.js identifier')
        elif name in JS_RESERVED:
            errors.append(f'Rule name "{name}" is a reserved word')
        if not isinstance(node, DeductionNode):
            continue
        for i, el in enumerate(node.sequence):
            if not isinstance(el, PropertyElement):
                continue
            if el.prop == "type":
                errors.append(f'Deduction node "{name}" sequence[{i}]: property "type" collides with the node type field')
            elif el.prop == "location" and opts.include_actions and opts.include_location:
                errors.append(
                    f'Deduction node "{name}" sequence[{i}]: property "location" collides with '
                    f'the location field; set include_location=False'
                )
    if errors:
        raise PegGenerationError(errors)


def _comment_line(text: str) -> str:
    """// 주석 한 줄에 들어갈 수 있도록 줄바꿈 문자를 이스케이프한다."""
    for ch, esc in (("\r", "\\r"), ("\n", "\\n"), ("\u2028", "\\u2028"), ("\u2029", "\\u2029")):
        text = text.replace(ch, esc)
    return text


class _RuleBuilder:
    """노드 1개 → RuleDef. 정규식 변환 경고는 warnings에 쌓는다."""

    def __init__(self, opts: PegOptions, recursion: LeftRecursionInfo):
        self.opts = opts
        self.recursion = recursion
        self.warnings: List[str] = []

    # --- 액션 ---

    def _action(self, expr: PegNode, fields: List[str]) -> PegNode:
        if not self.opts.include_actions:
            return expr
        if self.opts.include_location:
            fields = fields + ["location: location()"]
        return Action(expr, f"return {{ {', '.join(fields)} }};")

    # --- 종류별 식 ---

    def _token_expr(self, name: str, node: TokenNode) -> PegNode:
        pat = node.pattern
        if isinstance(pat, str):
            return Literal(pat)
        if len(pat.regex) > LONG_REGEX_THRESHOLD:
            self.warnings.append(
                f'Token "{name}" has a very long regex pattern ({len(pat.regex)} characters)'
            )
        try:
            return lower_regex(pat.regex, pat.flags)
        except RegexLoweringError as e:
            self.warnings.append(
                f'Token "{name}" regex /{pat.regex}/{pat.flags} cannot be expressed in PEG ({e}); '
                f'the rule will never match'
            )
            logger.debug("regex lowering failed for %s: %s", name, e)
            return Comment(f"regex /{pat.regex}/{pat.flags}", NEVER)

    def _deduction_expr(self, node: DeductionNode) -> PegNode:
        items: List[PegNode] = []
        for i, el in enumerate(node.sequence):
            if i > 0 and self.opts.include_whitespace:
                items.append(Ref(WS_RULE))
            if isinstance(el, PropertyElement):
                items.append(Labeled(label_for(el.prop), Ref(el.node)))
            else:
                items.append(Ref(el))
        return Seq(items)

    def _union_expr(self, node: UnionNode) -> PegNode:
        return Choice([Ref(m) for m in node.members])

    # --- 디버그 주석 ---

    def _debug_comments(self, name: str, node: Node) -> List[str]:
        out = [f"{name}: {node.type}"]
        if isinstance(node, TokenNode):
            pat = node.pattern
            out.append(f"pattern: {pat!r}" if isinstance(pat, str) else f"pattern: /{pat.regex}/{pat.flags}")
        elif isinstance(node, DeductionNode):
            if node.precedence is not None:
                out.append(f"precedence: {node.precedence}")
            if node.associativity is not None:
                out.append(f"associativity: {node.associativity}")
        if name in self.recursion.cycles:
            out.append("WARNING: left-recursive (" + " -> ".join(self.recursion.cycles[name]) + ")")
        return [_comment_line(c) for c in out]

    def build(self, name: str, node: Node) -> RuleDef:
        if isinstance(node, TokenNode):
            expr = self._action(self._token_expr(name, node), [f'type: "{name}"', "value: text()"])
        elif isinstance(node, DeductionNode):
            props = [f"{p.prop}: {label_for(p.prop)}" for p in node.properties()]
            expr = self._action(self._deduction_expr(node), [f'type: "{name}"'] + props)
        elif isinstance(node, UnionNode):
            # 선택지 규칙이 이미 노드 객체를 돌려주므로 액션이 없다
            expr = self._union_expr(node)
        else:
            raise TypeError(f"unknown node: {node!r}")
        comments = self._debug_comments(name, node) if self.opts.include_debug_info else []
        return RuleDef(name=name, expr=expr, display_name=node.description, comments=comments)


def _whitespace_rules(opts: PegOptions) -> List[str]:
    pat = opts.whitespace_pattern
    return [
        f'{WS_RULE} "whitespace" = {pat}',
        f'{REQUIRED_WS_RULE} "required whitespace" = {pat.replace("*", "+", 1)}',
    ]


def _stats(model: Model, recursion: LeftRecursionInfo) -> PegStats:
    counts = model.count_by_kind()
    return PegStats(
        total_rules=len(model.nodes),
        token_rules=counts["token"],
        deduction_rules=counts["deduction"],
        union_rules=counts["union"],
        left_recursive_rules=list(recursion.rules),
    )


def generate_peg_grammar(model: Model, options: Optional[PegOptions] = None) -> PegResult:
    """
    generate_peg_grammar(model[, options]) -> PegResult
    ---------------------------------------------------
    - 실패(빈 모델, 정의되지 않은 start/start_rule, PEG.js에서 쓸 수 없는 규칙 이름,
      type/location 필드와 겹치는 prop)는 PegGenerationError. errors에 전체 목록
    - 예약어/액션 헬퍼와 같은 prop은 라벨만 바꾸고(class → class_) 객체 키는 그대로 둔다
    - 좌재귀, 변환 불가능한 정규식은 warnings로 보고
    """
    opts = options or PegOptions()
    start = opts.start_rule or model.start
    _preflight_check(model, start, opts)

    recursion = find_left_recursion(model)
    warnings: List[str] = []
    if recursion.has_left_recursion:
        warnings.append(f"Left recursion detected in rules: {', '.join(recursion.rules)}")
        for name in recursion.rules:
            warnings.append(f"Cycle path: {' -> '.join(recursion.cycles[name])}")

    builder = _RuleBuilder(opts, recursion)
    rules = {}
    for name in rule_order(model, start):
        rules[name] = builder.build(name, model.nodes[name])
    warnings.extend(builder.warnings)

    g = PegGrammar(
        rules=rules,
        start=start,
        header=[_comment_line(f"Generated PEG.js grammar for {model.name}"),
                _comment_line(f"Version: {model.version}")],
    )
    preamble = _whitespace_rules(opts) if opts.include_whitespace else []
    grammar = emit_grammar(g, preamble)

    stats = _stats(model, recursion)
    logger.info("generated PEG grammar for %s: %d rule(s), %d left-recursive, %d warning(s)",
                model.name, stats.total_rules, len(stats.left_recursive_rules), len(warnings))
    return PegResult(grammar=grammar, stats=stats, warnings=warnings)
