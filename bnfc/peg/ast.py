# bnfc/peg/ast.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Tuple, Dict, Optional, Union

# ---- PEG AST node definitions ----
# PEG.js/Peggy 문법 텍스트를 만들기 위한 트리. 방출은 emit.py가 담당한다.

@dataclass(frozen=True)
class Literal:
    text: str  # unescaped text
    ignore_case: bool = False

@dataclass(frozen=True)
class CharClass:
    negated: bool
    # ranges are inclusive (lo..hi). singles is a list of single codepoints (as str of length 1)
    ranges: List[Tuple[int, int]] = field(default_factory=list)
    singles: List[str] = field(default_factory=list)
    ignore_case: bool = False

@dataclass(frozen=True)
class Any:
    pass

@dataclass(frozen=True)
class Ref:
    name: str

@dataclass(frozen=True)
class Labeled:
    label: str  # prop:Rule
    node: "Node"

@dataclass(frozen=True)
class And:
    node: "Node"  # positive lookahead (&)

@dataclass(frozen=True)
class Not:
    node: "Node"  # negative lookahead (!)

@dataclass(frozen=True)
class Repeat:
    node: "Node"
    kind: str  # '?', '*', '+'

@dataclass(frozen=True)
class Seq:
    items: List["Node"]

@dataclass(frozen=True)
class Choice:
    alts: List["Node"]

@dataclass(frozen=True)
class Action:
    node: "Node"
    code: str  # { ... } 안쪽 JS 코드

@dataclass(frozen=True)
class Comment:
    """식 앞에 붙는 /* ... */ 주석 (예: 표현 불가능한 정규식 원문)"""
    text: str
    node: "Node"

Node = Union[Literal, CharClass, Any, Ref, Labeled, And, Not, Repeat, Seq, Choice, Action, Comment]

# 아무것도 매칭하지 않는 식: 빈 문자 클래스 []
NEVER = CharClass(negated=False)

@dataclass
class RuleDef:
    name: str
    expr: Node
    display_name: Optional[str] = None          # Name "display" = ...
    comments: List[str] = field(default_factory=list)  # 규칙 위 // 주석

@dataclass
class PegGrammar:
    rules: Dict[str, RuleDef]
    start: str
    header: List[str] = field(default_factory=list)

    def require_rule(self, name: str) -> RuleDef:
        try:
            return self.rules[name]
        except KeyError:
            raise SyntaxError(f"PEG: undefined rule '{name}'")
