# bnfc/grammar/ast.py
"""BNF Model IR
- TokenNode    : 단말. 문자열 리터럴 또는 정규식 패턴
- DeductionNode: 시퀀스(생산 규칙). 원소는 익명 토큰 참조(str) 또는 PropertyElement
- UnionNode    : 순서 있는 대안 목록
- Model        : 검증이 끝난 불변 모델. validate()만 생성한다.
"""

from __future__     import annotations
from dataclasses    import dataclass, field
from types          import MappingProxyType
from typing         import Any, ClassVar, Dict, List, Mapping, Optional, Tuple, Union

ASSOCIATIVITIES = ("left", "right", "non-associative")


@dataclass(frozen=True)
class RegexPattern:
    regex: str          # 원본 정규식 문자열
    flags: str = ""     # 플래그 문자(i, m, s, u, ...)


TokenPattern = Union[str, RegexPattern]


@dataclass(frozen=True)
class PropertyElement:
    """이름이 붙은 참조: {node: ..., prop: ...}"""
    node: str
    prop: str


# 익명 참조는 노드 이름(str) 그대로 둔다.
DeductionElement = Union[str, PropertyElement]


@dataclass(frozen=True)
class TokenNode:
    type: ClassVar[str] = "token"

    description: str
    pattern: TokenPattern
    metadata: Optional[Mapping[str, Any]] = None

    @property
    def is_literal(self) -> bool:
        return isinstance(self.pattern, str)


@dataclass(frozen=True)
class DeductionNode:
    """
    시퀀스 규칙 1개.
    - sequence     : 비어 있지 않은 원소 튜플
    - precedence   : 음이 아닌 정수(없으면 None)
    - associativity: 'left' | 'right' | 'non-associative' (없으면 None)
    precedence/associativity는 메타데이터로만 전파되고 여기서 강제하지 않는다.
    """
    type: ClassVar[str] = "deduction"

    description: str
    sequence: Tuple[DeductionElement, ...]
    precedence: Optional[int] = None
    associativity: Optional[str] = None
    metadata: Optional[Mapping[str, Any]] = None

    def properties(self) -> List[PropertyElement]:
        return [el for el in self.sequence if isinstance(el, PropertyElement)]


@dataclass(frozen=True)
class UnionNode:
    type: ClassVar[str] = "union"

    description: str
    members: Tuple[str, ...]
    metadata: Optional[Mapping[str, Any]] = None


Node = Union[TokenNode, DeductionNode, UnionNode]
NODE_KINDS = ("token", "deduction", "union")


def element_target(el: DeductionElement) -> str:
    """시퀀스 원소가 가리키는 노드 이름."""
    if isinstance(el, str):
        return el
    if isinstance(el, PropertyElement):
        return el.node
    raise TypeError(f"unknown deduction element: {el!r}")


@dataclass(frozen=True)
class Model:
    name: str
    version: str
    start: str
    nodes: Mapping[str, Node] = field(default_factory=dict)
    metadata: Optional[Mapping[str, Any]] = None

    def __post_init__(self) -> None:
        # 외부에서 넘긴 dict를 복사해 읽기 전용 뷰로 고정
        if not isinstance(self.nodes, MappingProxyType):
            object.__setattr__(self, "nodes", MappingProxyType(dict(self.nodes)))

    def nodes_of(self, kind: str) -> List[Tuple[str, Node]]:
        """선언 순서를 유지한 채 kind('token'|'deduction'|'union')로 거른다."""
        return [(name, node) for name, node in self.nodes.items() if node.type == kind]

    def count_by_kind(self) -> Dict[str, int]:
        out = {k: 0 for k in NODE_KINDS}
        for node in self.nodes.values():
            out[node.type] += 1
        return out
