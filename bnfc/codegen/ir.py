# bnfc/codegen/ir.py
"""
bnfc 코드 생성용 IR
=======

이 모듈은 검증된 Model을 받아, 파이썬 방출기(스키마/스트링파이어)가
소비하기 쉬운 **중간표현(IR)** 으로 변환한다.

설계 포인트
-----------
- 노드마다 생성될 이름(타입 이름, snake 이름, 상수 이름, 숫자 kind)을 미리 정해 둔다.
- 유니온은 중첩 유니온을 펼쳐 **구체 kind(token/deduction) 집합**으로도 담는다.
- 이름 충돌/예약어 문제는 방출 전에 전부 모아서 GenerationError로 던진다.

주의
----
- 노드 순서는 항상 Model의 선언 순서를 따른다(출력 결정성).
- 유니온 타입은 노드 이름을 그대로 쓰고, token/deduction만 접미사를 붙인다.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional
import logging

from ..grammar.ast import Model, Node, TokenNode, DeductionNode, UnionNode
from .naming import snake_case, upper_snake, pascal_case, is_identifier

logger = logging.getLogger(__name__)

# 생성 모듈이 typing/dataclasses에서 가져오는 이름
RESERVED_TYPE_NAMES = frozenset({
    "Any", "Dict", "FrozenSet", "Literal", "Mapping", "Optional", "Union",
    "TYPE_CHECKING", "dataclass", "field",
})


class GenerationError(ValueError):
    """생성 전제 조건 실패. errors에 전체 목록을 담는다."""

    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = list(errors)


@dataclass
class FieldIR:
    """deduction의 바인딩 원소 1개 → 생성 클래스의 필드 1개"""
    prop: str             # 필드 이름
    target: str           # 참조 노드 이름
    type_name: str        # 참조 노드의 생성 타입 이름
    index: int            # sequence 인덱스


@dataclass
class NodeIR:
    """
    NodeIR
    ======
    name      : 모델상의 노드 이름(= 생성 객체의 discriminant 값)
    kind      : 'token' | 'deduction' | 'union'
    snake     : 모듈/함수 이름 (binary_expression)
    type_name : 생성 타입 이름 (PlusToken, BinaryExpressionNode, Expression)
    const_name: 이름 상수 (PLUS_TOKEN, BINARY_EXPRESSION_NODE)
    kind_id   : NODE_KINDS 숫자 값
    fields    : deduction의 바인딩 필드(선언 순서)
    concrete  : union이 받아들이는 구체 kind 이름들(선언 순서, 중복 없음)
    """
    name: str
    kind: str
    node: Node
    snake: str
    type_name: str
    const_name: str
    kind_id: int
    fields: List[FieldIR] = field(default_factory=list)
    concrete: List[str] = field(default_factory=list)


@dataclass
class CodegenIR:
    model: Model
    type_prefix: str                 # SimpleMath
    snake_model: str                 # simple_math
    nodes: Dict[str, NodeIR]         # 선언 순서

    def of_kind(self, kind: str) -> List[NodeIR]:
        return [n for n in self.nodes.values() if n.kind == kind]

    @property
    def concrete_nodes(self) -> List[NodeIR]:
        return [n for n in self.nodes.values() if n.kind != "union"]

    @property
    def root(self) -> NodeIR:
        return self.nodes[self.model.start]


def _preflight_check(model: Model) -> List[str]:
    """기본 전제 조건(비어 있지 않은 nodes, 정의된 start)."""
    errors: List[str] = []
    if not model.nodes:
        errors.append("Model must have at least one node")
    if model.start not in model.nodes:
        errors.append(f'Start node "{model.start}" must exist in nodes')
    return errors


def _flatten_union(model: Model, name: str) -> List[str]:
    """유니온 → 구체 kind 이름들. 중첩 유니온은 펼치고, 순환은 한 번만 방문한다."""
    out: List[str] = []
    seen = {name}
    stack = list(reversed(model.nodes[name].members))
    while stack:
        m = stack.pop()
        if m in seen:
            continue
        seen.add(m)
        node = model.nodes[m]
        if isinstance(node, UnionNode):
            stack.extend(reversed(node.members))
        else:
            out.append(m)
    return out


def _type_name(name: str, node: Node, token_suffix: str, node_suffix: str) -> str:
    if isinstance(node, TokenNode):
        return name + token_suffix
    if isinstance(node, DeductionNode):
        return name + node_suffix
    if isinstance(node, UnionNode):
        return name
    raise TypeError(f"unknown node: {node!r}")


def _resolve_kinds(model: Model, kinds: Optional[Mapping[str, int]], errors: List[str]) -> Dict[str, int]:
    if kinds is None:
        return {name: i for i, name in enumerate(model.nodes, start=1)}
    out: Dict[str, int] = {}
    owner: Dict[int, str] = {}
    for name in model.nodes:
        v = kinds.get(name)
        if not isinstance(v, int) or isinstance(v, bool):
            errors.append(f'No numeric kind given for node "{name}"')
            continue
        if v in owner:
            errors.append(f'Nodes "{owner[v]}" and "{name}" share numeric kind {v}')
            continue
        owner[v] = name
        out[name] = v
    return out


def build_ir(model: Model, *,
             token_suffix: str = "Token",
             node_suffix: str = "Node",
             discriminant: str = "type",
             kinds: Optional[Mapping[str, int]] = None,
             check_types: bool = True) -> CodegenIR:
    """
    build_ir(model, ...) -> CodegenIR
    ---------------------------------
    이름 규칙과 충돌 검사를 한 번에 적용한다. 문제가 하나라도 있으면
    모든 오류를 모아 GenerationError를 던진다.

    검사 항목
    --------
    - 노드 이름: 파이썬 식별자
    - snake 이름: 예약어 불가, 노드 간 중복 불가(모듈/함수 이름 충돌)
    - 생성 타입 이름: 식별자, 중복 불가(모델 별칭 <Model>Token/Node/Root 포함)
    - 바인딩 prop: 예약어 불가, discriminant 필드와 같을 수 없음
    - kinds(선택): 모든 노드에 정수, 중복 불가
    check_types=False면 생성 타입 이름과 prop 예약어 검사를 건너뛴다
    (타입을 만들지 않고 prop을 문자열 키로만 읽는 방출기용).
    """
    errors = _preflight_check(model)
    if errors:
        raise GenerationError(errors)

    type_prefix = pascal_case(model.name)
    if not is_identifier(type_prefix):
        errors.append(f'Model name "{model.name}" cannot form a Python identifier')
    snake_model = snake_case(type_prefix)

    if not is_identifier(discriminant):
        errors.append(f'Discriminant field "{discriminant}" is not a valid Python identifier')

    kind_ids = _resolve_kinds(model, kinds, errors)

    # 모델 별칭과 생성 모듈이 import하는 이름도 충돌 대상에 넣는다
    type_owner: Dict[str, str] = {n: "a name imported by generated code" for n in RESERVED_TYPE_NAMES}
    type_owner.update({
        f"{type_prefix}Token": "the model token alias",
        f"{type_prefix}Node": "the model node alias",
        f"{type_prefix}Root": "the model root alias",
    })
    snake_owner: Dict[str, str] = {}
    nodes: Dict[str, NodeIR] = {}

    for name, node in model.nodes.items():
        if not is_identifier(name):
            errors.append(f'Node name "{name}" is not a valid Python identifier')
            continue

        snake = snake_case(name)
        if not is_identifier(snake):
            errors.append(f'Node "{name}" maps to reserved name "{snake}"')
        elif snake in snake_owner:
            errors.append(f'Nodes "{snake_owner[snake]}" and "{name}" both map to module/function name "{snake}"')
        else:
            snake_owner[snake] = name

        type_name = _type_name(name, node, token_suffix, node_suffix)
        if check_types:
            if not is_identifier(type_name):
                errors.append(f'Node "{name}" maps to invalid type name "{type_name}"')
            elif type_name in type_owner:
                errors.append(f'Node "{name}" type name "{type_name}" collides with {type_owner[type_name]}')
            else:
                type_owner[type_name] = f'node "{name}"'

        suffix = {"token": "TOKEN", "deduction": "NODE", "union": "UNION"}[node.type]
        nodes[name] = NodeIR(
            name=name,
            kind=node.type,
            node=node,
            snake=snake,
            type_name=type_name,
            const_name=f"{upper_snake(name)}_{suffix}",
            kind_id=kind_ids.get(name, 0),
        )

    # 필드/유니온 멤버는 모든 타입 이름이 정해진 뒤에 채운다
    for name, nir in nodes.items():
        node = nir.node
        if isinstance(node, DeductionNode):
            for i, el in enumerate(node.sequence):
                if isinstance(el, str):
                    continue
                if check_types and not is_identifier(el.prop):
                    errors.append(f'Deduction node "{name}" sequence[{i}]: property "{el.prop}" is a Python keyword')
                elif el.prop == discriminant:
                    errors.append(
                        f'Deduction node "{name}" sequence[{i}]: property "{el.prop}" '
                        f'collides with the discriminant field'
                    )
                target = nodes.get(el.node)
                nir.fields.append(FieldIR(
                    prop=el.prop,
                    target=el.node,
                    type_name=target.type_name if target else el.node,
                    index=i,
                ))
        elif isinstance(node, UnionNode):
            nir.concrete = _flatten_union(model, name)

    if errors:
        raise GenerationError(errors)

    logger.debug("codegen IR for %s: %d node(s)", model.name, len(nodes))
    return CodegenIR(model=model, type_prefix=type_prefix, snake_model=snake_model, nodes=nodes)
