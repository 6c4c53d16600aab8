# bnfc/analysis/deps.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set
from ..grammar.ast import Model, Node, TokenNode, DeductionNode, UnionNode, element_target


@dataclass
class DependencyInfo:
    """
    DependencyInfo
    ==============
    Model IR에 대한 의존성 분석 결과를 담는 단순 컨테이너입니다.

    - dependencies: 각 노드 이름 → 직접 참조하는 노드 이름 리스트(첫 등장 순서, 중복 제거)
      * TokenNode     : []
      * DeductionNode : sequence 원소들의 대상 노드
      * UnionNode     : members
    - reachable: start에서 DFS로 방문한 노드 이름들(방문 순서)
    - orphans: 도달 불가능한 노드 이름들(**선언 순서**)
    """
    dependencies: Dict[str, List[str]]
    reachable: List[str]
    orphans: List[str]


@dataclass
class LeftRecursionInfo:
    """
    - rules : 좌재귀로 판정된 DeductionNode 이름(선언 순서)
    - cycles: 규칙 이름 → 자기 자신으로 돌아오는 first-원소 경로 (예: [A, B, A])
    """
    rules: List[str] = field(default_factory=list)
    cycles: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def has_left_recursion(self) -> bool:
        return bool(self.rules)


def get_dependencies(node: Node) -> List[str]:
    if isinstance(node, TokenNode):
        return []
    if isinstance(node, DeductionNode):
        out: List[str] = []
        for el in node.sequence:
            name = element_target(el)
            if name not in out:
                out.append(name)
        return out
    if isinstance(node, UnionNode):
        return list(dict.fromkeys(node.members))
    raise TypeError(f"unknown node: {node!r}")


def first_symbols(node: Node) -> List[str]:
    """입력을 소비하기 전에 펼쳐질 수 있는 노드들(left corner).
    - Deduction: sequence[0]의 대상
    - Union    : 모든 member (어느 대안이든 맨 앞에 올 수 있음)
    - Token    : 없음
    """
    if isinstance(node, TokenNode):
        return []
    if isinstance(node, DeductionNode):
        return [element_target(node.sequence[0])] if node.sequence else []
    if isinstance(node, UnionNode):
        return list(node.members)
    raise TypeError(f"unknown node: {node!r}")


def build_dependency_graph(model: Model) -> Dict[str, List[str]]:
    return {name: get_dependencies(node) for name, node in model.nodes.items()}


def find_reachable(model: Model, start: Optional[str] = None) -> List[str]:
    """start(기본: model.start)에서 의존성을 따라 DFS. 정의되지 않은 이름은 건너뛴다."""
    root = start if start is not None else model.start
    if root not in model.nodes:
        return []
    seen: Set[str] = set()
    order: List[str] = []
    stack = [root]
    while stack:
        name = stack.pop()
        if name in seen or name not in model.nodes:
            continue
        seen.add(name)
        order.append(name)
        # 선언 순서대로 방문하도록 역순으로 push
        for dep in reversed(get_dependencies(model.nodes[name])):
            if dep not in seen:
                stack.append(dep)
    return order


def find_orphan_nodes(model: Model) -> List[str]:
    seen = set(find_reachable(model))
    return [name for name in model.nodes if name not in seen]


def analyze_dependencies(model: Model) -> DependencyInfo:
    reachable = find_reachable(model)
    seen = set(reachable)
    return DependencyInfo(
        dependencies=build_dependency_graph(model),
        reachable=reachable,
        orphans=[name for name in model.nodes if name not in seen],
    )


def _left_cycle(model: Model, origin: str) -> Optional[List[str]]:
    """origin의 first-원소 사슬을 따라가다 origin으로 돌아오면 그 경로를 반환."""
    visited: Set[str] = set()
    # (현재 노드, origin부터의 경로)
    stack = [(sym, [origin, sym]) for sym in reversed(first_symbols(model.nodes[origin]))]
    while stack:
        name, path = stack.pop()
        if name == origin:
            return path
        if name in visited or name not in model.nodes:
            continue
        visited.add(name)
        for sym in reversed(first_symbols(model.nodes[name])):
            if sym == origin or sym not in visited:
                stack.append((sym, path + [sym]))
    return None


def find_left_recursion(model: Model) -> LeftRecursionInfo:
    """
    각 DeductionNode에 대해 first-원소 사슬을 따라가며 자기 자신으로 돌아오는지 검사한다.
    사슬은 TokenNode에서 끝나고, 이미 방문한 노드는 다시 펼치지 않는다.
    (PEG는 좌재귀를 평가할 수 없으므로 보고만 하고 고치지 않는다.)
    """
    info = LeftRecursionInfo()
    for name, node in model.nodes.items():
        if not isinstance(node, DeductionNode):
            continue
        path = _left_cycle(model, name)
        if path is not None:
            info.rules.append(name)
            info.cycles[name] = path
    return info


def rule_order(model: Model, start: Optional[str] = None) -> List[str]:
    """
    규칙 방출 순서: 참조하는 규칙이 참조되는 규칙보다 먼저 오도록 한다.
    start(기본: model.start)에서 출발한 후위순회를 뒤집고, 도달 불가능한 노드는
    선언 순서대로 이어서 처리한다.
    순환이 있으면 먼저 만난 쪽이 앞선다.
    """
    visited: Set[str] = set()
    order: List[str] = []

    def _visit(root: str) -> None:
        post: List[str] = []
        # 재귀 깊이 제한을 피하려고 명시적 스택 사용
        stack = [(root, iter(get_dependencies(model.nodes[root])))]
        visited.add(root)
        while stack:
            name, deps = stack[-1]
            for dep in deps:
                if dep not in visited and dep in model.nodes:
                    visited.add(dep)
                    stack.append((dep, iter(get_dependencies(model.nodes[dep]))))
                    break
            else:
                stack.pop()
                post.append(name)
        # 역후위순회는 DFS 트리 단위로 뒤집어야 start 트리가 맨 앞에 남는다.
        order.extend(reversed(post))

    root = start if start is not None else model.start
    roots = ([root] if root in model.nodes else []) + list(model.nodes)
    for name in roots:
        if name not in visited:
            _visit(name)
    return order
