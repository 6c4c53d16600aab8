# bnfc/grammar/validate.py
"""BNF 모델 검증기.

디코딩만 된(untyped) 입력 객체(JSON/YAML 로더 결과 등)를 받아
불변 Model IR 또는 오류 목록을 돌려준다.

처리 순서
--------
1) 최상위 형태 검사: name/version/start는 비어 있지 않은 문자열, nodes는 매핑
2) 노드별 파싱: type에 따라 token/deduction/union 파서로 분기
   - 오류 메시지는 노드 이름(및 sequence 인덱스)으로 네임스페이스를 붙인다
3) 교차 검사: start 존재, 익명(str) 참조가 문자열 패턴 TokenNode를 가리키는지
4) 오류가 하나라도 있으면 실패(부분 모델은 절대 돌려주지 않음)
5) 성공 시 start에서 도달 불가능한 노드를 경고로 보고

첫 오류에서 멈추지 않고 **모든** 오류를 모아서 반환한다(컴파일러 진단 목록 방식).
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
import logging
import regex as re

from .ast import (
    ASSOCIATIVITIES, Model, Node, TokenNode, DeductionNode, UnionNode,
    RegexPattern, PropertyElement, DeductionElement, TokenPattern,
)
from .patterns import check_regex
from ..analysis.deps import find_orphan_nodes

logger = logging.getLogger(__name__)

_PROP_RE = re.compile(r"^[a-z][a-zA-Z0-9]*$")
_WS_RE = re.compile(r"\s")


@dataclass
class ValidationResult:
    ok: bool
    model: Optional[Model] = None
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


# ---------- 타입 판정 헬퍼 ----------

def _is_mapping(v: Any) -> bool:
    return isinstance(v, Mapping)

def _is_list(v: Any) -> bool:
    return isinstance(v, (list, tuple))

def _is_text(v: Any) -> bool:
    return isinstance(v, str) and len(v) > 0

def _is_nonneg_int(v: Any) -> bool:
    # bool은 int의 하위 클래스라 따로 막는다
    return isinstance(v, int) and not isinstance(v, bool) and v >= 0

def is_valid_property_name(name: str) -> bool:
    """camelCase: 소문자로 시작, 이후 영문/숫자만(밑줄 불가)."""
    return bool(_PROP_RE.match(name))


# ---------- 노드별 파서 ----------
# 각 파서는 (node | None, errors)를 돌려준다. errors가 비어 있지 않으면 node는 None.

def _parse_token(name: str, data: Mapping[str, Any], description: str) -> Tuple[Optional[TokenNode], List[str]]:
    errors: List[str] = []
    raw = data.get("pattern")
    if raw is None or raw == "":
        if isinstance(raw, str):
            return None, [f'Token node "{name}" pattern cannot be empty string']
        return None, [f'Token node "{name}" must have a pattern']

    pattern: Optional[TokenPattern] = None
    if isinstance(raw, str):
        if _WS_RE.search(raw):
            errors.append(f'Token node "{name}" string pattern cannot contain whitespace')
        pattern = raw
    elif _is_mapping(raw) and _is_text(raw.get("regex")):
        flags = raw.get("flags", "")
        if flags is None:
            flags = ""
        if not isinstance(flags, str):
            errors.append(f'Token node "{name}" regex flags must be a string')
        else:
            ok, msg = check_regex(raw["regex"], flags)
            if not ok:
                errors.append(f'Token node "{name}" has invalid regex pattern: {msg}')
            pattern = RegexPattern(regex=raw["regex"], flags=flags)
    else:
        errors.append(f'Token node "{name}" pattern must be string or {{regex: string, flags?: string}}')

    if errors:
        return None, errors
    return TokenNode(description=description, pattern=pattern, metadata=data.get("metadata")), []


def _parse_element(name: str, index: int, raw: Any, all_names: Sequence[str]) -> Tuple[Optional[DeductionElement], List[str]]:
    where = f'Deduction node "{name}" sequence[{index}]'
    if isinstance(raw, str):
        if raw not in all_names:
            return None, [f'{where}: referenced node "{raw}" does not exist']
        return raw, []

    if _is_mapping(raw):
        errors: List[str] = []
        node = raw.get("node")
        prop = raw.get("prop")
        if not isinstance(node, str):
            errors.append(f"{where}: element.node must be a string")
        elif node not in all_names:
            errors.append(f'{where}: referenced node "{node}" does not exist')
        if not isinstance(prop, str):
            errors.append(f"{where}: element.prop must be a string")
        elif not is_valid_property_name(prop):
            errors.append(f'{where}: property name "{prop}" is not valid camelCase')
        if errors:
            return None, errors
        return PropertyElement(node=node, prop=prop), []

    return None, [f"{where}: element must be string or {{node: string, prop: string}}"]


def _parse_deduction(name: str, data: Mapping[str, Any], description: str,
                     all_names: Sequence[str]) -> Tuple[Optional[DeductionNode], List[str]]:
    raw_seq = data.get("sequence")
    if not _is_list(raw_seq):
        return None, [f'Deduction node "{name}" must have a sequence array']

    errors: List[str] = []
    if len(raw_seq) == 0:
        errors.append(f'Deduction node "{name}" sequence cannot be empty')

    sequence: List[DeductionElement] = []
    bound: Dict[str, int] = {}  # prop -> 처음 바인딩된 인덱스
    for i, raw in enumerate(raw_seq):
        el, errs = _parse_element(name, i, raw, all_names)
        if errs:
            errors.extend(errs)
            continue
        if isinstance(el, PropertyElement):
            if el.prop in bound:
                errors.append(
                    f'Deduction node "{name}" sequence[{i}]: property name "{el.prop}" '
                    f'is already bound at sequence[{bound[el.prop]}]'
                )
            else:
                bound[el.prop] = i
        sequence.append(el)

    precedence = data.get("precedence")
    if precedence is not None and not _is_nonneg_int(precedence):
        errors.append(f'Deduction node "{name}" precedence must be a non-negative integer')

    assoc = data.get("associativity")
    if assoc is not None and assoc not in ASSOCIATIVITIES:
        errors.append(f'Deduction node "{name}" associativity must be one of: {", ".join(ASSOCIATIVITIES)}')

    if errors:
        return None, errors
    return DeductionNode(
        description=description,
        sequence=tuple(sequence),
        precedence=precedence,
        associativity=assoc,
        metadata=data.get("metadata"),
    ), []


def _parse_union(name: str, data: Mapping[str, Any], description: str,
                 all_names: Sequence[str]) -> Tuple[Optional[UnionNode], List[str]]:
    raw_members = data.get("members")
    if not _is_list(raw_members):
        return None, [f'Union node "{name}" must have a members array']

    errors: List[str] = []
    if len(raw_members) == 0:
        errors.append(f'Union node "{name}" members cannot be empty')

    members: List[str] = []
    for m in raw_members:
        if not isinstance(m, str):
            errors.append(f'Union node "{name}" member must be string, got: {type(m).__name__}')
        elif m not in all_names:
            errors.append(f'Union node "{name}" member "{m}" does not exist')
        else:
            members.append(m)

    if len(set(members)) != len(members):
        errors.append(f'Union node "{name}" has duplicate members')

    if errors:
        return None, errors
    return UnionNode(description=description, members=tuple(members), metadata=data.get("metadata")), []


def _parse_node(name: str, data: Any, all_names: Sequence[str]) -> Tuple[Optional[Node], List[str]]:
    if not _is_mapping(data):
        return None, [f'Node "{name}" must be an object']

    errors: List[str] = []
    kind = data.get("type")
    if not kind:
        errors.append(f'Node "{name}" must have a type')

    description = data.get("description")
    if not _is_text(description):
        errors.append(f'Node "{name}" must have a description (non-empty string)')

    if kind == "token":
        node, errs = _parse_token(name, data, description)
    elif kind == "deduction":
        node, errs = _parse_deduction(name, data, description, all_names)
    elif kind == "union":
        node, errs = _parse_union(name, data, description, all_names)
    elif kind:
        node, errs = None, [f'Node "{name}" has invalid type: {kind}']
    else:
        node, errs = None, []

    errors.extend(errs)
    if errors:
        return None, errors
    return node, []


# ---------- 교차 검사 ----------

def _check_string_references(nodes: Mapping[str, Node]) -> List[str]:
    """익명(str) 참조는 문자열 패턴 TokenNode만 가리킬 수 있다.
    참조 대상의 최종 kind가 필요하므로 모든 노드를 파싱한 뒤에 수행한다."""
    errors: List[str] = []
    for name, node in nodes.items():
        if not isinstance(node, DeductionNode):
            continue
        for i, el in enumerate(node.sequence):
            if not isinstance(el, str):
                continue
            target = nodes.get(el)
            if target is None:
                # 파싱에 실패한 노드: 해당 오류는 이미 보고됨
                continue
            if not isinstance(target, TokenNode):
                errors.append(f'Deduction node "{name}" sequence[{i}]: string reference "{el}" must point to a TokenNode')
            elif not target.is_literal:
                errors.append(
                    f'Deduction node "{name}" sequence[{i}]: string reference "{el}" '
                    f'must point to a TokenNode with string pattern'
                )
    return errors


# ---------- 엔트리포인트 ----------

def validate(raw: Any) -> ValidationResult:
    """
    validate(raw) -> ValidationResult
    ---------------------------------
    성공: ok=True, model, warnings(고아 노드)
    실패: ok=False, errors(전체 목록), warnings
    """
    if not _is_mapping(raw):
        return ValidationResult(ok=False, errors=["Input must be an object"])

    errors: List[str] = []
    warnings: List[str] = []

    # 1) 최상위 필드
    if not _is_text(raw.get("name")):
        errors.append("Model must have a valid name (non-empty string)")
    if not _is_text(raw.get("version")):
        errors.append("Model must have a valid version (non-empty string)")
    if not _is_text(raw.get("start")):
        errors.append("Model must have a valid start node name (non-empty string)")
    raw_nodes = raw.get("nodes")
    if not _is_mapping(raw_nodes):
        errors.append("Model must have a nodes object")
        return ValidationResult(ok=False, errors=errors)

    # 2) 노드별 파싱. 참조 검사는 선언된 이름 전체를 기준으로 한다
    all_names = [k for k in raw_nodes if isinstance(k, str)]
    nodes: Dict[str, Node] = {}
    for name, data in raw_nodes.items():
        if not _is_text(name):
            errors.append(f"Node name must be a non-empty string, got: {name!r}")
            continue
        node, errs = _parse_node(name, data, all_names)
        if errs:
            errors.extend(errs)
        else:
            nodes[name] = node

    # 3) 교차 검사
    start = raw.get("start")
    if _is_text(start) and start not in raw_nodes:
        errors.append(f'Start node "{start}" is not defined in nodes')
    errors.extend(_check_string_references(nodes))

    # 4) 실패
    if errors:
        logger.debug("model validation failed with %d error(s)", len(errors))
        return ValidationResult(ok=False, errors=errors, warnings=warnings)

    metadata = raw.get("metadata")
    model = Model(
        name=raw["name"],
        version=raw["version"],
        start=start,
        nodes=nodes,
        metadata=metadata if metadata else None,
    )

    # 5) 고아 노드(경고)
    orphans = find_orphan_nodes(model)
    for name in orphans:
        warnings.append(f"Orphan node (unreachable from start): {name}")
    if orphans:
        warnings.append(
            f"Found {len(orphans)} orphan node(s) total. "
            f"Consider removing if not needed, or check if references are missing."
        )

    logger.debug("validated model %s v%s: %d node(s), %d warning(s)",
                 model.name, model.version, len(model.nodes), len(warnings))
    return ValidationResult(ok=True, model=model, warnings=warnings)
