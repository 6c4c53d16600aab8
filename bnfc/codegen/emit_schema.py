# bnfc/codegen/emit_schema.py
"""
Model IR → 파이썬 노드 타입 패키지
================================

생성 파일(키는 패키지 기준 상대 경로)
- token_types.py        : 토큰 dataclass, is_<node> 판정 함수, <Model>Token 별칭, <NODE>_TOKEN 상수
- nodes/<snake>.py      : deduction dataclass 1개씩 (separate_files=False면 nodes/__init__.py에 모두)
- nodes/__init__.py     : 재수출
- union_types.py        : 유니온 별칭 + 판정 함수, <Model>Node / <Model>Root
- constants.py          : TOKEN_PATTERNS / PRECEDENCE / ASSOCIATIVITY / NODE_KINDS, kind_of()
- __init__.py           : 재수출

모든 노드 객체는 discriminant 필드(기본 "type")에 노드 이름을 담는다.
deduction 모듈은 union_types를 TYPE_CHECKING 아래에서만 import하므로
런타임 import 순환이 생기지 않는다(constants → token_types → nodes → union_types).
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional
import logging

from ..grammar.ast import Model, RegexPattern
from .ir import CodegenIR, NodeIR, GenerationError, build_ir
from .naming import py_str, docstring, one_line

logger = logging.getLogger(__name__)


@dataclass
class SchemaConfig:
    separate_files: bool = True
    include_documentation: bool = True
    token_suffix: str = "Token"
    node_suffix: str = "Node"
    discriminant_field: str = "type"
    kinds: Optional[Mapping[str, int]] = None     # 노드 이름 → 숫자 kind (없으면 선언 순서 1..n)


@dataclass
class SchemaResult:
    ok: bool
    files: Dict[str, str] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


# ---------- 유틸 ----------

def _header(ir: CodegenIR, summary: str) -> List[str]:
    m = ir.model
    return [
        f"# Generated by bnfc from {one_line(m.name)} v{one_line(m.version)}. Do not edit.",
        docstring([summary]),
        "",
        "from __future__ import annotations",
    ]


def _import_block(module: str, names: List[str], indent: str = "") -> List[str]:
    if not names:
        return []
    if len(names) == 1:
        return [f"{indent}from {module} import {names[0]}"]
    out = [f"{indent}from {module} import ("]
    out.extend(f"{indent}    {n}," for n in names)
    out.append(f"{indent})")
    return out


def _typing_line(names: List[str]) -> str:
    return f"from typing import {', '.join(sorted(set(names)))}"


def _pattern_text(nir: NodeIR) -> str:
    pat = nir.node.pattern
    if isinstance(pat, RegexPattern):
        return f"/{pat.regex}/{pat.flags}"
    return py_str(pat)


def _meta_lines(nir: NodeIR) -> List[str]:
    meta = nir.node.metadata or {}
    return [f"{k}: {v}" for k, v in meta.items() if v is not None]


def _discriminant_field(cfg: SchemaConfig, nir: NodeIR) -> str:
    d = cfg.discriminant_field
    return f"    {d}: Literal[{py_str(nir.name)}] = field(default={py_str(nir.name)}, init=False)"


def _predicate(nir: NodeIR) -> List[str]:
    return [
        f"def is_{nir.snake}(node: Any) -> bool:",
        f"    return kind_of(node) == {nir.const_name}",
    ]


def _finish(lines: List[str]) -> str:
    return "\n".join(lines).rstrip("\n") + "\n"


# ---------- token_types.py ----------

def _token_class(cfg: SchemaConfig, nir: NodeIR) -> List[str]:
    out = ["@dataclass(frozen=True)", f"class {nir.type_name}:"]
    if cfg.include_documentation:
        out.append(docstring([nir.node.description, f"Pattern: {_pattern_text(nir)}"] + _meta_lines(nir), "    "))
        out.append("")
    out.append("    value: str")
    if nir.node.metadata:
        out.append("    metadata: Optional[Mapping[str, Any]] = None")
    out.append(_discriminant_field(cfg, nir))
    return out


def _gen_token_types(ir: CodegenIR, cfg: SchemaConfig) -> str:
    tokens = ir.of_kind("token")
    typing_names = ["Any", "Literal"]
    if tokens:
        typing_names.append("Union")
    if any(t.node.metadata for t in tokens):
        typing_names += ["Mapping", "Optional"]

    out = _header(ir, f"Token node types for {ir.model.name}.")
    out += ["", "from dataclasses import dataclass, field", _typing_line(typing_names), "",
            "from .constants import kind_of", ""]
    for t in tokens:
        out.append(f"{t.const_name} = {py_str(t.name)}")
    for t in tokens:
        out += ["", ""] + _token_class(cfg, t) + ["", ""] + _predicate(t)
    out += ["", ""]
    alias = f"{ir.type_prefix}Token"
    if tokens:
        out.append(f"{alias} = Union[{', '.join(t.type_name for t in tokens)}]")
    else:
        out.append(f"{alias} = Any  # no token nodes")
    return _finish(out)


# ---------- nodes ----------

def _deduction_class(cfg: SchemaConfig, nir: NodeIR) -> List[str]:
    node = nir.node
    out = ["@dataclass(frozen=True)", f"class {nir.type_name}:"]
    if cfg.include_documentation:
        seq = " ".join(el if isinstance(el, str) else f"{el.prop}:{el.node}" for el in node.sequence)
        doc = [node.description, f"Sequence: {seq}"]
        if node.precedence is not None:
            doc.append(f"Precedence: {node.precedence}")
        if node.associativity is not None:
            doc.append(f"Associativity: {node.associativity}")
        out.append(docstring(doc + _meta_lines(nir), "    "))
        out.append("")
    for f in nir.fields:
        out.append(f"    {f.prop}: {f.type_name}")
    if node.metadata:
        out.append("    metadata: Optional[Mapping[str, Any]] = None")
    out.append(_discriminant_field(cfg, nir))
    return out


def _type_checking_imports(ir: CodegenIR, owners: List[NodeIR], local: bool) -> List[str]:
    """필드 타입에 필요한 이름을 모듈별로 모은다.
    local=True 이면 같은 파일에 있는 deduction은 import하지 않는다."""
    own = {n.name for n in owners}
    tokens: List[str] = []
    unions: List[str] = []
    deductions: Dict[str, str] = {}
    for n in owners:
        for f in n.fields:
            target = ir.nodes[f.target]
            if target.kind == "token":
                tokens.append(target.type_name)
            elif target.kind == "union":
                unions.append(target.type_name)
            elif not (local or target.name in own):
                deductions[target.snake] = target.type_name
    out: List[str] = []
    out += _import_block("..token_types", sorted(set(tokens)), "    ")
    out += _import_block("..union_types", sorted(set(unions)), "    ")
    for snake in sorted(deductions):
        out += _import_block(f".{snake}", [deductions[snake]], "    ")
    if not out:
        return []
    return ["", "if TYPE_CHECKING:"] + out


def _deduction_module(ir: CodegenIR, cfg: SchemaConfig, members: List[NodeIR], summary: str, local: bool) -> List[str]:
    typing_names = ["Any", "Literal"]
    if any(n.node.metadata for n in members):
        typing_names += ["Mapping", "Optional"]
    tc = _type_checking_imports(ir, members, local)
    if tc:
        typing_names.append("TYPE_CHECKING")

    out = _header(ir, summary)
    out += ["", "from dataclasses import dataclass, field", _typing_line(typing_names), "",
            "from ..constants import kind_of"]
    out += tc
    out.append("")
    for n in members:
        out.append(f"{n.const_name} = {py_str(n.name)}")
    for n in members:
        out += ["", ""] + _deduction_class(cfg, n) + ["", ""] + _predicate(n)
    return out


def _exported(n: NodeIR) -> List[str]:
    return [n.const_name, n.type_name, f"is_{n.snake}"]


def _gen_nodes(ir: CodegenIR, cfg: SchemaConfig) -> Dict[str, str]:
    deductions = ir.of_kind("deduction")
    files: Dict[str, str] = {}
    if not cfg.separate_files:
        if deductions:
            lines = _deduction_module(ir, cfg, deductions, f"Deduction node types for {ir.model.name}.", True)
        else:
            lines = _header(ir, f"Deduction node types for {ir.model.name} (none).")
        files["nodes/__init__.py"] = _finish(lines)
        return files

    index = _header(ir, f"Deduction node types for {ir.model.name}.")
    if deductions:
        index.append("")
    for n in deductions:
        summary = f"{n.name} node type for {ir.model.name}."
        files[f"nodes/{n.snake}.py"] = _finish(_deduction_module(ir, cfg, [n], summary, False))
        index += _import_block(f".{n.snake}", _exported(n))
    files["nodes/__init__.py"] = _finish(index)
    return files


# ---------- union_types.py ----------

def _member_ref(ir: CodegenIR, name: str) -> str:
    target = ir.nodes[name]
    # 유니온끼리는 정의 순서/순환과 무관하도록 전방 참조 문자열로 둔다
    if target.kind == "union":
        return py_str(target.type_name)
    return target.type_name


def _gen_union_types(ir: CodegenIR, cfg: SchemaConfig) -> str:
    unions = ir.of_kind("union")
    concrete = ir.concrete_nodes
    typing_names = ["Any", "Union"]
    if unions:
        typing_names.append("FrozenSet")

    out = _header(ir, f"Union node types for {ir.model.name}.")
    out += ["", _typing_line(typing_names), "", "from .constants import kind_of"]
    out += _import_block(".token_types", [n.type_name for n in ir.of_kind("token")])
    out += _import_block(".nodes", [n.type_name for n in ir.of_kind("deduction")])

    for u in unions:
        out += ["", ""]
        if cfg.include_documentation:
            out.append(f"# {one_line(u.node.description)}")
            out.append(f"# Members: {' | '.join(u.node.members)}")
        refs = ", ".join(_member_ref(ir, m) for m in u.node.members)
        out.append(f"{u.type_name} = Union[{refs}]")
        out.append("")
        kinds = ", ".join(py_str(k) for k in u.concrete)
        set_name = f"_{u.const_name}_KINDS"
        out.append(f"{set_name}: FrozenSet[str] = frozenset({{{kinds}}})" if kinds
                   else f"{set_name}: FrozenSet[str] = frozenset()")
        out += ["", "", f"def is_{u.snake}(node: Any) -> bool:", f"    return kind_of(node) in {set_name}"]

    out += ["", ""]
    if concrete:
        out.append(f"{ir.type_prefix}Node = Union[{', '.join(n.type_name for n in concrete)}]")
    else:
        out.append(f"{ir.type_prefix}Node = Any  # no concrete nodes")
    out.append(f"{ir.type_prefix}Root = {ir.root.type_name}")
    return _finish(out)


# ---------- constants.py ----------

def _dict_block(name: str, annot: str, items: List[str]) -> List[str]:
    if not items:
        return [f"{name}: {annot} = {{}}"]
    return [f"{name}: {annot} = {{"] + [f"    {it}," for it in items] + ["}"]


def _gen_constants(ir: CodegenIR, cfg: SchemaConfig) -> str:
    m = ir.model
    patterns: List[str] = []
    for t in ir.of_kind("token"):
        pat = t.node.pattern
        if isinstance(pat, RegexPattern):
            patterns.append(f"{py_str(t.name)}: {{\"regex\": {py_str(pat.regex)}, \"flags\": {py_str(pat.flags)}}}")
        else:
            patterns.append(f"{py_str(t.name)}: {py_str(pat)}")
    precedence = [f"{py_str(d.name)}: {d.node.precedence}"
                  for d in ir.of_kind("deduction") if d.node.precedence is not None]
    assoc = [f"{py_str(d.name)}: {py_str(d.node.associativity)}"
             for d in ir.of_kind("deduction") if d.node.associativity is not None]
    kinds = [f"{py_str(n.name)}: {n.kind_id}" for n in ir.nodes.values()]

    out = _header(ir, f"Registries for {m.name}.")
    out += ["", "from typing import Any, Dict, Mapping, Union", ""]
    out += [
        f"MODEL_NAME = {py_str(m.name)}",
        f"MODEL_VERSION = {py_str(m.version)}",
        f"START = {py_str(m.start)}",
        f"DISCRIMINANT = {py_str(cfg.discriminant_field)}",
        "",
    ]
    out += _dict_block("TOKEN_PATTERNS", "Dict[str, Union[str, Dict[str, str]]]", patterns) + [""]
    out += _dict_block("PRECEDENCE", "Dict[str, int]", precedence) + [""]
    out += _dict_block("ASSOCIATIVITY", "Dict[str, str]", assoc) + [""]
    out += _dict_block("NODE_KINDS", "Dict[str, int]", kinds)
    out += [
        "", "",
        "def kind_of(node: Any) -> Any:",
        '    """Discriminant value of a node object or of a decoded mapping."""',
        "    if isinstance(node, Mapping):",
        "        return node.get(DISCRIMINANT)",
        "    return getattr(node, DISCRIMINANT, None)",
    ]
    return _finish(out)


# ---------- __init__.py ----------

def _gen_index(ir: CodegenIR) -> str:
    const_names = ["ASSOCIATIVITY", "DISCRIMINANT", "MODEL_NAME", "MODEL_VERSION", "NODE_KINDS",
                   "PRECEDENCE", "START", "TOKEN_PATTERNS", "kind_of"]
    token_names = [x for t in ir.of_kind("token") for x in _exported(t)] + [f"{ir.type_prefix}Token"]
    node_names = [x for d in ir.of_kind("deduction") for x in _exported(d)]
    union_names = [x for u in ir.of_kind("union") for x in (u.type_name, f"is_{u.snake}")]
    union_names += [f"{ir.type_prefix}Node", f"{ir.type_prefix}Root"]

    out = _header(ir, f"{ir.model.name} v{ir.model.version} node types.")
    out.append("")
    out += _import_block(".constants", const_names)
    out += _import_block(".token_types", token_names)
    out += _import_block(".nodes", node_names)
    out += _import_block(".union_types", union_names)
    out += ["", "__all__ = ["]
    out += [f"    {py_str(n)}," for n in const_names + token_names + node_names + union_names]
    out.append("]")
    return _finish(out)


# ---------- 검사/엔트리포인트 ----------

def _field_collisions(ir: CodegenIR, cfg: SchemaConfig) -> List[str]:
    """생성 클래스가 직접 추가하는 필드(value, metadata)와 겹치는 이름."""
    errors: List[str] = []
    if cfg.discriminant_field in ("value", "metadata"):
        errors.append(f'Discriminant field "{cfg.discriminant_field}" collides with a generated field')
    for d in ir.of_kind("deduction"):
        if not d.node.metadata:
            continue
        for f in d.fields:
            if f.prop == "metadata":
                errors.append(
                    f'Deduction node "{d.name}" sequence[{f.index}]: property "metadata" '
                    f'collides with the metadata field'
                )
    return errors


def _syntax_errors(files: Mapping[str, str]) -> List[str]:
    errors: List[str] = []
    for path, src in files.items():
        try:
            compile(src, path, "exec")
        except SyntaxError as e:
            errors.append(f"Syntax error in {path}: {e.msg} (line {e.lineno})")
    return errors


def _warnings(ir: CodegenIR) -> List[str]:
    out: List[str] = []
    for kind in ("token", "deduction", "union"):
        if not ir.of_kind(kind):
            out.append(f"No {kind} nodes found in model")
    return out


def generate_schema(model: Model, config: Optional[SchemaConfig] = None) -> SchemaResult:
    """
    generate_schema(model[, config]) -> SchemaResult
    ------------------------------------------------
    성공: ok=True, files(상대 경로 → 소스), warnings
    실패: ok=False, files={}, errors(전체 목록)
    """
    cfg = config or SchemaConfig()
    try:
        ir = build_ir(
            model,
            token_suffix=cfg.token_suffix,
            node_suffix=cfg.node_suffix,
            discriminant=cfg.discriminant_field,
            kinds=cfg.kinds,
        )
        errors = _field_collisions(ir, cfg)
        if errors:
            raise GenerationError(errors)

        files: Dict[str, str] = {}
        files["constants.py"] = _gen_constants(ir, cfg)
        files["token_types.py"] = _gen_token_types(ir, cfg)
        files.update(_gen_nodes(ir, cfg))
        files["union_types.py"] = _gen_union_types(ir, cfg)
        files["__init__.py"] = _gen_index(ir)

        errors = _syntax_errors(files)
        if errors:
            raise GenerationError(errors)
    except GenerationError as e:
        logger.debug("schema generation failed with %d error(s)", len(e.errors))
        return SchemaResult(ok=False, errors=e.errors)

    warnings = _warnings(ir)
    logger.debug("generated schema for %s: %d file(s), %d warning(s)", model.name, len(files), len(warnings))
    return SchemaResult(ok=True, files=files, warnings=warnings)
