# bnfc/codegen/emit_stringifier.py
"""
Model IR → 파이썬 스트링파이어 모듈
=================================

노드 객체(생성된 dataclass, SimpleNamespace, JSON에서 디코딩한 dict 모두 가능)를
다시 소스 텍스트로 바꾸는 함수들을 한 모듈로 방출한다.

생성 모듈 구성
-------------
- StringifierOptions            : 렌더링 옵션(dataclass)
- get_indentation / add_whitespace / format_token : 공용 헬퍼
- <prefix>_<snake>(node, options) : 노드 kind별 렌더 함수
    * token    : node.value 그대로(포맷 없음)
    * deduction: 원소 순서대로. 바인딩 원소는 디스패처로, 익명 토큰은 그 토큰의 리터럴(format_token 적용)로
    * union    : 디스패처에 위임
- <prefix>_node(node, options)  : discriminant 필드(기본 type)로 구체 kind(token/deduction)에 분기
- <prefix>_<model>(node, options=None, **overrides) : 진입점

유니온 kind는 디스패치 테이블에 없으므로 유니온 함수 → 디스패처 → 유니온 함수로
되돌아오는 순환이 생기지 않는다.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional
import logging

from ..grammar.ast import Model, PropertyElement
from .ir import CodegenIR, NodeIR, GenerationError, build_ir
from .naming import py_str, docstring, is_identifier, one_line

logger = logging.getLogger(__name__)

# 생성 모듈의 고정 이름들(노드 함수 이름과 겹치면 안 됨)
_HELPER_NAMES = frozenset({
    "StringifierOptions", "get_indentation", "add_whitespace", "format_token",
    "dataclass", "replace", "Any", "List", "Mapping", "Optional", "Tuple",
    "_get", "_join", "_formatting", "_DISPATCH",
})


@dataclass
class StringifierConfig:
    function_prefix: str = "stringify"
    indent_style: str = "  "
    include_whitespace: bool = True
    include_formatting: bool = True
    discriminant_field: str = "type"     # 생성 스키마의 SchemaConfig.discriminant_field와 맞춘다


@dataclass
class StringifierResult:
    ok: bool
    code: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


_RUNTIME = '''
@dataclass
class StringifierOptions:
    """Rendering options.

    indent          : current indentation level
    indent_string   : text repeated once per indentation level
    include_whitespace / format : both must be on for any whitespace to be added
    space_around    : token texts rendered with a space on each side
    newline_after   : token texts followed by a newline
    compact         : suppress all optional whitespace
    """

    indent: int = 0
    indent_string: str = {indent_string}
    include_whitespace: bool = {include_whitespace}
    format: bool = {include_formatting}
    space_around: Tuple[str, ...] = ()
    newline_after: Tuple[str, ...] = ()
    compact: bool = False


def _get(node: Any, key: str) -> Any:
    if isinstance(node, Mapping):
        return node.get(key)
    return getattr(node, key, None)


def _formatting(options: StringifierOptions) -> bool:
    return options.format and options.include_whitespace and not options.compact


def get_indentation(options: StringifierOptions) -> str:
    return options.indent_string * (options.indent or 0)


def add_whitespace(parts: List[str], options: StringifierOptions, kind: str = "space") -> None:
    if not _formatting(options):
        return
    if kind == "newline":
        parts.append("\\n" + get_indentation(options))
    else:
        parts.append(" ")


def format_token(value: str, options: StringifierOptions) -> str:
    if not _formatting(options):
        return value
    out = value
    if value in options.space_around:
        out = " " + out + " "
    if value in options.newline_after:
        out = out + "\\n" + get_indentation(options)
    return out


def _join(pieces: List[str], options: StringifierOptions) -> str:
    parts: List[str] = []
    for i, piece in enumerate(pieces):
        if i:
            add_whitespace(parts, options)
        parts.append(piece)
    return "".join(parts)
'''


# ---------- 유틸 ----------

def _fn(cfg: StringifierConfig, snake: str) -> str:
    return f"{cfg.function_prefix}_{snake}"


def _doc(nir: NodeIR) -> List[str]:
    return [docstring([nir.node.description], "    ")]


def _check_names(ir: CodegenIR, cfg: StringifierConfig) -> List[str]:
    errors: List[str] = []
    if not cfg.discriminant_field:
        errors.append("Discriminant field must be a non-empty string")
    if not is_identifier(cfg.function_prefix):
        errors.append(f'Function prefix "{cfg.function_prefix}" is not a valid Python identifier')
        return errors
    reserved = {
        _fn(cfg, "node"): "the dispatcher",
        _fn(cfg, ir.snake_model): "the entry point",
    }
    for name in _HELPER_NAMES:
        reserved[name] = "a helper"
    for nir in ir.nodes.values():
        fn = _fn(cfg, nir.snake)
        if fn in reserved:
            errors.append(f'Node "{nir.name}" function name "{fn}" collides with {reserved[fn]}')
    return errors


# ---------- 노드별 렌더 함수 ----------

def _token_fn(cfg: StringifierConfig, nir: NodeIR) -> List[str]:
    return [
        f"def {_fn(cfg, nir.snake)}(node: Any, options: StringifierOptions) -> str:",
        *_doc(nir),
        "    value = _get(node, 'value')",
        "    return '' if value is None else str(value)",
    ]


def _deduction_fn(ir: CodegenIR, cfg: StringifierConfig, nir: NodeIR) -> List[str]:
    dispatch = _fn(cfg, "node")
    out = [
        f"def {_fn(cfg, nir.snake)}(node: Any, options: StringifierOptions) -> str:",
        *_doc(nir),
        "    pieces: List[str] = []",
    ]
    for el in nir.node.sequence:
        if isinstance(el, PropertyElement):
            out += [
                f"    value = _get(node, {py_str(el.prop)})",
                "    if value is not None:",
                f"        pieces.append({dispatch}(value, options))",
            ]
        else:
            # 익명 참조는 문자열 패턴 토큰만 가능하므로 리터럴을 그대로 쓴다
            literal = ir.model.nodes[el].pattern
            out.append(f"    pieces.append(format_token({py_str(literal)}, options))")
    if cfg.include_formatting:
        out.append("    return _join(pieces, options)")
    else:
        out.append("    return ''.join(pieces)")
    return out


def _union_fn(cfg: StringifierConfig, nir: NodeIR) -> List[str]:
    return [
        f"def {_fn(cfg, nir.snake)}(node: Any, options: StringifierOptions) -> str:",
        *_doc(nir),
        f"    return {_fn(cfg, 'node')}(node, options)",
    ]


# ---------- 디스패처/진입점 ----------

def _dispatcher(ir: CodegenIR, cfg: StringifierConfig) -> List[str]:
    table = "_DISPATCH"
    out = [f"{table} = {{"]
    for nir in ir.concrete_nodes:
        out.append(f"    {py_str(nir.name)}: {_fn(cfg, nir.snake)},")
    out.append("}")
    out += [
        "",
        "",
        f"def {_fn(cfg, 'node')}(node: Any, options: StringifierOptions) -> str:",
        docstring([f"Render any concrete node by its {cfg.discriminant_field} field."], "    "),
        f"    kind = None if node is None else _get(node, {py_str(cfg.discriminant_field)})",
        "    if not kind or not isinstance(kind, str):",
        f"        raise ValueError({py_str(f'Invalid node: must have a {cfg.discriminant_field} property')})",
        f"    fn = {table}.get(kind)",
        "    if fn is None:",
        "        raise ValueError(f'Unknown node type: {kind}')",
        "    return fn(node, options)",
    ]
    return out


def _entry_point(ir: CodegenIR, cfg: StringifierConfig) -> List[str]:
    return [
        f"def {_fn(cfg, ir.snake_model)}(node: Any, options: Optional[StringifierOptions] = None, **overrides: Any) -> str:",
        docstring([f"Render a {ir.model.name} node tree back to source text.",
                   "Keyword overrides replace individual StringifierOptions fields."], "    "),
        "    opts = options or StringifierOptions()",
        "    if overrides:",
        "        opts = replace(opts, **overrides)",
        f"    return {_fn(cfg, 'node')}(node, opts)",
    ]


def _render_module(ir: CodegenIR, cfg: StringifierConfig) -> str:
    m = ir.model
    out = [
        f"# Generated by bnfc from {one_line(m.name)} v{one_line(m.version)}. Do not edit.",
        docstring([f"Stringifier functions for {m.name}."]),
        "",
        "from __future__ import annotations",
        "",
        "from dataclasses import dataclass, replace",
        "from typing import Any, List, Mapping, Optional, Tuple",
        "",
    ]
    out.append(_RUNTIME.format(
        indent_string=py_str(cfg.indent_style),
        include_whitespace=cfg.include_whitespace,
        include_formatting=cfg.include_formatting,
    ).rstrip("\n"))

    for nir in ir.nodes.values():
        if nir.kind == "token":
            body = _token_fn(cfg, nir)
        elif nir.kind == "deduction":
            body = _deduction_fn(ir, cfg, nir)
        else:
            body = _union_fn(cfg, nir)
        out += ["", ""] + body

    out += ["", ""] + _dispatcher(ir, cfg)
    out += ["", ""] + _entry_point(ir, cfg)
    return "\n".join(out) + "\n"


def _warnings(ir: CodegenIR, cfg: StringifierConfig) -> List[str]:
    out: List[str] = []
    for u in ir.of_kind("union"):
        if not u.concrete:
            out.append(
                f'Union node "{u.name}" has no token or deduction members; '
                f'{_fn(cfg, u.snake)} always raises'
            )
    return out


def generate_stringifier(model: Model, config: Optional[StringifierConfig] = None) -> StringifierResult:
    """
    generate_stringifier(model[, config]) -> StringifierResult
    ----------------------------------------------------------
    성공: ok=True, code(모듈 소스), warnings
    실패: ok=False, code=None, errors(전체 목록)
    """
    cfg = config or StringifierConfig()
    try:
        ir = build_ir(model, check_types=False)
        errors = _check_names(ir, cfg)
        if errors:
            raise GenerationError(errors)
        code = _render_module(ir, cfg)
        try:
            compile(code, f"{ir.snake_model}_stringifier.py", "exec")
        except SyntaxError as e:
            raise GenerationError([f"Syntax error in generated stringifier: {e.msg} (line {e.lineno})"])
    except GenerationError as e:
        logger.debug("stringifier generation failed with %d error(s)", len(e.errors))
        return StringifierResult(ok=False, errors=e.errors)

    warnings = _warnings(ir, cfg)
    logger.debug("generated stringifier for %s: %d function(s)", model.name, len(ir.nodes))
    return StringifierResult(ok=True, code=code, warnings=warnings)
