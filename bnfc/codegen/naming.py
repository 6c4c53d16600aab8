# bnfc/codegen/naming.py
"""생성 코드용 이름 변환/검사 헬퍼."""

from __future__ import annotations
from typing import List
import keyword

import regex as re

_CAMEL_BOUNDARY_1 = re.compile(r"(.)([A-Z][a-z]+)")
_CAMEL_BOUNDARY_2 = re.compile(r"([a-z0-9])([A-Z])")
_NON_IDENT = re.compile(r"[^0-9A-Za-z_]+")


def snake_case(name: str) -> str:
    """BinaryExpression → binary_expression, HTTPHeader → http_header"""
    s = _CAMEL_BOUNDARY_1.sub(r"\1_\2", name)
    s = _CAMEL_BOUNDARY_2.sub(r"\1_\2", s)
    return s.replace("-", "_").lower()


def upper_snake(name: str) -> str:
    return snake_case(name).upper()


def pascal_case(name: str) -> str:
    """모델 이름 → 타입 접두사. 식별자에 쓸 수 없는 문자는 단어 경계로 본다.
    "simple math" → SimpleMath,  "SimpleMath" → SimpleMath"""
    parts = [p for p in _NON_IDENT.split(name) if p]
    return "".join(p[:1].upper() + p[1:] for p in parts)


def is_identifier(name: str) -> bool:
    return name.isidentifier() and not keyword.iskeyword(name)


def one_line(s: str) -> str:
    """# 주석 한 줄용. 공백(줄바꿈 포함)을 하나의 스페이스로 줄인다."""
    return " ".join(s.split())


def py_str(s: str) -> str:
    """파이썬 문자열 리터럴. repr는 결정적이고 항상 다시 파싱된다."""
    return repr(s)


def docstring(lines: List[str], indent: str = "") -> str:
    """docstring 블록. 첫 줄은 요약, 나머지는 빈 줄 뒤에 이어 붙인다."""
    flat = [part for ln in lines for part in (ln.splitlines() or [""])]
    esc = [ln.replace("\\", "\\\\").replace('"', '\\"') for ln in flat]
    if len(esc) == 1:
        return f'{indent}"""{esc[0]}"""'
    out = [f'{indent}"""{esc[0]}', ""]
    out.extend((indent + ln) if ln else "" for ln in esc[1:])
    out.append(f'{indent}"""')
    return "\n".join(out)
