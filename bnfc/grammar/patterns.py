# bnfc/grammar/patterns.py
"""토큰 정규식 컴파일 헬퍼.

모델의 RegexPattern은 `regex` 엔진으로 컴파일해 유효성을 판정한다.
플래그 문자는 아래 표로 엔진 플래그에 대응시키고, 매칭 방식에만 관여하는
플래그(g, y, d)와 유니코드 플래그(u, 기본 동작)는 무시한다.
"""

from __future__ import annotations
from typing import Dict, Pattern, Tuple
import regex as re

_FLAG_MAP: Dict[str, int] = {
    'i': re.IGNORECASE,
    'm': re.MULTILINE,
    's': re.DOTALL,
    'x': re.VERBOSE,
}

# 패턴 의미에 영향이 없는 플래그
_IGNORED_FLAGS = frozenset("guyd")


def translate_flags(flags: str) -> int:
    """플래그 문자열 → 엔진 플래그 비트. 모르는 문자는 ValueError."""
    f = 0
    for ch in flags:
        if ch in _FLAG_MAP:
            f |= _FLAG_MAP[ch]
        elif ch not in _IGNORED_FLAGS:
            raise ValueError(f"unknown regex flag {ch!r}")
    return f


def compile_regex(pat: str, flags: str = "") -> Pattern[str]:
    return re.compile(pat, translate_flags(flags))


def check_regex(pat: str, flags: str = "") -> Tuple[bool, str]:
    """(ok, message). 실패 시 message에 엔진 오류 메시지를 담는다."""
    try:
        compile_regex(pat, flags)
    except (re.error, ValueError) as e:
        return False, str(e)
    return True, ""
