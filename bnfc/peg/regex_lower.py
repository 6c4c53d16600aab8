# bnfc/peg/regex_lower.py
"""토큰 정규식 → PEG 식 변환.

PEG.js에는 정규식 리터럴이 없으므로 TokenNode의 RegexPattern을 PEG 식으로 옮긴다.
옮길 수 있는 부분집합:

    regex      := alt
    alt        := seq ("|" seq)*
    seq        := quantified*
    quantified := atom ("?" | "*" | "+" | "{m}" | "{m,}" | "{m,n}")?
    atom       := "(" ("?:" | "?<name>")? alt ")"
                | "(?=" alt ")" | "(?!" alt ")"
                | class | "." | escape | char

    escape     := \\d \\D \\w \\W \\s \\S \\n \\r \\t \\f \\v \\0 \\xHH \\uHHHH \\u{H..} | \\<punct>

- 맨 앞의 "^"는 버린다(토큰은 항상 현재 위치에서 매칭).
- 옮길 수 없는 구성(다른 위치의 ^, $, \\b, \\A/\\Z 같은 영문자 이스케이프, 역참조, lookbehind,
  lazy 수량자, 뒤 원소가 필요한 글자까지 먹는 탐욕 반복 등)은
  RegexLoweringError를 던진다. 호출 쪽에서 경고로 바꾼다.
- 플래그: i → 대소문자 무시 리터럴/클래스, s → "."가 줄바꿈도 매칭.
"""

from __future__ import annotations
from typing import List, Optional, Tuple
from .ast import Literal, CharClass, Any, And, Not, Repeat, Seq, Choice, Node


class RegexLoweringError(ValueError):
    pass


_DIGIT = [(ord("0"), ord("9"))]
_WORD = [(ord("a"), ord("z")), (ord("A"), ord("Z")), (ord("0"), ord("9"))]
_WORD_SINGLES = ["_"]
_SPACE_SINGLES = [" ", "\t", "\n", "\r", "\f", "\v", "\u00a0", "\u2028", "\u2029", "\ufeff"]
_LINE_TERMINATORS = ["\n", "\r", "\u2028", "\u2029"]

_CTRL_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "f": "\f", "v": "\v", "0": "\0"}


class _RX:
    def __init__(self, src: str, flags: str = ""):
        self.s = src
        self.i = 0
        self.n = len(src)
        self.icase = "i" in flags
        self.dotall = "s" in flags
        if "x" in flags:
            raise RegexLoweringError("verbose flag 'x' is not supported")

    def _peek(self, k: int = 0) -> Optional[str]:
        j = self.i + k
        if j >= self.n:
            return None
        return self.s[j]

    def _starts(self, lit: str) -> bool:
        return self.s.startswith(lit, self.i)

    def _bump(self, n: int = 1) -> None:
        self.i += n

    def _eof(self) -> bool:
        return self.i >= self.n

    def _err(self, msg: str) -> RegexLoweringError:
        return RegexLoweringError(f"{msg} at {self.i}")

    # --- 리터럴/클래스 생성 ---

    def _lit(self, ch: str) -> Literal:
        return Literal(ch, ignore_case=self.icase)

    def _cls(self, negated: bool, ranges=None, singles=None) -> CharClass:
        return CharClass(negated=negated, ranges=list(ranges or []), singles=list(singles or []),
                         ignore_case=self.icase)

    def _hexval(self, ch: Optional[str]) -> int:
        if ch is not None:
            if "0" <= ch <= "9": return ord(ch) - ord("0")
            if "a" <= ch <= "f": return ord(ch) - ord("a") + 10
            if "A" <= ch <= "F": return ord(ch) - ord("A") + 10
        raise self._err("invalid hex digit")

    def _read_hex(self, count: int) -> str:
        val = 0
        for _ in range(count):
            val = (val << 4) + self._hexval(self._peek())
            self._bump(1)
        return chr(val)

    def _read_code_escape(self, c: str) -> Optional[str]:
        """\\x, \\u, 제어문자 이스케이프를 한 글자로. 해당 없으면 None (커서는 c 위치)."""
        if c in _CTRL_ESCAPES:
            if c == "0" and (self._peek(1) or "").isdigit():
                raise self._err("octal escapes are not supported")
            self._bump(1)
            return _CTRL_ESCAPES[c]
        if c == "x":
            self._bump(1)
            return self._read_hex(2)
        if c == "u":
            self._bump(1)
            if self._peek() == "{":
                self._bump(1)
                j = self.s.find("}", self.i)
                if j == -1:
                    raise self._err("unterminated \\u{...} escape")
                digits = self.s[self.i:j]
                self.i = j + 1
                try:
                    return chr(int(digits, 16))
                except ValueError:
                    raise self._err("invalid \\u{...} escape")
            return self._read_hex(4)
        return None

    # --- atom ---

    def _escape_atom(self) -> Node:
        self._bump(1)  # '\'
        c = self._peek()
        if c is None:
            raise self._err("trailing backslash")
        if c in "dDwWsS":
            self._bump(1)
            neg = c.isupper()
            lc = c.lower()
            if lc == "d":
                return self._cls(neg, _DIGIT)
            if lc == "w":
                return self._cls(neg, _WORD, _WORD_SINGLES)
            return self._cls(neg, [], _SPACE_SINGLES)
        if c in "bB":
            raise self._err("word boundary assertions are not supported")
        if c.isdigit() and c != "0":
            raise self._err("backreferences are not supported")
        if c == "k":
            raise self._err("named backreferences are not supported")
        if c in "pP":
            raise self._err("unicode property escapes are not supported")
        ch = self._read_code_escape(c)
        if ch is not None:
            return self._lit(ch)
        if c.isascii() and c.isalpha():
            # \A \Z \z \G 등 앵커와 모르는 문자 이스케이프
            raise self._err(f"unsupported escape \\{c}")
        self._bump(1)
        return self._lit(c)

    def _class_char(self) -> Tuple[Optional[str], Optional[CharClass]]:
        """클래스 안 원소 1개: (단일 문자, None) 또는 (None, 축약 클래스)"""
        c = self._peek()
        if c is None:
            raise self._err("unterminated character class")
        if c != "\\":
            self._bump(1)
            return c, None
        self._bump(1)
        e = self._peek()
        if e is None:
            raise self._err("unterminated character class")
        if e in "dws":
            self._bump(1)
            if e == "d":
                return None, self._cls(False, _DIGIT)
            if e == "w":
                return None, self._cls(False, _WORD, _WORD_SINGLES)
            return None, self._cls(False, [], _SPACE_SINGLES)
        if e in "DWS":
            raise self._err("negated shorthand inside a character class is not supported")
        if e == "b":
            self._bump(1)
            return "\b", None
        ch = self._read_code_escape(e)
        if ch is not None:
            return ch, None
        if e.isascii() and e.isalpha():
            raise self._err(f"unsupported escape \\{e} in a character class")
        self._bump(1)
        return e, None

    def _class(self) -> CharClass:
        self._bump(1)  # '['
        neg = False
        if self._peek() == "^":
            neg = True
            self._bump(1)
        ranges: List[Tuple[int, int]] = []
        singles: List[str] = []
        while True:
            if self._eof():
                raise self._err("unterminated character class")
            if self._peek() == "]":
                self._bump(1)
                break
            a, short = self._class_char()
            if short is not None:
                ranges.extend(short.ranges)
                singles.extend(short.singles)
                continue
            if self._peek() == "-" and self._peek(1) not in (None, "]"):
                self._bump(1)
                b, short_b = self._class_char()
                if short_b is not None:
                    raise self._err("shorthand class cannot end a range")
                if ord(a) > ord(b):
                    raise self._err("character class range out of order")
                ranges.append((ord(a), ord(b)))
            else:
                singles.append(a)
        return self._cls(neg, ranges, singles)

    def _group(self) -> Node:
        self._bump(1)  # '('
        if self._starts("?:"):
            self._bump(2)
            inner = self._parse_alt()
        elif self._starts("?="):
            self._bump(2)
            inner = And(self._parse_alt())
        elif self._starts("?!"):
            self._bump(2)
            inner = Not(self._parse_alt())
        elif self._starts("?<=") or self._starts("?<!"):
            raise self._err("lookbehind assertions are not supported")
        elif self._starts("?<"):
            j = self.s.find(">", self.i)
            if j == -1:
                raise self._err("unterminated group name")
            self.i = j + 1
            inner = self._parse_alt()
        elif self._peek() == "?":
            raise self._err("unsupported group syntax")
        else:
            inner = self._parse_alt()
        if self._peek() != ")":
            raise self._err("expected ')'")
        self._bump(1)
        return inner

    def _parse_atom(self) -> Node:
        c = self._peek()
        if c == "(":
            return self._group()
        if c == "[":
            return self._class()
        if c == ".":
            self._bump(1)
            if self.dotall:
                return Any()
            return CharClass(negated=True, singles=list(_LINE_TERMINATORS))
        if c == "\\":
            return self._escape_atom()
        if c == "^":
            raise self._err("'^' anchor is only supported at the start of the pattern")
        if c == "$":
            raise self._err("'$' anchor is not supported")
        if c in "*+?":
            raise self._err("nothing to repeat")
        self._bump(1)
        return self._lit(c)

    # --- 수량자 ---

    def _try_braces(self) -> Optional[Tuple[int, Optional[int]]]:
        """{m}, {m,}, {m,n} 형식이 아니면 None (그때 '{'는 리터럴)."""
        j = self.s.find("}", self.i)
        if j == -1:
            return None
        body = self.s[self.i + 1:j]
        lo, sep, hi = body.partition(",")
        if not lo.isdigit() or (hi and not hi.isdigit()):
            return None
        self.i = j + 1
        m = int(lo)
        if not sep:
            return m, m
        if not hi:
            return m, None
        n = int(hi)
        if n < m:
            raise self._err("numbers out of order in {} quantifier")
        return m, n

    def _parse_quantified(self) -> Node:
        atom = self._parse_atom()
        c = self._peek()
        bounds: Optional[Tuple[int, Optional[int]]] = None
        if c == "?":
            bounds = (0, 1)
            self._bump(1)
        elif c == "*":
            bounds = (0, None)
            self._bump(1)
        elif c == "+":
            bounds = (1, None)
            self._bump(1)
        elif c == "{":
            bounds = self._try_braces()
        if bounds is None:
            return atom
        if self._peek() in ("?", "+"):
            raise self._err("lazy/possessive quantifiers are not supported")
        return _expand_repeat(atom, *bounds)

    # --- 시퀀스/대안 ---

    def _parse_seq(self) -> Node:
        items: List[Node] = []
        while not self._eof() and self._peek() not in "|)":
            if self._peek() == "{" and not _looks_like_quantifier(self.s, self.i):
                self._bump(1)
                items.append(self._lit("{"))
                continue
            items.append(self._parse_quantified())
        items = _merge_literals(items)
        _check_greedy(items)
        if len(items) == 1:
            return items[0]
        return Seq(items)

    def _parse_alt(self) -> Node:
        alts = [self._parse_seq()]
        while self._peek() == "|":
            self._bump(1)
            alts.append(self._parse_seq())
        if len(alts) == 1:
            return alts[0]
        return Choice(alts)

    def parse(self) -> Node:
        if self._peek() == "^":
            self._bump(1)
        node = self._parse_alt()
        if not self._eof():
            raise self._err("unbalanced ')'")
        return node


# ---------- 헬퍼 ----------

def _looks_like_quantifier(s: str, i: int) -> bool:
    j = s.find("}", i)
    if j == -1:
        return False
    lo, _, hi = s[i + 1:j].partition(",")
    return lo.isdigit() and (not hi or hi.isdigit())


def _expand_repeat(node: Node, m: int, n: Optional[int]) -> Node:
    """{m,n}을 PEG 반복으로 전개한다.  x{2,4} → x x x? x?"""
    if (m, n) == (0, 1):
        return Repeat(node, "?")
    if (m, n) == (0, None):
        return Repeat(node, "*")
    if (m, n) == (1, None):
        return Repeat(node, "+")
    items: List[Node] = [node] * m
    if n is None:
        items.append(Repeat(node, "*"))
    else:
        items.extend(Repeat(node, "?") for _ in range(n - m))
    if len(items) == 1:
        return items[0]
    return Seq(items)


def _merge_literals(items: List[Node]) -> List[Node]:
    """인접한 리터럴(같은 대소문자 모드)을 하나로 합친다."""
    out: List[Node] = []
    for it in items:
        prev = out[-1] if out else None
        if isinstance(it, Literal) and isinstance(prev, Literal) and prev.ignore_case == it.ignore_case:
            out[-1] = Literal(prev.text + it.text, ignore_case=it.ignore_case)
        else:
            out.append(it)
    return out


# ---------- 탐욕 반복 검사 ----------
# PEG 반복은 되돌아가지 않는다. 한 글자짜리 본문의 x? x* x+ 뒤에 x가 먹을 수 있는
# 글자로 시작하는 필수 원소가 오면 정규식과 매칭 결과가 달라진다.

_BIG_RANGE = 4096


def _flatten(items: List[Node]) -> List[Node]:
    out: List[Node] = []
    for it in items:
        if isinstance(it, Seq):
            out.extend(_flatten(it.items))
        else:
            out.append(it)
    return out


def _optional(node: Node) -> bool:
    """빈 입력에서도 성공하는가."""
    if isinstance(node, Repeat):
        return node.kind in ("?", "*")
    if isinstance(node, (And, Not)):
        return True
    if isinstance(node, Seq):
        return all(_optional(it) for it in node.items)
    if isinstance(node, Choice):
        return any(_optional(a) for a in node.alts)
    if isinstance(node, Literal):
        return not node.text
    return False


def _single_char(node: Node) -> bool:
    if isinstance(node, Literal):
        return len(node.text) == 1
    if isinstance(node, (CharClass, Any)):
        return True
    if isinstance(node, Choice):
        return all(_single_char(a) for a in node.alts)
    return False


def _first_classes(node: Node) -> List[Optional[CharClass]]:
    """node가 처음 소비할 수 있는 글자 집합들. None은 아무 글자."""
    if isinstance(node, Literal):
        if not node.text:
            return []
        return [CharClass(negated=False, singles=[node.text[0]], ignore_case=node.ignore_case)]
    if isinstance(node, CharClass):
        return [node]
    if isinstance(node, Any):
        return [None]
    if isinstance(node, (Repeat, And)):
        return _first_classes(node.node)
    if isinstance(node, Choice):
        return [c for alt in node.alts for c in _first_classes(alt)]
    if isinstance(node, Seq):
        out: List[Optional[CharClass]] = []
        for it in node.items:
            out.extend(_first_classes(it))
            if not _optional(it):
                break
        return out
    return []


def _in_class(cc: CharClass, ch: str) -> bool:
    def hit(c: str) -> bool:
        return c in cc.singles or any(lo <= ord(c) <= hi for lo, hi in cc.ranges)
    found = hit(ch) or (cc.ignore_case and (hit(ch.lower()) or hit(ch.upper())))
    return found != cc.negated


def _class_chars(cc: CharClass) -> Optional[List[str]]:
    """양성 클래스의 글자 목록. 범위가 너무 크면 None."""
    out = list(cc.singles)
    for lo, hi in cc.ranges:
        if hi - lo > _BIG_RANGE:
            return None
        out.extend(chr(c) for c in range(lo, hi + 1))
    if cc.ignore_case:
        out += [c.swapcase() for c in out]
    return out


def _overlap(a: Optional[CharClass], b: Optional[CharClass]) -> bool:
    if a is None or b is None:
        return True
    for x, y in ((a, b), (b, a)):
        if not x.negated:
            chars = _class_chars(x)
            if chars is None:
                return True
            return any(_in_class(y, c) for c in chars)
    return True


def _check_greedy(items: List[Node]) -> None:
    flat = _flatten(items)
    for i, it in enumerate(flat):
        if not (isinstance(it, Repeat) and _single_char(it.node)):
            continue
        body = _first_classes(it.node)
        for nxt in flat[i + 1:]:
            if isinstance(nxt, Not):
                continue
            if any(_overlap(a, b) for a in body for b in _first_classes(nxt)):
                if isinstance(nxt, And) or not _optional(nxt):
                    raise RegexLoweringError(
                        f"repetition '{it.kind}' would consume input the following item needs; "
                        f"PEG repetition does not backtrack"
                    )
            elif not _optional(nxt):
                break


def lower_regex(pattern: str, flags: str = "") -> Node:
    """정규식 문자열 → PEG 식. 옮길 수 없으면 RegexLoweringError."""
    return _RX(pattern, flags).parse()
