# bnfc/peg/__init__.py
"""PEG.js/Peggy grammar output for bnfc.

This package provides:
- AST nodes for the PEG.js expression subset that bnfc emits
- A renderer from that AST to grammar text (emit.py)
- A lowering pass from token regexes to PEG expressions (regex_lower.py)
- The Model IR → grammar generator (generator.py)

It never parses text with the grammar it produces.
"""

from .ast import (
    Literal, CharClass, Any, Ref, Labeled, And, Not, Repeat, Seq, Choice,
    Action, Comment, RuleDef, PegGrammar,
)
from .emit import emit_grammar, render_expr
from .regex_lower import lower_regex, RegexLoweringError
from .generator import (
    generate_peg_grammar, PegOptions, PegStats, PegResult, PegGenerationError,
)
