# bnfc/__init__.py
"""bnfc: BNF 모델 컴파일러.

선언적 문법 모델(token / deduction / union 노드)을 검증하고,
하나의 Model IR에서 여러 산출물을 만든다.

- validate(raw)               : 디코딩된 입력 → ValidationResult(Model 또는 오류 목록)
- generate_schema(model)      : 노드 타입 파이썬 패키지(파일 경로 → 소스)
- generate_stringifier(model) : 노드 → 소스 텍스트 렌더러 모듈
- generate_peg_grammar(model) : PEG.js/Peggy 문법 텍스트 + 통계/경고

생성기들은 같은 불변 Model에 대한 순수 함수라 순서와 무관하게(병렬로도) 실행할 수 있다.
"""

from .grammar.ast import (
    Model, TokenNode, DeductionNode, UnionNode, RegexPattern, PropertyElement,
)
from .grammar.validate import validate, ValidationResult
from .analysis.deps import (
    analyze_dependencies, find_orphan_nodes, find_left_recursion,
    DependencyInfo, LeftRecursionInfo,
)
from .codegen.ir import GenerationError
from .codegen.emit_schema import generate_schema, SchemaConfig, SchemaResult
from .codegen.emit_stringifier import generate_stringifier, StringifierConfig, StringifierResult
from .peg.generator import (
    generate_peg_grammar, PegOptions, PegStats, PegResult, PegGenerationError,
)

__version__ = "0.1.0"
