# bnfc/codegen/__init__.py
"""Model IR → 파이썬 소스 방출기(노드 타입 스키마, 스트링파이어)."""

from .ir import GenerationError, CodegenIR, build_ir
from .emit_schema import generate_schema, SchemaConfig, SchemaResult
from .emit_stringifier import generate_stringifier, StringifierConfig, StringifierResult
