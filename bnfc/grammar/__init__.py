# bnfc/grammar/__init__.py
"""Model IR와 검증기."""

from .ast import (
    Model, Node, TokenNode, DeductionNode, UnionNode,
    RegexPattern, PropertyElement, element_target,
)
from .validate import validate, ValidationResult
