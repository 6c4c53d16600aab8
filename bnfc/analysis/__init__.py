# bnfc/analysis/__init__.py
from .deps import (
    DependencyInfo, LeftRecursionInfo,
    get_dependencies, first_symbols, build_dependency_graph,
    find_reachable, find_orphan_nodes, analyze_dependencies,
    find_left_recursion, rule_order,
)
