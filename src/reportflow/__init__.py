"""Report builder core.

Compiles an editable node/edge report graph into a portable, versioned
report definition, decompiles a stored definition back into a graph, and
validates graph structure before a definition is saved or executed.

Usage:
    from reportflow import compile_graph, decompile, validate

    result = validate(nodes, edges)
    definition = compile_graph(nodes, edges)
    graph = decompile(definition)
"""

from reportflow.definitions import ReportDefinition, create_blank, create_sample
from reportflow.graphs import (
    DecompiledGraph,
    GraphEdge,
    GraphNode,
    ValidationResult,
    auto_layout,
    compile_graph,
    decompile,
    recompile,
    validate,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "ReportDefinition",
    "create_blank",
    "create_sample",
    "DecompiledGraph",
    "GraphEdge",
    "GraphNode",
    "ValidationResult",
    "auto_layout",
    "compile_graph",
    "decompile",
    "recompile",
    "validate",
]
