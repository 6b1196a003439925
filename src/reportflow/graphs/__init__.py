"""Editable report graphs and their translation to report definitions.

A report is authored as a directed graph of typed nodes (entity, filter,
link, transform, sheet, export). This package compiles that graph into a
``ReportDefinition``, decompiles a definition back into a graph, validates
graph structure, and lays out nodes for the canvas.

Usage:
    from reportflow.graphs import compile_graph, decompile, validate

    result = validate(nodes, edges)
    if result.is_valid:
        definition = compile_graph(nodes, edges)

    graph = decompile(definition)
"""

from .compiler import compile_graph, compile_node, estimate_entity_rows, recompile
from .decompiler import DecompiledGraph, coerce_top, decompile, decompile_node, node_label
from .layout import auto_layout
from .models import (
    COMPILED_KINDS,
    Condition,
    ConditionGroup,
    EntityConfig,
    ExportConfig,
    Expression,
    FilterConfig,
    Freeze,
    GraphEdge,
    GraphNode,
    JoinPolicy,
    LinkConfig,
    Measure,
    NodeConfig,
    NodeKind,
    PaletteConfig,
    Position,
    Relation,
    SheetColumn,
    SheetConfig,
    SheetStyles,
    SortSpec,
    TransformConfig,
    edge_id,
    empty_config,
)
from .serialization import graph_from_dict, graph_to_dict, load_graph_file
from .validation import (
    ValidationResult,
    has_cycles,
    validate,
    validate_definition,
    validate_definition_graph,
)

__all__ = [
    # Compile / decompile
    "compile_graph",
    "compile_node",
    "estimate_entity_rows",
    "recompile",
    "DecompiledGraph",
    "coerce_top",
    "decompile",
    "decompile_node",
    "node_label",
    # Layout
    "auto_layout",
    # Models
    "COMPILED_KINDS",
    "Condition",
    "ConditionGroup",
    "EntityConfig",
    "ExportConfig",
    "Expression",
    "FilterConfig",
    "Freeze",
    "GraphEdge",
    "GraphNode",
    "JoinPolicy",
    "LinkConfig",
    "Measure",
    "NodeConfig",
    "NodeKind",
    "PaletteConfig",
    "Position",
    "Relation",
    "SheetColumn",
    "SheetConfig",
    "SheetStyles",
    "SortSpec",
    "TransformConfig",
    "edge_id",
    "empty_config",
    # Serialization
    "graph_from_dict",
    "graph_to_dict",
    "load_graph_file",
    # Validation
    "ValidationResult",
    "has_cycles",
    "validate",
    "validate_definition",
    "validate_definition_graph",
]
