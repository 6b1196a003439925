"""Structural validation of report graphs.

Decides whether a graph is executable by shape alone: required node kinds,
connectivity, and absence of cycles. Node configuration is not inspected, so
the same checks run on the editable graph and on a compiled definition's
graph.

Usage:
    from reportflow.graphs.validation import validate

    result = validate(nodes, edges)
    if not result.is_valid:
        for error in result.errors:
            print(error)
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import networkx as nx

from .models import NodeKind

if TYPE_CHECKING:
    from reportflow.definitions.models import ReportDefinition

MISSING_ENTITY_ERROR = "At least one entity node is required"
CYCLE_ERROR = "Flow contains cycles - this is not allowed"
MISSING_SHEET_WARNING = "No sheet nodes found - add sheets to define output format"
MISSING_EXPORT_WARNING = "No export node found - add an export node to define output format"


@dataclass
class ValidationResult:
    """Outcome of a validation run. Warnings never affect ``is_valid``."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def merge(self, other: ValidationResult) -> ValidationResult:
        """Combine two results, keeping order and dropping repeats."""
        errors = list(dict.fromkeys([*self.errors, *other.errors]))
        warnings = list(dict.fromkeys([*self.warnings, *other.warnings]))
        return ValidationResult(errors=errors, warnings=warnings)

    def to_dict(self) -> dict[str, Any]:
        return {"isValid": self.is_valid, "errors": self.errors, "warnings": self.warnings}


# =============================================================================
# Graph accessors
# =============================================================================
#
# Editable nodes carry ``kind`` and edges ``source``/``target``; report graph
# nodes carry ``type`` and edges ``from_``/``to``.


def _node_kind(node: Any) -> str:
    kind = getattr(node, "kind", None) or getattr(node, "type", "")
    return kind.value if isinstance(kind, NodeKind) else kind


def _edge_endpoints(edge: Any) -> tuple[str, str]:
    if hasattr(edge, "source"):
        return edge.source, edge.target
    return edge.from_, edge.to


# =============================================================================
# Structural checks
# =============================================================================


def validate(nodes: Sequence[Any], edges: Sequence[Any]) -> ValidationResult:
    """Validate graph structure.

    All checks run; none short-circuits another.

    Args:
        nodes: Graph nodes (editable or compiled)
        edges: Graph edges (editable or compiled)

    Returns:
        ValidationResult with blocking errors and advisory warnings
    """
    result = ValidationResult()

    kinds = [_node_kind(n) for n in nodes]
    if NodeKind.ENTITY.value not in kinds:
        result.errors.append(MISSING_ENTITY_ERROR)
    if NodeKind.SHEET.value not in kinds:
        result.warnings.append(MISSING_SHEET_WARNING)
    if NodeKind.EXPORT.value not in kinds:
        result.warnings.append(MISSING_EXPORT_WARNING)

    endpoints = [_edge_endpoints(e) for e in edges]

    # A lone node is connected by definition
    if len(nodes) > 1:
        connected = {node_id for pair in endpoints for node_id in pair}
        for node in nodes:
            if node.id not in connected:
                result.warnings.append(f"Node {node.id} is not connected to the flow")

    if has_cycles([n.id for n in nodes], endpoints):
        result.errors.append(CYCLE_ERROR)

    return result


def has_cycles(node_ids: Sequence[str], edges: Sequence[tuple[str, str]]) -> bool:
    """Check whether the directed graph contains at least one cycle.

    A self-loop counts as a cycle of length one.
    """
    graph = build_flow_graph(node_ids, edges)
    return not nx.is_directed_acyclic_graph(graph)


def build_flow_graph(
    node_ids: Sequence[str],
    edges: Sequence[tuple[str, str]],
) -> nx.DiGraph:  # type: ignore[type-arg]
    """Build a directed graph over node ids.

    Edge endpoints that name no node are added as bare nodes.
    """
    graph: nx.DiGraph = nx.DiGraph()  # type: ignore[type-arg]
    graph.add_nodes_from(node_ids)
    graph.add_edges_from(edges)
    return graph


# =============================================================================
# Document checks
# =============================================================================


def validate_definition_graph(definition: ReportDefinition) -> ValidationResult:
    """Run the structural checks on a compiled definition's graph."""
    return validate(definition.graph.nodes, definition.graph.edges)


def validate_definition(definition: ReportDefinition) -> ValidationResult:
    """Validate a whole report definition before it is stored or executed.

    Adds document-level checks (identity fields, resolved primary entity,
    edges pointing at existing nodes) to the structural checks.
    """
    result = ValidationResult()

    if not definition.id:
        result.errors.append("Report ID is required")
    if not definition.name:
        result.errors.append("Report name is required")
    if not definition.schema_version:
        result.errors.append("Schema version is required")
    if not definition.primary_entity or definition.primary_entity == "unknown":
        result.errors.append("Primary entity is required")

    nodes = definition.graph.nodes
    if not nodes:
        result.errors.append("Report must have at least one node")

    node_ids = {n.id for n in nodes}
    for edge in definition.graph.edges:
        if edge.from_ not in node_ids:
            result.errors.append(f"Edge references unknown source node: {edge.from_}")
        if edge.to not in node_ids:
            result.errors.append(f"Edge references unknown target node: {edge.to}")

    return result.merge(validate_definition_graph(definition))
