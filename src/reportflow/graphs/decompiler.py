"""Report definition to graph decompiler.

Rebuilds the editable graph from a stored definition so it can be opened on
the canvas again. This is the literal inverse of the compiler's field
mapping, with a few known losses:

- condition labels, ``outputAlias``, ``autoFilter``, ``wrap`` and
  ``includeMetadataSheet`` are not represented in the editable graph
- sheet modes other than ``main`` become ``child``
- ``pdf`` exports become ``xlsx``
- a ``manyPolicy.top`` parameter reference keeps only its digits
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from reportflow.core.errors import DecompileError
from reportflow.core.logging import get_logger
from reportflow.definitions.models import (
    EntityNodeData,
    EntityReportNode,
    ExportNodeData,
    ExportReportNode,
    FilterCondition,
    FilterNodeData,
    FilterReportNode,
    LinkNodeData,
    LinkReportNode,
    ManyPolicy,
    OrderBy,
    ReportDefinition,
    ReportGraphEdge,
    ReportGraphNode,
    SheetNodeData,
    SheetReportNode,
    TransformNodeData,
    TransformReportNode,
)

from .layout import auto_layout
from .models import (
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
    PaletteConfig,
    Position,
    Relation,
    SheetColumn,
    SheetConfig,
    SheetStyles,
    SortSpec,
    TransformConfig,
    edge_id,
)

logger = get_logger(__name__)

_NON_DIGITS = re.compile(r"[^0-9]")


@dataclass
class DecompiledGraph:
    """Editable graph rebuilt from a definition."""

    nodes: list[GraphNode] = field(default_factory=list)
    edges: list[GraphEdge] = field(default_factory=list)


def decompile(definition: ReportDefinition) -> DecompiledGraph:
    """Rebuild the editable graph of a report definition.

    Nodes without a stored position (or stored at the origin) are laid out
    automatically.

    Args:
        definition: Stored report definition

    Returns:
        DecompiledGraph with nodes in definition order

    Raises:
        DecompileError: If a link node has no relation
    """
    nodes = [decompile_node(node) for node in definition.graph.nodes]
    edges = [decompile_edge(edge) for edge in definition.graph.edges]

    logger.debug(
        "definition_decompiled",
        report_id=definition.id,
        nodes=len(nodes),
        edges=len(edges),
    )
    return DecompiledGraph(nodes=auto_layout(nodes), edges=edges)


def decompile_edge(edge: ReportGraphEdge) -> GraphEdge:
    return GraphEdge(
        source=edge.from_,
        target=edge.to,
        id=edge.id or edge_id(edge.from_, edge.to),
    )


def decompile_node(node: ReportGraphNode) -> GraphNode:
    """Map one report node back to an editable node with a display label."""
    config: NodeConfig
    if isinstance(node, EntityReportNode):
        config = _decompile_entity(node.data)
    elif isinstance(node, FilterReportNode):
        config = _decompile_filter(node.data)
    elif isinstance(node, LinkReportNode):
        config = _decompile_link(node.id, node.data)
    elif isinstance(node, TransformReportNode):
        config = _decompile_transform(node.data)
    elif isinstance(node, SheetReportNode):
        config = _decompile_sheet(node.id, node.data)
    elif isinstance(node, ExportReportNode):
        config = _decompile_export(node.data)
    else:
        config = PaletteConfig()

    position = Position(x=node.position.x, y=node.position.y) if node.position else None
    return GraphNode(
        id=node.id,
        kind=node.type,
        config=config,
        position=position,
        label=node_label(node),
    )


# =============================================================================
# Node data mapping
# =============================================================================


def _decompile_entity(data: EntityNodeData) -> EntityConfig:
    return EntityConfig(
        entity=data.entity,
        attributes=list(data.attributes),
        order_by=_decompile_sorts(data.order_by),
        timezone=data.timezone_behavior,
        row_cap=data.top,
    )


def _decompile_filter(data: FilterNodeData) -> FilterConfig:
    groups = None
    if data.groups is not None:
        groups = [
            ConditionGroup(
                type="OR" if group.logic == "or" else "AND",
                conditions=_decompile_conditions(group.conditions),
            )
            for group in data.groups
        ]
    return FilterConfig(conditions=_decompile_conditions(data.conditions), filter_groups=groups)


def _decompile_link(node_id: str, data: LinkNodeData) -> LinkConfig:
    relation = data.relation
    if relation is None:
        raise DecompileError(node_id, "Link node must have relation data")

    child_filters = None
    if data.child_filters is not None:
        child_filters = [
            ConditionGroup(type="AND", conditions=_decompile_conditions(data.child_filters))
        ]

    return LinkConfig(
        relation=Relation(
            kind=relation.direction,
            schema_name=relation.schema_name,
            from_attribute=relation.from_,
            to_attribute=relation.to,
            target=relation.target,
        ),
        alias=data.alias,
        join_type=data.join_type,
        child_filters=child_filters,
        child_sort=_decompile_sorts(data.child_order_by),
        child_top_n=data.child_top,
        child_fields=list(data.child_fields),
        policy=_decompile_policy(data.many_policy),
    )


def _decompile_policy(policy: ManyPolicy | None) -> JoinPolicy | None:
    if policy is None:
        return None
    measures = None
    if policy.measures is not None:
        measures = [Measure(func=m.func, alias=m.alias, attribute=m.attribute) for m in policy.measures]
    return JoinPolicy(
        kind=policy.kind,
        field=policy.field,
        delimiter=policy.delimiter,
        order_by=_decompile_sorts(policy.order_by),
        top=coerce_top(policy.top),
        measures=measures,
        group_by=policy.group_by_child,
        sheet_name=policy.sheet_name,
        child_columns=policy.columns,
    )


def coerce_top(top: int | str | None) -> int | None:
    """Numeric form of a policy ``top`` for the editor.

    The editor only holds numbers, so a parameter reference such as
    ``"@Max10"`` keeps its digits (10) and ``"@MaxConcat"`` becomes None.
    """
    if top is None or isinstance(top, int):
        return top
    digits = _NON_DIGITS.sub("", top)
    return int(digits) if digits else None


def _decompile_transform(data: TransformNodeData) -> TransformConfig:
    return TransformConfig(
        expressions=[Expression(alias=e.alias, expression=e.expr) for e in data.expressions]
    )


def _decompile_sheet(node_id: str, data: SheetNodeData) -> SheetConfig:
    mode = "main" if data.mode == "main" else "child"
    if mode != data.mode:
        logger.warning(
            "sheet_mode_downgraded",
            node_id=node_id,
            sheet=data.name,
            mode=data.mode,
            editor_mode=mode,
        )

    columns = [
        SheetColumn(
            key=c.key,
            title=c.title,
            format="number" if c.format in ("number(1)", "number(2)") else (c.format or "text"),
            width=c.width,
            align=c.align,
        )
        for c in data.columns
    ]

    freeze = None
    if data.freeze is not None:
        freeze = Freeze(first_row=(data.freeze.rows or 0) > 0, first_columns=data.freeze.columns)

    styles = None
    if data.styles is not None:
        styles = SheetStyles(zebra_rows=data.styles.zebra, bold_header=data.styles.header_bold)

    return SheetConfig(
        name=data.name,
        mode=mode,
        columns=columns,
        freeze=freeze,
        styles=styles,
        hyperlinks=data.hyperlinks.child_sheet_links if data.hyperlinks is not None else None,
    )


def _decompile_export(data: ExportNodeData) -> ExportConfig:
    return ExportConfig(
        format="xlsx" if data.format == "pdf" else data.format,
        layout=data.layout,
        file_name=data.file_name,
    )


def _decompile_sorts(sorts: list[OrderBy] | None) -> list[SortSpec] | None:
    if sorts is None:
        return None
    return [SortSpec(attribute=s.attribute, desc=s.desc) for s in sorts]


def _decompile_conditions(conditions: list[FilterCondition]) -> list[Condition]:
    return [Condition(attribute=c.attribute, operator=c.operator, value=c.value) for c in conditions]


# =============================================================================
# Labels
# =============================================================================


def node_label(node: ReportGraphNode) -> str:
    """Short canvas caption summarizing a node's configuration."""
    if isinstance(node, EntityReportNode):
        count = len(node.data.attributes)
        return f"{node.data.entity} ({count} fields)" if count else node.data.entity
    if isinstance(node, FilterReportNode):
        count = len(node.data.conditions) + sum(len(g.conditions) for g in node.data.groups or [])
        return f"Filter ({count} conditions)"
    if isinstance(node, LinkReportNode):
        relation = node.data.relation
        name = node.data.alias or (relation.target if relation else "")
        direction = relation.direction if relation else "unknown"
        return f"{name} ({direction})"
    if isinstance(node, TransformReportNode):
        return f"Transform ({len(node.data.expressions)} expressions)"
    if isinstance(node, SheetReportNode):
        return f"{node.data.name} Sheet ({len(node.data.columns)} columns)"
    if isinstance(node, ExportReportNode):
        return f"Export {node.data.format.upper()}"
    return node.type
