"""Graph to report definition compiler.

Maps each editable node's configuration onto the strict node data of the
report definition, derives the primary entity, workbook layout and hints, and
assembles a complete, versioned definition.

The compiler degrades gracefully: an empty or disconnected graph still
compiles, with warnings in ``hints.warnings``. Gating is the validator's job.

Usage:
    from reportflow.graphs.compiler import compile_graph

    definition = compile_graph(nodes, edges)

    # Save again: version bumps, identity and createdAt are kept
    definition = compile_graph(nodes, edges, prior=definition)
"""

from __future__ import annotations

import math
from typing import Any

from reportflow.core.config import Settings, get_settings
from reportflow.core.errors import CompileError
from reportflow.core.logging import get_logger
from reportflow.definitions.defaults import (
    Clock,
    IdFactory,
    default_limits,
    default_owner,
    default_security,
    new_id,
    next_timestamp,
    utc_now,
)
from reportflow.definitions.models import (
    EntityNodeData,
    EntityReportNode,
    ExportNodeData,
    ExportReportNode,
    FilterCondition,
    FilterGroup,
    FilterNodeData,
    FilterReportNode,
    LinkNodeData,
    LinkReportNode,
    ManyPolicy,
    MetadataSheet,
    NodePosition,
    OrderBy,
    PolicyMeasure,
    RelationshipConfig,
    ReportDefinition,
    ReportGraph,
    ReportGraphEdge,
    ReportGraphNode,
    ReportHints,
    ReportLayout,
    ReportMetadata,
    ReportSheetColumn,
    ReportSheetStyles,
    RowEstimate,
    SheetFreeze,
    SheetHyperlinks,
    SheetNodeData,
    SheetReportNode,
    TransformExpression,
    TransformNodeData,
    TransformReportNode,
    WorkbookLayout,
)

from .models import (
    COMPILED_KINDS,
    CONFIG_TYPES,
    Condition,
    ConditionGroup,
    EntityConfig,
    ExportConfig,
    FilterConfig,
    GraphEdge,
    GraphNode,
    JoinPolicy,
    LinkConfig,
    NodeConfig,
    NodeKind,
    SheetConfig,
    SortSpec,
    TransformConfig,
)

logger = get_logger(__name__)

UNKNOWN_ENTITY = "unknown"

# Rough row counts per entity until real statistics are available
ENTITY_ROW_ESTIMATES: dict[str, int] = {
    "employee": 2500,
    "account": 5000,
    "contact": 10000,
    "opportunity": 3000,
    "case": 8000,
}
DEFAULT_ROW_ESTIMATE = 1000
LINK_EXPAND_FACTOR = 2.5

NO_ENTITY_WARNING = "No entity nodes found - report may not function correctly"
MULTIPLE_ENTITY_WARNING = "Multiple entity nodes detected - only the first will be used as primary"
NO_SHEET_WARNING = "No sheet nodes found - add a sheet to define output format"

METADATA_SHEET_NAME = "_Meta"
DEFAULT_FILE_NAME = "Report_{yyyyMMdd}.xlsx"

_COMPILED_KIND_VALUES = {k.value for k in COMPILED_KINDS}


def compile_graph(
    nodes: list[GraphNode],
    edges: list[GraphEdge],
    prior: ReportDefinition | ReportMetadata | None = None,
    *,
    clock: Clock | None = None,
    id_factory: IdFactory | None = None,
    keep_artifacts: bool = False,
    settings: Settings | None = None,
) -> ReportDefinition:
    """Compile an editable graph into a report definition.

    Args:
        nodes: Graph nodes in encounter order
        edges: Graph edges
        prior: Existing definition (or partial metadata) whose identity,
            ownership, security, parameters and limits are kept
        clock: Source of the compile time (defaults to UTC now)
        id_factory: Source of fresh identifiers (defaults to uuid4)
        keep_artifacts: Carry ``prior.artifacts`` into the result
        settings: Defaults for fields ``prior`` does not supply

    Returns:
        Complete ReportDefinition

    Raises:
        CompileError: If a link node has no relation configured
    """
    settings = settings or get_settings()
    clock = clock or utc_now
    id_factory = id_factory or new_id
    warnings: list[str] = []

    report_nodes: list[ReportGraphNode] = []
    for node in nodes:
        report_node = compile_node(node, warnings)
        if report_node is None:
            logger.debug("node_skipped", node_id=node.id, kind=node.kind)
            continue
        report_nodes.append(report_node)

    report_edges = [ReportGraphEdge(from_=e.source, to=e.target, id=e.id) for e in edges]

    entity_nodes = [n for n in report_nodes if isinstance(n, EntityReportNode)]
    primary_entity = entity_nodes[0].data.entity if entity_nodes else UNKNOWN_ENTITY

    hints = _build_hints(report_nodes, primary_entity if entity_nodes else None)
    if prior is not None:
        hints.warnings.extend(_detect_sheet_downgrades(prior, report_nodes))
    hints.warnings.extend(warnings)

    now = next_timestamp(clock(), getattr(prior, "updated_at", None))
    prior_version = getattr(prior, "report_version", None) or 0

    definition = ReportDefinition(
        schema_version=settings.schema_version,
        id=getattr(prior, "id", None) or f"report-{id_factory()}",
        name=getattr(prior, "name", None) or "Untitled Report",
        description=getattr(prior, "description", None) or "Generated from flow builder",
        owner=getattr(prior, "owner", None) or default_owner(settings),
        category_id=getattr(prior, "category_id", None),
        tags=list(getattr(prior, "tags", None) or []),
        primary_entity=primary_entity,
        created_at=getattr(prior, "created_at", None) or now,
        updated_at=now,
        report_version=prior_version + 1,
        security=getattr(prior, "security", None) or default_security(settings),
        parameters=list(getattr(prior, "parameters", None) or []),
        graph=ReportGraph(nodes=report_nodes, edges=report_edges),
        layout=_build_layout(report_nodes),
        limits=getattr(prior, "limits", None) or default_limits(settings),
        hints=hints,
        artifacts=getattr(prior, "artifacts", None) if keep_artifacts else None,
    )

    logger.info(
        "graph_compiled",
        report_id=definition.id,
        report_version=definition.report_version,
        nodes=len(report_nodes),
        skipped=len(nodes) - len(report_nodes),
        edges=len(report_edges),
        warnings=len(hints.warnings),
    )
    return definition


def recompile(
    definition: ReportDefinition,
    nodes: list[GraphNode],
    edges: list[GraphEdge],
    **kwargs: Any,
) -> ReportDefinition:
    """Update an existing definition from its edited graph.

    Same as ``compile_graph(nodes, edges, prior=definition)``; artifacts are
    dropped unless ``keep_artifacts=True`` is passed, since they describe the
    previous graph.
    """
    return compile_graph(nodes, edges, prior=definition, **kwargs)


# =============================================================================
# Node mapping
# =============================================================================


def compile_node(node: GraphNode, warnings: list[str] | None = None) -> ReportGraphNode | None:
    """Map one editable node to its report node.

    Returns None for kinds the compiler does not map (palette-only or unknown).
    """
    if node.kind not in _COMPILED_KIND_VALUES:
        return None

    kind = NodeKind(node.kind)
    config: NodeConfig = node.config
    if not isinstance(config, CONFIG_TYPES[kind]):
        # Freshly dropped node whose editor has not produced typed settings yet
        config = CONFIG_TYPES[kind]()

    position = (
        NodePosition(x=node.position.x, y=node.position.y) if node.position is not None else None
    )

    if isinstance(config, EntityConfig):
        return EntityReportNode(id=node.id, position=position, data=_compile_entity(config))
    if isinstance(config, FilterConfig):
        return FilterReportNode(id=node.id, position=position, data=_compile_filter(config))
    if isinstance(config, LinkConfig):
        return LinkReportNode(id=node.id, position=position, data=_compile_link(node.id, config))
    if isinstance(config, TransformConfig):
        return TransformReportNode(id=node.id, position=position, data=_compile_transform(config))
    if isinstance(config, SheetConfig):
        return SheetReportNode(id=node.id, position=position, data=_compile_sheet(config))
    if isinstance(config, ExportConfig):
        return ExportReportNode(
            id=node.id,
            position=position,
            data=_compile_export(node.id, config, warnings if warnings is not None else []),
        )
    return None


def _compile_entity(config: EntityConfig) -> EntityNodeData:
    return EntityNodeData(
        entity=config.entity or UNKNOWN_ENTITY,
        attributes=list(config.attributes or []),
        order_by=_compile_sorts(config.order_by) or [],
        timezone_behavior=config.timezone or "user",
        top=config.row_cap,
    )


def _compile_filter(config: FilterConfig) -> FilterNodeData:
    return FilterNodeData(
        logic="and",
        conditions=[_compile_condition(c, with_label=True) for c in config.conditions or []],
        groups=[_compile_group(g) for g in config.filter_groups or []],
    )


def _compile_link(node_id: str, config: LinkConfig) -> LinkNodeData:
    relation = config.relation
    if relation is None:
        raise CompileError(node_id, "Link node must have relation data")

    # Only the first child filter group is kept; the editor offers one
    child_filters: list[FilterCondition] = []
    if config.child_filters:
        child_filters = [
            _compile_condition(c, with_label=False) for c in config.child_filters[0].conditions
        ]

    return LinkNodeData(
        relation=RelationshipConfig(
            direction=relation.kind,
            schema_name=relation.schema_name,
            from_=relation.from_attribute,
            to=relation.to_attribute,
            target=relation.target,
        ),
        join_type=config.join_type or "outer",
        alias=config.alias or "linked",
        child_filters=child_filters,
        child_order_by=_compile_sorts(config.child_sort) or [],
        child_top=config.child_top_n,
        child_fields=list(config.child_fields or []),
        many_policy=_compile_policy(config.policy, config.alias),
    )


def _compile_policy(policy: JoinPolicy | None, alias: str | None) -> ManyPolicy | None:
    if policy is None:
        return None
    return ManyPolicy(
        kind=policy.kind,
        field=policy.field,
        delimiter=policy.delimiter,
        order_by=_compile_sorts(policy.order_by),
        top=policy.top,  # literal or "@Param", never resolved here
        output_alias=alias,
        measures=[
            PolicyMeasure(func=m.func, attribute=m.attribute, alias=m.alias)
            for m in policy.measures
        ]
        if policy.measures is not None
        else None,
        group_by_child=policy.group_by,
        sheet_name=policy.sheet_name,
        columns=policy.child_columns,
    )


def _compile_transform(config: TransformConfig) -> TransformNodeData:
    return TransformNodeData(
        expressions=[
            TransformExpression(alias=e.alias, expr=e.expression) for e in config.expressions or []
        ]
    )


def _compile_sheet(config: SheetConfig) -> SheetNodeData:
    columns = [
        ReportSheetColumn(
            key=c.key,
            title=c.title or c.key,
            width=c.width,
            format=c.format if c.format in ("number", "date", "currency") else "text",
            align=c.align,
            wrap=False,
        )
        for c in config.columns or []
    ]

    freeze = None
    if config.freeze is not None:
        freeze = SheetFreeze(
            rows=1 if config.freeze.first_row else 0,
            columns=config.freeze.first_columns or 0,
        )

    styles = None
    if config.styles is not None:
        styles = ReportSheetStyles(
            zebra=config.styles.zebra_rows,
            header_bold=config.styles.bold_header,
            auto_filter=True,
        )

    hyperlinks = None
    if config.hyperlinks is not None:
        hyperlinks = SheetHyperlinks(child_sheet_links=config.hyperlinks)

    return SheetNodeData(
        name=config.name or "Unnamed Sheet",
        mode=config.mode or "main",
        columns=columns,
        freeze=freeze,
        styles=styles,
        hyperlinks=hyperlinks,
    )


def _compile_export(node_id: str, config: ExportConfig, warnings: list[str]) -> ExportNodeData:
    export_format = config.format or "xlsx"
    if export_format == "pdf":
        warnings.append(f"Export node {node_id}: PDF output is not supported, using xlsx")
        export_format = "xlsx"

    return ExportNodeData(
        format=export_format,
        layout=config.layout or "singleSheet",
        file_name=config.file_name or DEFAULT_FILE_NAME,
        include_metadata_sheet=True,
    )


def _compile_sorts(sorts: list[SortSpec] | None) -> list[OrderBy] | None:
    if sorts is None:
        return None
    return [OrderBy(attribute=s.attribute, desc=s.desc or False) for s in sorts]


def _compile_condition(condition: Condition, with_label: bool) -> FilterCondition:
    label = None
    if with_label:
        label = f"{condition.attribute} {condition.operator} {format_condition_value(condition.value)}"
    return FilterCondition(
        attribute=condition.attribute,
        operator=condition.operator,
        value=condition.value,
        label=label,
    )


def _compile_group(group: ConditionGroup) -> FilterGroup:
    return FilterGroup(
        logic="or" if (group.type or "AND").upper() == "OR" else "and",
        conditions=[_compile_condition(c, with_label=True) for c in group.conditions],
    )


def format_condition_value(value: Any) -> str:
    """Render a condition value the way the editor displays it."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, list | tuple):
        return ",".join(format_condition_value(v) for v in value)
    return str(value)


# =============================================================================
# Derived sections
# =============================================================================


def _build_layout(report_nodes: list[ReportGraphNode]) -> ReportLayout:
    """Workbook layout from sheet nodes in encounter order."""
    sheet_names = [n.data.name for n in report_nodes if isinstance(n, SheetReportNode)]
    return ReportLayout(
        workbook=WorkbookLayout(
            mode="multiSheet" if len(sheet_names) > 1 else "singleSheet",
            sheets_order=sheet_names,
            metadata_sheet=MetadataSheet(enabled=True, name=METADATA_SHEET_NAME),
        )
    )


def _build_hints(report_nodes: list[ReportGraphNode], primary_entity: str | None) -> ReportHints:
    """Row estimates and structural warnings. Advisory only."""
    warnings: list[str] = []
    entity_count = sum(1 for n in report_nodes if isinstance(n, EntityReportNode))
    link_count = sum(1 for n in report_nodes if isinstance(n, LinkReportNode))
    sheet_count = sum(1 for n in report_nodes if isinstance(n, SheetReportNode))

    if entity_count == 0:
        warnings.append(NO_ENTITY_WARNING)
    if entity_count > 1:
        warnings.append(MULTIPLE_ENTITY_WARNING)
    if sheet_count == 0:
        warnings.append(NO_SHEET_WARNING)

    base = estimate_entity_rows(primary_entity) if primary_entity else DEFAULT_ROW_ESTIMATE
    expand = math.floor(base * link_count * LINK_EXPAND_FACTOR) if link_count else base

    return ReportHints(
        row_estimate=RowEstimate(base=base, expand_estimate=expand),
        warnings=warnings,
    )


def estimate_entity_rows(entity: str) -> int:
    """Row count estimate for an entity logical name."""
    return ENTITY_ROW_ESTIMATES.get(entity.lower(), DEFAULT_ROW_ESTIMATE)


def _detect_sheet_downgrades(
    prior: ReportDefinition | ReportMetadata,
    report_nodes: list[ReportGraphNode],
) -> list[str]:
    """Warn when an aggregate sheet comes back from the editor in another mode.

    The editor only offers main and child, so an aggregate sheet that went
    through decompile and recompile loses its mode.
    """
    prior_graph = getattr(prior, "graph", None)
    if prior_graph is None:
        return []

    aggregate_ids = {
        n.id for n in prior_graph.nodes if isinstance(n, SheetReportNode) and n.data.mode == "aggregate"
    }
    warnings = []
    for node in report_nodes:
        if isinstance(node, SheetReportNode) and node.id in aggregate_ids and node.data.mode != "aggregate":
            logger.warning(
                "sheet_mode_downgraded",
                node_id=node.id,
                sheet=node.data.name,
                mode=node.data.mode,
            )
            warnings.append(
                f"Sheet '{node.data.name}' mode downgraded from aggregate to {node.data.mode}"
            )
    return warnings
