"""React Flow JSON codec for editable graphs.

Graphs travel between the canvas and this package as React Flow shaped JSON:

    {
        "nodes": [{"id": "n1", "type": "entity", "position": {"x": 50, "y": 50},
                   "data": {"entity": "account", "attributes": ["name"]}}],
        "edges": [{"id": "e1", "source": "n1", "target": "n2"}]
    }

``data`` uses the editor's camelCase field names. The node kind is read from
``type``, or from ``data.type`` when the canvas uses a generic node renderer.

Usage:
    from reportflow.graphs.serialization import graph_from_dict, graph_to_dict

    nodes, edges = graph_from_dict(json.loads(text))
    payload = graph_to_dict(nodes, edges)
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from reportflow.core.errors import DefinitionLoadError

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
    NodeKind,
    PaletteConfig,
    Position,
    Relation,
    SheetColumn,
    SheetConfig,
    SheetStyles,
    SortSpec,
    TransformConfig,
)

# =============================================================================
# Parsing
# =============================================================================


def graph_from_dict(payload: dict[str, Any]) -> tuple[list[GraphNode], list[GraphEdge]]:
    """Parse a React Flow payload into graph nodes and edges."""
    nodes = [node_from_dict(n) for n in payload.get("nodes", [])]
    edges = [edge_from_dict(e) for e in payload.get("edges", [])]
    return nodes, edges


def load_graph_file(path: Path) -> tuple[list[GraphNode], list[GraphEdge]]:
    """Load a graph from a JSON file.

    Raises:
        DefinitionLoadError: If the file is missing or not a graph payload
    """
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise DefinitionLoadError(path, f"Cannot read file: {e}") from e
    except json.JSONDecodeError as e:
        raise DefinitionLoadError(path, f"Invalid JSON: {e}") from e

    if not isinstance(payload, dict) or "nodes" not in payload:
        raise DefinitionLoadError(path, "Missing required field: nodes")

    try:
        return graph_from_dict(payload)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise DefinitionLoadError(path, f"Malformed graph: {e}") from e


def node_from_dict(data: dict[str, Any]) -> GraphNode:
    """Parse one React Flow node."""
    node_data = dict(data.get("data") or {})
    kind = data.get("type")
    if not kind or kind == "default":
        kind = node_data.get("type", "")

    position = None
    if pos := data.get("position"):
        position = Position(x=pos.get("x", 0), y=pos.get("y", 0))

    return GraphNode(
        id=data["id"],
        kind=kind,
        config=config_from_dict(kind, node_data),
        position=position,
        label=node_data.get("label"),
    )


def edge_from_dict(data: dict[str, Any]) -> GraphEdge:
    """Parse one React Flow edge."""
    return GraphEdge(source=data["source"], target=data["target"], id=data.get("id") or "")


def config_from_dict(kind: str, data: dict[str, Any]) -> NodeConfig:
    """Build the typed configuration for ``kind`` from editor field names."""
    if kind == NodeKind.ENTITY:
        return EntityConfig(
            entity=data.get("entity"),
            attributes=data.get("attributes"),
            order_by=_parse_sorts(data.get("orderBy")),
            timezone=data.get("timezone"),
            row_cap=data.get("rowCap"),
        )

    if kind == NodeKind.FILTER:
        return FilterConfig(
            conditions=_parse_conditions(data.get("conditions")),
            filter_groups=_parse_groups(data.get("filterGroups")),
        )

    if kind == NodeKind.LINK:
        relation = None
        if rel := data.get("relation"):
            relation = Relation(
                kind=rel["kind"],
                schema_name=rel["schemaName"],
                from_attribute=rel["from"],
                to_attribute=rel["to"],
                target=rel["target"],
            )
        policy = None
        if pol := data.get("policy"):
            policy = JoinPolicy(
                kind=pol["kind"],
                field=pol.get("field"),
                delimiter=pol.get("delimiter"),
                order_by=_parse_sorts(pol.get("orderBy")),
                top=pol.get("top"),
                measures=[
                    Measure(func=m["func"], alias=m["alias"], attribute=m.get("attribute"))
                    for m in pol["measures"]
                ]
                if pol.get("measures") is not None
                else None,
                group_by=pol.get("groupBy"),
                sheet_name=pol.get("sheetName"),
                child_columns=pol.get("childColumns"),
            )
        return LinkConfig(
            relation=relation,
            alias=data.get("alias"),
            join_type=data.get("joinType"),
            child_filters=_parse_groups(data.get("childFilters")),
            child_sort=_parse_sorts(data.get("childSort")),
            child_top_n=data.get("childTopN"),
            child_fields=data.get("childFields"),
            policy=policy,
        )

    if kind == NodeKind.TRANSFORM:
        expressions = data.get("expressions")
        return TransformConfig(
            expressions=[Expression(alias=e["alias"], expression=e["expression"]) for e in expressions]
            if expressions is not None
            else None
        )

    if kind == NodeKind.SHEET:
        columns = data.get("columns")
        freeze = data.get("freeze")
        styles = data.get("styles")
        return SheetConfig(
            name=data.get("name"),
            mode=data.get("mode"),
            columns=[
                SheetColumn(
                    key=c["key"],
                    title=c.get("title"),
                    format=c.get("format"),
                    width=c.get("width"),
                    align=c.get("align"),
                )
                for c in columns
            ]
            if columns is not None
            else None,
            freeze=Freeze(first_row=freeze.get("firstRow"), first_columns=freeze.get("firstColumns"))
            if freeze is not None
            else None,
            styles=SheetStyles(zebra_rows=styles.get("zebraRows"), bold_header=styles.get("boldHeader"))
            if styles is not None
            else None,
            hyperlinks=data.get("hyperlinks"),
        )

    if kind == NodeKind.EXPORT:
        return ExportConfig(
            format=data.get("format"),
            layout=data.get("layout"),
            file_name=data.get("fileName"),
        )

    values = {k: v for k, v in data.items() if k not in ("type", "label")}
    return PaletteConfig(values=values)


def _parse_sorts(data: list[dict[str, Any]] | None) -> list[SortSpec] | None:
    if data is None:
        return None
    return [SortSpec(attribute=s["attribute"], desc=s.get("desc")) for s in data]


def _parse_conditions(data: list[dict[str, Any]] | None) -> list[Condition] | None:
    if data is None:
        return None
    return [
        Condition(attribute=c["attribute"], operator=c["operator"], value=c.get("value"))
        for c in data
    ]


def _parse_groups(data: list[dict[str, Any]] | None) -> list[ConditionGroup] | None:
    if data is None:
        return None
    return [
        ConditionGroup(
            type=g.get("type") or "AND",
            conditions=_parse_conditions(g.get("conditions")) or [],
        )
        for g in data
    ]


# =============================================================================
# Rendering
# =============================================================================


def graph_to_dict(nodes: list[GraphNode], edges: list[GraphEdge]) -> dict[str, Any]:
    """Render graph nodes and edges as a React Flow payload."""
    return {
        "nodes": [node_to_dict(n) for n in nodes],
        "edges": [
            {"id": e.id, "source": e.source, "target": e.target, "type": "smoothstep"}
            for e in edges
        ],
    }


def node_to_dict(node: GraphNode) -> dict[str, Any]:
    """Render one node; unset fields are omitted from ``data``."""
    data = config_to_dict(node.config)
    if node.label is not None:
        data["label"] = node.label

    result: dict[str, Any] = {"id": node.id, "type": node.kind, "data": data}
    if node.position is not None:
        result["position"] = {"x": node.position.x, "y": node.position.y}
    return result


def config_to_dict(config: NodeConfig) -> dict[str, Any]:
    """Render a typed configuration with editor field names."""
    if isinstance(config, EntityConfig):
        data: dict[str, Any] = {
            "entity": config.entity,
            "attributes": config.attributes,
            "orderBy": _sorts_to_list(config.order_by),
            "timezone": config.timezone,
            "rowCap": config.row_cap,
        }
    elif isinstance(config, FilterConfig):
        data = {
            "conditions": _conditions_to_list(config.conditions),
            "filterGroups": _groups_to_list(config.filter_groups),
        }
    elif isinstance(config, LinkConfig):
        data = {
            "relation": {
                "kind": config.relation.kind,
                "schemaName": config.relation.schema_name,
                "from": config.relation.from_attribute,
                "to": config.relation.to_attribute,
                "target": config.relation.target,
            }
            if config.relation is not None
            else None,
            "alias": config.alias,
            "joinType": config.join_type,
            "childFilters": _groups_to_list(config.child_filters),
            "childSort": _sorts_to_list(config.child_sort),
            "childTopN": config.child_top_n,
            "childFields": config.child_fields,
            "policy": _policy_to_dict(config.policy),
        }
    elif isinstance(config, TransformConfig):
        data = {
            "expressions": [
                {"alias": e.alias, "expression": e.expression} for e in config.expressions
            ]
            if config.expressions is not None
            else None
        }
    elif isinstance(config, SheetConfig):
        data = {
            "name": config.name,
            "mode": config.mode,
            "columns": [_drop_none(vars(c).copy()) for c in config.columns]
            if config.columns is not None
            else None,
            "freeze": _drop_none(
                {"firstRow": config.freeze.first_row, "firstColumns": config.freeze.first_columns}
            )
            if config.freeze is not None
            else None,
            "styles": _drop_none(
                {"zebraRows": config.styles.zebra_rows, "boldHeader": config.styles.bold_header}
            )
            if config.styles is not None
            else None,
            "hyperlinks": config.hyperlinks,
        }
    elif isinstance(config, ExportConfig):
        data = {
            "format": config.format,
            "layout": config.layout,
            "fileName": config.file_name,
        }
    else:
        data = dict(config.values)

    return _drop_none(data)


def _policy_to_dict(policy: JoinPolicy | None) -> dict[str, Any] | None:
    if policy is None:
        return None
    return _drop_none(
        {
            "kind": policy.kind,
            "field": policy.field,
            "delimiter": policy.delimiter,
            "orderBy": _sorts_to_list(policy.order_by),
            "top": policy.top,
            "measures": [_drop_none(vars(m).copy()) for m in policy.measures]
            if policy.measures is not None
            else None,
            "groupBy": policy.group_by,
            "sheetName": policy.sheet_name,
            "childColumns": policy.child_columns,
        }
    )


def _sorts_to_list(sorts: list[SortSpec] | None) -> list[dict[str, Any]] | None:
    if sorts is None:
        return None
    return [_drop_none({"attribute": s.attribute, "desc": s.desc}) for s in sorts]


def _conditions_to_list(conditions: list[Condition] | None) -> list[dict[str, Any]] | None:
    if conditions is None:
        return None
    return [{"attribute": c.attribute, "operator": c.operator, "value": c.value} for c in conditions]


def _groups_to_list(groups: list[ConditionGroup] | None) -> list[dict[str, Any]] | None:
    if groups is None:
        return None
    return [
        {"type": g.type, "conditions": _conditions_to_list(g.conditions)} for g in groups
    ]


def _drop_none(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}
