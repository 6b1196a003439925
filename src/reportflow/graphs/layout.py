"""Deterministic canvas layout for nodes without a stored position.

Nodes are placed in columns following the pipeline order (entity, filter,
link, transform, sheet, export), then one column per any other kind in the
order those kinds first appear. Nodes that already have a position keep it
and do not take a slot.
"""

from __future__ import annotations

from dataclasses import replace

from .models import GraphNode, NodeKind, Position

LAYOUT_ORDER: tuple[str, ...] = (
    NodeKind.ENTITY.value,
    NodeKind.FILTER.value,
    NodeKind.LINK.value,
    NodeKind.TRANSFORM.value,
    NodeKind.SHEET.value,
    NodeKind.EXPORT.value,
)

ORIGIN_X = 50
ORIGIN_Y = 50
HORIZONTAL_SPACING = 300
VERTICAL_SPACING = 150


def auto_layout(nodes: list[GraphNode]) -> list[GraphNode]:
    """Return the nodes with positions filled in where missing.

    The input list and its nodes are left unchanged.

    Args:
        nodes: Graph nodes in encounter order

    Returns:
        New list, same order, with every node positioned
    """
    groups: dict[str, list[int]] = {}
    for index, node in enumerate(nodes):
        if node.needs_layout:
            groups.setdefault(node.kind, []).append(index)

    extra_kinds = [kind for kind in groups if kind not in LAYOUT_ORDER]

    positions: dict[int, Position] = {}
    column = 0
    for kind in [*LAYOUT_ORDER, *extra_kinds]:
        members = groups.get(kind)
        if not members:
            continue
        x = ORIGIN_X + column * HORIZONTAL_SPACING
        for slot, index in enumerate(members):
            positions[index] = Position(x=x, y=ORIGIN_Y + slot * VERTICAL_SPACING)
        column += 1

    return [
        replace(node, position=positions[i]) if i in positions else node
        for i, node in enumerate(nodes)
    ]
