"""Editable graph models.

The editing surface holds a list of ``GraphNode`` and ``GraphEdge`` values and
passes them into the compiler and validator on every call. Node configuration
is a tagged union: one dataclass per compiled node kind, plus
``PaletteConfig`` for palette-only kinds (aggregate, concatenate, pivot) and
kinds this package does not know about.

Fields on the config dataclasses mirror what the editor collects and may be
``None`` until the user fills them in.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Literal

# =============================================================================
# Enums
# =============================================================================


class NodeKind(str, Enum):
    """Kind of graph node."""

    ENTITY = "entity"  # Root data source
    FILTER = "filter"  # Row filter
    LINK = "link"  # Join to a related entity
    TRANSFORM = "transform"  # Computed columns
    AGGREGATE = "aggregate"  # Palette only, not compiled
    SHEET = "sheet"  # Worksheet layout
    EXPORT = "export"  # Output file settings
    CONCATENATE = "concatenate"  # Palette only, not compiled
    PIVOT = "pivot"  # Palette only, not compiled


# Kinds the compiler maps into a report definition
COMPILED_KINDS: tuple[NodeKind, ...] = (
    NodeKind.ENTITY,
    NodeKind.FILTER,
    NodeKind.LINK,
    NodeKind.TRANSFORM,
    NodeKind.SHEET,
    NodeKind.EXPORT,
)


# =============================================================================
# Shared building blocks
# =============================================================================


@dataclass
class Position:
    """Canvas coordinate."""

    x: float
    y: float

    @property
    def is_unset(self) -> bool:
        """(0, 0) is what the canvas reports for nodes never placed."""
        return self.x == 0 and self.y == 0


@dataclass
class SortSpec:
    """Ordering on one attribute."""

    attribute: str
    desc: bool | None = None


@dataclass
class Condition:
    """A single ``attribute operator value`` predicate."""

    attribute: str
    operator: str  # eq, ne, gt, ge, lt, le, like, in, notin, on-or-after, on-or-before
    value: Any = None


@dataclass
class ConditionGroup:
    """Conditions combined with AND or OR."""

    type: Literal["AND", "OR"] = "AND"
    conditions: list[Condition] = field(default_factory=list)


@dataclass
class Relation:
    """Relationship a link node follows from its parent entity."""

    kind: Literal["manyToOne", "oneToMany", "manyToMany"]
    schema_name: str
    from_attribute: str
    to_attribute: str
    target: str


@dataclass
class Measure:
    """Aggregate function applied to child rows."""

    func: str  # count, sum, avg, min, max
    alias: str
    attribute: str | None = None


@dataclass
class JoinPolicy:
    """How a to-many join is folded back into the parent rows.

    ``kind`` picks the strategy; the other fields apply to one strategy each:
    concat (field, delimiter, order_by, top), summarize (measures, group_by),
    childSheet (sheet_name, child_columns).
    """

    kind: Literal["expand", "summarize", "concat", "childSheet"]
    field: str | None = None
    delimiter: str | None = None
    order_by: list[SortSpec] | None = None
    top: int | str | None = None  # literal count or "@Param" reference
    measures: list[Measure] | None = None
    group_by: list[str] | None = None
    sheet_name: str | None = None
    child_columns: list[str] | None = None


@dataclass
class Expression:
    """Computed column."""

    alias: str
    expression: str


@dataclass
class SheetColumn:
    """Worksheet column."""

    key: str
    title: str | None = None
    format: Literal["date", "number", "currency", "text"] | None = None
    width: int | None = None
    align: Literal["left", "center", "right"] | None = None


@dataclass
class Freeze:
    """Frozen panes."""

    first_row: bool | None = None
    first_columns: int | None = None


@dataclass
class SheetStyles:
    """Worksheet styling toggles."""

    zebra_rows: bool | None = None
    bold_header: bool | None = None


# =============================================================================
# Node configurations (tagged union)
# =============================================================================


@dataclass
class EntityConfig:
    """Root entity selection."""

    kind: ClassVar[NodeKind] = NodeKind.ENTITY

    entity: str | None = None
    attributes: list[str] | None = None
    order_by: list[SortSpec] | None = None
    timezone: Literal["user", "utc"] | None = None
    row_cap: int | None = None


@dataclass
class FilterConfig:
    """Row filter: top-level conditions are ANDed, groups carry their own logic."""

    kind: ClassVar[NodeKind] = NodeKind.FILTER

    conditions: list[Condition] | None = None
    filter_groups: list[ConditionGroup] | None = None


@dataclass
class LinkConfig:
    """Join to a related entity."""

    kind: ClassVar[NodeKind] = NodeKind.LINK

    relation: Relation | None = None
    alias: str | None = None
    join_type: Literal["inner", "outer"] | None = None
    child_filters: list[ConditionGroup] | None = None
    child_sort: list[SortSpec] | None = None
    child_top_n: int | None = None
    child_fields: list[str] | None = None
    policy: JoinPolicy | None = None


@dataclass
class TransformConfig:
    """Computed columns."""

    kind: ClassVar[NodeKind] = NodeKind.TRANSFORM

    expressions: list[Expression] | None = None


@dataclass
class SheetConfig:
    """Worksheet layout."""

    kind: ClassVar[NodeKind] = NodeKind.SHEET

    name: str | None = None
    mode: Literal["main", "child"] | None = None
    columns: list[SheetColumn] | None = None
    freeze: Freeze | None = None
    styles: SheetStyles | None = None
    hyperlinks: bool | None = None


@dataclass
class ExportConfig:
    """Output file settings. ``pdf`` is offered by the palette but not compiled."""

    kind: ClassVar[NodeKind] = NodeKind.EXPORT

    format: Literal["xlsx", "csv", "pdf"] | None = None
    layout: Literal["singleSheet", "multiSheet"] | None = None
    file_name: str | None = None


@dataclass
class PaletteConfig:
    """Raw settings for node kinds the compiler does not map."""

    values: dict[str, Any] = field(default_factory=dict)


NodeConfig = (
    EntityConfig
    | FilterConfig
    | LinkConfig
    | TransformConfig
    | SheetConfig
    | ExportConfig
    | PaletteConfig
)

CONFIG_TYPES: dict[NodeKind, type] = {
    NodeKind.ENTITY: EntityConfig,
    NodeKind.FILTER: FilterConfig,
    NodeKind.LINK: LinkConfig,
    NodeKind.TRANSFORM: TransformConfig,
    NodeKind.SHEET: SheetConfig,
    NodeKind.EXPORT: ExportConfig,
}


# =============================================================================
# Graph
# =============================================================================


@dataclass
class GraphNode:
    """A node on the editing canvas.

    ``kind`` is a plain string so that kinds unknown to this package survive a
    load/save cycle untouched. ``label`` is display text only.
    """

    id: str
    kind: str
    config: NodeConfig = field(default_factory=PaletteConfig)
    position: Position | None = None
    label: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.kind, NodeKind):
            self.kind = self.kind.value

    @property
    def needs_layout(self) -> bool:
        return self.position is None or self.position.is_unset


@dataclass
class GraphEdge:
    """Directed connection between two nodes."""

    source: str
    target: str
    id: str = ""

    def __post_init__(self) -> None:
        if not self.id:
            self.id = edge_id(self.source, self.target)


def edge_id(source: str, target: str) -> str:
    """Deterministic edge id for an edge without one."""
    return f"edge-{source}-{target}"


def empty_config(kind: str) -> NodeConfig:
    """Blank configuration for a freshly dropped node of ``kind``."""
    try:
        return CONFIG_TYPES[NodeKind(kind)]()
    except (ValueError, KeyError):
        return PaletteConfig()
