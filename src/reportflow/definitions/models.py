"""Report definition document models.

A ``ReportDefinition`` is the unit of persistence and exchange: its JSON shape
(camelCase keys) is both the store format and the import/export file format.
The execution engine consumes it; this package only produces and reads it.

Graph nodes are a discriminated union on ``type``. Each variant carries the
strict data shape for one node kind, so a document cannot hold, say, sheet
columns on a filter node.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DocumentModel(BaseModel):
    """Base for all document models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# =============================================================================
# Metadata, security, parameters
# =============================================================================


class ReportOwner(DocumentModel):
    id: str
    name: str


class ReportSecurity(DocumentModel):
    """Execution policy, carried through unchanged by the compiler."""

    execute_as: Literal["caller", "owner", "systemuser"] = "caller"
    allowed_roles: list[str] = Field(default_factory=list)
    blocked_entities_regex: str | None = None


class ParameterOption(DocumentModel):
    value: Any
    label: str


class ReportParameter(DocumentModel):
    """Named placeholder referenced from node data as ``@Name``."""

    name: str
    type: Literal["boolean", "string", "number", "date", "datetime", "optionset"]
    label: str
    default: Any = None
    min: float | None = None
    max: float | None = None
    description: str | None = None
    required: bool | None = None
    options: list[ParameterOption] | None = None


# =============================================================================
# Node data
# =============================================================================


class NodePosition(DocumentModel):
    x: float
    y: float


class OrderBy(DocumentModel):
    attribute: str
    desc: bool = False


class FilterCondition(DocumentModel):
    attribute: str
    operator: str
    value: Any = None
    label: str | None = None  # Display only, regenerated on compile


class FilterGroup(DocumentModel):
    logic: Literal["and", "or"]
    conditions: list[FilterCondition] = Field(default_factory=list)


class EntityNodeData(DocumentModel):
    entity: str
    attributes: list[str] = Field(default_factory=list)
    order_by: list[OrderBy] | None = None
    timezone_behavior: Literal["user", "utc"] | None = None
    top: int | None = None
    label: str | None = None
    description: str | None = None


class FilterNodeData(DocumentModel):
    logic: Literal["and", "or"] = "and"
    conditions: list[FilterCondition] = Field(default_factory=list)
    groups: list[FilterGroup] | None = None
    label: str | None = None
    description: str | None = None


class RelationshipConfig(DocumentModel):
    direction: Literal["oneToMany", "manyToOne", "manyToMany"]
    schema_name: str
    from_: str = Field(alias="from")
    to: str
    target: str


class PolicyMeasure(DocumentModel):
    func: Literal["count", "sum", "avg", "min", "max"]
    alias: str
    attribute: str | None = None


class ManyPolicy(DocumentModel):
    """Multiplicity strategy for a to-many link.

    ``top`` is either a literal count or a parameter reference such as
    ``"@MaxConcat"``; it is never resolved here.
    """

    kind: Literal["concat", "summarize", "childSheet", "expand"]
    field: str | None = None
    delimiter: str | None = None
    order_by: list[OrderBy] | None = None
    top: int | str | None = None
    output_alias: str | None = None
    measures: list[PolicyMeasure] | None = None
    group_by_child: list[str] | None = None
    sheet_name: str | None = None
    columns: list[str] | None = None


class LinkNodeData(DocumentModel):
    # Optional here so a malformed stored document still parses and the
    # decompiler can name the broken node.
    relation: RelationshipConfig | None = None
    join_type: Literal["inner", "outer"] = "outer"
    alias: str
    child_filters: list[FilterCondition] | None = None
    child_order_by: list[OrderBy] | None = None
    child_top: int | None = None
    child_fields: list[str] = Field(default_factory=list)
    many_policy: ManyPolicy | None = None
    label: str | None = None
    description: str | None = None


class TransformExpression(DocumentModel):
    alias: str
    expr: str


class TransformNodeData(DocumentModel):
    expressions: list[TransformExpression] = Field(default_factory=list)
    label: str | None = None
    description: str | None = None


class ReportSheetColumn(DocumentModel):
    key: str
    title: str
    width: int | None = None
    format: Literal["text", "number", "date", "currency", "number(1)", "number(2)"] | None = None
    align: Literal["left", "center", "right"] | None = None
    wrap: bool | None = None


class SheetFreeze(DocumentModel):
    rows: int | None = None
    columns: int | None = None


class ReportSheetStyles(DocumentModel):
    zebra: bool | None = None
    header_bold: bool | None = None
    auto_filter: bool | None = None


class SheetHyperlinks(DocumentModel):
    child_sheet_links: bool | None = None


class SheetNodeData(DocumentModel):
    name: str
    mode: Literal["main", "aggregate", "child"] = "main"
    columns: list[ReportSheetColumn] = Field(default_factory=list)
    freeze: SheetFreeze | None = None
    styles: ReportSheetStyles | None = None
    hyperlinks: SheetHyperlinks | None = None
    label: str | None = None
    description: str | None = None


class ExportNodeData(DocumentModel):
    format: Literal["xlsx", "csv", "pdf"] = "xlsx"
    layout: Literal["singleSheet", "multiSheet"] = "singleSheet"
    file_name: str
    include_metadata_sheet: bool | None = None
    label: str | None = None
    description: str | None = None


# =============================================================================
# Graph
# =============================================================================


class _ReportNodeBase(DocumentModel):
    id: str
    position: NodePosition | None = None


class EntityReportNode(_ReportNodeBase):
    type: Literal["entity"] = "entity"
    data: EntityNodeData


class FilterReportNode(_ReportNodeBase):
    type: Literal["filter"] = "filter"
    data: FilterNodeData


class LinkReportNode(_ReportNodeBase):
    type: Literal["link"] = "link"
    data: LinkNodeData


class TransformReportNode(_ReportNodeBase):
    type: Literal["transform"] = "transform"
    data: TransformNodeData


class SheetReportNode(_ReportNodeBase):
    type: Literal["sheet"] = "sheet"
    data: SheetNodeData


class ExportReportNode(_ReportNodeBase):
    type: Literal["export"] = "export"
    data: ExportNodeData


ReportGraphNode = Annotated[
    EntityReportNode
    | FilterReportNode
    | LinkReportNode
    | TransformReportNode
    | SheetReportNode
    | ExportReportNode,
    Field(discriminator="type"),
]


class ReportGraphEdge(DocumentModel):
    from_: str = Field(alias="from")
    to: str
    id: str | None = None


class ReportGraph(DocumentModel):
    nodes: list[ReportGraphNode] = Field(default_factory=list)
    edges: list[ReportGraphEdge] = Field(default_factory=list)


# =============================================================================
# Layout, limits, hints, artifacts
# =============================================================================


class MetadataSheet(DocumentModel):
    enabled: bool
    name: str


class WorkbookLayout(DocumentModel):
    mode: Literal["singleSheet", "multiSheet"] = "singleSheet"
    sheets_order: list[str] = Field(default_factory=list)
    metadata_sheet: MetadataSheet | None = None


class ReportLayout(DocumentModel):
    workbook: WorkbookLayout = Field(default_factory=WorkbookLayout)


class ReportLimits(DocumentModel):
    page_size: int
    preview_rows: int
    max_expanded_rows: int
    max_columns_per_sheet: int
    max_link_depth: int
    default_child_top: int


class RowEstimate(DocumentModel):
    base: int
    org_avg: float | None = None
    expand_estimate: int | None = None


class ReportHints(DocumentModel):
    """Advisory output of the compiler. Never gates execution."""

    row_estimate: RowEstimate | None = None
    warnings: list[str] = Field(default_factory=list)
    estimated_execution_time: float | None = None


class MetadataSnapshotRef(DocumentModel):
    id: str
    version: str
    lcid: int


class ChildPlan(DocumentModel):
    target_entity: str
    parent_key: str
    select: list[str]
    order_by: list[OrderBy] | None = None
    filters: list[FilterCondition] | None = None


class ReportArtifacts(DocumentModel):
    """Produced by the external compilation backend, preserved as-is here."""

    compiler_version: str
    compiled_at: str
    metadata_snapshot: MetadataSnapshotRef
    primary_fetch_xml: str | None = None
    aggregate_fetches: dict[str, str] | None = None
    child_plans: dict[str, ChildPlan] | None = None


# =============================================================================
# Report definition
# =============================================================================


class ReportDefinition(DocumentModel):
    """The canonical, versioned report document."""

    schema_version: str
    id: str
    name: str
    description: str = ""
    owner: ReportOwner
    category_id: str | None = None
    tags: list[str] = Field(default_factory=list)
    primary_entity: str
    created_at: str
    updated_at: str
    report_version: int

    security: ReportSecurity = Field(default_factory=ReportSecurity)
    parameters: list[ReportParameter] = Field(default_factory=list)
    graph: ReportGraph = Field(default_factory=ReportGraph)
    layout: ReportLayout = Field(default_factory=ReportLayout)
    limits: ReportLimits
    hints: ReportHints = Field(default_factory=ReportHints)
    artifacts: ReportArtifacts | None = None

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> ReportDefinition:
        """Parse a JSON-shaped document (camelCase keys)."""
        return cls.model_validate(document)

    def to_document(self) -> dict[str, Any]:
        """Render the JSON-shaped document (camelCase keys, unset optionals omitted)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ReportMetadata(DocumentModel):
    """Partial metadata handed to the compiler in place of a full prior definition.

    Any field left as ``None`` falls back to the configured default.
    """

    id: str | None = None
    name: str | None = None
    description: str | None = None
    owner: ReportOwner | None = None
    category_id: str | None = None
    tags: list[str] | None = None
    created_at: str | None = None
    report_version: int | None = None
    security: ReportSecurity | None = None
    parameters: list[ReportParameter] | None = None
    limits: ReportLimits | None = None
    artifacts: ReportArtifacts | None = None


class ReportListItem(DocumentModel):
    """Lightweight listing entry."""

    id: str
    name: str
    description: str
    primary_entity: str
    tags: list[str]
    updated_at: str
    report_version: int


class ReportExport(DocumentModel):
    """Bulk export file."""

    version: str
    reports: list[ReportDefinition]
    exported_at: str
    exported_by: str
