"""Tests for the graph to report definition compiler."""

from __future__ import annotations

import pytest

from reportflow.core.errors import CompileError
from reportflow.definitions.models import (
    EntityReportNode,
    ExportReportNode,
    FilterReportNode,
    LinkReportNode,
    ReportMetadata,
    ReportOwner,
    SheetReportNode,
    TransformReportNode,
)
from reportflow.graphs.compiler import (
    MULTIPLE_ENTITY_WARNING,
    NO_ENTITY_WARNING,
    NO_SHEET_WARNING,
    compile_graph,
    estimate_entity_rows,
    format_condition_value,
    recompile,
)
from reportflow.graphs.models import (
    Condition,
    ConditionGroup,
    EntityConfig,
    ExportConfig,
    FilterConfig,
    Freeze,
    GraphNode,
    JoinPolicy,
    LinkConfig,
    NodeKind,
    PaletteConfig,
    Relation,
    SheetColumn,
    SheetConfig,
    SheetStyles,
)

FIXED_NOW_TEXT = "2025-10-12T09:30:00.000Z"


def _relation() -> Relation:
    return Relation(
        kind="oneToMany",
        schema_name="account_contacts",
        from_attribute="accountid",
        to_attribute="parentcustomerid",
        target="contact",
    )


class TestCompileBasics:
    """Tests for document-level fields."""

    def test_minimal_graph(self, minimal_nodes, minimal_edges, clock, id_factory) -> None:
        """Entity, sheet and export compile to a complete version 1 definition."""
        definition = compile_graph(minimal_nodes, minimal_edges, clock=clock, id_factory=id_factory)

        assert definition.id == "report-id0001"
        assert definition.name == "Untitled Report"
        assert definition.description == "Generated from flow builder"
        assert definition.schema_version == "1.0.0"
        assert definition.primary_entity == "account"
        assert definition.report_version == 1
        assert definition.created_at == FIXED_NOW_TEXT
        assert definition.updated_at == FIXED_NOW_TEXT
        assert definition.owner.id == "current-user"
        assert definition.security.execute_as == "caller"
        assert definition.security.allowed_roles == ["Report Generator"]
        assert definition.limits.page_size == 5000
        assert definition.limits.default_child_top == 10
        assert definition.artifacts is None

    def test_nodes_keep_ids_and_order(self, full_nodes, full_edges) -> None:
        """Every compiled node keeps its id, in encounter order."""
        definition = compile_graph(full_nodes, full_edges)

        assert [n.id for n in definition.graph.nodes] == [n.id for n in full_nodes]
        assert [type(n) for n in definition.graph.nodes] == [
            EntityReportNode,
            FilterReportNode,
            LinkReportNode,
            TransformReportNode,
            SheetReportNode,
            ExportReportNode,
        ]

    def test_edges_keep_endpoints(self, minimal_nodes, minimal_edges) -> None:
        """Edges map source/target to from/to with their ids."""
        definition = compile_graph(minimal_nodes, minimal_edges)

        assert [(e.from_, e.to, e.id) for e in definition.graph.edges] == [
            ("n_entity", "n_sheet", "edge-n_entity-n_sheet"),
            ("n_sheet", "n_export", "edge-n_sheet-n_export"),
        ]

    def test_positions_carried(self, minimal_nodes, minimal_edges) -> None:
        """Canvas positions are stored on the report nodes."""
        definition = compile_graph(minimal_nodes, minimal_edges)

        assert definition.graph.nodes[1].position is not None
        assert definition.graph.nodes[1].position.x == 350

    def test_palette_kinds_skipped(self, minimal_nodes, minimal_edges) -> None:
        """Aggregate, pivot, concatenate and unknown kinds are not compiled."""
        nodes = [
            *minimal_nodes,
            GraphNode(id="n_agg", kind=NodeKind.AGGREGATE),
            GraphNode(id="n_pivot", kind=NodeKind.PIVOT),
            GraphNode(id="n_concat", kind=NodeKind.CONCATENATE),
            GraphNode(id="n_custom", kind="sparkline", config=PaletteConfig({"a": 1})),
        ]

        definition = compile_graph(nodes, minimal_edges)

        assert [n.id for n in definition.graph.nodes] == ["n_entity", "n_sheet", "n_export"]

    def test_empty_graph_compiles(self) -> None:
        """An empty graph still compiles, with warnings."""
        definition = compile_graph([], [])

        assert definition.primary_entity == "unknown"
        assert definition.graph.nodes == []
        assert NO_ENTITY_WARNING in definition.hints.warnings
        assert NO_SHEET_WARNING in definition.hints.warnings


class TestPrimaryEntity:
    """Tests for primary entity derivation."""

    def test_first_entity_wins(self) -> None:
        """The first entity node in encounter order is the primary entity."""
        nodes = [
            GraphNode(id="a", kind=NodeKind.ENTITY, config=EntityConfig(entity="contact")),
            GraphNode(id="b", kind=NodeKind.ENTITY, config=EntityConfig(entity="account")),
        ]

        definition = compile_graph(nodes, [])

        assert definition.primary_entity == "contact"
        assert MULTIPLE_ENTITY_WARNING in definition.hints.warnings

    def test_no_entity_is_unknown(self) -> None:
        """Without entity nodes the primary entity is "unknown"."""
        nodes = [GraphNode(id="s", kind=NodeKind.SHEET, config=SheetConfig(name="S"))]

        definition = compile_graph(nodes, [])

        assert definition.primary_entity == "unknown"

    def test_unset_entity_defaults_to_unknown(self) -> None:
        """An entity node with nothing selected compiles as "unknown"."""
        nodes = [GraphNode(id="e", kind=NodeKind.ENTITY)]

        definition = compile_graph(nodes, [])

        assert definition.graph.nodes[0].data.entity == "unknown"
        assert definition.primary_entity == "unknown"


class TestNodeMapping:
    """Tests for per-kind field mapping and defaults."""

    def test_entity_defaults(self) -> None:
        """Entity fields default when not set."""
        definition = compile_graph([GraphNode(id="e", kind="entity", config=EntityConfig(entity="case"))], [])
        data = definition.graph.nodes[0].data

        assert data.attributes == []
        assert data.order_by == []
        assert data.timezone_behavior == "user"
        assert data.top is None

    def test_entity_row_cap_becomes_top(self) -> None:
        """rowCap maps to top, timezone to timezoneBehavior."""
        config = EntityConfig(entity="case", timezone="utc", row_cap=50)
        data = compile_graph([GraphNode(id="e", kind="entity", config=config)], []).graph.nodes[0].data

        assert data.top == 50
        assert data.timezone_behavior == "utc"

    def test_filter_labels_synthesized(self, full_nodes, full_edges) -> None:
        """Filter conditions get an "attribute operator value" label."""
        data = compile_graph(full_nodes, full_edges).graph.nodes[1].data

        assert data.logic == "and"
        assert [c.label for c in data.conditions] == [
            "statecode eq 0",
            "hiredate on-or-after @HiredAfter",
        ]
        assert data.groups is not None
        assert data.groups[0].logic == "or"
        assert len(data.groups[0].conditions) == 2

    def test_group_without_type_is_and(self) -> None:
        """A filter group with no type compiles as an AND group."""
        group = ConditionGroup(type=None, conditions=[Condition("statecode", "eq", 0)])
        config = FilterConfig(filter_groups=[group])

        data = compile_graph([GraphNode(id="f", kind="filter", config=config)], []).graph.nodes[0].data

        assert data.groups[0].logic == "and"

    def test_link_mapping(self, full_nodes, full_edges) -> None:
        """Link relation, child options and policy are mapped."""
        data = compile_graph(full_nodes, full_edges).graph.nodes[2].data

        assert data.relation is not None
        assert data.relation.direction == "oneToMany"
        assert data.relation.from_ == "employeeid"
        assert data.join_type == "inner"
        assert data.alias == "rev"
        assert [c.attribute for c in data.child_filters] == ["rating"]
        assert data.child_filters[0].label is None
        assert data.child_order_by[0].desc is True
        assert data.child_top == 5
        assert data.many_policy is not None
        assert data.many_policy.kind == "summarize"
        assert data.many_policy.output_alias == "rev"
        assert data.many_policy.group_by_child == ["period"]
        assert [m.alias for m in data.many_policy.measures] == ["ReviewCount", "AvgRating"]

    def test_link_defaults(self) -> None:
        """Link join type and alias default to outer and "linked"."""
        node = GraphNode(id="l", kind="link", config=LinkConfig(relation=_relation()))
        data = compile_graph([node], []).graph.nodes[0].data

        assert data.join_type == "outer"
        assert data.alias == "linked"
        assert data.child_filters == []
        assert data.child_fields == []
        assert data.many_policy is None

    def test_link_only_first_child_filter_group_kept(self) -> None:
        """Child filter groups after the first are dropped."""
        config = LinkConfig(
            relation=_relation(),
            child_filters=[
                ConditionGroup(conditions=[Condition("statecode", "eq", 0)]),
                ConditionGroup(conditions=[Condition("emailaddress1", "ne", None)]),
            ],
        )
        data = compile_graph([GraphNode(id="l", kind="link", config=config)], []).graph.nodes[0].data

        assert [c.attribute for c in data.child_filters] == ["statecode"]

    def test_policy_parameter_reference_kept(self) -> None:
        """A "@Param" top is carried through unresolved."""
        config = LinkConfig(
            relation=_relation(),
            policy=JoinPolicy(kind="concat", field="fullname", delimiter="; ", top="@MaxConcat"),
        )
        data = compile_graph([GraphNode(id="l", kind="link", config=config)], []).graph.nodes[0].data

        assert data.many_policy.top == "@MaxConcat"

    def test_link_without_relation_raises(self) -> None:
        """A link node with no relation cannot be compiled."""
        node = GraphNode(id="n_link", kind="link", config=LinkConfig(alias="x"))

        with pytest.raises(CompileError) as exc_info:
            compile_graph([node], [])

        assert exc_info.value.node_id == "n_link"
        assert "n_link" in str(exc_info.value)

    def test_sheet_mapping(self, full_nodes, full_edges) -> None:
        """Sheet freeze, styles and hyperlinks map to their document shapes."""
        data = compile_graph(full_nodes, full_edges).graph.nodes[4].data

        assert data.name == "Employees"
        assert data.mode == "main"
        assert data.freeze.rows == 1
        assert data.freeze.columns == 1
        assert data.styles.zebra is True
        assert data.styles.header_bold is True
        assert data.styles.auto_filter is True
        assert data.hyperlinks.child_sheet_links is True
        assert all(c.wrap is False for c in data.columns)

    def test_sheet_defaults(self) -> None:
        """Sheet name, mode, column title and format fall back to defaults."""
        config = SheetConfig(columns=[SheetColumn(key="revenue"), SheetColumn(key="d", format="date")])
        data = compile_graph([GraphNode(id="s", kind="sheet", config=config)], []).graph.nodes[0].data

        assert data.name == "Unnamed Sheet"
        assert data.mode == "main"
        assert data.columns[0].title == "revenue"
        assert data.columns[0].format == "text"
        assert data.columns[1].format == "date"
        assert data.freeze is None
        assert data.styles is None

    def test_freeze_without_first_row(self) -> None:
        """firstRow false freezes zero rows."""
        config = SheetConfig(name="S", freeze=Freeze(first_row=False), styles=SheetStyles())
        data = compile_graph([GraphNode(id="s", kind="sheet", config=config)], []).graph.nodes[0].data

        assert data.freeze.rows == 0
        assert data.freeze.columns == 0

    def test_export_defaults(self) -> None:
        """Export defaults to an xlsx single sheet with a dated file name."""
        data = compile_graph([GraphNode(id="x", kind="export")], []).graph.nodes[0].data

        assert data.format == "xlsx"
        assert data.layout == "singleSheet"
        assert data.file_name == "Report_{yyyyMMdd}.xlsx"
        assert data.include_metadata_sheet is True

    def test_pdf_export_falls_back_to_xlsx(self) -> None:
        """pdf has no document form; it compiles to xlsx with a warning."""
        node = GraphNode(id="x", kind="export", config=ExportConfig(format="pdf"))

        definition = compile_graph([node], [])

        assert definition.graph.nodes[0].data.format == "xlsx"
        assert any("PDF" in w for w in definition.hints.warnings)

    def test_mismatched_config_treated_as_blank(self) -> None:
        """A node whose config does not match its kind compiles with defaults."""
        node = GraphNode(id="s", kind="sheet", config=PaletteConfig())

        definition = compile_graph([node], [])

        assert definition.graph.nodes[0].data.name == "Unnamed Sheet"


class TestLayoutAndHints:
    """Tests for the derived workbook layout and hints."""

    def test_single_sheet_layout(self, minimal_nodes, minimal_edges) -> None:
        """One sheet gives a singleSheet workbook."""
        layout = compile_graph(minimal_nodes, minimal_edges).layout.workbook

        assert layout.mode == "singleSheet"
        assert layout.sheets_order == ["Accounts"]
        assert layout.metadata_sheet.name == "_Meta"
        assert layout.metadata_sheet.enabled is True

    def test_multi_sheet_layout(self) -> None:
        """More than one sheet gives a multiSheet workbook in encounter order."""
        nodes = [
            GraphNode(id="b", kind="sheet", config=SheetConfig(name="Second")),
            GraphNode(id="a", kind="sheet", config=SheetConfig(name="First")),
        ]

        layout = compile_graph(nodes, []).layout.workbook

        assert layout.mode == "multiSheet"
        assert layout.sheets_order == ["Second", "First"]

    def test_no_sheets_layout(self) -> None:
        """Zero sheets still gives a singleSheet workbook."""
        layout = compile_graph([], []).layout.workbook

        assert layout.mode == "singleSheet"
        assert layout.sheets_order == []

    def test_row_estimate_known_entity(self, minimal_nodes, minimal_edges) -> None:
        """Known entities use their row estimate."""
        estimate = compile_graph(minimal_nodes, minimal_edges).hints.row_estimate

        assert estimate.base == 5000
        assert estimate.expand_estimate == 5000

    def test_row_estimate_with_links(self) -> None:
        """Links multiply the base estimate by 2.5 per link."""
        nodes = [
            GraphNode(id="e", kind="entity", config=EntityConfig(entity="employee")),
            GraphNode(id="l1", kind="link", config=LinkConfig(relation=_relation())),
            GraphNode(id="l2", kind="link", config=LinkConfig(relation=_relation())),
        ]

        estimate = compile_graph(nodes, []).hints.row_estimate

        assert estimate.base == 2500
        assert estimate.expand_estimate == 12500

    def test_row_estimate_lookup(self) -> None:
        """Lookup is case-insensitive; unknown entities estimate 1000 rows."""
        assert estimate_entity_rows("Contact") == 10000
        assert estimate_entity_rows("new_widget") == 1000

    def test_condition_value_rendering(self) -> None:
        """Values render the way the editor shows them."""
        assert format_condition_value(True) == "true"
        assert format_condition_value(None) == "null"
        assert format_condition_value(3.0) == "3"
        assert format_condition_value(2.5) == "2.5"
        assert format_condition_value([1, 2]) == "1,2"


class TestPriorMetadata:
    """Tests for recompiling over an existing definition."""

    def test_version_increments(self, minimal_nodes, minimal_edges) -> None:
        """Each recompile bumps the version by exactly one."""
        first = compile_graph(minimal_nodes, minimal_edges)
        second = compile_graph(minimal_nodes, minimal_edges, prior=first)
        third = compile_graph(minimal_nodes, minimal_edges, prior=second)

        assert (first.report_version, second.report_version, third.report_version) == (1, 2, 3)

    def test_identity_preserved(self, minimal_nodes, minimal_edges, id_factory) -> None:
        """Id, name, owner, tags, parameters and createdAt survive a recompile."""
        first = compile_graph(minimal_nodes, minimal_edges, id_factory=id_factory)
        first = first.model_copy(update={"name": "Accounts", "tags": ["sales"]})

        second = recompile(first, minimal_nodes, minimal_edges, id_factory=id_factory)

        assert second.id == first.id
        assert second.name == "Accounts"
        assert second.tags == ["sales"]
        assert second.owner == first.owner
        assert second.created_at == first.created_at

    def test_created_at_set_once(self, minimal_nodes, minimal_edges) -> None:
        """createdAt stays fixed while updatedAt follows the clock."""
        from datetime import UTC, datetime

        first = compile_graph(minimal_nodes, minimal_edges, clock=lambda: datetime(2025, 1, 1, tzinfo=UTC))
        second = compile_graph(
            minimal_nodes,
            minimal_edges,
            prior=first,
            clock=lambda: datetime(2025, 6, 1, tzinfo=UTC),
        )

        assert second.created_at == "2025-01-01T00:00:00.000Z"
        assert second.updated_at == "2025-06-01T00:00:00.000Z"

    def test_updated_at_strictly_increases(self, minimal_nodes, minimal_edges, clock) -> None:
        """Recompiles within one clock tick still get a later updatedAt."""
        first = compile_graph(minimal_nodes, minimal_edges, clock=clock)
        second = compile_graph(minimal_nodes, minimal_edges, prior=first, clock=clock)
        third = compile_graph(minimal_nodes, minimal_edges, prior=second, clock=clock)

        assert first.updated_at == FIXED_NOW_TEXT
        assert second.updated_at == "2025-10-12T09:30:00.001Z"
        assert third.updated_at == "2025-10-12T09:30:00.002Z"
        assert third.created_at == FIXED_NOW_TEXT

    def test_partial_metadata(self, minimal_nodes, minimal_edges) -> None:
        """Partial metadata fills what it has; the rest defaults."""
        prior = ReportMetadata(
            id="report-42",
            name="Pipeline",
            owner=ReportOwner(id="u1", name="Dana"),
            report_version=6,
        )

        definition = compile_graph(minimal_nodes, minimal_edges, prior=prior)

        assert definition.id == "report-42"
        assert definition.name == "Pipeline"
        assert definition.owner.name == "Dana"
        assert definition.report_version == 7
        assert definition.security.execute_as == "caller"

    def test_artifacts_dropped_unless_kept(self, minimal_nodes, minimal_edges) -> None:
        """Artifacts describe the old graph and are dropped by default."""
        from reportflow.definitions import create_sample

        sample = create_sample()
        assert sample.artifacts is not None

        assert recompile(sample, minimal_nodes, minimal_edges).artifacts is None
        kept = compile_graph(minimal_nodes, minimal_edges, prior=sample, keep_artifacts=True)
        assert kept.artifacts == sample.artifacts

    def test_aggregate_downgrade_warned(self) -> None:
        """Recompiling an aggregate sheet as main is reported."""
        from reportflow.definitions import create_sample
        from reportflow.graphs.decompiler import decompile

        sample = create_sample()
        graph = decompile(sample)

        definition = recompile(sample, graph.nodes, graph.edges)

        assert "Sheet 'ReviewSummary' mode downgraded from aggregate to child" in definition.hints.warnings
