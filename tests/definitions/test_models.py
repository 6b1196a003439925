"""Tests for the report definition document models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from reportflow.definitions import create_sample
from reportflow.definitions.models import (
    LinkReportNode,
    ReportDefinition,
    ReportGraph,
    SheetReportNode,
)


class TestDocumentShape:
    """Tests for the camelCase JSON form."""

    def test_document_keys_are_camel_case(self) -> None:
        """Top-level and nested keys use the wire names."""
        document = create_sample().to_document()

        assert document["schemaVersion"] == "1.0.0"
        assert document["primaryEntity"] == "employee"
        assert document["layout"]["workbook"]["sheetsOrder"] == [
            "Employees",
            "OrganizationInfo",
            "ReviewSummary",
        ]
        link = document["graph"]["nodes"][2]
        assert link["data"]["relation"]["from"] == "employeeid"
        assert link["data"]["manyPolicy"]["top"] == "@MaxConcat"
        assert document["graph"]["edges"][0]["from"] == "n_entity"

    def test_unset_optionals_omitted(self) -> None:
        """None values are not written."""
        document = create_sample().to_document()

        assert "categoryId" not in document
        assert "blockedEntitiesRegex" not in document["security"]

    def test_document_parses_back(self) -> None:
        """to_document and from_document agree."""
        sample = create_sample()

        assert ReportDefinition.from_document(sample.to_document()) == sample

    def test_nodes_discriminated_by_type(self) -> None:
        """Node data is parsed into the shape for its type."""
        sample = create_sample()

        assert isinstance(sample.graph.nodes[2], LinkReportNode)
        assert isinstance(sample.graph.nodes[7], SheetReportNode)
        assert sample.graph.nodes[7].data.mode == "aggregate"

    def test_unknown_node_type_rejected(self) -> None:
        """The graph only holds the six compiled kinds."""
        with pytest.raises(ValidationError):
            ReportGraph.model_validate({"nodes": [{"id": "p", "type": "pivot", "data": {}}]})

    def test_wrong_data_shape_rejected(self) -> None:
        """A sheet node must carry sheet data."""
        with pytest.raises(ValidationError):
            ReportGraph.model_validate({"nodes": [{"id": "s", "type": "sheet", "data": {"entity": "x"}}]})

    def test_snake_case_names_accepted(self) -> None:
        """Python field names work alongside the aliases."""
        graph = ReportGraph.model_validate({"edges": [{"from": "a", "to": "b"}]})

        assert graph.edges[0].from_ == "a"
