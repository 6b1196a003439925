"""Report definition documents.

The ``ReportDefinition`` model is the canonical, versioned form of a report:
what the compiler produces, what the store persists, and what the import and
export files carry.
"""

from .defaults import (
    default_limits,
    default_owner,
    default_security,
    format_timestamp,
    next_timestamp,
    parse_timestamp,
)
from .factory import create_blank, create_sample, load_definition_file
from .models import (
    EntityReportNode,
    ExportReportNode,
    FilterReportNode,
    LinkReportNode,
    ReportArtifacts,
    ReportDefinition,
    ReportExport,
    ReportGraph,
    ReportGraphEdge,
    ReportGraphNode,
    ReportHints,
    ReportLayout,
    ReportLimits,
    ReportListItem,
    ReportMetadata,
    ReportOwner,
    ReportParameter,
    ReportSecurity,
    SheetReportNode,
    TransformReportNode,
)

__all__ = [
    # Factories
    "create_blank",
    "create_sample",
    "load_definition_file",
    # Defaults
    "default_limits",
    "default_owner",
    "default_security",
    "format_timestamp",
    "next_timestamp",
    "parse_timestamp",
    # Models
    "EntityReportNode",
    "ExportReportNode",
    "FilterReportNode",
    "LinkReportNode",
    "ReportArtifacts",
    "ReportDefinition",
    "ReportExport",
    "ReportGraph",
    "ReportGraphEdge",
    "ReportGraphNode",
    "ReportHints",
    "ReportLayout",
    "ReportLimits",
    "ReportListItem",
    "ReportMetadata",
    "ReportOwner",
    "ReportParameter",
    "ReportSecurity",
    "SheetReportNode",
    "TransformReportNode",
]
