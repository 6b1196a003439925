"""CLI command implementations."""

from reportflow.cli.commands import definitions, graph, reports

__all__ = [
    "definitions",
    "graph",
    "reports",
]
