"""Exception types.

Validation problems are not exceptions; they are reported through
``ValidationResult``. The exceptions here cover data that cannot be
faithfully compiled, reconstructed, loaded, or found.
"""

from __future__ import annotations

from pathlib import Path


class ReportflowError(Exception):
    """Base class for all reportflow errors."""


class CompileError(ReportflowError):
    """A graph node's configuration cannot be mapped to a report node."""

    def __init__(self, node_id: str, message: str):
        self.node_id = node_id
        self.message = message
        super().__init__(f"Node {node_id}: {message}")


class DecompileError(ReportflowError):
    """A stored report definition is malformed and cannot become a graph."""

    def __init__(self, node_id: str, message: str):
        self.node_id = node_id
        self.message = message
        super().__init__(f"Node {node_id}: {message}")


class DefinitionLoadError(ReportflowError):
    """Error loading a definition, graph, or sample file."""

    def __init__(self, path: Path | str, message: str):
        self.path = path
        self.message = message
        super().__init__(f"{path}: {message}")


class ReportNotFoundError(ReportflowError):
    """No stored report definition has the requested id."""

    def __init__(self, report_id: str):
        self.report_id = report_id
        super().__init__(f"Report {report_id} not found")
