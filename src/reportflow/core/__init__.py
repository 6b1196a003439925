"""Core module - configuration, logging, and error types."""

from reportflow.core.config import Settings, get_settings
from reportflow.core.errors import (
    CompileError,
    DecompileError,
    DefinitionLoadError,
    ReportflowError,
    ReportNotFoundError,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Errors
    "ReportflowError",
    "CompileError",
    "DecompileError",
    "DefinitionLoadError",
    "ReportNotFoundError",
]
