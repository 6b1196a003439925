"""Storage layer - SQLAlchemy models, engine handling and the report repository."""

from reportflow.storage.base import Base, create_store_engine, init_database, session_scope
from reportflow.storage.db_models import ReportRecord
from reportflow.storage.repository import (
    ImportResult,
    ReportRepository,
    ReportStatistics,
    definition_to_record,
    record_to_definition,
)

__all__ = [
    "Base",
    "create_store_engine",
    "init_database",
    "session_scope",
    "ReportRecord",
    "ImportResult",
    "ReportRepository",
    "ReportStatistics",
    "definition_to_record",
    "record_to_definition",
]
