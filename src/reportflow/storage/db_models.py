"""SQLAlchemy models for stored report definitions.

The whole document is stored as JSON; the other columns are copies of
document fields used for listing and filtering.
"""

from typing import Any

from sqlalchemy import JSON, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from reportflow.storage.base import Base


class ReportRecord(Base):
    """A stored report definition (whole-document upsert)."""

    __tablename__ = "report_definitions"

    report_id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    primary_entity: Mapped[str] = mapped_column(String, nullable=False, index=True)
    report_version: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[str] = mapped_column(String, nullable=False, index=True)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    document: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
