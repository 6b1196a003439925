"""Report definition persistence.

Repository for storing, querying, duplicating, exporting and importing
report definitions. SQLAlchemy models are in storage/db_models.py.

Usage:
    from reportflow.storage import ReportRepository, session_scope

    with session_scope(engine) as session:
        repo = ReportRepository(session)
        repo.put(definition)
        items = repo.search("employees")
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from reportflow.core.config import Settings, get_settings
from reportflow.core.errors import ReportNotFoundError
from reportflow.core.logging import get_logger, log_context
from reportflow.definitions.defaults import Clock, IdFactory, format_timestamp, new_id, utc_now
from reportflow.definitions.models import ReportDefinition, ReportExport, ReportListItem
from reportflow.storage.db_models import ReportRecord

logger = get_logger(__name__)

REQUIRED_IMPORT_FIELDS = ("id", "name", "schemaVersion")


@dataclass
class ImportResult:
    """Outcome of a bulk import."""

    imported: list[str] = field(default_factory=list)  # stored report ids
    errors: list[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.imported)


@dataclass
class ReportStatistics:
    """Summary of the stored reports."""

    total_reports: int
    total_entities: int
    total_tags: int
    last_updated: str | None
    entity_breakdown: dict[str, int]


def definition_to_record(definition: ReportDefinition) -> ReportRecord:
    """Create record from ReportDefinition model."""
    return ReportRecord(
        report_id=definition.id,
        name=definition.name,
        description=definition.description,
        primary_entity=definition.primary_entity,
        report_version=definition.report_version,
        updated_at=definition.updated_at,
        tags=list(definition.tags),
        document=definition.to_document(),
    )


def record_to_definition(record: ReportRecord) -> ReportDefinition:
    """Convert record back to ReportDefinition model."""
    return ReportDefinition.from_document(record.document)


def record_to_list_item(record: ReportRecord) -> ReportListItem:
    return ReportListItem(
        id=record.report_id,
        name=record.name,
        description=record.description,
        primary_entity=record.primary_entity,
        tags=list(record.tags),
        updated_at=record.updated_at,
        report_version=record.report_version,
    )


class ReportRepository:
    """Repository for report definition persistence operations."""

    def __init__(
        self,
        session: Session,
        *,
        clock: Clock | None = None,
        id_factory: IdFactory | None = None,
        settings: Settings | None = None,
    ):
        self.session = session
        self.clock = clock or utc_now
        self.id_factory = id_factory or new_id
        self.settings = settings or get_settings()

    # =========================================================================
    # Basic CRUD
    # =========================================================================

    def list_all(self) -> list[ReportDefinition]:
        """All stored definitions, most recently updated first."""
        return [record_to_definition(r) for r in self._records()]

    def list_items(self) -> list[ReportListItem]:
        """Lightweight listing of all stored definitions."""
        return [record_to_list_item(r) for r in self._records()]

    def get(self, report_id: str) -> ReportDefinition | None:
        """Get a stored definition by id.

        Args:
            report_id: The report id

        Returns:
            ReportDefinition or None if not found
        """
        record = self.session.get(ReportRecord, report_id)
        if record is None:
            return None
        return record_to_definition(record)

    def require(self, report_id: str) -> ReportDefinition:
        """Get a stored definition by id.

        Raises:
            ReportNotFoundError: If no definition has that id
        """
        definition = self.get(report_id)
        if definition is None:
            raise ReportNotFoundError(report_id)
        return definition

    def put(self, definition: ReportDefinition) -> ReportRecord:
        """Store a definition, replacing any stored document with the same id."""
        record = self.session.get(ReportRecord, definition.id)
        new_record = definition_to_record(definition)
        if record is None:
            self.session.add(new_record)
            record = new_record
        else:
            record.name = new_record.name
            record.description = new_record.description
            record.primary_entity = new_record.primary_entity
            record.report_version = new_record.report_version
            record.updated_at = new_record.updated_at
            record.tags = new_record.tags
            record.document = new_record.document
        self.session.flush()

        logger.info(
            "report_saved",
            report_id=definition.id,
            report_version=definition.report_version,
        )
        return record

    def delete(self, report_id: str) -> bool:
        """Delete a stored definition. Returns False if it did not exist."""
        record = self.session.get(ReportRecord, report_id)
        if record is None:
            return False
        self.session.delete(record)
        self.session.flush()
        logger.info("report_deleted", report_id=report_id)
        return True

    def duplicate(self, report_id: str, new_name: str | None = None) -> ReportDefinition | None:
        """Store a copy of a definition under a new id at version 1.

        Returns:
            The copy, or None if ``report_id`` is not stored
        """
        original = self.get(report_id)
        if original is None:
            return None

        now = self._now()
        copy = original.model_copy(
            update={
                "id": f"{original.id}-copy-{self._short_id()}",
                "name": new_name or f"{original.name} (Copy)",
                "created_at": now,
                "updated_at": now,
                "report_version": 1,
            },
            deep=True,
        )
        self.put(copy)
        return copy

    # =========================================================================
    # Queries
    # =========================================================================

    def search(self, query: str) -> list[ReportListItem]:
        """Case-insensitive match on name, description, tags and primary entity."""
        needle = query.lower()
        return [
            item
            for item in self.list_items()
            if needle in item.name.lower()
            or needle in item.description.lower()
            or any(needle in tag.lower() for tag in item.tags)
            or needle in item.primary_entity.lower()
        ]

    def by_entity(self, entity: str) -> list[ReportListItem]:
        stmt = select(ReportRecord).where(ReportRecord.primary_entity == entity)
        records = self.session.execute(stmt.order_by(ReportRecord.updated_at.desc())).scalars()
        return [record_to_list_item(r) for r in records]

    def by_tag(self, tag: str) -> list[ReportListItem]:
        # Tags live in a JSON column; filtered here to stay dialect independent
        return [item for item in self.list_items() if tag in item.tags]

    def all_tags(self) -> list[str]:
        tags = {tag for record in self._records() for tag in record.tags}
        return sorted(tags)

    def all_entities(self) -> list[str]:
        stmt = select(ReportRecord.primary_entity).distinct()
        return sorted(self.session.execute(stmt).scalars())

    def statistics(self) -> ReportStatistics:
        records = self._records()
        breakdown: dict[str, int] = {}
        for record in records:
            breakdown[record.primary_entity] = breakdown.get(record.primary_entity, 0) + 1

        return ReportStatistics(
            total_reports=len(records),
            total_entities=len(breakdown),
            total_tags=len({tag for r in records for tag in r.tags}),
            last_updated=max((r.updated_at for r in records), default=None),
            entity_breakdown=dict(sorted(breakdown.items())),
        )

    # =========================================================================
    # Export / import
    # =========================================================================

    def export_reports(self, report_ids: list[str] | None = None) -> ReportExport:
        """Bundle stored definitions for export.

        Args:
            report_ids: Ids to export. All stored definitions when None
        """
        definitions = self.list_all()
        if report_ids is not None:
            wanted = set(report_ids)
            definitions = [d for d in definitions if d.id in wanted]

        return ReportExport(
            version=self.settings.export_version,
            reports=definitions,
            exported_at=self._now(),
            exported_by=self.settings.exported_by,
        )

    def export_json(self, report_ids: list[str] | None = None) -> str:
        export = self.export_reports(report_ids)
        return json.dumps(
            export.model_dump(mode="json", by_alias=True, exclude_none=True),
            indent=2,
        )

    def import_reports(self, text: str) -> ImportResult:
        """Import definitions from an export file's text.

        A file that is not JSON, or has no ``reports`` array, imports nothing
        and yields a single error. Otherwise each report is imported on its
        own; a report that fails is skipped with an error naming its 1-based
        position. A report whose id is already stored is imported under a
        new id and name, as a fresh version 1 document.
        """
        result = ImportResult()
        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            result.errors.append("Failed to parse import file")
            return result

        reports = payload.get("reports") if isinstance(payload, dict) else None
        if not isinstance(reports, list):
            result.errors.append("Invalid import file format")
            return result

        for index, document in enumerate(reports, start=1):
            with log_context(import_position=index):
                error = self._import_one(document, result)
                if error is not None:
                    logger.warning("report_import_skipped", reason=error)
                    result.errors.append(f"Report {index}: {error}")

        logger.info("reports_imported", imported=result.count, errors=len(result.errors))
        return result

    def _import_one(self, document: Any, result: ImportResult) -> str | None:
        if not isinstance(document, dict) or not all(document.get(f) for f in REQUIRED_IMPORT_FIELDS):
            return "Missing required fields"

        try:
            definition = ReportDefinition.from_document(document)
        except ValidationError as e:
            return _describe_validation_error(e)

        if self.session.get(ReportRecord, definition.id) is not None:
            now = self._now()
            definition = definition.model_copy(
                update={
                    "id": f"{definition.id}-imported-{self._short_id()}",
                    "name": f"{definition.name} (Imported)",
                    "created_at": now,
                    "updated_at": now,
                    "report_version": 1,
                }
            )

        self.put(definition)
        result.imported.append(definition.id)
        return None

    # =========================================================================
    # Helpers
    # =========================================================================

    def _records(self) -> list[ReportRecord]:
        stmt = select(ReportRecord).order_by(ReportRecord.updated_at.desc())
        return list(self.session.execute(stmt).scalars())

    def _now(self) -> str:
        return format_timestamp(self.clock())

    def _short_id(self) -> str:
        return self.id_factory().replace("-", "")[:8]


def _describe_validation_error(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"Invalid report definition at {location}: {first['msg']}"
