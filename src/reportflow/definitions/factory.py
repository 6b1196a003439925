"""Report definition factories and file loading.

Usage:
    from reportflow.definitions.factory import create_blank, create_sample

    definition = create_blank("Accounts by owner", "account")
    sample = create_sample()
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from reportflow.core.config import Settings, get_settings
from reportflow.core.errors import DefinitionLoadError
from reportflow.core.logging import get_logger

from .defaults import (
    Clock,
    IdFactory,
    default_limits,
    default_owner,
    default_security,
    format_timestamp,
    new_id,
    utc_now,
)
from .models import (
    ReportDefinition,
    ReportGraph,
    ReportHints,
    ReportLayout,
    RowEstimate,
    WorkbookLayout,
)

logger = get_logger(__name__)

SAMPLES_DIR = Path(__file__).parent / "samples"
SAMPLE_FILE = SAMPLES_DIR / "employees_master.yaml"


def create_blank(
    name: str,
    primary_entity: str,
    *,
    clock: Clock | None = None,
    id_factory: IdFactory | None = None,
    settings: Settings | None = None,
) -> ReportDefinition:
    """Create an empty report definition for a new report.

    Args:
        name: Report display name
        primary_entity: Logical name of the root entity
        clock: Source of the creation time
        id_factory: Source of the report id suffix
        settings: Defaults for owner, security and limits

    Returns:
        Version 1 definition with an empty graph
    """
    settings = settings or get_settings()
    now = format_timestamp((clock or utc_now)())

    return ReportDefinition(
        schema_version=settings.schema_version,
        id=f"report-{(id_factory or new_id)()}",
        name=name,
        description="",
        owner=default_owner(settings),
        category_id=None,
        tags=[],
        primary_entity=primary_entity,
        created_at=now,
        updated_at=now,
        report_version=1,
        security=default_security(settings),
        parameters=[],
        graph=ReportGraph(nodes=[], edges=[]),
        layout=ReportLayout(workbook=WorkbookLayout(mode="singleSheet", sheets_order=[])),
        limits=default_limits(settings),
        hints=ReportHints(row_estimate=RowEstimate(base=0, expand_estimate=0), warnings=[]),
    )


def create_sample(
    *,
    clock: Clock | None = None,
    id_factory: IdFactory | None = None,
) -> ReportDefinition:
    """Create a copy of the reference multi-sheet report.

    Each call returns an independent definition with a fresh id and
    timestamps, at version 1.
    """
    now = format_timestamp((clock or utc_now)())
    return _load_sample().model_copy(
        update={
            "id": f"sample-report-{(id_factory or new_id)()}",
            "created_at": now,
            "updated_at": now,
            "report_version": 1,
        },
        deep=True,
    )


@lru_cache(maxsize=1)
def _load_sample() -> ReportDefinition:
    try:
        return ReportDefinition.from_document(_read_yaml(SAMPLE_FILE))
    except ValidationError as e:
        raise DefinitionLoadError(SAMPLE_FILE, f"Invalid report definition: {e}") from e


# =============================================================================
# File loading
# =============================================================================


def load_definition_file(path: Path) -> ReportDefinition:
    """Load a report definition from a JSON or YAML file.

    Raises:
        DefinitionLoadError: If the file cannot be read or is not a valid definition
    """
    if path.suffix.lower() in (".yaml", ".yml"):
        document = _read_yaml(path)
    else:
        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise DefinitionLoadError(path, f"Cannot read file: {e}") from e
        except json.JSONDecodeError as e:
            raise DefinitionLoadError(path, f"Invalid JSON: {e}") from e

    if not isinstance(document, dict):
        raise DefinitionLoadError(path, "Expected a report definition object")

    try:
        definition = ReportDefinition.from_document(document)
    except ValidationError as e:
        raise DefinitionLoadError(path, f"Invalid report definition: {e}") from e

    logger.debug("definition_loaded", path=str(path), report_id=definition.id)
    return definition


def _read_yaml(path: Path) -> Any:
    try:
        with open(path, encoding="utf-8") as f:
            return yaml.safe_load(f)
    except OSError as e:
        raise DefinitionLoadError(path, f"Cannot read file: {e}") from e
    except yaml.YAMLError as e:
        raise DefinitionLoadError(path, f"YAML parse error: {e}") from e
