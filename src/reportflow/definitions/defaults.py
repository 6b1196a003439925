"""Default values for new report definitions.

Defaults come from ``Settings`` so deployments can change the owner, security
policy, and execution limits without code changes.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from uuid import uuid4

from reportflow.core.config import Settings, get_settings

from .models import ReportLimits, ReportOwner, ReportSecurity

Clock = Callable[[], datetime]
IdFactory = Callable[[], str]


def utc_now() -> datetime:
    return datetime.now(UTC)


def new_id() -> str:
    return str(uuid4())


def format_timestamp(moment: datetime) -> str:
    """Sortable ISO-8601 UTC text, e.g. ``2025-10-12T09:30:00.000Z``."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(text: str) -> datetime | None:
    """Read a stored timestamp; None for text that is not ISO-8601."""
    try:
        moment = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    return moment if moment.tzinfo else moment.replace(tzinfo=UTC)


def next_timestamp(moment: datetime, previous: str | None = None) -> str:
    """Format ``moment``, moved to 1 ms after ``previous`` when not later than it.

    Keeps ``updatedAt`` strictly increasing across saves that fall within the
    same millisecond, or behind a clock that went backwards.
    """
    text = format_timestamp(moment)
    last = parse_timestamp(previous) if previous else None
    if last is None:
        return text

    current = parse_timestamp(text)
    if current is not None and current > last:
        return text
    return format_timestamp(last + timedelta(milliseconds=1))


def default_owner(settings: Settings | None = None) -> ReportOwner:
    settings = settings or get_settings()
    return ReportOwner(id=settings.default_owner_id, name=settings.default_owner_name)


def default_security(settings: Settings | None = None) -> ReportSecurity:
    settings = settings or get_settings()
    return ReportSecurity(
        execute_as=settings.default_execute_as,
        allowed_roles=list(settings.default_allowed_roles),
        blocked_entities_regex=None,
    )


def default_limits(settings: Settings | None = None) -> ReportLimits:
    settings = settings or get_settings()
    return ReportLimits(
        page_size=settings.page_size,
        preview_rows=settings.preview_rows,
        max_expanded_rows=settings.max_expanded_rows,
        max_columns_per_sheet=settings.max_columns_per_sheet,
        max_link_depth=settings.max_link_depth,
        default_child_top=settings.default_child_top,
    )
